from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .utils import load_json

_SECTIONS = ("columns", "lines", "render", "references", "locate", "search", "debug")


@dataclass(frozen=True)
class EngineConfig:
    columns: dict[str, Any] = field(default_factory=dict)
    lines: dict[str, Any] = field(default_factory=dict)
    render: dict[str, Any] = field(default_factory=dict)
    references: dict[str, Any] = field(default_factory=dict)
    locate: dict[str, Any] = field(default_factory=dict)
    search: dict[str, Any] = field(default_factory=dict)
    debug: dict[str, Any] = field(default_factory=dict)


def config_from_dict(data: dict[str, Any] | None) -> EngineConfig:
    data = data or {}
    return EngineConfig(**{name: dict(data.get(name, {}) or {}) for name in _SECTIONS})


def load_config(config_path: str | Path | None) -> EngineConfig:
    """Load stage knobs from JSON. No path (or a missing file) means built-in defaults."""
    if config_path is None:
        return EngineConfig()
    p = Path(config_path)
    if not p.exists():
        return EngineConfig()
    return config_from_dict(load_json(p))
