"""Entry point for running pagetext_engine as a module.

Usage:
    python -m pagetext_engine <command> [options]
"""
from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
