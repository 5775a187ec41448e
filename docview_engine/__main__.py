"""Entry point for running docview_engine as a module.

Usage:
    python -m docview_engine <command> [options]
"""
from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
