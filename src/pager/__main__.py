"""Entry point for running pager as a module."""

from __future__ import annotations

from pager.cli import main

if __name__ == "__main__":
    main()
