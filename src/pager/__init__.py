"""Pager - a personal page/note viewer backed by synced git repositories."""

__version__ = "0.1.0"
