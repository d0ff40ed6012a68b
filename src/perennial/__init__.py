"""Perennial - file-backed store for recurring renewal records."""

__version__ = "0.1.0"
