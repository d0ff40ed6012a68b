"""Renewal persistence.

The loader reads and validates renewal files, the writer applies pending
changes to disk, and the store ties both to the in-memory cache.
"""
