"""Shared work/break countdown timer replicated through a key-value store."""

__version__ = "0.1.0"
