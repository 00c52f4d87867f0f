"""Fuzzy file-path search daemon."""

__version__ = "0.1.0"
