"""Minimal authenticated notepad: accounts, sessions and one document per user."""

__version__ = "0.1.0"
