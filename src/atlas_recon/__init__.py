"""Rebuild individual sprites from packed texture atlases."""

__version__ = "0.1.0"
