"""KAIRO - narrative highlight clips from gameplay VODs."""

__version__ = "0.1.0"
