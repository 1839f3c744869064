"""tidydisk - find and safely remove caches, temp files and stale build output."""

__version__ = "0.3.0"
