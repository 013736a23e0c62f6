"""
Kemono podcast feed server.

Turns a Kemono creator's posts into a podcast-compatible RSS feed,
caching fetched posts locally in SQLite.
"""

__version__ = "0.1.0"
__author__ = "kemonocast contributors"

from kemonocast.config import Config

__all__ = ["Config", "__version__"]
