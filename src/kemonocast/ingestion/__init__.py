"""
Ingestion module for fetching creator posts from Kemono.

Provides the API client and the sync engine that keeps the local post
cache up to date.
"""

from kemonocast.ingestion.kemono_client import KemonoClient
from kemonocast.ingestion.sync import SyncEngine

__all__ = ["KemonoClient", "SyncEngine"]
