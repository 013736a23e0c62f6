"""
Data models and database management.

Provides the SQLite schema, Pydantic data models, and the PostStore
access layer for cached posts and sync records.
"""

from kemonocast.models.database import PostStore
from kemonocast.models.schema import create_all_tables, get_table_names, SCHEMA_SQL
from kemonocast.models.entities import (
    CreatorProfile,
    Post,
    PostEmbed,
    PostFile,
    SyncRecord,
)

__all__ = [
    "PostStore",
    "create_all_tables",
    "get_table_names",
    "SCHEMA_SQL",
    "CreatorProfile",
    "Post",
    "PostEmbed",
    "PostFile",
    "SyncRecord",
]
