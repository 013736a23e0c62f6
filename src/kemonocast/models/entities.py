"""
Pydantic data models for posts, creator profiles and sync records.

Mirrors the JSON returned by the Kemono API. Post records keep any keys
the API adds beyond the ones modelled here, so a stored post serializes
back to what was fetched.
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PostFile(BaseModel):
    """
    A file attached to a post.

    The API sends ``{}`` for a post without a primary file, so both
    fields are optional.
    """
    name: Optional[str] = None
    path: Optional[str] = None


class PostEmbed(BaseModel):
    """Embedded external link (usually a video)."""
    url: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None


class Post(BaseModel):
    """
    Post data model.

    Identity is ``(id, service, user)``; ``user`` is the creator id.
    List endpoints return a truncated ``substring`` instead of the full
    ``content``.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    user: str
    service: str
    title: str = ""
    content: Optional[str] = None
    substring: Optional[str] = None
    embed: Optional[PostEmbed] = None
    shared_file: Optional[bool] = None
    added: Optional[str] = None
    published: Optional[str] = None
    edited: Optional[str] = None
    file: Optional[PostFile] = None
    attachments: List[PostFile] = Field(default_factory=list)

    @field_validator("id", "user", "service", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        """Some services use numeric ids."""
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("attachments", mode="before")
    @classmethod
    def default_attachments(cls, v: Any) -> Any:
        """Drop null attachments and null entries."""
        if v is None:
            return []
        return [att for att in v if att]

    @property
    def creator_id(self) -> str:
        return self.user

    @property
    def identity(self) -> Tuple[str, str, str]:
        """Storage key, in posts-table column order (id, service, creator_id)."""
        return (self.id, self.service, self.user)

    @property
    def body_text(self) -> str:
        """Full content if present, otherwise the truncated substring."""
        return self.content or self.substring or ""


class CreatorProfile(BaseModel):
    """
    Creator profile data model.

    Fetched fresh for every feed request; never stored.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    service: str
    public_id: Optional[str] = None
    indexed: Optional[str] = None
    updated: Optional[str] = None
    relation_id: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v


class SyncRecord(BaseModel):
    """
    Per-creator sync bookkeeping.

    ``backfill_complete`` is set once a full paginated fetch has
    finished, and is what decides between backfill and top-up.
    """
    service: str
    creator_id: str
    last_synced: datetime
    backfill_complete: bool = False
