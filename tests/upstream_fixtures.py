"""
Helpers that stand in for the Kemono API in tests.

FakeUpstream answers ``requests.Session.get`` calls from in-memory data
and returns real ``requests.Response`` objects, so the client's status
and JSON handling run unchanged.
"""

import json
import sqlite3
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

import requests


API_BASE_URL = "https://kemono.test/api/v1"
SITE_BASE_URL = "https://kemono.test"


def make_post(
    post_id: str = "1001",
    service: str = "patreon",
    user: str = "123456",
    title: str = "Episode 1",
    published: Optional[str] = "2024-01-01T12:00:00",
    substring: Optional[str] = "Short preview",
    content: Optional[str] = None,
    file: Optional[Dict[str, Any]] = None,
    attachments: Optional[List[Dict[str, Any]]] = None,
    embed: Optional[Dict[str, Any]] = None,
    added: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a post object shaped like the Kemono list endpoint returns."""
    return {
        "id": post_id,
        "user": user,
        "service": service,
        "title": title,
        "substring": substring,
        "content": content,
        "embed": embed if embed is not None else {},
        "shared_file": False,
        "added": added,
        "published": published,
        "edited": None,
        "file": file if file is not None else {},
        "attachments": attachments or [],
    }


def make_profile(
    creator_id: str = "123456",
    service: str = "patreon",
    name: str = "Test Creator",
) -> Dict[str, Any]:
    """Build a creator profile object."""
    return {
        "id": creator_id,
        "name": name,
        "service": service,
        "indexed": "2023-01-01T00:00:00",
        "updated": "2024-06-01T00:00:00",
        "public_id": name.lower().replace(" ", ""),
        "relation_id": None,
    }


def make_posts(count: int, service: str = "patreon", user: str = "123456") -> List[Dict[str, Any]]:
    """Build ``count`` posts, newest first, with distinct published dates."""
    base = datetime(2024, 1, 1)
    posts = []
    for i in range(count, 0, -1):
        posts.append(
            make_post(
                post_id=str(i),
                service=service,
                user=user,
                title=f"Post {i}",
                published=(base + timedelta(hours=i)).isoformat(),
            )
        )
    return posts


LEGACY_SCHEMA_SQL = """
CREATE TABLE posts (
    id TEXT NOT NULL,
    service TEXT NOT NULL,
    creator_id TEXT NOT NULL,
    post_data TEXT NOT NULL,
    published TEXT NOT NULL,
    fetched_at TEXT NOT NULL,
    PRIMARY KEY (id, service, creator_id)
);
CREATE TABLE creators (
    service TEXT NOT NULL,
    creator_id TEXT NOT NULL,
    last_synced TEXT NOT NULL,
    PRIMARY KEY (service, creator_id)
);
CREATE INDEX idx_posts_creator ON posts (service, creator_id, published DESC);
"""


def make_legacy_database(
    db_path: Path,
    posts: Iterable[Dict[str, Any]] = (),
    synced: Iterable[Tuple[str, str]] = (),
) -> None:
    """
    Write a database in the layout used before the backfill flag.

    Args:
        db_path: Database file to create
        posts: Post dicts to store
        synced: (service, creator_id) pairs that get a creators row
    """
    conn = sqlite3.connect(str(db_path))
    try:
        conn.executescript(LEGACY_SCHEMA_SQL)
        for post in posts:
            conn.execute(
                "INSERT INTO posts VALUES (?, ?, ?, ?, ?, ?)",
                (
                    post["id"],
                    post["service"],
                    post["user"],
                    json.dumps(post),
                    post["published"] or "",
                    "2024-06-01T00:00:00.000Z",
                ),
            )
        for service, creator_id in synced:
            conn.execute(
                "INSERT INTO creators VALUES (?, ?, ?)",
                (service, creator_id, "2024-06-01T00:00:00.000Z"),
            )
        conn.commit()
    finally:
        conn.close()


def make_response(status: int, payload: Any, url: str) -> requests.Response:
    """Build a real requests.Response carrying a JSON (or text) body."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.encoding = "utf-8"
    if isinstance(payload, (bytes, str)):
        body = payload.encode("utf-8") if isinstance(payload, str) else payload
    else:
        body = json.dumps(payload).encode("utf-8")
    response._content = body
    return response


class FakeUpstream:
    """
    In-memory Kemono API.

    Attributes:
        profiles: (service, creator_id) -> profile dict
        posts: (service, creator_id) -> post dicts, newest first
        details: (service, creator_id, post_id) -> full post dict
        failures: (service, creator_id, endpoint) -> HTTP status to return,
            where endpoint is "profile", "posts", "posts:{offset}" or
            "post:{post_id}"
        calls: every (path, params) requested, in order
    """

    def __init__(self, page_size: int = 50) -> None:
        self.page_size = page_size
        self.profiles: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.posts: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
        self.details: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.failures: Dict[Tuple[str, str, str], int] = {}
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self._lock = threading.Lock()

    def add_creator(
        self,
        service: str,
        creator_id: str,
        posts: List[Dict[str, Any]],
        name: str = "Test Creator",
    ) -> None:
        self.profiles[(service, creator_id)] = make_profile(creator_id, service, name)
        self.posts[(service, creator_id)] = list(posts)

    def page_calls(self, service: str, creator_id: str) -> List[Optional[Dict[str, Any]]]:
        """Params of every posts-page request made for a creator."""
        suffix = f"/{service}/user/{creator_id}/posts"
        return [params for path, params in self.calls if path.endswith(suffix)]

    def detail_calls(self) -> List[str]:
        return [path for path, _ in self.calls if "/post/" in path]

    def get(self, url: str, params=None, headers=None, timeout=None) -> requests.Response:
        """Stand-in for requests.Session.get."""
        path = urlparse(url).path
        with self._lock:
            self.calls.append((path, dict(params) if params else None))

        parts = path[len(urlparse(API_BASE_URL).path):].strip("/").split("/")
        service, creator_id, endpoint = parts[0], parts[2], parts[3]
        key = (service, creator_id)

        if endpoint == "profile":
            return self._respond(url, (service, creator_id, "profile"), lambda: self.profiles.get(key))

        if endpoint == "posts":
            offset = int((params or {}).get("o", 0))
            failure_keys = [(service, creator_id, "posts"), (service, creator_id, f"posts:{offset}")]
            for failure_key in failure_keys:
                if failure_key in self.failures:
                    return make_response(self.failures[failure_key], "upstream broke", url)
            all_posts = self.posts.get(key)
            if all_posts is None:
                return make_response(404, {"error": "Creator not found."}, url)
            return make_response(200, all_posts[offset:offset + self.page_size], url)

        post_id = parts[4]

        def detail():
            if (service, creator_id, post_id) in self.details:
                return {"post": self.details[(service, creator_id, post_id)]}
            for post in self.posts.get(key, []):
                if post["id"] == post_id:
                    return {"post": post}
            return None

        return self._respond(url, (service, creator_id, f"post:{post_id}"), detail)

    def _respond(self, url, failure_key, build) -> requests.Response:
        if failure_key in self.failures:
            return make_response(self.failures[failure_key], "upstream broke", url)
        payload = build()
        if payload is None:
            return make_response(404, {"error": "Not found."}, url)
        return make_response(200, payload, url)
