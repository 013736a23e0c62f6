"""
Incremental synchronization of a creator's posts into the local cache.

A creator whose full history has never been fetched gets a backfill: every
page is requested and stored as it arrives, and only when the last page
is in does the creator get flagged as backfilled. A backfilled creator
gets a top-up: the first page only, which is where new posts show up.

Concurrent syncs of the same creator are coalesced: the first caller does
the work, the rest wait for its outcome.

Example:
    >>> engine = SyncEngine(store, client)
    >>> posts = engine.sync("patreon", "123456")
"""

import logging
import threading
from concurrent.futures import Future
from typing import Dict, List, Tuple

from kemonocast.ingestion.kemono_client import KemonoClient
from kemonocast.models.database import PostStore
from kemonocast.models.entities import Post

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Keeps the PostStore up to date with the upstream for one creator at a time.

    Holds no persistent state; the in-flight table only lives for the
    duration of each sync.

    Attributes:
        store: Post cache
        client: Upstream API client
    """

    def __init__(self, store: PostStore, client: KemonoClient) -> None:
        self.store = store
        self.client = client
        self._inflight: Dict[Tuple[str, str], Future] = {}
        self._lock = threading.Lock()

    def sync(self, service: str, creator_id: str) -> List[Post]:
        """
        Synchronize a creator and return their stored posts.

        If a sync for the same creator is already running, waits for it
        and returns (or raises) its outcome instead of starting another.

        Args:
            service: Upstream service name
            creator_id: Creator id on that service

        Returns:
            All stored posts for the creator, newest first

        Raises:
            UpstreamError: If any upstream request fails. Pages stored
                before the failure are kept; the creator is not marked
                synced.
        """
        key = (service, creator_id)
        with self._lock:
            pending = self._inflight.get(key)
            if pending is None:
                future: Future = Future()
                self._inflight[key] = future

        if pending is not None:
            logger.debug("Waiting for in-flight sync of %s/%s", service, creator_id)
            return list(pending.result())

        try:
            posts = self._run(service, creator_id)
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(posts)
            return posts
        finally:
            with self._lock:
                del self._inflight[key]

    def _run(self, service: str, creator_id: str) -> List[Post]:
        if self.store.is_backfilled(service, creator_id):
            page = self.client.fetch_posts_page(service, creator_id)
            fetched = self.store.upsert_many(page)
            self.store.mark_synced(service, creator_id)
            mode = "top-up"
        else:
            fetched = 0
            for page in self.client.iter_post_pages(service, creator_id):
                fetched += self.store.upsert_many(page)
            self.store.mark_synced(service, creator_id, backfill_complete=True)
            mode = "backfill"

        posts = self.store.get_all(service, creator_id)
        logger.info(
            "Synced %s/%s (%s): fetched %d, stored %d",
            service,
            creator_id,
            mode,
            fetched,
            len(posts),
        )
        return posts
