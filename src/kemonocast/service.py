"""
Feed pipeline: profile + sync + assembly for one creator.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import requests

from kemonocast.config import Config
from kemonocast.feed.builder import FeedAssembler
from kemonocast.ingestion.kemono_client import KemonoClient
from kemonocast.ingestion.sync import SyncEngine
from kemonocast.models.database import PostStore

logger = logging.getLogger(__name__)


class FeedService:
    """
    Produces a creator's podcast feed.

    The store, client, sync engine and assembler are all injected;
    ``from_config`` wires the default set.

    Example:
        >>> service = FeedService.from_config(get_config())
        >>> xml = service.build("patreon", "123456")
    """

    def __init__(
        self,
        store: PostStore,
        client: KemonoClient,
        engine: SyncEngine,
        assembler: FeedAssembler,
    ) -> None:
        self.store = store
        self.client = client
        self.engine = engine
        self.assembler = assembler

    @classmethod
    def from_config(
        cls,
        config: Config,
        session: Optional[requests.Session] = None,
    ) -> "FeedService":
        """
        Build a service with its own store and client.

        Args:
            config: Application configuration
            session: HTTP session for the upstream client (optional)
        """
        store = PostStore(config.db_path)
        store.initialize()
        client = KemonoClient(config, session=session)
        return cls(
            store=store,
            client=client,
            engine=SyncEngine(store, client),
            assembler=FeedAssembler(
                client,
                max_workers=config.detail_workers,
                language=config.feed_language,
            ),
        )

    def build(self, service: str, creator_id: str) -> str:
        """
        Sync a creator and build their feed document.

        The profile fetch and the sync run concurrently.

        Raises:
            UpstreamError: If the profile fetch or the sync fails
        """
        started = time.monotonic()
        with ThreadPoolExecutor(max_workers=2) as executor:
            profile_future = executor.submit(self.client.fetch_profile, service, creator_id)
            posts_future = executor.submit(self.engine.sync, service, creator_id)
            profile = profile_future.result()
            posts = posts_future.result()

        feed = self.assembler.build_feed(profile, posts)
        logger.info(
            "Built feed for %s/%s (%s): %d post(s), %d chars in %.2fs",
            service,
            creator_id,
            profile.name,
            len(posts),
            len(feed),
            time.monotonic() - started,
        )
        return feed
