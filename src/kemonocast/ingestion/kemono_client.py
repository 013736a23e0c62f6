"""
Kemono API client.

Fetches creator profiles, pages of posts, and single post records from
the Kemono v1 JSON API. Every HTTP failure surfaces as UpstreamError;
nothing here retries.

API endpoints:
    GET {base}/{service}/user/{creator_id}/profile
    GET {base}/{service}/user/{creator_id}/posts?o={offset}
    GET {base}/{service}/user/{creator_id}/post/{post_id}

Example:
    >>> from kemonocast.ingestion.kemono_client import KemonoClient
    >>> client = KemonoClient(get_config())
    >>> profile = client.fetch_profile("patreon", "123456")
    >>> posts = client.fetch_all_posts("patreon", "123456")
"""

import logging
import time
from typing import Any, Dict, Iterator, List, Optional

import requests

from kemonocast.config import Config
from kemonocast.exceptions import UpstreamError
from kemonocast.models.entities import CreatorProfile, Post

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
#  Constants
# ---------------------------------------------------------------------------

# The API sits behind DDoS protection that only lets this Accept value through
DEFAULT_HEADERS = {
    "Accept": "text/css",
}

# Characters of an error body kept on UpstreamError
ERROR_BODY_LIMIT = 500


class KemonoClient:
    """
    Thin client for the Kemono JSON API.

    Attributes:
        api_base_url: Base URL of the JSON API
        site_base_url: Base URL of the public site (pages and files)
        page_size: Posts per page returned by the posts endpoint
        page_delay: Seconds to wait between page requests in a backfill
        timeout: Per-request timeout in seconds
        session: requests.Session used for every call
    """

    def __init__(
        self,
        config: Config,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize the client from application config.

        Args:
            config: Application configuration
            session: Session to use; a new one is created if omitted
        """
        self.api_base_url = config.api_base_url.rstrip("/")
        self.site_base_url = config.site_base_url.rstrip("/")
        self.page_size = config.page_size
        self.page_delay = config.page_delay
        self.timeout = config.request_timeout

        self.headers: Dict[str, str] = dict(DEFAULT_HEADERS)
        if config.session_cookie:
            self.headers["Cookie"] = config.session_cookie

        self.session = session if session is not None else requests.Session()

    # -------------------------------------------------------------------
    #  API calls
    # -------------------------------------------------------------------

    def fetch_profile(self, service: str, creator_id: str) -> CreatorProfile:
        """
        Fetch a creator's profile.

        Raises:
            UpstreamError: On a non-success status or transport failure
        """
        data = self._get_json(f"{self._creator_base(service, creator_id)}/profile")
        return CreatorProfile.model_validate(data)

    def fetch_posts_page(
        self,
        service: str,
        creator_id: str,
        offset: int = 0,
    ) -> List[Post]:
        """
        Fetch one page of a creator's posts.

        The upstream orders posts newest first. An empty list means there
        are no posts at that offset.

        Args:
            service: Upstream service name
            creator_id: Creator id on that service
            offset: Number of posts to skip

        Returns:
            List of posts on the page (list records carry ``substring``,
            not full ``content``)

        Raises:
            UpstreamError: On a non-success status or transport failure
        """
        params = {"o": offset} if offset else None
        data = self._get_json(
            f"{self._creator_base(service, creator_id)}/posts",
            params=params,
        )
        if not isinstance(data, list):
            raise UpstreamError(
                200,
                f"expected a list of posts, got {type(data).__name__}",
            )
        return [Post.model_validate(item) for item in data]

    def iter_post_pages(self, service: str, creator_id: str) -> Iterator[List[Post]]:
        """
        Yield every page of a creator's posts, oldest offset first.

        Stops after the first empty page or the first page holding fewer
        than ``page_size`` posts. Sleeps ``page_delay`` seconds before each
        request after the first.

        Raises:
            UpstreamError: From the page that failed; earlier pages have
                already been yielded
        """
        offset = 0
        while True:
            if offset:
                time.sleep(self.page_delay)
            page = self.fetch_posts_page(service, creator_id, offset=offset)
            logger.debug(
                "Got %d post(s) for %s/%s at offset %d",
                len(page),
                service,
                creator_id,
                offset,
            )
            if not page:
                return
            yield page
            if len(page) < self.page_size:
                return
            offset += self.page_size

    def fetch_all_posts(self, service: str, creator_id: str) -> List[Post]:
        """
        Fetch a creator's full post history by paginating.

        Returns:
            All posts, concatenated in arrival order

        Raises:
            UpstreamError: If any page request fails
        """
        all_posts: List[Post] = []
        for page in self.iter_post_pages(service, creator_id):
            all_posts.extend(page)
        logger.info(
            "Fetched %d post(s) for %s/%s",
            len(all_posts),
            service,
            creator_id,
        )
        return all_posts

    def fetch_post_detail(self, service: str, creator_id: str, post_id: str) -> Post:
        """
        Fetch the full record of a single post.

        The endpoint wraps the post as ``{"post": {...}}``; a bare post
        object is accepted too.

        Raises:
            UpstreamError: On a non-success status or transport failure
        """
        data = self._get_json(f"{self._creator_base(service, creator_id)}/post/{post_id}")
        if isinstance(data, dict) and isinstance(data.get("post"), dict):
            data = data["post"]
        return Post.model_validate(data)

    # -------------------------------------------------------------------
    #  Public site URLs
    # -------------------------------------------------------------------

    def creator_page_url(self, service: str, creator_id: str) -> str:
        return f"{self.site_base_url}/{service}/user/{creator_id}"

    def post_url(self, service: str, creator_id: str, post_id: str) -> str:
        return f"{self.site_base_url}/{service}/user/{creator_id}/post/{post_id}"

    def file_url(self, path: str) -> str:
        """File paths from the API are site-relative."""
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.site_base_url}{path}"

    # -------------------------------------------------------------------
    #  Internal helpers
    # -------------------------------------------------------------------

    def _creator_base(self, service: str, creator_id: str) -> str:
        return f"{self.api_base_url}/{service}/user/{creator_id}"

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a URL and decode the JSON body.

        Raises:
            UpstreamError: On a non-success status, transport failure,
                or a body that is not JSON
        """
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self.session.get(
                url,
                params=params,
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            body = exc.response.text[:ERROR_BODY_LIMIT] if exc.response is not None else str(exc)
            logger.error("Upstream HTTP %s for %s: %s", status, url, body)
            raise UpstreamError(status, body, url) from exc
        except requests.exceptions.RequestException as exc:
            logger.error("Upstream request failed for %s: %s", url, exc)
            raise UpstreamError(None, str(exc), url) from exc

        logger.debug("Response %d for %s", response.status_code, url)

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                response.status_code,
                f"invalid JSON: {response.text[:ERROR_BODY_LIMIT]}",
                url,
            ) from exc
