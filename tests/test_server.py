"""
Tests for the HTTP front end.

Covers:
- Usage text and plain-text 404s
- Feed responses (content type, caching header, body)
- 500 responses when the upstream fails
"""

import xml.etree.ElementTree as ET

import pytest
from fastapi.testclient import TestClient

from kemonocast.server import RSS_MEDIA_TYPE, create_app
from kemonocast.service import FeedService

from upstream_fixtures import make_post, make_posts


@pytest.fixture
def feed_service(test_config, upstream) -> FeedService:
    return FeedService.from_config(test_config, session=upstream)


@pytest.fixture
def http(test_config, feed_service) -> TestClient:
    return TestClient(create_app(test_config, feed_service=feed_service))


class TestUsage:
    """Tests for the root route and unknown paths."""

    def test_root_returns_usage(self, http):
        response = http.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "Usage: /get/{service}/{creatorId}" in response.text
        assert "Example: /get/patreon/123456" in response.text

    @pytest.mark.parametrize("path", ["/nope", "/get/patreon", "/get/patreon/1/extra", "/silent.mp3"])
    def test_unknown_paths_are_plain_404(self, http, path):
        response = http.get(path)

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Not Found"


class TestFeedRoute:
    """Tests for GET /get/{service}/{creator_id}."""

    def test_feed_response(self, http, upstream):
        upstream.add_creator(
            "patreon",
            "123456",
            [make_post(post_id="1", file={"name": "ep.mp3", "path": "/data/ep.mp3"})],
            name="Night Radio",
        )

        response = http.get("/get/patreon/123456")

        assert response.status_code == 200
        assert response.headers["content-type"] == RSS_MEDIA_TYPE
        assert response.headers["cache-control"] == "public, max-age=300"
        channel = ET.fromstring(response.content).find("channel")
        assert channel.find("title").text == "Night Radio"
        assert len(channel.findall("item")) == 1

    def test_cache_header_follows_config(self, test_config, upstream):
        config = test_config.model_copy(update={"cache_max_age": 60})
        service = FeedService.from_config(config, session=upstream)
        upstream.add_creator("patreon", "123456", [])

        response = TestClient(create_app(config, feed_service=service)).get("/get/patreon/123456")

        assert response.headers["cache-control"] == "public, max-age=60"

    def test_second_request_tops_up(self, http, upstream):
        upstream.add_creator("patreon", "123456", make_posts(120))

        http.get("/get/patreon/123456")
        http.get("/get/patreon/123456")

        calls = upstream.page_calls("patreon", "123456")
        assert calls == [None, {"o": 50}, {"o": 100}, None]

    def test_unknown_creator_is_500(self, http):
        response = http.get("/get/patreon/missing")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("Error: ")
        assert "404" in response.text

    def test_sync_failure_is_500(self, http, upstream):
        upstream.add_creator("patreon", "123456", make_posts(3))
        upstream.failures[("patreon", "123456", "posts")] = 503

        response = http.get("/get/patreon/123456")

        assert response.status_code == 500
        assert response.text.startswith("Error: ")

    def test_detail_failure_still_serves_feed(self, http, upstream):
        upstream.add_creator("patreon", "123456", [make_post(post_id="9", substring="teaser")])
        upstream.failures[("patreon", "123456", "post:9")] = 500

        response = http.get("/get/patreon/123456")

        assert response.status_code == 200
        assert "<![CDATA[teaser]]>" in response.text
