"""
HTTP front end.

Routes:
    GET /get/{service}/{creator_id}   podcast RSS feed for a creator
    GET /                             plain-text usage
    anything else                     404

Route handlers are plain (sync) functions, so FastAPI runs each request
in its threadpool and requests for different creators proceed in parallel.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from kemonocast.config import Config, get_config
from kemonocast.service import FeedService

logger = logging.getLogger(__name__)

RSS_MEDIA_TYPE = "application/rss+xml; charset=utf-8"

USAGE_TEXT = """Kemono Podcast RSS Server

Usage: /get/{service}/{creatorId}

Example: /get/patreon/123456

Supported services: patreon, fanbox, gumroad, subscribestar, dlsite, fantia, boosty, afdian
"""


def create_app(
    config: Optional[Config] = None,
    feed_service: Optional[FeedService] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Application configuration (loaded from the environment if None)
        feed_service: Feed pipeline (built from config if None)

    Returns:
        Configured FastAPI app
    """
    if config is None:
        config = get_config()
    if feed_service is None:
        feed_service = FeedService.from_config(config)

    app = FastAPI(
        title="kemonocast",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.state.feed_service = feed_service

    cache_control = f"public, max-age={config.cache_max_age}"

    @app.exception_handler(StarletteHTTPException)
    async def plain_http_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        message = "Not Found" if exc.status_code == 404 else str(exc.detail)
        return PlainTextResponse(message, status_code=exc.status_code)

    @app.get("/", response_class=PlainTextResponse)
    def usage() -> str:
        return USAGE_TEXT

    @app.get("/get/{service}/{creator_id}")
    def get_feed(service: str, creator_id: str) -> Response:
        logger.info("Feed request for %s/%s", service, creator_id)
        try:
            feed = feed_service.build(service, creator_id)
        except Exception as exc:
            logger.exception("Error generating feed for %s/%s", service, creator_id)
            return PlainTextResponse(f"Error: {exc}", status_code=500)

        return Response(
            content=feed,
            media_type=RSS_MEDIA_TYPE,
            headers={"Cache-Control": cache_control},
        )

    return app
