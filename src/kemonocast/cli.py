"""
Command-line interface for kemonocast.

Usage:
    kemonocast serve                        # Run the HTTP feed server
    kemonocast serve --port 8080            # ... on another port
    kemonocast sync patreon 123456          # Sync a creator's posts into the cache
    kemonocast feed patreon 123456          # Print a creator's feed
    kemonocast feed patreon 123456 -o f.xml # Write it to a file
    kemonocast status patreon 123456        # Show cached post count and last sync
    kemonocast status patreon 123456 --output-json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from kemonocast.config import get_config
from kemonocast.exceptions import UpstreamError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def cmd_serve(args):
    """Run the HTTP server."""
    import uvicorn

    from kemonocast.server import create_app

    config = get_config()
    host = args.host or config.host
    port = args.port or config.port

    app = create_app(config)
    logging.getLogger(__name__).info("kemonocast listening on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())


def cmd_sync(args):
    """Sync a creator's posts into the local cache."""
    from kemonocast.service import FeedService

    service = FeedService.from_config(get_config())
    try:
        posts = service.engine.sync(args.service, args.creator_id)
    except UpstreamError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    print(f"Synced {args.service}/{args.creator_id}: {len(posts)} post(s) cached")


def cmd_feed(args):
    """Build a creator's feed."""
    from kemonocast.service import FeedService

    service = FeedService.from_config(get_config())
    try:
        feed = service.build(args.service, args.creator_id)
    except UpstreamError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        Path(args.output).write_text(feed, encoding="utf-8")
        print(f"Wrote feed to {args.output}")
    else:
        sys.stdout.write(feed)


def cmd_status(args):
    """Show cache status for a creator."""
    from kemonocast.models.database import PostStore

    store = PostStore(get_config().db_path)
    store.initialize()
    record = store.get_sync_record(args.service, args.creator_id)
    count = store.count(args.service, args.creator_id)

    if args.output_json:
        print(json.dumps({
            "service": args.service,
            "creator_id": args.creator_id,
            "post_count": count,
            "last_synced": record.last_synced.isoformat() if record else None,
            "backfill_complete": record.backfill_complete if record else False,
        }, indent=2))
        return

    print(f"{args.service}/{args.creator_id}")
    print(f"  Cached posts:      {count}")
    if record is None:
        print("  Last synced:       never")
    else:
        print(f"  Last synced:       {record.last_synced.isoformat()}")
        print(f"  Backfill complete: {'yes' if record.backfill_complete else 'no'}")


def _add_creator_arguments(subparser):
    subparser.add_argument("service", help="Upstream service (e.g. patreon, fanbox)")
    subparser.add_argument("creator_id", help="Creator id on that service")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="kemonocast",
        description="Podcast RSS feeds from Kemono creators",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve
    sub_serve = subparsers.add_parser("serve", help="Run the HTTP feed server")
    sub_serve.add_argument("--host", default=None, help="Interface to bind (default: config host)")
    sub_serve.add_argument("--port", type=int, default=None, help="Port to listen on (default: config port)")
    sub_serve.set_defaults(func=cmd_serve)

    # sync
    sub_sync = subparsers.add_parser("sync", help="Sync a creator's posts into the cache")
    _add_creator_arguments(sub_sync)
    sub_sync.set_defaults(func=cmd_sync)

    # feed
    sub_feed = subparsers.add_parser("feed", help="Build a creator's podcast feed")
    _add_creator_arguments(sub_feed)
    sub_feed.add_argument("-o", "--output", default=None, help="Write the feed to this file")
    sub_feed.set_defaults(func=cmd_feed)

    # status
    sub_status = subparsers.add_parser("status", help="Show cache status for a creator")
    _add_creator_arguments(sub_status)
    sub_status.add_argument(
        "--output-json",
        action="store_true",
        default=False,
        help="Output result as JSON",
    )
    sub_status.set_defaults(func=cmd_status)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    level = "DEBUG" if args.verbose else get_config().log_level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

    args.func(args)


if __name__ == "__main__":
    main()
