"""
Feed module for building podcast RSS documents from cached posts.
"""

from kemonocast.feed.builder import FeedAssembler, FeedItem, Enclosure
from kemonocast.feed.media import AUDIO_EXTENSIONS, get_mime_type, is_audio_file

__all__ = [
    "FeedAssembler",
    "FeedItem",
    "Enclosure",
    "AUDIO_EXTENSIONS",
    "get_mime_type",
    "is_audio_file",
]
