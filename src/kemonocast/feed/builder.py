"""
Podcast RSS feed assembly.

Turns a creator profile and their cached posts into an RSS 2.0 document
with iTunes podcast extensions. Posts carrying audio files become one
episode per file, with an enclosure. Posts without audio become a single
item whose description is built from the full post record, fetched from
the upstream per post; a failed fetch only degrades that item's
description to the list text.

Example:
    >>> assembler = FeedAssembler(client, max_workers=4)
    >>> xml = assembler.build_feed(profile, posts)
"""

import html
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Dict, List, Optional
from urllib.parse import quote
from xml.sax.saxutils import escape

from dateutil import parser as date_parser

from kemonocast.feed.media import get_mime_type, is_audio_file
from kemonocast.ingestion.kemono_client import KemonoClient
from kemonocast.models.entities import CreatorProfile, Post

logger = logging.getLogger(__name__)

ITUNES_CATEGORY = "Arts"

# Characters outside the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Left unencoded in item identifiers, like JavaScript's encodeURIComponent
_GUID_SAFE_CHARS = "!~*'()"


# ---------------------------------------------------------------------------
#  Data models
# ---------------------------------------------------------------------------

@dataclass
class Enclosure:
    """Audio file reference attached to an episode."""

    url: str
    mime_type: str
    length: int = 0


@dataclass
class AudioFile:
    """An audio-bearing file found on a post."""

    name: str
    url: Optional[str]
    mime_type: str


@dataclass
class FeedItem:
    """
    One <item> of the feed.

    Text fields hold raw (unescaped) values; escaping happens at render time.

    Attributes:
        title: Item title
        link: Canonical post page URL
        description: HTML body
        pub_date: RFC 2822 date string
        guid: Identifier unique within the feed
        author: Creator display name
        enclosure: Audio enclosure, None for text posts
    """

    title: str
    link: str
    description: str
    pub_date: str
    guid: str
    author: str
    enclosure: Optional[Enclosure] = None


# ---------------------------------------------------------------------------
#  Text helpers
# ---------------------------------------------------------------------------

def escape_xml(text: str) -> str:
    """Escape the five reserved XML characters (applied once, to raw text)."""
    return escape(_INVALID_XML_CHARS.sub("", text), _XML_ENTITIES)


def cdata(text: str) -> str:
    """
    Wrap text in a CDATA section.

    A literal ``]]>`` inside the text is split across two sections.
    """
    cleaned = _INVALID_XML_CHARS.sub("", text)
    return "<![CDATA[" + cleaned.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def format_pub_date(post: Post, now: Optional[datetime] = None) -> str:
    """
    Format a post's date for <pubDate>.

    Tries ``published``, then ``added``, then the current time. Naive
    timestamps are taken as UTC.

    Args:
        post: Post to date
        now: Fallback time (defaults to now, UTC)

    Returns:
        Date string like "Mon, 01 Jan 2024 12:00:00 GMT"
    """
    for value in (post.published, post.added):
        if not value:
            continue
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            logger.debug("Unparseable date %r on post %s", value, post.id)
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return format_datetime(parsed.astimezone(timezone.utc), usegmt=True)
    return format_datetime(now or datetime.now(timezone.utc), usegmt=True)


def audio_guid(post_id: str, file_name: str) -> str:
    """Item identifier for one audio file of a post."""
    return f"{post_id}-{quote(file_name, safe=_GUID_SAFE_CHARS)}"


# ---------------------------------------------------------------------------
#  Assembler
# ---------------------------------------------------------------------------

class FeedAssembler:
    """
    Builds podcast RSS documents from cached posts.

    Attributes:
        client: Upstream client, used for URLs and post detail fetches
        max_workers: Upper bound on concurrent detail fetches
        language: Channel language code
    """

    def __init__(
        self,
        client: KemonoClient,
        max_workers: int = 4,
        language: str = "en-us",
    ) -> None:
        self.client = client
        self.max_workers = max(1, max_workers)
        self.language = language

    def build_feed(self, profile: CreatorProfile, posts: List[Post]) -> str:
        """Build the RSS document for a creator."""
        return self.render(profile, self.build_items(profile, posts))

    def find_audio_files(self, post: Post) -> List[AudioFile]:
        """
        Collect the audio-bearing files of a post.

        The primary file comes first, then attachments in their order.
        Files are classified by name alone; one without a path gets no URL.
        """
        candidates = []
        if post.file is not None:
            candidates.append(post.file)
        candidates.extend(post.attachments)

        audios = []
        for candidate in candidates:
            if candidate.name and is_audio_file(candidate.name):
                audios.append(
                    AudioFile(
                        name=candidate.name,
                        url=self.client.file_url(candidate.path) if candidate.path else None,
                        mime_type=get_mime_type(candidate.name),
                    )
                )
        return audios

    def build_items(self, profile: CreatorProfile, posts: List[Post]) -> List[FeedItem]:
        """
        Classify posts and build their feed items, in post order.

        Detail fetches for non-audio posts run on a bounded thread pool;
        each failure is contained to its own item.
        """
        audio_by_index = [self.find_audio_files(post) for post in posts]
        text_indexes = [i for i, audios in enumerate(audio_by_index) if not audios]

        descriptions: Dict[int, str] = {}
        if text_indexes:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = executor.map(
                    lambda i: self._describe_text_post(posts[i]),
                    text_indexes,
                )
                descriptions = dict(zip(text_indexes, results))

        items: List[FeedItem] = []
        for index, post in enumerate(posts):
            audios = audio_by_index[index]
            link = self.client.post_url(post.service, post.creator_id, post.id)
            title = post.title or "Untitled"
            pub_date = format_pub_date(post)

            if not audios:
                items.append(
                    FeedItem(
                        title=title,
                        link=link,
                        description=descriptions[index],
                        pub_date=pub_date,
                        guid=post.id,
                        author=profile.name,
                    )
                )
                continue

            for audio in audios:
                items.append(
                    FeedItem(
                        title=f"{title} - {audio.name}" if len(audios) > 1 else title,
                        link=link,
                        description=post.body_text,
                        pub_date=pub_date,
                        guid=audio_guid(post.id, audio.name),
                        author=profile.name,
                        enclosure=(
                            Enclosure(url=audio.url, mime_type=audio.mime_type)
                            if audio.url else None
                        ),
                    )
                )

        logger.debug(
            "Built %d item(s) from %d post(s) (%d text post(s))",
            len(items),
            len(posts),
            len(text_indexes),
        )
        return items

    def build_rich_description(self, post: Post) -> str:
        """
        Assemble an HTML body from a post's content, embed and files.

        Audio files are left out; they would have made this an episode.
        """
        parts = []

        if post.body_text:
            parts.append(post.body_text)

        if post.embed is not None and post.embed.url:
            label = post.embed.subject or post.embed.url
            parts.append(
                f'<p><strong>Video:</strong> <a href="{html.escape(post.embed.url)}">'
                f"{html.escape(label)}</a></p>"
            )

        if post.file is not None and post.file.name and post.file.path and not is_audio_file(post.file.name):
            file_url = self.client.file_url(post.file.path)
            parts.append(
                f'<p><strong>File:</strong> <a href="{html.escape(file_url)}">'
                f"{html.escape(post.file.name)}</a></p>"
            )

        attachments = [
            att for att in post.attachments
            if att.name and att.path and not is_audio_file(att.name)
        ]
        if attachments:
            parts.append("<p><strong>Attachments:</strong></p><ul>")
            for att in attachments:
                att_url = self.client.file_url(att.path)
                parts.append(f'<li><a href="{html.escape(att_url)}">{html.escape(att.name)}</a></li>')
            parts.append("</ul>")

        return "\n".join(parts)

    def render(self, profile: CreatorProfile, items: List[FeedItem]) -> str:
        """Render the channel and its items as an RSS 2.0 document."""
        creator_name = escape_xml(profile.name)
        channel_link = escape_xml(self.client.creator_page_url(profile.service, profile.id))
        build_date = format_datetime(datetime.now(timezone.utc), usegmt=True)

        rendered_items = "\n".join(self._render_item(item) for item in items)

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
  xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd"
  xmlns:content="http://purl.org/rss/1.0/modules/content/"
  xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>{creator_name}</title>
    <link>{channel_link}</link>
    <description>Podcast feed for {creator_name} on Kemono</description>
    <language>{escape_xml(self.language)}</language>
    <lastBuildDate>{build_date}</lastBuildDate>
    <itunes:author>{creator_name}</itunes:author>
    <itunes:owner>
      <itunes:name>{creator_name}</itunes:name>
    </itunes:owner>
    <itunes:explicit>false</itunes:explicit>
    <itunes:category text="{ITUNES_CATEGORY}"/>
{rendered_items}
  </channel>
</rss>
"""

    # -------------------------------------------------------------------
    #  Internal helpers
    # -------------------------------------------------------------------

    def _describe_text_post(self, post: Post) -> str:
        """Rich description from the full post, or the list text if the fetch fails."""
        try:
            full_post = self.client.fetch_post_detail(post.service, post.creator_id, post.id)
        except Exception as exc:
            logger.warning(
                "Post detail fetch failed for %s/%s/%s, using list text: %s",
                post.service,
                post.creator_id,
                post.id,
                exc,
            )
            return post.body_text
        return self.build_rich_description(full_post)

    def _render_item(self, item: FeedItem) -> str:
        lines = [
            "    <item>",
            f"      <title>{escape_xml(item.title)}</title>",
            f"      <link>{escape_xml(item.link)}</link>",
            f"      <description>{cdata(item.description)}</description>",
            f"      <pubDate>{item.pub_date}</pubDate>",
            f'      <guid isPermaLink="false">{escape_xml(item.guid)}</guid>',
        ]
        if item.enclosure is not None:
            lines.append(
                f'      <enclosure url="{escape_xml(item.enclosure.url)}" '
                f'type="{escape_xml(item.enclosure.mime_type)}" length="{item.enclosure.length}"/>'
            )
        lines.append(f"      <itunes:author>{escape_xml(item.author)}</itunes:author>")
        if item.enclosure is not None:
            lines.append("      <itunes:duration>0</itunes:duration>")
        lines.append("    </item>")
        return "\n".join(lines)
