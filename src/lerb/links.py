"""Lexical extraction of Telegram invite links from message text."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

__all__ = [
    "ExtractedLink",
    "LinkKind",
    "PRIVATE_LINK_RE",
    "PUBLIC_LINK_RE",
    "dedup_key",
    "extract_links",
    "format_link",
]

_PREFIX = r"(?:https?://)?(?:t(?:elegram)?\.me|telegram\.dog)/"

# The username token is possessive: `t.me/joinchat/...` must not shrink to a
# public `t.me/joincha`.
PUBLIC_LINK_RE = re.compile(
    _PREFIX + r"[A-Za-z0-9_]{5,32}+(?![/+])", re.IGNORECASE | re.ASCII
)
PRIVATE_LINK_RE = re.compile(
    _PREFIX + r"(?:\+|joinchat/)[A-Za-z0-9_-]+", re.IGNORECASE | re.ASCII
)


class LinkKind(enum.StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True, slots=True)
class ExtractedLink:
    url: str
    kind: LinkKind


def dedup_key(url: str) -> str:
    return url.strip().lower()


def format_link(url: str, kind: LinkKind) -> str:
    return f"[{kind.value.upper()}] {url}"


def extract_links(text: str) -> list[ExtractedLink]:
    """Return every invite link in ``text``.

    Public links come first in left-to-right order, followed by private
    links in left-to-right order. The output is not sorted by position.
    """
    links = [
        ExtractedLink(url=match.group(0), kind=LinkKind.PUBLIC)
        for match in PUBLIC_LINK_RE.finditer(text)
    ]
    links.extend(
        ExtractedLink(url=match.group(0), kind=LinkKind.PRIVATE)
        for match in PRIVATE_LINK_RE.finditer(text)
    )
    return links
