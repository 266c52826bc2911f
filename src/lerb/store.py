from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from .links import ExtractedLink, LinkKind, dedup_key, format_link


@dataclass(frozen=True, slots=True)
class StoredLink:
    url: str
    kind: LinkKind
    accepted_at: datetime

    @property
    def key(self) -> str:
        return dedup_key(self.url)

    @classmethod
    def accept(cls, link: ExtractedLink, accepted_at: datetime) -> StoredLink:
        return cls(url=link.url, kind=link.kind, accepted_at=accepted_at)


class LinkStore:
    """Accepted links for one session, unique by dedup key."""

    def __init__(self) -> None:
        self._entries: list[StoredLink] = []
        self._keys: set[str] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[StoredLink]:
        return iter(list(self._entries))

    def contains(self, key: str) -> bool:
        return dedup_key(key) in self._keys

    def insert(self, entry: StoredLink) -> bool:
        key = entry.key
        if key in self._keys:
            return False
        self._keys.add(key)
        self._entries.append(entry)
        return True

    def accept(
        self, links: Iterable[ExtractedLink], accepted_at: datetime
    ) -> list[StoredLink]:
        stored: list[StoredLink] = []
        for link in links:
            entry = StoredLink.accept(link, accepted_at)
            if self.insert(entry):
                stored.append(entry)
        return stored

    def snapshot(self) -> list[StoredLink]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._keys.clear()


def render_export(entries: Iterable[StoredLink]) -> str:
    return "\n".join(format_link(entry.url, entry.kind) for entry in entries)


def default_export_name(today: date) -> str:
    return f"filtered_links_{today.isoformat()}.txt"


def export_links(entries: Iterable[StoredLink], path: Path) -> int:
    items = list(entries)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_export(items), encoding="utf-8")
    return len(items)
