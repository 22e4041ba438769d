"""
Data Models - Type definitions for the slide indexer.

These dataclasses represent the data flowing between the extractors,
the directory scanner and the index state, plus the JSON shape they take
in the persisted state document.
"""

import hashlib
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class SlideKind(str, Enum):
    """Document format of an indexed item."""
    PPTX = "Pptx"   # Zip-packaged presentation
    PPT = "Ppt"     # Legacy binary presentation
    PDF = "Pdf"


def current_timestamp() -> int:
    """Wall clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def item_id_for(path: str | Path) -> str:
    """Stable item identity: SHA-1 of the path string, never of content."""
    return hashlib.sha1(str(path).encode("utf-8")).hexdigest()


@dataclass
class SlidePreview:
    """Normalized text of one slide or page."""
    index: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlidePreview":
        return cls(index=int(data["index"]), text=str(data["text"]))


@dataclass
class IndexedItem:
    """
    One indexed document and its derived text artifacts.

    Created by an extractor, overwritten in place by later rescans of the
    same path, removed when a rescan no longer finds the file.
    """
    id: str
    path: str
    display_name: str
    kind: SlideKind
    snippet: str
    modified_at_millis: int
    page_or_slide_count: Optional[int] = None
    keywords: List[str] = field(default_factory=list)
    previews: List[SlidePreview] = field(default_factory=list)
    checksum: Optional[str] = None

    @classmethod
    def for_path(
        cls,
        path: Path,
        kind: SlideKind,
        modified_at_millis: Optional[int],
        checksum: Optional[str] = None,
    ) -> "IndexedItem":
        """Create an empty item whose identity is derived from the path."""
        return cls(
            id=item_id_for(path),
            path=str(path),
            display_name=path.name or str(path),
            kind=kind,
            snippet="",
            modified_at_millis=(
                modified_at_millis if modified_at_millis is not None
                else current_timestamp()
            ),
            checksum=checksum,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "displayName": self.display_name,
            "kind": self.kind.value,
            "pageOrSlideCount": self.page_or_slide_count,
            "snippet": self.snippet,
            "keywords": list(self.keywords),
            "modifiedAtMillis": self.modified_at_millis,
            "previews": [preview.to_dict() for preview in self.previews],
            "checksum": self.checksum,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexedItem":
        count = data.get("pageOrSlideCount")
        return cls(
            id=str(data["id"]),
            path=str(data["path"]),
            display_name=str(data["displayName"]),
            kind=SlideKind(data["kind"]),
            snippet=str(data.get("snippet", "")),
            modified_at_millis=int(data["modifiedAtMillis"]),
            page_or_slide_count=int(count) if count is not None else None,
            keywords=[str(k) for k in data.get("keywords") or []],
            previews=[SlidePreview.from_dict(p) for p in data.get("previews") or []],
            checksum=data.get("checksum"),
        )


def sort_items(items: List[IndexedItem]) -> None:
    """Sort in place, most recently modified first."""
    items.sort(key=lambda item: item.modified_at_millis, reverse=True)


@dataclass
class IndexState:
    """
    The whole persisted index.

    `warnings` is derived (recomputed from environment checks), the rest is
    authoritative.
    """
    directories: List[str] = field(default_factory=list)
    items: List[IndexedItem] = field(default_factory=list)
    last_indexed_at_millis: Optional[int] = None
    warnings: List[str] = field(default_factory=list)

    def copy(self) -> "IndexState":
        # Items are replaced, never mutated, once stored
        return IndexState(
            directories=list(self.directories),
            items=list(self.items),
            last_indexed_at_millis=self.last_indexed_at_millis,
            warnings=list(self.warnings),
        )

    def upsert(self, item: IndexedItem) -> None:
        """Replace the item stored at the same path, or append it."""
        for position, existing in enumerate(self.items):
            if existing.path == item.path:
                self.items[position] = item
                return
        self.items.append(item)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directories": list(self.directories),
            "items": [item.to_dict() for item in self.items],
            "lastIndexedAtMillis": self.last_indexed_at_millis,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexState":
        last = data.get("lastIndexedAtMillis")
        return cls(
            directories=[str(d) for d in data.get("directories") or []],
            items=[IndexedItem.from_dict(i) for i in data.get("items") or []],
            last_indexed_at_millis=int(last) if last is not None else None,
            warnings=[str(w) for w in data.get("warnings") or []],
        )


@dataclass
class ScanOutcome:
    """Result of scanning a set of directory trees."""
    items: List[IndexedItem] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    scanned_count: int = 0   # Freshly extracted
    cached_count: int = 0    # Reused from the baseline

    def __str__(self) -> str:
        return (
            f"{len(self.items)} items "
            f"({self.scanned_count} scanned, "
            f"{self.cached_count} cached, "
            f"{len(self.errors)} errors)"
        )


@dataclass
class ScanSummary:
    """What every mutating operation reports back to its caller."""
    indexed_count: int
    error_messages: List[str] = field(default_factory=list)
    scanned_count: Optional[int] = None
    cached_count: Optional[int] = None
    last_indexed_at_millis: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "indexedCount": self.indexed_count,
            "errorMessages": list(self.error_messages),
            "lastIndexedAtMillis": self.last_indexed_at_millis,
        }
        if self.scanned_count is not None:
            payload["scannedCount"] = self.scanned_count
        if self.cached_count is not None:
            payload["cachedCount"] = self.cached_count
        return payload


@dataclass
class SearchResponse:
    items: List[IndexedItem]
    total: int
    last_indexed_at_millis: Optional[int] = None
