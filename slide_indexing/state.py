"""
Index State Machine - The single authoritative index and its operations.

All mutations go through here. The lock guards short read/update bursts
(baseline snapshot, per-item merge, final merge) and is never held for a
whole scan. Every mutation persists the entire state before returning; each
item produced during a scan is persisted as soon as it arrives so an
interrupted scan keeps the files it already processed.

Two scans over overlapping directories are not serialized against each
other; callers that need that must queue rescans themselves.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional, Sequence

from .config import IndexerConfig, get_config
from .errors import DirectoryNotLinkedError, ErrorAction, IndexingError, handle_error
from .models import (
    IndexedItem, IndexState, ScanOutcome, ScanSummary, SearchResponse,
    current_timestamp, sort_items,
)
from .progress import ProgressCallback, ScanProgress, notify
from .query import search as search_items
from .scanner import DirectoryScanner
from .store import IndexStore


logger = logging.getLogger(__name__)


def path_within(path: str, directory: str) -> bool:
    """True when path is directory itself or lies beneath it."""
    try:
        Path(path).relative_to(Path(directory))
        return True
    except ValueError:
        return False


def sanitize_directories(directories: Sequence[str]) -> List[str]:
    """Trim, drop empties, dedupe keeping first-seen order."""
    seen = set()
    result = []
    for directory in directories:
        trimmed = directory.strip()
        if trimmed and trimmed not in seen:
            seen.add(trimmed)
            result.append(trimmed)
    return result


class IndexStateMachine:
    """
    Owns the in-memory IndexState and its durable mirror.

    Usage:
        machine = IndexStateMachine(config)
        machine.set_directories(["/Users/me/Decks"])
        summary = machine.full_rescan()
        hits = machine.search('"quarterly revenue"')
    """

    def __init__(
        self,
        config: IndexerConfig | None = None,
        progress: Optional[ProgressCallback] = None,
        store: Optional[IndexStore] = None,
        scanner: Optional[DirectoryScanner] = None,
    ):
        self.config = config or get_config()
        self.progress = progress
        self.store = store or IndexStore(self.config.state_path)
        self.scanner = scanner or DirectoryScanner(self.config, progress=progress)
        self._lock = threading.Lock()
        # Malformed state is fatal here
        self._state = self.store.load()
        logger.info(
            f"Loaded index: {len(self._state.items)} items, "
            f"{len(self._state.directories)} directories"
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _tool_warning(self) -> Optional[str]:
        return self.config.tools.status_message()

    def get_state(self) -> IndexState:
        """Snapshot of the state, with the missing-tool warning appended."""
        with self._lock:
            snapshot = self._state.copy()
        if (warning := self._tool_warning()) and warning not in snapshot.warnings:
            snapshot.warnings.append(warning)
        return snapshot

    def search(self, query: str) -> SearchResponse:
        with self._lock:
            items = list(self._state.items)
            last_indexed = self._state.last_indexed_at_millis
        found = search_items(items, query)
        return SearchResponse(items=found, total=len(found), last_indexed_at_millis=last_indexed)

    def find_item(self, item_id: str) -> Optional[IndexedItem]:
        with self._lock:
            return next((item for item in self._state.items if item.id == item_id), None)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_directories(self, directories: Sequence[str]) -> ScanSummary:
        """Replace the directory list. Does not scan."""
        sanitized = sanitize_directories(directories)
        with self._lock:
            self._state.directories = sanitized
            self.store.save(self._state)
            summary = ScanSummary(
                indexed_count=len(self._state.items),
                last_indexed_at_millis=self._state.last_indexed_at_millis,
            )
        logger.info(f"Directories updated: {sanitized}")
        self._append_tool_warning(summary)
        return summary

    def full_rescan(self) -> ScanSummary:
        """Rescan every configured directory against the whole index."""
        with self._lock:
            directories = list(self._state.directories)
            baseline = list(self._state.items)

        if not directories:
            try:
                with self._lock:
                    self._state.items = []
                    self._state.last_indexed_at_millis = current_timestamp()
                    summary = ScanSummary(
                        indexed_count=0,
                        last_indexed_at_millis=self._state.last_indexed_at_millis,
                    )
                    self._append_tool_warning(summary)
                    self._state.warnings = list(summary.error_messages)
                    self.store.save(self._state)
                return summary
            finally:
                self._finish_progress()

        try:
            outcome = self.scanner.scan(directories, baseline, self._on_item_indexed)
            with self._lock:
                self._state.items = list(outcome.items)
                return self._complete_scan(outcome)
        finally:
            self._finish_progress()

    def rescan_directory(self, directory: str) -> ScanSummary:
        """
        Rescan one configured directory, leaving the rest of the index alone.

        Raises:
            DirectoryNotLinkedError: directory is not in the configured list
        """
        with self._lock:
            if directory not in self._state.directories:
                raise DirectoryNotLinkedError(directory)
            baseline = [item for item in self._state.items if path_within(item.path, directory)]

        try:
            outcome = self.scanner.scan([directory], baseline, self._on_item_indexed)
            with self._lock:
                kept = [item for item in self._state.items if not path_within(item.path, directory)]
                self._state.items = kept + list(outcome.items)
                return self._complete_scan(outcome)
        finally:
            self._finish_progress()

    def clear_cache(self) -> ScanSummary:
        """Drop all items and warnings; keep the directory list."""
        with self._lock:
            self._state.items = []
            self._state.warnings = []
            self._state.last_indexed_at_millis = current_timestamp()
            self.store.save(self._state)
            summary = ScanSummary(
                indexed_count=0,
                last_indexed_at_millis=self._state.last_indexed_at_millis,
            )
        logger.info("Index cache cleared")
        return summary

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_item_indexed(self, item: IndexedItem) -> None:
        """Merge one scanned item and persist straight away."""
        with self._lock:
            self._state.upsert(item)
            sort_items(self._state.items)
            self._state.last_indexed_at_millis = current_timestamp()
            try:
                self.store.save(self._state)
            except IndexingError as e:
                if handle_error(e, self.store.path, "persist_item") is ErrorAction.ABORT:
                    raise
                return
            logger.debug(f"Index saved ({len(self._state.items)} items)")

    def _complete_scan(self, outcome: ScanOutcome) -> ScanSummary:
        """Final merge bookkeeping; caller holds the lock and has set items."""
        sort_items(self._state.items)
        self._state.last_indexed_at_millis = current_timestamp()
        summary = ScanSummary(
            indexed_count=len(self._state.items),
            error_messages=list(outcome.errors),
            scanned_count=outcome.scanned_count,
            cached_count=outcome.cached_count,
            last_indexed_at_millis=self._state.last_indexed_at_millis,
        )
        self._append_tool_warning(summary)
        self._state.warnings = list(summary.error_messages)
        self.store.save(self._state)
        return summary

    def _append_tool_warning(self, summary: ScanSummary) -> None:
        if (warning := self._tool_warning()) and warning not in summary.error_messages:
            summary.error_messages.append(warning)

    def _finish_progress(self) -> None:
        notify(self.progress, ScanProgress())
