"""
Scanner - Directory discovery and per-file dispatch.

Walks each root with os.scandir, keeps files whose suffix maps to a known
document kind, runs the change detector and the matching extractor, and
streams every produced or reused item to the caller's callback as soon as
it exists. Per-file failures become error messages; they never abort a scan.
"""

import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .change_detector import ChangeDetector
from .config import IndexerConfig, get_config
from .errors import handle_error
from .extractors import BaseExtractor, build_extractors
from .models import IndexedItem, ScanOutcome, SlideKind, sort_items
from .progress import (
    STATUS_CACHED, STATUS_SCANNING, ProgressCallback, ScanProgress, notify,
)


logger = logging.getLogger(__name__)


ItemCallback = Callable[[IndexedItem], None]


class DirectoryScanner:
    """
    Incremental scanner over a set of root directories.

    Usage:
        scanner = DirectoryScanner(config, progress=print)
        outcome = scanner.scan(["/Users/me/Decks"], baseline=state.items,
                               on_item_indexed=store_item)
    """

    def __init__(
        self,
        config: IndexerConfig | None = None,
        progress: Optional[ProgressCallback] = None,
        extractors: Optional[Dict[SlideKind, BaseExtractor]] = None,
    ):
        self.config = config or get_config()
        self.progress = progress
        self.extractors = extractors or build_extractors(self.config)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, root: Path) -> Dict[SlideKind, List[Path]]:
        """Find candidate documents under root, grouped by kind."""
        found: Dict[SlideKind, List[Path]] = {kind: [] for kind in self.config.extensions}
        for path in self._walk(root):
            kind = self.config.kind_for(path)
            if kind is None or self.config.is_temporary(path):
                continue
            found[kind].append(path)
        return found

    def _walk(self, directory: Path) -> Iterator[Path]:
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            handle_error(e, directory, "scan_directory")
            return

        subdirs: List[Path] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name not in self.config.skip_dirs:
                        subdirs.append(Path(entry.path))
                elif entry.is_file():
                    yield Path(entry.path)
            except OSError as e:
                handle_error(e, Path(entry.path), "scan_entry")

        for subdir in subdirs:
            yield from self._walk(subdir)

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def scan(
        self,
        directories: Iterable[str],
        baseline: Iterable[IndexedItem] = (),
        on_item_indexed: Optional[ItemCallback] = None,
    ) -> ScanOutcome:
        """
        Scan directories against a baseline of previously indexed items.

        Args:
            directories: Root directories, scanned in order
            baseline: Prior items; unchanged files reuse them verbatim
            on_item_indexed: Called with each item as soon as it is produced

        Returns:
            ScanOutcome with items sorted newest first
        """
        directories = list(directories)
        detector = ChangeDetector(baseline, self.config)
        outcome = ScanOutcome()
        found_paths: set[str] = set()
        start_time = time.monotonic()

        logger.info(
            f"Scan started: {len(directories)} directories, "
            f"{len(detector.baseline_paths)} cached items"
        )

        for directory in directories:
            root = Path(directory)
            if not root.exists():
                logger.warning(f"Root directory not found: {root}")
                outcome.errors.append(f"Directory not found: {directory}")
                continue

            for kind, paths in self.discover(root).items():
                for path in paths:
                    if str(path) in found_paths:
                        continue
                    found_paths.add(str(path))
                    self._scan_file(path, kind, detector, outcome, on_item_indexed)

        sort_items(outcome.items)

        removed = len(detector.baseline_paths - found_paths)
        duration = time.monotonic() - start_time
        logger.info(
            f"Scan complete in {duration:.1f}s: {outcome}"
            + (f", {removed} removed (deleted)" if removed else "")
        )
        return outcome

    def _scan_file(
        self,
        path: Path,
        kind: SlideKind,
        detector: ChangeDetector,
        outcome: ScanOutcome,
        on_item_indexed: Optional[ItemCallback],
    ) -> None:
        change = detector.evaluate(path)

        if change.is_cached:
            item = change.cached_item
            notify(self.progress, ScanProgress(str(path), STATUS_CACHED))
            outcome.cached_count += 1
        else:
            extractor = self.extractors[kind]
            notify(self.progress, ScanProgress(str(path), STATUS_SCANNING, change.diagnostic))
            try:
                item = extractor.extract(
                    path,
                    change.modified_at_millis,
                    change.checksum,
                    progress=self.progress,
                    diagnostic=change.diagnostic,
                )
            except Exception as e:
                handle_error(e, path, f"extract_{kind.value.lower()}")
                outcome.errors.append(f"Failed to index {extractor.label} {path}: {e}")
                return
            outcome.scanned_count += 1

        outcome.items.append(item)
        if on_item_indexed is not None:
            on_item_indexed(item)
