"""
Change Detector - Decides whether a discovered file needs re-extraction.

Cascade, cheapest first:
    1. Same path, same modification time (ms)  -> reuse, no hashing
    2. Same path, same content checksum        -> reuse, keep stored mtime
    3. Anything else                           -> extract with new checksum

Checksums hash the raw file bytes in 64KB chunks (SHA-256 by default,
xxHash64 when configured for speed).
"""

import hashlib
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Optional

import xxhash

from .config import IndexerConfig, get_config
from .models import IndexedItem


logger = logging.getLogger(__name__)


CHUNK_SIZE = 65536


class Decision(Enum):
    CACHED_MTIME = "cached_mtime"
    CACHED_CHECKSUM = "cached_checksum"
    EXTRACT = "extract"


@dataclass
class ChangeResult:
    """Outcome of evaluating one discovered file."""
    decision: Decision
    modified_at_millis: Optional[int]
    checksum: Optional[str] = None
    cached_item: Optional[IndexedItem] = None
    reason: Optional[str] = None        # Short log-friendly reason
    diagnostic: Optional[str] = None    # Human-readable rescan explanation

    @property
    def is_cached(self) -> bool:
        return self.decision is not Decision.EXTRACT


def file_modified_millis(path: Path) -> Optional[int]:
    try:
        return os.stat(path).st_mtime_ns // 1_000_000
    except OSError:
        return None


def compute_checksum(path: Path, algorithm: str = "sha256") -> str:
    """Stream the file through the configured hash."""
    hasher = xxhash.xxh64() if algorithm == "xxh64" else hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            hasher.update(chunk)
    return hasher.hexdigest()


def _prefix(checksum: Optional[str]) -> str:
    return checksum[:8] if checksum else "none"


class ChangeDetector:
    """
    Modification-time / checksum policy over a baseline of prior items.

    The baseline is keyed by exact path string.
    """

    def __init__(
        self,
        baseline: Iterable[IndexedItem] = (),
        config: IndexerConfig | None = None,
    ):
        self.config = config or get_config()
        self._baseline: Dict[str, IndexedItem] = {item.path: item for item in baseline}

    @property
    def baseline_paths(self) -> set[str]:
        return set(self._baseline)

    def prior(self, path: Path) -> Optional[IndexedItem]:
        return self._baseline.get(str(path))

    def evaluate(self, path: Path) -> ChangeResult:
        modified_at = file_modified_millis(path)
        existing = self.prior(path)

        if existing is not None and modified_at is not None \
                and existing.modified_at_millis == modified_at:
            logger.debug(f"Cached (quick): {path.name}")
            return ChangeResult(
                decision=Decision.CACHED_MTIME,
                modified_at_millis=modified_at,
                checksum=existing.checksum,
                cached_item=existing,
            )

        checksum: Optional[str] = None
        try:
            checksum = compute_checksum(path, self.config.checksum_algorithm)
        except OSError as e:
            logger.warning(f"Checksum failed for {path.name}: {e}")

        if existing is None:
            return ChangeResult(
                decision=Decision.EXTRACT,
                modified_at_millis=modified_at,
                checksum=checksum,
                reason="new file",
                diagnostic=(
                    "New File Detected\n"
                    "First time indexing this file\n"
                    f"Current mod_time: {modified_at}\n"
                    f"Checksum: {_prefix(checksum)}"
                ),
            )

        if existing.checksum is not None and checksum is not None \
                and existing.checksum == checksum:
            # Stored mtime is left stale; the next scan hashes again
            logger.debug(f"Cached (checksum): {path.name}")
            return ChangeResult(
                decision=Decision.CACHED_CHECKSUM,
                modified_at_millis=modified_at,
                checksum=checksum,
                cached_item=existing,
            )

        if existing.checksum is None and checksum is None:
            reason = "both checksums missing"
        elif existing.checksum is None:
            reason = "existing has no checksum"
        elif checksum is None:
            reason = "new checksum failed to calculate"
        else:
            reason = f"checksum changed: {_prefix(existing.checksum)}.. -> {_prefix(checksum)}.."

        logger.info(f"Re-scanning (changed): {path.name} - {reason}")

        lines = [
            "Rescan Information:",
            f"Cached checksum: {_prefix(existing.checksum)}",
            f"Current checksum: {_prefix(checksum)}",
            f"Cached mod_time: {existing.modified_at_millis}",
            f"Current mod_time: {modified_at}",
            "",
        ]
        if existing.checksum is None:
            lines.append("No cached checksum\nFirst scan or old cache format")
        elif checksum is None:
            lines.append("Checksum could not be calculated")
        else:
            lines.append("File content CHANGED\nChecksum mismatch detected")

        return ChangeResult(
            decision=Decision.EXTRACT,
            modified_at_millis=modified_at,
            checksum=checksum,
            reason=reason,
            diagnostic="\n".join(lines),
        )
