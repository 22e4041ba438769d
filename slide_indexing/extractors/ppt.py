"""
PPT extractor - printable ASCII salvaged from the legacy binary format.

No structural parsing is attempted, so the slide count is always unknown.
"""

import logging
from pathlib import Path
from typing import Optional

from ..errors import IoError
from ..models import IndexedItem, SlideKind, SlidePreview
from ..progress import ProgressCallback
from ..text import derive_keywords, is_gibberish, normalize, truncate_snippet
from .base import BaseExtractor


logger = logging.getLogger(__name__)


# Printable ASCII plus tab, LF and CR map to themselves, everything else to a space
_ASCII_TABLE = bytes(
    b if (0x20 <= b <= 0x7E or b in (0x09, 0x0A, 0x0D)) else 0x20
    for b in range(256)
)


def salvage_ascii(data: bytes) -> str:
    return data.translate(_ASCII_TABLE).decode("ascii")


class PptExtractor(BaseExtractor):
    """Extracts whatever readable text a legacy .ppt file carries."""

    @property
    def kind(self) -> SlideKind:
        return SlideKind.PPT

    def extract(
        self,
        path: Path,
        modified_at_millis: Optional[int],
        checksum: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        diagnostic: Optional[str] = None,
    ) -> IndexedItem:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise IoError(str(e), e) from e

        cleaned = normalize(salvage_ascii(data))
        item = IndexedItem.for_path(path, self.kind, modified_at_millis, checksum)

        if not cleaned or is_gibberish(cleaned):
            logger.debug(f"PPT {path.name}: no reliable text")
            return item

        item.previews = [SlidePreview(index=1, text=cleaned)]
        item.snippet = truncate_snippet(cleaned, self.config.max_snippet_length)
        item.keywords = derive_keywords(cleaned, item.previews, self.config.max_keywords)
        return item
