"""
PPTX extractor - text runs from every slide part of the zip package.
"""

import logging
import re
import zipfile
import zlib
from pathlib import Path
from typing import List, Optional

from ..errors import ArchiveError, IoError
from ..models import IndexedItem, SlideKind, SlidePreview
from ..progress import ProgressCallback
from ..text import (
    collapse_whitespace, compile_pattern, decode_xml_entities,
    derive_keywords, normalize, truncate_snippet,
)
from .base import BaseExtractor


logger = logging.getLogger(__name__)


SLIDE_PART_PREFIX = "ppt/slides/slide"
SLIDE_PART_SUFFIX = ".xml"

TEXT_RUN_PATTERN = compile_pattern(r"<a:t(?:\s[^>]*)?>(.*?)</a:t>", re.DOTALL)


def extract_text_runs(xml: str) -> str:
    """Join the decoded, trimmed, non-empty <a:t> runs of a slide."""
    runs = (decode_xml_entities(match) for match in TEXT_RUN_PATTERN.findall(xml))
    return " ".join(run.strip() for run in runs if run.strip())


def read_slide_parts(path: Path) -> List[str]:
    """
    Slide XML documents in archive order.

    Archive order is not necessarily slide order (slide10.xml can precede
    slide2.xml).
    """
    try:
        with zipfile.ZipFile(path) as archive:
            return [
                archive.read(info).decode("utf-8", errors="replace")
                for info in archive.infolist()
                if info.filename.startswith(SLIDE_PART_PREFIX)
                and info.filename.endswith(SLIDE_PART_SUFFIX)
            ]
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise ArchiveError(f"Cannot read presentation archive: {e}", e) from e
    except OSError as e:
        raise IoError(str(e), e) from e


class PptxExtractor(BaseExtractor):
    """Extracts slide text from zip-packaged presentations."""

    @property
    def kind(self) -> SlideKind:
        return SlideKind.PPTX

    def extract(
        self,
        path: Path,
        modified_at_millis: Optional[int],
        checksum: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        diagnostic: Optional[str] = None,
    ) -> IndexedItem:
        previews: List[SlidePreview] = []
        for xml in read_slide_parts(path):
            text = normalize(extract_text_runs(xml))
            if text:
                previews.append(SlidePreview(index=len(previews) + 1, text=text))

        combined = collapse_whitespace(" ".join(p.text for p in previews))

        item = IndexedItem.for_path(path, self.kind, modified_at_millis, checksum)
        item.previews = previews
        item.page_or_slide_count = len(previews) or None
        item.snippet = truncate_snippet(combined, self.config.max_snippet_length)
        item.keywords = derive_keywords(combined, previews, self.config.max_keywords)

        logger.debug(f"PPTX {path.name}: {len(previews)} slides with text")
        return item
