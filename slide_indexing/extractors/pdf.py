"""
PDF extractor - three-tier fallback.

    1. Native parse of the raw bytes (always)
    2. pdftotext -layout (when tier 1 left no meaningful text or no pages)
    3. pdftoppm + tesseract OCR (when still insufficient)

Each tier's pages go through the shared normalizer and the meaningful-text
gate; the snippet and keyword sources are backfilled from whichever tier
first produced usable text.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from ..errors import IoError, ToolError
from ..models import IndexedItem, SlideKind, SlidePreview
from ..progress import STATUS_OCR, ProgressCallback, ScanProgress, notify
from ..text import derive_keywords, has_meaningful_text, normalize, truncate_snippet
from ..tools import extract_layout_text, extract_ocr_text
from .base import BaseExtractor
from .pdf_stream import parse_pdf_bytes


logger = logging.getLogger(__name__)


OCR_NOTICE = "OCR Processing:\nExtracting text from images...\nThis may take a few moments"
DIAGNOSTIC_SEPARATOR = "\n\n" + "-" * 22 + "\n\n"


def build_previews(raw_pages: List[str]) -> Tuple[List[SlidePreview], str]:
    """
    Normalize pages and keep the meaningful ones.

    Returns the previews (numbered among surviving pages) and their
    space-joined text.
    """
    previews: List[SlidePreview] = []
    for raw in raw_pages:
        cleaned = normalize(raw)
        if has_meaningful_text(cleaned):
            previews.append(SlidePreview(index=len(previews) + 1, text=cleaned))
    return previews, " ".join(p.text for p in previews)


@dataclass
class _TextSources:
    """Working state threaded through the fallback tiers."""
    previews: List[SlidePreview] = field(default_factory=list)
    snippet: str = ""
    keywords: str = ""

    @property
    def insufficient(self) -> bool:
        return not has_meaningful_text(self.snippet) or not self.previews

    def absorb(self, raw_pages: List[str]) -> None:
        previews, combined = build_previews(raw_pages)
        if previews:
            self.previews = previews
        if has_meaningful_text(combined):
            if not has_meaningful_text(self.keywords):
                self.keywords = combined
            if not has_meaningful_text(self.snippet):
                self.snippet = combined

    def cross_fill(self) -> None:
        if not has_meaningful_text(self.keywords) and has_meaningful_text(self.snippet):
            self.keywords = self.snippet
        if not has_meaningful_text(self.snippet) and has_meaningful_text(self.keywords):
            self.snippet = self.keywords


class PdfExtractor(BaseExtractor):
    """Extracts page text from PDFs, escalating to external tools as needed."""

    @property
    def kind(self) -> SlideKind:
        return SlideKind.PDF

    def extract(
        self,
        path: Path,
        modified_at_millis: Optional[int],
        checksum: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        diagnostic: Optional[str] = None,
    ) -> IndexedItem:
        try:
            buffer = path.read_bytes()
        except OSError as e:
            raise IoError(str(e), e) from e

        contents = parse_pdf_bytes(buffer)
        cleaned = normalize(contents.text)

        sources = _TextSources()
        sources.previews, combined = build_previews(contents.pages)
        sources.snippet = cleaned if has_meaningful_text(cleaned) else ""
        sources.keywords = combined if has_meaningful_text(combined) else ""
        sources.cross_fill()

        tools = self.config.tools

        if sources.insufficient and tools.pdftotext is not None:
            logger.debug(f"PDF {path.name}: native text insufficient, trying pdftotext")
            try:
                sources.absorb(
                    extract_layout_text(tools, path, self.config.tool_timeout)
                )
            except ToolError as e:
                logger.debug(f"pdftotext failed for {path.name}: {e}")

        if sources.insufficient and tools.ocr_available:
            logger.info(f"Running OCR on PDF: {path.name}")
            message = OCR_NOTICE
            if diagnostic:
                message = diagnostic + DIAGNOSTIC_SEPARATOR + OCR_NOTICE
            notify(progress, ScanProgress(str(path), STATUS_OCR, message))
            try:
                sources.absorb(extract_ocr_text(
                    tools,
                    path,
                    dpi=self.config.ocr_dpi,
                    max_pages=self.config.max_ocr_pages,
                    timeout=self.config.tool_timeout,
                ))
            except ToolError as e:
                logger.debug(f"OCR failed for {path.name}: {e}")

        sources.cross_fill()

        item = IndexedItem.for_path(path, self.kind, modified_at_millis, checksum)
        item.page_or_slide_count = contents.page_count
        item.previews = sources.previews
        item.snippet = truncate_snippet(sources.snippet, self.config.max_snippet_length)
        item.keywords = (
            derive_keywords(sources.keywords, sources.previews, self.config.max_keywords)
            if has_meaningful_text(sources.keywords)
            else []
        )
        return item
