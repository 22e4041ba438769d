"""
Extractors - one per supported document kind.

    - pptx: zip-packaged presentations (slide XML text runs)
    - ppt: legacy binary presentations (printable ASCII salvage)
    - pdf: native stream parse, then pdftotext, then OCR
"""

from typing import Dict

from ..config import IndexerConfig
from ..models import SlideKind
from .base import BaseExtractor
from .pdf import PdfExtractor
from .ppt import PptExtractor
from .pptx import PptxExtractor


def build_extractors(config: IndexerConfig | None = None) -> Dict[SlideKind, BaseExtractor]:
    """One extractor per document kind, sharing the same config."""
    extractors = [PptxExtractor(config), PptExtractor(config), PdfExtractor(config)]
    return {extractor.kind: extractor for extractor in extractors}


__all__ = [
    "BaseExtractor",
    "PdfExtractor",
    "PptExtractor",
    "PptxExtractor",
    "build_extractors",
]
