"""
Slide Indexing Package - Local text index for slide decks and PDFs.

Modules:
    - config: Centralized configuration
    - text: Shared normalization, keyword and gibberish heuristics
    - extractors: PPTX, PPT and PDF (native -> pdftotext -> OCR) extraction
    - tools: External tool resolution and invocation
    - change_detector: mtime / checksum skip-vs-reextract policy
    - scanner: Directory discovery and per-file dispatch
    - query: Phrase, term and wildcard matching
    - store: JSON persistence of the index state
    - state: Lock-guarded index state machine
    - service: Async operation surface and CLI

Scan Flow:
    Discover -> mtime check -> checksum check -> Extract -> Persist (per item)

Usage:
    from slide_indexing import IndexStateMachine

    machine = IndexStateMachine()
    machine.set_directories(["/Users/me/Decks"])
    machine.full_rescan()
    print(machine.search("revenue").total)
"""

from .config import IndexerConfig
from .service import IndexService
from .state import IndexStateMachine

__all__ = ["IndexerConfig", "IndexService", "IndexStateMachine"]
