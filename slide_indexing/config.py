"""
Indexing Configuration - Centralized settings for the slide indexer.

Uses environment variables with sensible defaults. External tool paths
are resolved once and carried on the config so that extractors never
look them up on their own.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set

from .models import SlideKind
from .tools import ToolPaths, resolve_tools


CHECKSUM_ALGORITHMS = ("sha256", "xxh64")


@dataclass
class IndexerConfig:
    """
    Configuration for the indexing system.

    The state document defaults to ~/.slides-indexer/index.json.
    """

    # --- Paths ---
    state_path: Path = field(
        default_factory=lambda: Path.home() / ".slides-indexer" / "index.json"
    )

    # --- Discovery ---
    extensions: Dict[SlideKind, str] = field(default_factory=lambda: {
        SlideKind.PPTX: ".pptx",
        SlideKind.PPT: ".ppt",
        SlideKind.PDF: ".pdf",
    })
    temp_prefix: str = "~$"          # Office lock files, e.g. ~$deck.pptx
    skip_dirs: Set[str] = field(default_factory=set)

    # --- Derived text limits ---
    max_snippet_length: int = 240
    max_keywords: int = 40

    # --- OCR ---
    max_ocr_pages: int = 40
    ocr_dpi: int = 120

    # --- Change detection ---
    checksum_algorithm: str = "sha256"

    # --- External tools ---
    tool_timeout: Optional[float] = None   # None blocks until the tool exits
    tools: ToolPaths = field(default_factory=resolve_tools)

    def __post_init__(self):
        """Ensure paths are absolute and settings are usable."""
        self.state_path = Path(self.state_path).expanduser().resolve()
        if self.checksum_algorithm not in CHECKSUM_ALGORITHMS:
            raise ValueError(
                f"Unknown checksum algorithm: {self.checksum_algorithm} "
                f"(expected one of {', '.join(CHECKSUM_ALGORITHMS)})"
            )
        # OCR never rasterizes below 120 DPI
        self.ocr_dpi = max(self.ocr_dpi, 120)

    @classmethod
    def from_env(cls) -> "IndexerConfig":
        """
        Create config from environment variables.

        Supported env vars:
            SLIDE_INDEXER_STATE_PATH: Path to the JSON state document
            SLIDE_INDEXER_CHECKSUM: sha256 (default) or xxh64
            SLIDE_INDEXER_OCR_DPI: Rasterization resolution for OCR
            SLIDE_INDEXER_MAX_OCR_PAGES: Page cap for the OCR tier
            SLIDE_INDEXER_TOOL_TIMEOUT: Seconds before an external tool is abandoned
        """
        kwargs = {}

        if state_path := os.environ.get("SLIDE_INDEXER_STATE_PATH"):
            kwargs["state_path"] = Path(state_path)

        if checksum := os.environ.get("SLIDE_INDEXER_CHECKSUM"):
            kwargs["checksum_algorithm"] = checksum.strip().lower()

        if dpi := os.environ.get("SLIDE_INDEXER_OCR_DPI"):
            kwargs["ocr_dpi"] = int(dpi)

        if max_pages := os.environ.get("SLIDE_INDEXER_MAX_OCR_PAGES"):
            kwargs["max_ocr_pages"] = int(max_pages)

        if timeout := os.environ.get("SLIDE_INDEXER_TOOL_TIMEOUT"):
            kwargs["tool_timeout"] = float(timeout)

        return cls(**kwargs)

    def kind_for(self, path: Path) -> Optional[SlideKind]:
        """Map a file name to its document kind (case-insensitive suffix)."""
        suffix = path.suffix.lower()
        for kind, extension in self.extensions.items():
            if suffix == extension:
                return kind
        return None

    def is_temporary(self, path: Path) -> bool:
        return path.name.startswith(self.temp_prefix)


# Singleton default config
_default_config: IndexerConfig | None = None


def get_config() -> IndexerConfig:
    """Get the default configuration (singleton)."""
    global _default_config
    if _default_config is None:
        _default_config = IndexerConfig.from_env()
    return _default_config


def set_config(config: IndexerConfig) -> None:
    """Override the default configuration (for testing)."""
    global _default_config
    _default_config = config
