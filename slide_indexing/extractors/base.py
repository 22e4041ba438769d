"""
Base class for all document extractors.

Each extractor handles one document kind and turns a file on disk into a
fully populated IndexedItem (previews, snippet, keywords).
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..config import IndexerConfig, get_config
from ..models import IndexedItem, SlideKind
from ..progress import ProgressCallback


class BaseExtractor(ABC):
    """
    Base class for all document extractors.

    To add a new document kind:
    1. Add it to SlideKind and to IndexerConfig.extensions
    2. Create a class extending BaseExtractor that implements kind and extract
    3. Register it in extractors.build_extractors
    """

    def __init__(self, config: IndexerConfig | None = None):
        self.config = config or get_config()

    @property
    @abstractmethod
    def kind(self) -> SlideKind:
        """Document kind produced by this extractor."""
        pass

    @property
    def label(self) -> str:
        """Short upper-case format label used in error messages."""
        return self.kind.value.upper()

    @abstractmethod
    def extract(
        self,
        path: Path,
        modified_at_millis: Optional[int],
        checksum: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        diagnostic: Optional[str] = None,
    ) -> IndexedItem:
        """
        Extract an item from a file.

        Args:
            path: Absolute path of the document
            modified_at_millis: File modification time (None = use now)
            checksum: Content checksum to attach, if one was computed
            progress: Listener for intermediate status (e.g. OCR)
            diagnostic: Rescan explanation forwarded with intermediate status

        Raises:
            IndexingError: When the document cannot be read at all
        """
        pass
