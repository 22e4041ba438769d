"""
Index Store - Whole-document JSON persistence of the index state.

No incremental format and no migrations: every save rewrites the file, a
load that cannot be parsed is fatal. Writes go to a temporary file in the
same directory and are renamed over the target, so a crash mid-write
leaves the previous document intact.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from .errors import IoError, SerializationError
from .models import IndexState


logger = logging.getLogger(__name__)


class IndexStore:
    """JSON file holding one IndexState."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> IndexState:
        """
        Read the state document, creating a default one if none exists.

        Raises:
            SerializationError: The document is not valid JSON or not the
                expected schema
            IoError: The document cannot be read or created
        """
        if not self.path.exists():
            state = IndexState()
            self.save(state)
            logger.info(f"Created new index state at {self.path}")
            return state

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise IoError(f"Cannot read index state {self.path}: {e}", e) from e

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            return IndexState.from_dict(data)
        except (json.JSONDecodeError, TypeError, KeyError, ValueError) as e:
            raise SerializationError(f"Malformed index state {self.path}: {e}", e) from e

    def save(self, state: IndexState) -> None:
        """Atomically replace the state document."""
        try:
            payload = json.dumps(state.to_dict(), indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode index state: {e}", e) from e

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise IoError(f"Cannot write index state {self.path}: {e}", e) from e
