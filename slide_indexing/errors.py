"""
Errors - Failure taxonomy and per-type handling policies.

Every failure raised by the indexer is an IndexingError tagged with one of
five kinds. Per-file failures are downgraded to a recorded message at the
scanner boundary; state load/save failures propagate to the caller.
"""

import json
import logging
import zipfile
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Failure taxonomy shared by all indexing errors."""
    IO = "io"                        # File or directory access
    ARCHIVE = "archive"              # Corrupt zip container
    PATTERN = "pattern"              # Text pattern failed to compile
    SERIALIZATION = "serialization"  # State document encode/decode
    MESSAGE = "message"              # Anything else, free-form text


class ErrorAction(Enum):
    SKIP = auto()    # Record it, move on to the next file
    ABORT = auto()   # Stop the operation and propagate


@dataclass(frozen=True)
class ErrorPolicy:
    action: ErrorAction
    log_level: int
    message_template: str = "{file}: {error}"


class IndexingError(Exception):
    """Root of the indexer's exceptions; `kind` places it in the taxonomy."""
    kind: ErrorKind = ErrorKind.MESSAGE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class IoError(IndexingError):
    kind = ErrorKind.IO


class ArchiveError(IndexingError):
    kind = ErrorKind.ARCHIVE


class PatternError(IndexingError):
    kind = ErrorKind.PATTERN


class SerializationError(IndexingError):
    kind = ErrorKind.SERIALIZATION


class MessageError(IndexingError):
    """Generic failure carrying a human-readable message."""
    kind = ErrorKind.MESSAGE


class ToolError(MessageError):
    """An external extraction tool could not be run or exited non-zero."""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"{tool}: {message}")


class DirectoryNotLinkedError(MessageError):
    """A directory was referenced that is not in the configured list."""

    def __init__(self, directory: str):
        self.directory = directory
        super().__init__(f"Directory not linked: {directory}")


# The most specific class in an exception's hierarchy decides its policy
ERROR_POLICIES: dict[type, ErrorPolicy] = {
    PermissionError: ErrorPolicy(
        ErrorAction.SKIP, logging.WARNING, "Permission denied: {file}"
    ),
    FileNotFoundError: ErrorPolicy(
        ErrorAction.SKIP, logging.DEBUG, "Vanished during scan: {file}"
    ),
    OSError: ErrorPolicy(
        ErrorAction.SKIP, logging.WARNING, "Cannot access {file}: {error}"
    ),
    ArchiveError: ErrorPolicy(
        ErrorAction.SKIP, logging.WARNING, "Unreadable presentation archive {file}: {error}"
    ),
    ToolError: ErrorPolicy(
        ErrorAction.SKIP, logging.DEBUG, "External tool failed on {file}: {error}"
    ),
    SerializationError: ErrorPolicy(
        ErrorAction.ABORT, logging.ERROR, "Index state unusable at {file}: {error}"
    ),
    IndexingError: ErrorPolicy(
        ErrorAction.SKIP, logging.WARNING, "{file}: {error}"
    ),
}

UNEXPECTED_ERROR_POLICY = ErrorPolicy(
    ErrorAction.SKIP, logging.ERROR, "Unexpected failure on {file}: {error}"
)


def policy_for(error: BaseException) -> ErrorPolicy:
    for cls in type(error).__mro__:
        if cls in ERROR_POLICIES:
            return ERROR_POLICIES[cls]
    return UNEXPECTED_ERROR_POLICY


def translate_error(error: Exception) -> IndexingError:
    """Map a library or OS exception onto the indexing taxonomy."""
    if isinstance(error, IndexingError):
        return error
    if isinstance(error, zipfile.BadZipFile):
        return ArchiveError(str(error), error)
    if isinstance(error, json.JSONDecodeError):
        return SerializationError(str(error), error)
    if isinstance(error, OSError):
        return IoError(str(error), error)
    return MessageError(str(error), error)


def handle_error(
    error: BaseException,
    file_path: Optional[Path] = None,
    context: str = "",
) -> ErrorAction:
    """
    Log an error under its policy and report whether the operation may go on.

    Args:
        error: The exception that occurred
        file_path: Document, directory or state file involved, if any
        context: Short operation tag prefixed to the log line

    Returns:
        SKIP for per-file failures, ABORT when the index state itself is
        unusable
    """
    policy = policy_for(error)
    target = str(file_path) if file_path is not None else "<index>"
    message = policy.message_template.format(file=target, error=error)
    if context:
        message = f"[{context}] {message}"
    logger.log(policy.log_level, message)
    return policy.action
