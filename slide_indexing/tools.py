"""
External Tools - Locating and running the poppler / tesseract binaries.

Three independently optional binaries back the PDF fallback tiers:
    - pdftotext: layout-preserving text extraction
    - pdftoppm: page rasterization (input for OCR)
    - tesseract: OCR engine

Each is looked up on PATH first, then in a fixed list of OS-conventional
install directories. Missing tools disable their tier; they never fail a scan.
"""

import logging
import os
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import ToolError


logger = logging.getLogger(__name__)


TOOL_NAMES = ("pdftoppm", "tesseract", "pdftotext")

FORM_FEED = "\f"


def default_command_dirs() -> List[Path]:
    """Install locations searched after PATH."""
    if sys.platform == "darwin":
        dirs = ["/opt/homebrew/bin", "/usr/local/bin", "/usr/bin", "/bin", "/opt/local/bin"]
    elif sys.platform.startswith("win"):
        dirs = [
            r"C:\Program Files\Tesseract-OCR",
            r"C:\Program Files (x86)\Tesseract-OCR",
            r"C:\Program Files\poppler\bin",
            r"C:\Program Files (x86)\poppler\bin",
        ]
    else:
        dirs = ["/usr/local/bin", "/usr/bin", "/bin", "/snap/bin"]
    return [Path(d) for d in dirs]


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def resolve_command(
    command: str,
    extra_dirs: Optional[Sequence[Path]] = None,
) -> Optional[Path]:
    """Find an executable on PATH, then in the conventional directories."""
    if found := shutil.which(command):
        return Path(found)

    names = [command]
    if sys.platform.startswith("win") and not command.endswith(".exe"):
        names.append(f"{command}.exe")

    dirs = default_command_dirs() if extra_dirs is None else list(extra_dirs)
    for directory in dirs:
        for name in names:
            candidate = directory / name
            if _is_executable(candidate):
                return candidate
    return None


@dataclass(frozen=True)
class ToolPaths:
    """Resolved external tool locations; None means unavailable."""
    pdftoppm: Optional[Path] = None
    tesseract: Optional[Path] = None
    pdftotext: Optional[Path] = None

    @property
    def missing(self) -> List[str]:
        return [name for name in TOOL_NAMES if getattr(self, name) is None]

    @property
    def ocr_available(self) -> bool:
        return self.pdftoppm is not None and self.tesseract is not None

    def status_message(self) -> Optional[str]:
        """One aggregated warning naming every missing tool, or None."""
        missing = self.missing
        if not missing:
            return None
        return (
            f"PDF extraction tools missing: {', '.join(missing)}. "
            "Install them to enable full PDF scanning "
            "(e.g. `brew install poppler tesseract`)."
        )


def resolve_tools(extra_dirs: Optional[Sequence[Path]] = None) -> ToolPaths:
    """Resolve all external tools once."""
    tools = ToolPaths(**{name: resolve_command(name, extra_dirs) for name in TOOL_NAMES})
    if tools.missing:
        logger.warning(tools.status_message())
    return tools


def _run(
    args: List[str],
    tool: str,
    timeout: Optional[float],
    capture: bool = True,
) -> subprocess.CompletedProcess:
    try:
        result = subprocess.run(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE if capture else subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ToolError(tool, f"timed out after {e.timeout}s") from e
    except OSError as e:
        raise ToolError(tool, str(e)) from e

    if result.returncode != 0:
        raise ToolError(tool, f"exited with status {result.returncode}")
    return result


def extract_layout_text(
    tools: ToolPaths,
    path: Path,
    timeout: Optional[float] = None,
) -> List[str]:
    """
    Run pdftotext and split its output into pages.

    Returns an empty list when pdftotext is not installed.
    """
    if tools.pdftotext is None:
        return []

    result = _run(
        [str(tools.pdftotext), "-layout", "-enc", "UTF-8", str(path), "-"],
        "pdftotext",
        timeout,
    )
    raw = result.stdout.decode("utf-8", errors="replace")
    return [page.strip() for page in raw.split(FORM_FEED) if page.strip()]


def extract_ocr_text(
    tools: ToolPaths,
    path: Path,
    dpi: int = 120,
    max_pages: int = 40,
    timeout: Optional[float] = None,
) -> List[str]:
    """
    Rasterize a PDF with pdftoppm and OCR every page image with tesseract.

    Only the first `max_pages` images (by generated file name) are read.
    Pages where tesseract fails or produces only whitespace are skipped.
    """
    if not tools.ocr_available:
        return []

    with tempfile.TemporaryDirectory(prefix="slide_indexer_ocr_") as tmp:
        prefix = Path(tmp) / "page"
        _run(
            [str(tools.pdftoppm), "-png", "-r", str(dpi), str(path), str(prefix)],
            "pdftoppm",
            timeout,
            capture=False,
        )

        images = sorted(p for p in Path(tmp).iterdir() if p.suffix.lower() == ".png")

        pages: List[str] = []
        for image in images[:max_pages]:
            try:
                result = _run(
                    [str(tools.tesseract), str(image), "stdout", "-l", "eng", "--psm", "6"],
                    "tesseract",
                    timeout,
                )
            except ToolError as e:
                logger.debug(f"OCR skipped {image.name}: {e}")
                continue
            text = result.stdout.decode("utf-8", errors="replace")
            if text.strip():
                pages.append(text)
        return pages
