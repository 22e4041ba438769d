"""
Test Configuration - Shared fixtures for slide indexer tests.

Builds real .pptx archives, minimal PDFs and fake external tools in
isolated temporary directories.
"""

import os
import shutil
import stat
import sys
import tempfile
import zipfile
import zlib
from pathlib import Path
from typing import Callable, Generator, List, Optional

import pytest

from slide_indexing.config import IndexerConfig, set_config
from slide_indexing.tools import ToolPaths


TOOL_WARNING_PREFIX = "PDF extraction tools missing"

SLIDE_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<p:sld xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main">'
    "<p:cSld><p:spTree><p:sp><p:txBody>{paragraphs}</p:txBody></p:sp></p:spTree></p:cSld>"
    "</p:sld>"
)


def slide_xml(*runs: str) -> str:
    """Slide part with one paragraph per text run (runs are inserted raw)."""
    paragraphs = "".join(
        f'<a:p><a:r><a:rPr lang="en-US" dirty="0"/><a:t>{run}</a:t></a:r></a:p>'
        for run in runs
    )
    return SLIDE_XML.format(paragraphs=paragraphs)


def write_pptx(path: Path, slides: List[str], extra_parts: Optional[dict] = None) -> Path:
    """Write a zip package with one slide part per entry in `slides` (raw XML)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr("ppt/presentation.xml", "<p:presentation/>")
        for number, xml in enumerate(slides, start=1):
            archive.writestr(f"ppt/slides/slide{number}.xml", xml)
        for name, data in (extra_parts or {}).items():
            archive.writestr(name, data)
    return path


def write_pdf(path: Path, page_contents: List[bytes], compress: bool = True) -> Path:
    """Write a minimal PDF with one content stream per page."""
    path.parent.mkdir(parents=True, exist_ok=True)
    page_count = len(page_contents)
    kids = " ".join(f"{3 + i * 2} 0 R" for i in range(page_count))
    chunks = [
        b"%PDF-1.4\n",
        b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n",
        f"2 0 obj\n<< /Type /Pages /Kids [{kids}] /Count {page_count} >>\nendobj\n".encode(),
    ]
    for i, content in enumerate(page_contents):
        page_obj, content_obj = 3 + i * 2, 4 + i * 2
        data = zlib.compress(content) if compress else content
        filter_entry = " /Filter /FlateDecode" if compress else ""
        chunks.append(
            f"{page_obj} 0 obj\n<< /Type /Page /Parent 2 0 R /Contents {content_obj} 0 R >>\n"
            "endobj\n".encode()
        )
        chunks.append(
            f"{content_obj} 0 obj\n<< /Length {len(data)}{filter_entry} >>\nstream\n".encode()
            + data
            + b"\nendstream\nendobj\n"
        )
    chunks.append(b"trailer\n<< /Root 1 0 R >>\n%%EOF\n")
    path.write_bytes(b"".join(chunks))
    return path


def text_page(text: str) -> bytes:
    """Content stream drawing `text` as one literal string."""
    escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    return f"BT /F1 12 Tf 72 720 Td ({escaped}) Tj ET".encode("latin-1")


def write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def scan_errors(messages: List[str]) -> List[str]:
    """Error messages minus the environment-dependent tool warning."""
    return [m for m in messages if not m.startswith(TOOL_WARNING_PREFIX)]


posix_only = pytest.mark.skipif(
    sys.platform.startswith("win"), reason="fake tools are POSIX shell scripts"
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="slide_indexer_test_")
    # Resolve to handle macOS /var -> /private/var symlink
    resolved = Path(tmp).resolve()
    yield resolved
    shutil.rmtree(str(resolved), ignore_errors=True)


@pytest.fixture
def decks_dir(temp_dir: Path) -> Path:
    decks = temp_dir / "decks"
    decks.mkdir()
    return decks


@pytest.fixture
def test_config(temp_dir: Path) -> IndexerConfig:
    """Isolated configuration with no external tools."""
    config = IndexerConfig(
        state_path=temp_dir / "state" / "index.json",
        tools=ToolPaths(),
    )
    set_config(config)
    return config


@pytest.fixture
def make_config(temp_dir: Path) -> Callable[..., IndexerConfig]:
    """Factory for configs with specific tools or settings."""
    def _make(**overrides) -> IndexerConfig:
        overrides.setdefault("state_path", temp_dir / "state" / "index.json")
        overrides.setdefault("tools", ToolPaths())
        return IndexerConfig(**overrides)
    return _make


@pytest.fixture
def fake_tools(temp_dir: Path) -> ToolPaths:
    """Shell-script stand-ins for pdftotext, pdftoppm and tesseract."""
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    pdftotext = write_script(
        bin_dir / "pdftotext",
        "printf 'Layout page one describes the hiring plan\\f\\f"
        "Layout page two lists the budget owners\\f'",
    )
    # args: -png -r DPI input prefix
    pdftoppm = write_script(
        bin_dir / "pdftoppm",
        'echo "$@" >> "$(dirname "$0")/pdftoppm.log"\ntouch "$5-1.png" "$5-2.png" "$5-3.png"',
    )
    # args: image stdout -l eng --psm 6
    tesseract = write_script(
        bin_dir / "tesseract",
        'case "$1" in\n'
        '  *-2.png) echo "   " ;;\n'
        '  *) echo "Recognized invoice summary for $(basename "$1")" ;;\n'
        "esac",
    )
    return ToolPaths(pdftoppm=pdftoppm, tesseract=tesseract, pdftotext=pdftotext)


@pytest.fixture
def sample_decks(decks_dir: Path) -> dict[str, Path]:
    """One document of each kind plus a lock file that must be ignored."""
    files = {}
    files["pptx"] = write_pptx(
        decks_dir / "a.pptx", [slide_xml("Quarterly Revenue Growth")]
    )
    files["ppt"] = decks_dir / "legacy.ppt"
    files["ppt"].write_bytes(
        b"\xd0\xcf\x11\xe0\x00\x00Legacy roadmap overview for the northern "
        b"region sales team\x00\x01\x02"
    )
    files["pdf"] = write_pdf(
        decks_dir / "nested" / "report.pdf",
        [text_page("Annual security audit findings")],
    )
    files["lock"] = write_pptx(
        decks_dir / "~$a.pptx", [slide_xml("Lock file content")]
    )
    return files


def set_mtime(path: Path, millis: int) -> None:
    seconds = millis / 1000
    os.utime(path, (seconds, seconds))
