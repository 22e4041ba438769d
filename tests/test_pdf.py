"""
PDF Tests - Native stream parsing and the external tool fallback tiers.

Tool tiers are exercised with shell-script stand-ins for pdftotext,
pdftoppm and tesseract (see conftest.fake_tools).
"""

import codecs

import pytest

from conftest import posix_only, text_page, write_pdf, write_script
from slide_indexing.errors import ToolError
from slide_indexing.extractors import PdfExtractor
from slide_indexing.extractors.pdf import DIAGNOSTIC_SEPARATOR, OCR_NOTICE
from slide_indexing.extractors.pdf_stream import (
    count_page_objects, decode_hex_string, decode_literal_string,
    decode_text_bytes, extract_stream_text, parse_pdf_bytes,
)
from slide_indexing.models import SlideKind
from slide_indexing.progress import STATUS_OCR, ProgressChannel
from slide_indexing.text import tokenize
from slide_indexing.tools import (
    ToolPaths, extract_layout_text, extract_ocr_text, resolve_command,
)


DRAWING_ONLY = b"0 0 m 100 100 l S"
SHOUTED_PAGE = (
    "QUARTERLY REVENUE GROWTH EXCEEDED TARGETS ACROSS NORTHERN REGIONS "
    "WITH STRONG RETAIL DEMAND AND GAINS"
)
CODE_PAGE = " ".join(["ab12345678"] * 8)


class TestStringDecoding:
    """Tests for PDF string literal decoding."""

    def test_simple_escapes(self):
        assert decode_literal_string(r"a\(b\)c\\d\n") == "a(b)c\\d\n"

    def test_octal_escapes(self):
        assert decode_literal_string(r"\101\0617") == "A17"

    def test_octal_above_byte_range_dropped(self):
        assert decode_literal_string(r"x\777y") == "xy"

    def test_unknown_escape_keeps_character(self):
        assert decode_literal_string(r"\q") == "q"

    def test_utf16_with_bom(self):
        assert decode_text_bytes(codecs.BOM_UTF16_BE + "Hi".encode("utf-16-be")) == "Hi"
        assert decode_text_bytes(codecs.BOM_UTF16_LE + "Hi".encode("utf-16-le")) == "Hi"

    def test_invalid_utf8_falls_back_to_latin1(self):
        assert decode_text_bytes(b"\xe9t\xe9") == "été"

    def test_hex_string(self):
        assert decode_hex_string("48 65 6C6C6F") == "Hello"

    def test_odd_hex_string_is_padded(self):
        assert decode_hex_string("414") == "A@"


class TestStreamParsing:
    """Tests for stream discovery and text extraction."""

    def test_literal_then_hex_strings(self):
        assert extract_stream_text(b"BT (Hello) Tj <576F726C64> Tj ET") == "Hello World"

    def test_counts_page_objects_not_page_trees(self):
        assert count_page_objects(b"/Type /Pages /Type /Page /Type/Page") == 2

    def test_no_page_objects(self):
        assert count_page_objects(b"%PDF-1.4 nothing here") is None

    def test_compressed_pages(self, temp_dir):
        path = write_pdf(temp_dir / "two.pdf", [
            text_page("Quarterly revenue summary"),
            text_page("Hiring plan (draft)"),
        ])

        contents = parse_pdf_bytes(path.read_bytes())

        assert contents.pages == ["Quarterly revenue summary", "Hiring plan (draft)"]
        assert contents.page_count == 2
        assert contents.text == "Quarterly revenue summary Hiring plan (draft)"

    def test_uncompressed_pages(self, temp_dir):
        path = write_pdf(temp_dir / "plain.pdf", [text_page("Plain stream text")], compress=False)
        assert parse_pdf_bytes(path.read_bytes()).pages == ["Plain stream text"]

    def test_bad_flate_data_read_raw(self):
        buffer = b"<< /Filter /FlateDecode >>\nstream\nBT (Raw text) Tj ET\nendstream"
        assert parse_pdf_bytes(buffer).pages == ["Raw text"]

    def test_streams_without_text_are_skipped(self, temp_dir):
        path = write_pdf(temp_dir / "drawing.pdf", [DRAWING_ONLY])
        contents = parse_pdf_bytes(path.read_bytes())
        assert contents.pages == []
        assert contents.text == ""
        assert contents.page_count == 1

    def test_unterminated_stream(self):
        assert parse_pdf_bytes(b"stream\n(never ends)").pages == []


class TestPdfExtractor:
    """Tests for the three-tier PDF extraction."""

    def test_native_text(self, temp_dir, test_config):
        path = write_pdf(temp_dir / "report.pdf", [
            text_page("Annual security audit findings"),
            text_page("Remediation timeline and owners"),
        ])

        item = PdfExtractor(test_config).extract(path, 5_000, "feed")

        assert item.kind is SlideKind.PDF
        assert item.page_or_slide_count == 2
        assert [(p.index, p.text) for p in item.previews] == [
            (1, "Annual security audit findings"),
            (2, "Remediation timeline and owners"),
        ]
        assert item.snippet == (
            "Annual security audit findings Remediation timeline and owners"
        )
        assert item.keywords == []
        assert item.checksum == "feed"

    def test_no_text_and_no_tools(self, temp_dir, test_config):
        path = write_pdf(temp_dir / "scan.pdf", [DRAWING_ONLY])

        item = PdfExtractor(test_config).extract(path, None)

        assert item.previews == []
        assert item.snippet == ""
        assert item.keywords == []
        assert item.page_or_slide_count == 1

    @posix_only
    def test_layout_text_tier(self, temp_dir, make_config, fake_tools):
        config = make_config(tools=ToolPaths(pdftotext=fake_tools.pdftotext))
        path = write_pdf(temp_dir / "scan.pdf", [DRAWING_ONLY])

        item = PdfExtractor(config).extract(path, None)

        assert [(p.index, p.text) for p in item.previews] == [
            (1, "Layout page one describes the hiring plan"),
            (2, "Layout page two lists the budget owners"),
        ]
        assert item.snippet.startswith("Layout page one describes the hiring plan")
        assert item.page_or_slide_count == 1

    @posix_only
    def test_native_text_feeds_keywords_beside_layout_previews(
        self, temp_dir, make_config, fake_tools
    ):
        """Pages rejected one by one still count as text when read together."""
        config = make_config(tools=ToolPaths(pdftotext=fake_tools.pdftotext))
        path = write_pdf(temp_dir / "mixed.pdf", [text_page(SHOUTED_PAGE), text_page(CODE_PAGE)])

        item = PdfExtractor(config).extract(path, None)

        assert [p.text for p in item.previews] == [
            "Layout page one describes the hiring plan",
            "Layout page two lists the budget owners",
        ]
        assert item.snippet.startswith("QUARTERLY REVENUE GROWTH")
        assert item.keywords[0] == "ab12345678"
        assert "quarterly" in item.keywords
        shown = {token for p in item.previews for token in tokenize(p.text)}
        assert shown.isdisjoint(item.keywords)

    @posix_only
    def test_keyword_count_follows_config(self, temp_dir, make_config, fake_tools):
        config = make_config(tools=ToolPaths(pdftotext=fake_tools.pdftotext), max_keywords=2)
        path = write_pdf(temp_dir / "mixed.pdf", [text_page(SHOUTED_PAGE), text_page(CODE_PAGE)])

        item = PdfExtractor(config).extract(path, None)

        assert item.keywords == ["ab12345678", "quarterly"]

    @posix_only
    def test_tools_unused_when_native_text_suffices(self, temp_dir, make_config, fake_tools):
        config = make_config(tools=fake_tools)
        channel = ProgressChannel()
        path = write_pdf(temp_dir / "report.pdf", [text_page("Annual security audit findings")])

        item = PdfExtractor(config).extract(path, None, progress=channel)

        assert [p.text for p in item.previews] == ["Annual security audit findings"]
        assert channel.drain() == []

    @posix_only
    def test_ocr_tier(self, temp_dir, make_config, fake_tools):
        config = make_config(tools=ToolPaths(
            pdftoppm=fake_tools.pdftoppm, tesseract=fake_tools.tesseract
        ))
        channel = ProgressChannel()
        path = write_pdf(temp_dir / "scan.pdf", [DRAWING_ONLY])

        item = PdfExtractor(config).extract(path, None, progress=channel)

        # Page 2 OCRs to whitespace only and is skipped
        assert [(p.index, p.text) for p in item.previews] == [
            (1, "Recognized invoice summary for page-1.png"),
            (2, "Recognized invoice summary for page-3.png"),
        ]
        events = channel.drain()
        assert len(events) == 1
        assert events[0].path == str(path)
        assert events[0].status == STATUS_OCR
        assert events[0].diagnostic == OCR_NOTICE

    @posix_only
    def test_ocr_notice_carries_rescan_diagnostic(self, temp_dir, make_config, fake_tools):
        config = make_config(tools=fake_tools)
        write_script(fake_tools.pdftotext, "exit 0")
        channel = ProgressChannel()
        path = write_pdf(temp_dir / "scan.pdf", [DRAWING_ONLY])

        PdfExtractor(config).extract(
            path, None, progress=channel, diagnostic="Rescan Information:"
        )

        (event,) = channel.drain()
        assert event.diagnostic == "Rescan Information:" + DIAGNOSTIC_SEPARATOR + OCR_NOTICE

    @posix_only
    def test_ocr_page_cap(self, temp_dir, make_config, fake_tools):
        config = make_config(
            tools=ToolPaths(pdftoppm=fake_tools.pdftoppm, tesseract=fake_tools.tesseract),
            max_ocr_pages=1,
        )
        path = write_pdf(temp_dir / "scan.pdf", [DRAWING_ONLY])

        item = PdfExtractor(config).extract(path, None)

        assert [p.text for p in item.previews] == ["Recognized invoice summary for page-1.png"]

    @posix_only
    def test_ocr_never_below_minimum_dpi(self, temp_dir, make_config, fake_tools):
        config = make_config(tools=fake_tools, ocr_dpi=72)
        assert config.ocr_dpi == 120

        extract_ocr_text(config.tools, temp_dir / "scan.pdf", dpi=config.ocr_dpi)

        log = (fake_tools.pdftoppm.parent / "pdftoppm.log").read_text()
        assert "-png -r 120" in log

    @posix_only
    def test_failing_tool_is_not_fatal(self, temp_dir, make_config):
        broken = write_script(temp_dir / "pdftotext", "exit 3")
        config = make_config(tools=ToolPaths(pdftotext=broken))
        path = write_pdf(temp_dir / "scan.pdf", [DRAWING_ONLY])

        item = PdfExtractor(config).extract(path, None)

        assert item.previews == []
        assert item.snippet == ""


class TestTools:
    """Tests for external tool lookup and invocation."""

    def test_missing_tools(self):
        tools = ToolPaths()
        assert tools.missing == ["pdftoppm", "tesseract", "pdftotext"]
        assert not tools.ocr_available
        message = tools.status_message()
        assert message.startswith("PDF extraction tools missing: pdftoppm, tesseract, pdftotext")

    @posix_only
    def test_all_tools_present(self, fake_tools):
        assert fake_tools.missing == []
        assert fake_tools.ocr_available
        assert fake_tools.status_message() is None

    @posix_only
    def test_resolves_from_extra_directories(self, temp_dir):
        script = write_script(temp_dir / "slide-indexer-test-tool", "exit 0")
        assert resolve_command("slide-indexer-test-tool", [temp_dir]) == script

    def test_unresolvable_command(self, temp_dir):
        assert resolve_command("slide-indexer-no-such-tool", [temp_dir]) is None

    @posix_only
    def test_non_zero_exit_raises_tool_error(self, temp_dir):
        broken = write_script(temp_dir / "pdftotext", "exit 2")
        with pytest.raises(ToolError, match="pdftotext"):
            extract_layout_text(ToolPaths(pdftotext=broken), temp_dir / "x.pdf")

    @posix_only
    def test_layout_text_splits_pages(self, temp_dir, fake_tools):
        pages = extract_layout_text(fake_tools, temp_dir / "x.pdf")
        assert pages == [
            "Layout page one describes the hiring plan",
            "Layout page two lists the budget owners",
        ]

    def test_absent_tools_produce_nothing(self, temp_dir):
        assert extract_layout_text(ToolPaths(), temp_dir / "x.pdf") == []
        assert extract_ocr_text(ToolPaths(), temp_dir / "x.pdf") == []
