"""
PDF stream parsing - text from raw PDF bytes without a PDF library.

Finds every `stream ... endstream` region, inflates it when the preceding
dictionary declares /FlateDecode, then pulls literal `( ... )` and hex
`< ... >` strings out of the decoded bytes. Each region that yields text
becomes one page segment.

Font encodings, ToUnicode maps and content operators are ignored.
"""

import codecs
import re
import zlib
from dataclasses import dataclass, field
from typing import List, Optional

from ..text import compile_pattern


STREAM_KEYWORD = b"stream"
ENDSTREAM_KEYWORD = b"endstream"
FLATE_MARKER = b"/FlateDecode"
HEADER_WINDOW = 256

LITERAL_STRING_PATTERN = compile_pattern(r"\((?:\\.|[^\\)])*\)")
HEX_STRING_PATTERN = compile_pattern(r"<([0-9A-Fa-f\s]+)>")
# Counts /Type /Page but not /Type /Pages
PAGE_OBJECT_PATTERN = re.compile(rb"/Type\s*/Page\b")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "(": "(",
    ")": ")",
    "\\": "\\",
}


@dataclass
class PdfContents:
    text: str = ""
    page_count: Optional[int] = None
    pages: List[str] = field(default_factory=list)


def inflate(data: bytes) -> bytes:
    """zlib-inflate a stream; trailing bytes after the deflate data are ignored."""
    return zlib.decompressobj().decompress(data)


def decode_literal_string(body: str) -> str:
    """Resolve backslash escapes inside a PDF literal string body."""
    out: List[str] = []
    i = 0
    length = len(body)
    while i < length:
        ch = body[i]
        i += 1
        if ch != "\\":
            out.append(ch)
            continue
        if i >= length:
            break
        nxt = body[i]
        if nxt in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[nxt])
            i += 1
        elif "0" <= nxt <= "7":
            digits = nxt
            i += 1
            while len(digits) < 3 and i < length and "0" <= body[i] <= "7":
                digits += body[i]
                i += 1
            value = int(digits, 8)
            if value <= 0xFF:
                out.append(chr(value))
        else:
            out.append(nxt)
            i += 1
    return "".join(out)


def decode_text_bytes(data: bytes) -> str:
    """UTF-16 when a byte-order mark leads, else UTF-8, else one char per byte."""
    if data[:2] in (codecs.BOM_UTF16_BE, codecs.BOM_UTF16_LE):
        encoding = "utf-16-be" if data[:2] == codecs.BOM_UTF16_BE else "utf-16-le"
        body = data[2:]
        body = body[: len(body) - len(body) % 2]
        try:
            return body.decode(encoding)
        except UnicodeDecodeError:
            pass
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def decode_hex_string(body: str) -> str:
    digits = "".join(body.split())
    if not digits:
        return ""
    if len(digits) % 2:
        digits += "0"
    return decode_text_bytes(bytes.fromhex(digits))


def extract_stream_text(stream: bytes) -> str:
    """Literal strings first, then hex strings, space-joined."""
    content = stream.decode("utf-8", errors="replace")
    segments: List[str] = []

    for match in LITERAL_STRING_PATTERN.finditer(content):
        decoded = decode_literal_string(match.group(0)[1:-1])
        if decoded:
            segments.append(decoded)

    for match in HEX_STRING_PATTERN.finditer(content):
        decoded = decode_hex_string(match.group(1))
        if decoded:
            segments.append(decoded)

    return " ".join(segments)


def count_page_objects(buffer: bytes) -> Optional[int]:
    """
    Number of `/Type /Page` markers, None if there are none.

    Incremental updates and embedded documents repeat markers, so this can
    overcount.
    """
    count = len(PAGE_OBJECT_PATTERN.findall(buffer))
    return count or None


def iter_stream_regions(buffer: bytes):
    """Yield (header, data) for every stream region, in file order."""
    cursor = 0
    while True:
        stream_pos = buffer.find(STREAM_KEYWORD, cursor)
        if stream_pos < 0:
            return

        data_start = stream_pos + len(STREAM_KEYWORD)
        while data_start < len(buffer) and buffer[data_start] in b"\r\n":
            data_start += 1
        if data_start >= len(buffer):
            return

        end_pos = buffer.find(ENDSTREAM_KEYWORD, data_start)
        if end_pos < 0:
            return

        header = buffer[max(0, stream_pos - HEADER_WINDOW):stream_pos]
        yield header, buffer[data_start:end_pos]
        cursor = end_pos + len(ENDSTREAM_KEYWORD)


def parse_pdf_bytes(buffer: bytes) -> PdfContents:
    pages: List[str] = []
    for header, raw in iter_stream_regions(buffer):
        data = raw
        if FLATE_MARKER in header:
            try:
                data = inflate(raw)
            except zlib.error:
                data = raw
        text = extract_stream_text(data)
        if text:
            pages.append(text)

    return PdfContents(
        text=" ".join(pages),
        page_count=count_page_objects(buffer),
        pages=pages,
    )
