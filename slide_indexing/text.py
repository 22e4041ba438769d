"""
Text Normalizer - Shared cleaning and keyword derivation.

Every extractor runs raw text through the same fixed pipeline:

    strip tags -> strip binary artifacts -> drop noise tokens -> collapse whitespace

and derives keywords and snippets from the cleaned result. The gibberish
heuristics decide whether extracted text is worth showing at all.
"""

import re
from collections import Counter
from typing import Iterable, List, Set

from .errors import PatternError
from .models import SlidePreview


def compile_pattern(pattern: str, flags: int = 0) -> re.Pattern:
    """Compile a fixed pattern, reporting failures in the indexing taxonomy."""
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise PatternError(f"Invalid pattern {pattern!r}: {e}", e) from e


TAG_PATTERN = compile_pattern(r"<[^>]+>")
TOKEN_PATTERN = compile_pattern(r"[a-z0-9]{3,}")
DECIMAL_ENTITY_PATTERN = compile_pattern(r"&#(\d+);")
HEX_ENTITY_PATTERN = compile_pattern(r"&#x([0-9a-fA-F]+);")

NOISE_WORDS: frozenset = frozenset({
    "rectangle", "title", "subtitle", "body", "outline", "placeholder",
    "arial", "calibri", "bold", "italic", "regular",
})

NOISE_PATTERNS = (
    compile_pattern(r"^[a-z]{2}-[a-z]{2}$"),   # locale codes, en-us
    compile_pattern(r"^latin-\d+$"),
    compile_pattern(r"^slide\d*$"),
    compile_pattern(r"^text\d*$"),
)

XML_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&apos;", "'"),
)


# ---------------------------------------------------------------------------
# Cleaning pipeline
# ---------------------------------------------------------------------------

def strip_tags(text: str) -> str:
    return TAG_PATTERN.sub(" ", text)


def strip_binary_artifacts(text: str) -> str:
    """Replace U+FFFD and control characters (except tab, CR, LF) with spaces."""
    return "".join(
        " " if ch == "\ufffd" or (_is_control(ch) and ch not in "\t\r\n") else ch
        for ch in text
    )


def _is_control(ch: str) -> bool:
    code = ord(ch)
    return code < 0x20 or 0x7F <= code <= 0x9F


def is_noise_token(token: str) -> bool:
    stripped = token.replace("(", "").replace(")", "")
    if not any(ch.isascii() and ch.isalpha() for ch in stripped):
        return True
    lowered = stripped.lower()
    if lowered in NOISE_WORDS:
        return True
    return any(pattern.match(lowered) for pattern in NOISE_PATTERNS)


def filter_noise_tokens(text: str) -> str:
    return " ".join(token for token in text.split() if not is_noise_token(token))


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def normalize(text: str) -> str:
    """Run the full cleaning pipeline."""
    return collapse_whitespace(
        filter_noise_tokens(strip_binary_artifacts(strip_tags(text)))
    )


def decode_xml_entities(text: str) -> str:
    """Decode the five predefined XML entities and numeric references."""
    for entity, replacement in XML_ENTITIES:
        text = text.replace(entity, replacement)
    text = DECIMAL_ENTITY_PATTERN.sub(lambda m: _char_or_empty(int(m.group(1))), text)
    text = HEX_ENTITY_PATTERN.sub(lambda m: _char_or_empty(int(m.group(1), 16)), text)
    return text


def _char_or_empty(code: int) -> str:
    if 0 <= code <= 0x10FFFF and not 0xD800 <= code <= 0xDFFF:
        return chr(code)
    return ""


def truncate_snippet(text: str, limit: int) -> str:
    """Cut to `limit` characters (not bytes)."""
    return text[:limit]


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------

def tokenize(text: str) -> List[str]:
    return TOKEN_PATTERN.findall(text.lower())


def preview_tokens(previews: Iterable[SlidePreview]) -> Set[str]:
    tokens: Set[str] = set()
    for preview in previews:
        tokens.update(tokenize(preview.text))
    return tokens


def derive_keywords(
    text: str,
    previews: Iterable[SlidePreview],
    limit: int,
) -> List[str]:
    """
    Most frequent tokens of `text` that no preview already shows.

    Ties keep first-occurrence order.
    """
    frequencies = Counter(tokenize(text))
    for token in preview_tokens(previews):
        frequencies.pop(token, None)
    ranked = sorted(frequencies.items(), key=lambda pair: pair[1], reverse=True)
    return [token for token, _ in ranked[:limit]]


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------

def has_meaningful_text(text: str) -> bool:
    trimmed = text.strip()
    if not trimmed:
        return False
    if len(trimmed) < 12:
        return any(ch.isascii() and ch.isalnum() for ch in trimmed)
    return not is_gibberish(trimmed)


def is_gibberish(text: str) -> bool:
    """
    True when text looks like binary residue rather than language.

    Too-short text (under 40 non-space characters) is never judged.
    """
    compact = "".join(text.split())
    if len(compact) < 40:
        return False

    alpha = sum(1 for ch in compact if ch.isascii() and ch.isalpha())
    if alpha == 0:
        return True
    if alpha / len(compact) < 0.35:
        return True

    upper = sum(1 for ch in compact if ch.isascii() and ch.isupper())
    if alpha > 80 and upper / alpha > 0.9:
        return True

    long_tokens = sum(1 for token in text.split() if len(token) > 40)
    return long_tokens > 2
