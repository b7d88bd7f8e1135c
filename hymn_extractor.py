import re
from typing import Optional, Tuple, List

from errors import ParseError
from html_text import collapse_whitespace, decode_entities, normalize_lines, strip_markup
from models import BlockKind, ContentBlock, HymnDocument

FALLBACK_TITLE = "Untitled Hymn"

# Private-use character; survives tag stripping and whitespace collapsing.
_LINE_BREAK_MARK = "\ue000"

_TABLE_RE = re.compile(r"<table\b[^>]*>[\s\S]*?</table\s*>", re.IGNORECASE)
_PARAGRAPH_RE = re.compile(r"<p\b[^>]*>([\s\S]*?)</p\s*>", re.IGNORECASE)
_H1_RE = re.compile(r"<h1\b([^>]*)>([\s\S]*?)</h1\s*>", re.IGNORECASE)
_CLASS_ATTR_RE = re.compile(r"""class\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.IGNORECASE)
_DIGITS_ONLY_RE = re.compile(r"^\d+$")
_REFRAIN_RE = re.compile(r"\brefrain\b", re.IGNORECASE)

TITLE_CLASSES = ("title", "single-title", "entry-title")


def extract_hymn_number(cell_value) -> Optional[str]:
    """
    Pull the hymn number out of a schedule cell, e.g. "#12 Joyful" -> "012".
    """
    if cell_value is None:
        return None
    m = re.search(r"(\d+)", str(cell_value))
    if not m:
        return None
    return m.group(1).zfill(3)


def _has_title_classes(attrs: str) -> bool:
    m = _CLASS_ATTR_RE.search(attrs or "")
    if not m:
        return False
    classes = set((m.group(1) or m.group(2) or m.group(3) or "").lower().split())
    return all(c in classes for c in TITLE_CLASSES)


def extract_hymn_title(html: str) -> str:
    for m in _H1_RE.finditer(html or ""):
        if not _has_title_classes(m.group(1)):
            continue
        title = collapse_whitespace(decode_entities(strip_markup(m.group(2), line_break=" ")))
        if title:
            return title
    return FALLBACK_TITLE


def clean_paragraph(paragraph_html: str) -> str:
    """
    Strip a <p> fragment down to text, keeping deliberate <br> line breaks.
    Source newlines inside the markup are not meaningful and are collapsed.
    """
    text = strip_markup(paragraph_html, line_break=_LINE_BREAK_MARK)
    text = collapse_whitespace(text)
    text = decode_entities(text)
    text = text.replace(_LINE_BREAK_MARK, "\n")
    return normalize_lines(text)


def _split_blocks(html: str) -> Tuple[List[str], Optional[str]]:
    m = _TABLE_RE.search(html or "")
    if not m:
        raise ParseError("hymn page has no <table> content region")

    verses: List[str] = []
    refrain: Optional[str] = None
    for pm in _PARAGRAPH_RE.finditer(m.group(0)):
        text = clean_paragraph(pm.group(1))
        if not text:
            continue
        # Several refrain-like blocks: the last one wins.
        if _REFRAIN_RE.search(text):
            refrain = text
        else:
            verses.append(text)

    # Pagination artifact at the end of the hymn table.
    if verses and _DIGITS_ONLY_RE.match(verses[-1]):
        verses.pop()
    return verses, refrain


def extract_hymn_verses(html: str) -> Tuple[List[ContentBlock], Optional[ContentBlock]]:
    try:
        verse_texts, refrain_text = _split_blocks(html)
    except ParseError:
        return [], None

    verses = [ContentBlock(BlockKind.VERSE, t, i) for i, t in enumerate(verse_texts)]
    refrain = ContentBlock(BlockKind.REFRAIN, refrain_text, 0) if refrain_text else None
    return verses, refrain


def extract_hymn(html: str) -> HymnDocument:
    """
    Parse a hymn page into title, ordered verses and optional refrain.

    Never raises for malformed input: a page without a content table yields
    no verses and no refrain, with the best-effort title.
    """
    title = extract_hymn_title(html)
    verses, refrain = extract_hymn_verses(html)
    return HymnDocument(title=title, verses=verses, refrain=refrain)
