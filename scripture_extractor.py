import re
from typing import List, Tuple

from errors import ParseError
from html_text import collapse_whitespace, decode_entities, strip_markup, strip_tags
from models import ScripturePassage

PASSAGE_CLASS = "passage-text"
VERSE_MARKER_CLASSES = ("versenum", "chapternum")
# Blocks inside the passage container that are not part of the read text.
NOISE_BLOCK_CLASSES = ("footnotes", "crossrefs")

_ROMAN_PREFIX = {"i": "1", "ii": "2", "iii": "3"}

# Common abbreviations, so the slide shows the full book name.
_BOOK_ALIASES = {
    "gen": "Genesis", "ex": "Exodus", "exo": "Exodus", "lev": "Leviticus",
    "num": "Numbers", "nu": "Numbers", "deut": "Deuteronomy", "dt": "Deuteronomy",
    "josh": "Joshua", "judg": "Judges", "jdg": "Judges",
    "sam": "Samuel", "kgs": "Kings", "chron": "Chronicles", "neh": "Nehemiah",
    "ps": "Psalms", "psa": "Psalms", "prov": "Proverbs", "pr": "Proverbs",
    "eccl": "Ecclesiastes", "ecc": "Ecclesiastes", "isa": "Isaiah", "jer": "Jeremiah",
    "lam": "Lamentations", "ezek": "Ezekiel", "eze": "Ezekiel", "dan": "Daniel",
    "hos": "Hosea", "obad": "Obadiah", "mic": "Micah", "hab": "Habakkuk",
    "zeph": "Zephaniah", "zech": "Zechariah", "mal": "Malachi",
    "mt": "Matthew", "matt": "Matthew", "mk": "Mark", "mrk": "Mark",
    "lk": "Luke", "lu": "Luke", "jn": "John", "ac": "Acts", "rom": "Romans",
    "cor": "Corinthians", "gal": "Galatians", "eph": "Ephesians",
    "phil": "Philippians", "php": "Philippians", "col": "Colossians",
    "thess": "Thessalonians", "tim": "Timothy", "heb": "Hebrews",
    "jas": "James", "pet": "Peter", "rev": "Revelation",
}

_REF_HEAD_RE = re.compile(
    r"^\s*(?:(iii|ii|i|[1-3])\s+)?([a-z][a-z ]*?)\.?\s+(\d.*)$",
    re.IGNORECASE,
)
# A piece with no book name ("18", "4:1-3") continues the previous reference.
_VERSE_CONTINUATION_RE = re.compile(r"^\d+(?::\d+)?(?:\s*[-\u2013]\s*\d+(?::\d+)?)?$")

_TOKEN_OPEN = "\ue010"
_TOKEN_CLOSE = "\ue011"
_CITATION_RE = re.compile(r"\(\s*[A-Z]\s*\)")
_SUP_RE = re.compile(r"<sup\b[^>]*>[\s\S]*?</sup\s*>", re.IGNORECASE)
_HEADING_RE = re.compile(r"<h([1-6])\b[^>]*>[\s\S]*?</h\1\s*>", re.IGNORECASE)


# -------------------------
# References
# -------------------------

def normalize_reference(ref: str) -> str:
    """'I Cor 13:4-7' -> '1 Corinthians 13:4-7'. Unknown books are kept as typed."""
    ref = collapse_whitespace(ref)
    m = _REF_HEAD_RE.match(ref)
    if not m:
        return ref
    num, book, rest = m.groups()
    book = _BOOK_ALIASES.get(book.lower().strip(), book.strip())
    if num:
        num = _ROMAN_PREFIX.get(num.lower(), num)
        return f"{num} {book} {rest}"
    return f"{book} {rest}"


def split_references(reading: str) -> List[str]:
    """
    Split a 'Scripture Reading' cell into references.

    "John 3:16,18, Romans 8:28" -> ["John 3:16,18", "Romans 8:28"]
    """
    refs: List[str] = []
    for piece in (reading or "").split(","):
        piece = piece.strip()
        if not piece:
            continue
        if refs and _VERSE_CONTINUATION_RE.match(piece):
            refs[-1] = f"{refs[-1]},{piece}"
        else:
            refs.append(piece)
    return [normalize_reference(r) for r in refs]


# -------------------------
# Passage page parsing
# -------------------------

def _class_open_tag_re(class_name: str) -> re.Pattern:
    return re.compile(
        r"<([a-z][a-z0-9]*)\b[^>]*\bclass\s*=\s*[\"'][^\"']*\b"
        + re.escape(class_name)
        + r"\b[^\"']*[\"'][^>]*>",
        re.IGNORECASE,
    )


def _balanced_end(html: str, pos: int, tag: str) -> int:
    """
    Index of the close tag matching an open `tag` that ended just before `pos`.
    Nested open/close tags of the same name are counted until depth returns to 0.
    """
    depth = 1
    for m in re.finditer(rf"<(/?){tag}\b[^>]*>", html[pos:], re.IGNORECASE):
        if m.group(0).endswith("/>"):
            continue
        depth += -1 if m.group(1) else 1
        if depth == 0:
            return pos + m.start()
    return len(html)


def find_passage_region(html: str, class_name: str = PASSAGE_CLASS) -> str:
    m = _class_open_tag_re(class_name).search(html or "")
    if not m:
        raise ParseError(f"passage container with class {class_name!r} not found")
    end = _balanced_end(html, m.end(), m.group(1))
    return html[m.end():end]


def _remove_noise_blocks(fragment: str) -> str:
    for class_name in NOISE_BLOCK_CLASSES:
        pattern = _class_open_tag_re(class_name)
        while True:
            m = pattern.search(fragment)
            if not m:
                break
            end = _balanced_end(fragment, m.end(), m.group(1))
            close = fragment.find(">", end)
            fragment = fragment[:m.start()] + fragment[(close + 1 if close != -1 else len(fragment)):]
    return _HEADING_RE.sub(" ", fragment)


def _marker_re() -> re.Pattern:
    classes = "|".join(re.escape(c) for c in VERSE_MARKER_CLASSES)
    return re.compile(
        r"<(sup|span)\b[^>]*\bclass\s*=\s*[\"'][^\"']*\b(?:" + classes + r")\b[^\"']*[\"'][^>]*>([\s\S]*?)</\1\s*>",
        re.IGNORECASE,
    )


def _token(i: int) -> str:
    return f"{_TOKEN_OPEN}{i}{_TOKEN_CLOSE}"


def protect_verse_numbers(fragment: str) -> Tuple[str, List[str]]:
    """Swap verse-number elements for positional tokens, left to right."""
    numbers: List[str] = []

    def repl(m: re.Match) -> str:
        numbers.append(collapse_whitespace(decode_entities(strip_tags(m.group(2)))))
        return f" {_token(len(numbers) - 1)}"

    return _marker_re().sub(repl, fragment), numbers


def restore_verse_numbers(text: str, numbers: List[str]) -> str:
    for i, num in enumerate(numbers):
        text = text.replace(_token(i), f"{num} " if num else "", 1)
    return re.sub(r" {2,}", " ", text).strip()


def clean_passage_text(fragment: str) -> str:
    text = _SUP_RE.sub("", fragment)
    text = strip_markup(text, line_break=" ")
    text = _CITATION_RE.sub("", text)
    text = collapse_whitespace(text)
    return collapse_whitespace(decode_entities(text))


def extract_passage_body(html: str) -> str:
    """
    Passage text with verse numbers kept, e.g. "16 For God so loved ... 17 For God did not ...".
    Returns "" when the page has no passage container.
    """
    try:
        region = find_passage_region(html)
    except ParseError:
        return ""
    region = _remove_noise_blocks(region)
    protected, numbers = protect_verse_numbers(region)
    return restore_verse_numbers(clean_passage_text(protected), numbers)


def compose_passages(pages: List[Tuple[str, str]]) -> ScripturePassage:
    """
    pages: (reference, html) in reading order. A page that failed to fetch has html "".
    """
    bodies = [extract_passage_body(html) for _, html in pages if html]
    return ScripturePassage(
        reference_label=", ".join(ref for ref, _ in pages),
        body=" ".join(b for b in bodies if b),
    )
