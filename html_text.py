import re

# Only this fixed set of named references is decoded; anything else stays verbatim.
NAMED_ENTITIES = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "nbsp": " ",
}

_ENTITY_RE = re.compile(r"&(?:#(\d+)|#[xX]([0-9a-fA-F]+)|([a-zA-Z]+));")

_ANCHOR_RE = re.compile(r"<a\b[^>]*>.*?</a\s*>", re.IGNORECASE | re.DOTALL)
_BR_RE = re.compile(r"<br\b[^>]*>", re.IGNORECASE)
# An unclosed tag is stripped through to the end of the fragment.
_TAG_RE = re.compile(r"<[^>]*(?:>|$)")

_INLINE_WS_RE = re.compile(r"[ \t\f\v\u00a0]+")


def _decode_match(m: re.Match) -> str:
    dec, hexa, name = m.groups()
    if name is not None:
        return NAMED_ENTITIES.get(name, m.group(0))
    try:
        return chr(int(dec) if dec is not None else int(hexa, 16))
    except (ValueError, OverflowError):
        return m.group(0)


def decode_entities(text: str) -> str:
    """
    Replace numeric (&#NNN; / &#xHHHH;) and the fixed named references with
    their literal characters.

    Runs in a single pass, so an ampersand produced by &amp; is never decoded
    a second time within the same call.
    """
    if not text:
        return ""
    return _ENTITY_RE.sub(_decode_match, text)


def strip_markup(html: str, line_break: str = "\n") -> str:
    """
    Remove link elements (with their text), turn <br> into `line_break`,
    then drop every remaining tag and trim.
    """
    if not html:
        return ""
    text = _ANCHOR_RE.sub("", html)
    text = _BR_RE.sub(line_break, text)
    text = _TAG_RE.sub("", text)
    return text.strip()


def strip_tags(html: str) -> str:
    """Drop every tag but keep all text, link text included."""
    return _TAG_RE.sub("", html or "").strip()


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def normalize_lines(text: str) -> str:
    """Trim each line, collapse runs of inline spaces and drop blank lines."""
    lines = []
    for ln in (text or "").split("\n"):
        ln = _INLINE_WS_RE.sub(" ", ln).strip()
        if ln:
            lines.append(ln)
    return "\n".join(lines)
