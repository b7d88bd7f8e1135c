"""
Turn a free-form email body into a song title plus ordered lyric paragraphs.

Three stages, each run only while fewer than two sections have been found:

  1. structural  (rich bodies only) block boundaries and <br><br> become blank lines
  2. blank-line  split on blank lines
  3. heuristic   first few words become the title; the rest is split on
                 section labels ("Chorus", "Verse 2", ...) or chunked into
                 fixed-size line groups

Stage 3 is best effort by nature. Its result carries SegmentStatus.BEST_EFFORT
so callers can decide to skip the song rather than show garbled slides.
"""
from __future__ import annotations

import re
from typing import List, Tuple

from errors import ParseError
from html_text import decode_entities, strip_markup
from models import BlockKind, ContentBlock, EmailSong, SegmentResult, SegmentStatus

TITLE_WORD_COUNT = 6
LINES_PER_GROUP = 4
# Title line plus at least two lyric lines.
MIN_HEURISTIC_LINES = 3

SECTION_ANCHORS = ("verse", "chorus", "pre-chorus", "bridge", "refrain", "tag", "outro", "ending")

_ANCHOR_LINE_RE = re.compile(
    r"^\s*(?:" + "|".join(re.escape(a) for a in SECTION_ANCHORS) + r")\b[\s\d:.)x]*$",
    re.IGNORECASE,
)

_BLOCK_TAGS = r"(?:p|div|li|h[1-6]|blockquote|tr)"
_DROP_ELEMENTS_RE = re.compile(r"<(style|script|head|title)\b[^>]*>[\s\S]*?</\1\s*>", re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_BLOCK_TRANSITION_RE = re.compile(rf"</{_BLOCK_TAGS}\s*>\s*<{_BLOCK_TAGS}\b[^>]*>", re.IGNORECASE)
_DOUBLE_BR_RE = re.compile(r"<br\b[^>]*>\s*(?:<br\b[^>]*>\s*)+", re.IGNORECASE)
_BLOCK_CLOSE_RE = re.compile(rf"</{_BLOCK_TAGS}\s*>", re.IGNORECASE)
_BLANK_SPLIT_RE = re.compile(r"\n\s*\n")
_SIGNATURE_RE = re.compile(r"^--\s*$")


def is_rich(content_kind: str) -> bool:
    return "html" in (content_kind or "").lower()


# -------------------------
# Stage 1: structure
# -------------------------

def _tidy_lines(text: str) -> str:
    """Trim lines, keep single blank lines between paragraphs, cut a '-- ' signature."""
    out: List[str] = []
    for ln in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if _SIGNATURE_RE.match(ln):
            break
        ln = re.sub(r"[ \t\u00a0]+", " ", ln).strip()
        if not ln and (not out or not out[-1]):
            continue
        out.append(ln)
    return "\n".join(out).strip()


def structural_text(body: str, content_kind: str) -> str:
    if not is_rich(content_kind):
        return _tidy_lines(body or "")

    html = _COMMENT_RE.sub("", body or "")
    html = _DROP_ELEMENTS_RE.sub("", html)
    # Newlines in markup source carry no meaning.
    html = re.sub(r"\s+", " ", html)
    html = _BLOCK_TRANSITION_RE.sub("\n\n", html)
    html = _DOUBLE_BR_RE.sub("\n\n", html)
    html = _BLOCK_CLOSE_RE.sub("\n", html)
    text = strip_markup(html, line_break="\n")
    return _tidy_lines(decode_entities(text))


# -------------------------
# Stage 2: blank lines
# -------------------------

def split_blank_lines(text: str) -> List[str]:
    return [g.strip() for g in _BLANK_SPLIT_RE.split(text or "") if g.strip()]


# -------------------------
# Stage 3: heuristic regrouping
# -------------------------

def _group_by_anchors(lines: List[str]) -> List[str]:
    groups: List[List[str]] = []
    cur: List[str] = []
    for ln in lines:
        if _ANCHOR_LINE_RE.match(ln):
            if cur:
                groups.append(cur)
            cur = []
            continue
        cur.append(ln)
    if cur:
        groups.append(cur)
    return ["\n".join(g) for g in groups]


def _chunk_lines(lines: List[str], size: int = LINES_PER_GROUP) -> List[str]:
    return ["\n".join(lines[i:i + size]) for i in range(0, len(lines), size)]


def regroup_single_section(section: str) -> Tuple[str, List[str]]:
    lines = [ln for ln in section.split("\n") if ln.strip()]
    if len(lines) < MIN_HEURISTIC_LINES:
        raise ParseError(f"only {len(lines)} line(s); too little text to regroup")

    words = lines[0].split()
    title = " ".join(words[:TITLE_WORD_COUNT])
    rest = lines[1:]
    leftover = " ".join(words[TITLE_WORD_COUNT:])
    if leftover:
        rest.insert(0, leftover)

    if any(_ANCHOR_LINE_RE.match(ln) for ln in rest):
        groups = _group_by_anchors(rest)
    else:
        groups = _chunk_lines(rest)
    return title, groups


# -------------------------
# Public entry point
# -------------------------

def _segment(body: str, content_kind: str) -> Tuple[SegmentStatus, str, str, List[str]]:
    text = structural_text(body, content_kind)
    stage = "structural" if is_rich(content_kind) else "blank_line"

    groups = split_blank_lines(text)
    if not groups:
        raise ParseError("email body is empty")

    if len(groups) >= 2:
        title = " ".join(groups[0].split("\n"))
        return SegmentStatus.STRUCTURED, stage, title, groups[1:]

    title, sections = regroup_single_section(groups[0])
    return SegmentStatus.BEST_EFFORT, "heuristic", title, sections


def segment_email_body(body: str, content_kind: str = "text/plain") -> SegmentResult:
    """
    Segment an email body into an EmailSong.

    Never raises for bad input; a body that yields no title or no sections
    comes back as SegmentStatus.FAILED with `song` None.
    """
    try:
        status, stage, title, sections = _segment(body, content_kind)
    except ParseError as e:
        return SegmentResult(status=SegmentStatus.FAILED, error=str(e))

    title = title.strip()
    blocks = [ContentBlock(BlockKind.PARAGRAPH, s, i) for i, s in enumerate(sections) if s.strip()]
    if not title or not blocks:
        return SegmentResult(status=SegmentStatus.FAILED, stage=stage, error="no title or no lyric sections")

    return SegmentResult(status=status, song=EmailSong(title=title, sections=blocks), stage=stage)
