from __future__ import annotations

import re
from typing import List, Optional, Protocol, Tuple

from autofit import apply_autofit
from config import PipelineConfig
from debug_tools import DebugRecorder
from errors import TemplateError
from models import BlockKind, ContentBlock, HymnDocument, TemplateAnchor


class TextContainer(Protocol):
    """What the expander needs from one output unit (a slide's text box)."""

    def get_text(self) -> str: ...

    def set_text(self, text: str) -> None: ...

    def get_height(self) -> Optional[float]: ...

    def set_font_size(self, size: int) -> None: ...

    def duplicate(self, offset: int = 1) -> "TextContainer": ...


ExpansionPlan = List[Tuple[TextContainer, ContentBlock]]

_NUMERIC_RE = re.compile(r"^\d+$")


def bracket_refrain_label(text: str) -> str:
    return text.replace("Refrain", "[Refrain]")


def interleave_refrain(verses: List[ContentBlock], refrain: Optional[ContentBlock]) -> List[ContentBlock]:
    """
    Verse 1, Refrain, Verse 2, Refrain, ..., last verse.
    No refrain copy follows the last verse.
    """
    texts: List[Tuple[BlockKind, str]] = []
    for i, verse in enumerate(verses):
        texts.append((BlockKind.VERSE, verse.text))
        if refrain is not None and i < len(verses) - 1:
            texts.append((BlockKind.REFRAIN, bracket_refrain_label(refrain.text)))
    return [ContentBlock(kind, text, order) for order, (kind, text) in enumerate(texts)]


def drop_trailing_numeric(blocks: List[ContentBlock]) -> List[ContentBlock]:
    """A stray page-number block at the end is not content."""
    if blocks and _NUMERIC_RE.match(blocks[-1].text.strip()):
        return blocks[:-1]
    return list(blocks)


def hymn_blocks(hymn: HymnDocument) -> List[ContentBlock]:
    return drop_trailing_numeric(interleave_refrain(hymn.verses, hymn.refrain))


def expand_anchor(
    anchor: Optional[TemplateAnchor],
    blocks: List[ContentBlock],
    config: PipelineConfig,
    dbg: DebugRecorder | None = None,
) -> ExpansionPlan:
    """
    Spread `blocks` over the anchor unit and duplicates of it, one block per unit.

    Duplicates are made from the untouched anchor and inserted at explicit
    positions (anchor+1, anchor+2, ...), so the physical order of units equals
    the block order. The anchor itself carries the first block.

    A unit without a text region keeps its text but skips autofit.
    An empty block list leaves the anchor untouched and returns an empty plan.
    """
    if anchor is None or anchor.container is None:
        marker = anchor.marker if anchor is not None else ""
        raise TemplateError(f"Template anchor {marker or '(unknown)'} not found.", marker=marker)

    blocks = drop_trailing_numeric(blocks)
    if not blocks:
        return []

    units: List[TextContainer] = [anchor.container]
    for offset in range(1, len(blocks)):
        units.append(anchor.container.duplicate(offset))

    plan: ExpansionPlan = []
    for unit, block in zip(units, blocks):
        unit.set_text(block.text)
        size = apply_autofit(unit, config)
        plan.append((unit, block))

        if dbg and dbg.settings.enabled:
            if size is None:
                dbg.log(f"[AUTOFIT] {anchor.marker} block {block.order}: no text region, skipped")
            dbg.add_slide_record({
                "type": block.kind.value,
                "marker": anchor.marker,
                "order": block.order,
                "lines": block.text.split("\n"),
                "font_size": size,
            })
    return plan
