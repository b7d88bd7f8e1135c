from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class BlockKind(str, Enum):
    VERSE = "verse"
    REFRAIN = "refrain"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class ContentBlock:
    """One verse, refrain or lyric paragraph destined for exactly one slide."""
    kind: BlockKind
    text: str
    order: int


@dataclass(frozen=True)
class HymnDocument:
    title: str
    verses: List[ContentBlock] = field(default_factory=list)
    refrain: Optional[ContentBlock] = None


@dataclass(frozen=True)
class ScripturePassage:
    reference_label: str
    body: str


@dataclass(frozen=True)
class EmailSong:
    title: str
    sections: List[ContentBlock] = field(default_factory=list)


class SegmentStatus(str, Enum):
    # Clear paragraph structure (markup or blank lines) was found.
    STRUCTURED = "structured"
    # Title and sections came from the heuristic regrouping fallback.
    BEST_EFFORT = "best_effort"
    FAILED = "failed"


@dataclass(frozen=True)
class SegmentResult:
    status: SegmentStatus
    song: Optional[EmailSong] = None
    stage: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.song is not None and self.status != SegmentStatus.FAILED


@dataclass
class TemplateAnchor:
    """The single template unit carrying `marker`; `container` is a TextContainer."""
    marker: str
    container: Any


@dataclass
class ServiceData:
    """One row of the service schedule."""
    service_date: str = ""
    opening_hymn_number: Optional[str] = None
    closing_hymn_number: Optional[str] = None
    scripture_reading: str = ""
    sermon_title: str = ""
    speaker: str = ""
    special_music: str = ""
    prayer: str = ""
    reader: str = ""
    story: str = ""
