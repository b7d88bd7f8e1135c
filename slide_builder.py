from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from autofit import apply_autofit
from config import PipelineConfig
from debug_tools import DebugRecorder, DebugSettings
from email_segmenter import segment_email_body
from errors import MissingDataError, TemplateError
from fetcher import fetch_hymn_html, fetch_passage_html, fetch_passages
from hymn_extractor import extract_hymn
from mail_reader import MailMessage
from models import HymnDocument, ScripturePassage, SegmentResult, SegmentStatus, ServiceData
from pptx_utils import find_anchor, iter_text_containers, load_template, replace_marker
from scripture_extractor import compose_passages, split_references
from template_expander import expand_anchor, hymn_blocks

TOKEN_OPENING = "{{opening}}"
TOKEN_CLOSING = "{{closing}}"
TOKEN_OPENING_LYRICS = "{{opening_lyrics}}"
TOKEN_CLOSING_LYRICS = "{{closing_lyrics}}"
TOKEN_PASSAGE = "{{passage}}"
TOKEN_VERSE = "{{verse}}"
TOKEN_SERMON = "{{sermon}}"
TOKEN_SPEAKER = "{{speaker}}"
TOKEN_MUSIC = "{{music}}"
TOKEN_PRAYER = "{{prayer}}"
TOKEN_READING = "{{reading}}"
TOKEN_STORY = "{{story}}"
TOKEN_SONG_TITLE = "{{song_title}}"
TOKEN_SONG_LYRICS = "{{song_lyrics}}"

# Without these the deck is unusable; a missing one aborts the run.
CONTROLLING_TOKENS = [TOKEN_OPENING, TOKEN_CLOSING, TOKEN_OPENING_LYRICS, TOKEN_CLOSING_LYRICS]


@dataclass
class BuildResult:
    output_path: Path
    opening_title: str
    closing_title: str
    opening_slides: int
    closing_slides: int
    scripture_refs: List[str] = field(default_factory=list)
    song_status: SegmentStatus = SegmentStatus.FAILED
    song_slides: int = 0
    warnings: List[str] = field(default_factory=list)


class ServiceDeckBuilder:
    def __init__(
        self,
        template_path: Path,
        config: PipelineConfig | None = None,
        *,
        hymn_source: Callable[[str, PipelineConfig], str] | None = None,
        passage_source: Callable[[str, PipelineConfig], str] | None = None,
        skip_best_effort_songs: bool = False,
    ):
        """
        Fills a token template with one service's hymns, scripture and song.

        hymn_source / passage_source: (key, config) -> html. Default to the
        HTTP fetchers; tests pass canned pages instead.
        skip_best_effort_songs: drop an emailed song whose sections came only
        from the heuristic fallback.
        """
        self.template_path = Path(template_path)
        self.config = config or PipelineConfig()
        self.hymn_source = hymn_source or fetch_hymn_html
        self.passage_source = passage_source or fetch_passage_html
        self.skip_best_effort_songs = skip_best_effort_songs

    # ---------------- sources ----------------

    def _load_hymn(self, number: str, dbg: DebugRecorder) -> HymnDocument:
        # FetchError is not caught: both hymns are mandatory.
        hymn = extract_hymn(self.hymn_source(number, self.config))
        dbg.log(f"[HYMN] {number} title={hymn.title!r} verses={len(hymn.verses)} refrain={hymn.refrain is not None}")
        dbg.add_source_record(f"hymn {number}", {
            "title": hymn.title,
            "verses": [v.text for v in hymn.verses],
            "refrain": hymn.refrain.text if hymn.refrain else None,
        })
        if not hymn.verses:
            dbg.warn(f"Hymn {number} page had no verses.")
        return hymn

    def _load_scripture(self, reading: str, dbg: DebugRecorder) -> ScripturePassage:
        refs = split_references(reading)
        if not refs:
            return ScripturePassage(reference_label="", body="")
        pages = fetch_passages(refs, self.config, fetch=self.passage_source, dbg=dbg)
        passage = compose_passages(pages)
        dbg.log(f"[SCRIPTURE] refs={refs} body_chars={len(passage.body)}")
        dbg.add_source_record("scripture", {"refs": refs, "label": passage.reference_label, "body": passage.body})
        return passage

    def _segment_song(self, message: Optional[MailMessage], dbg: DebugRecorder) -> SegmentResult:
        if message is None:
            return SegmentResult(status=SegmentStatus.FAILED, error="no song email")
        result = segment_email_body(message.body, message.content_kind)
        dbg.add_source_record("song", {
            "subject": message.subject,
            "status": result.status.value,
            "stage": result.stage,
            "error": result.error,
            "title": result.song.title if result.song else None,
            "sections": len(result.song.sections) if result.song else 0,
        })
        if not result.ok:
            dbg.warn(f"Song email {message.subject!r} could not be segmented: {result.error}")
        elif result.status == SegmentStatus.BEST_EFFORT:
            if self.skip_best_effort_songs:
                dbg.warn(f"Song email {message.subject!r} has no clear structure; song skipped.")
                return SegmentResult(status=SegmentStatus.FAILED, stage=result.stage, error="best effort only")
            dbg.warn(f"Song email {message.subject!r} was split heuristically; check the song slides.")
        return result

    # ---------------- deck edits ----------------

    def _replace_leaf(self, prs, token: str, value: str, dbg: DebugRecorder) -> None:
        try:
            find_anchor(prs, token)
        except TemplateError as e:
            dbg.warn(f"{e} Skipped.")
            return
        n = replace_marker(prs, token, value or "")
        dbg.log(f"[REPLACE] {token} x{n}")

    def _expand_lyrics(self, anchor, blocks, emptied: list, dbg: DebugRecorder) -> int:
        plan = expand_anchor(anchor, blocks, self.config, dbg=dbg)
        if not plan:
            # Nothing to show: the template slide goes once every expansion is done.
            dbg.warn(f"No lyrics for {anchor.marker}; template slide removed.")
            emptied.append(anchor.container)
        return len(plan)

    def _fill_passage(self, prs, passage: ScripturePassage, dbg: DebugRecorder) -> None:
        hits = [c for c in iter_text_containers(prs) if TOKEN_PASSAGE in c.get_text()]
        if not hits:
            dbg.warn(f"Template is missing the {TOKEN_PASSAGE} marker. Skipped.")
        for container in hits:
            container.replace(TOKEN_PASSAGE, passage.body)
            size = apply_autofit(container, self.config)
            dbg.log(f"[PASSAGE] chars={len(passage.body)} font_size={size}")
        self._replace_leaf(prs, TOKEN_VERSE, passage.reference_label, dbg)

    def _fill_song(self, prs, song_result: SegmentResult, dbg: DebugRecorder) -> int:
        song = song_result.song if song_result.ok else None
        if song:
            self._replace_leaf(prs, TOKEN_SONG_TITLE, song.title, dbg)
        else:
            replace_marker(prs, TOKEN_SONG_TITLE, "")

        try:
            anchor = find_anchor(prs, TOKEN_SONG_LYRICS)
        except TemplateError as e:
            if song:
                dbg.warn(f"{e} Song lyrics skipped.")
            return 0

        if not song:
            anchor.container.replace(TOKEN_SONG_LYRICS, "")
            return 0
        return len(expand_anchor(anchor, song.sections, self.config, dbg=dbg))

    # ---------------- build ----------------

    def build_deck(
        self,
        service: ServiceData,
        output_path: Path,
        song_message: Optional[MailMessage] = None,
        dbg: DebugRecorder | None = None,
    ) -> BuildResult:
        """
        Build and save one service deck.

        Raises MissingDataError (hymn number absent), FetchError (hymn page) or
        TemplateError (controlling marker absent). Nothing is written unless
        every mandatory step succeeded.
        """
        output_path = Path(output_path)
        # Re-read debug settings every run so users can toggle without reinstalling.
        dbg = dbg or DebugRecorder(DebugSettings.from_env())
        if dbg.settings.enabled:
            dbg.start_run("service", str(self.template_path), str(output_path))

        if not service.opening_hymn_number or not service.closing_hymn_number:
            raise MissingDataError(
                f"Missing hymn numbers for {service.service_date or 'the service'} "
                f"(opening={service.opening_hymn_number!r}, closing={service.closing_hymn_number!r})"
            )

        opening = self._load_hymn(service.opening_hymn_number, dbg)
        closing = self._load_hymn(service.closing_hymn_number, dbg)
        passage = self._load_scripture(service.scripture_reading, dbg)
        song_result = self._segment_song(song_message, dbg)

        prs = load_template(self.template_path)
        anchors: Dict[str, object] = {tok: find_anchor(prs, tok) for tok in CONTROLLING_TOKENS}

        replace_marker(prs, TOKEN_OPENING, opening.title)
        replace_marker(prs, TOKEN_CLOSING, closing.title)

        emptied: list = []
        opening_n = self._expand_lyrics(anchors[TOKEN_OPENING_LYRICS], hymn_blocks(opening), emptied, dbg)
        closing_n = self._expand_lyrics(anchors[TOKEN_CLOSING_LYRICS], hymn_blocks(closing), emptied, dbg)

        self._fill_passage(prs, passage, dbg)
        self._replace_leaf(prs, TOKEN_SERMON, service.sermon_title, dbg)

        participants = {
            TOKEN_SPEAKER: service.speaker,
            TOKEN_MUSIC: service.special_music,
            TOKEN_PRAYER: service.prayer,
            TOKEN_READING: service.reader,
            TOKEN_STORY: service.story,
        }
        for token, value in participants.items():
            self._replace_leaf(prs, token, value, dbg)

        song_n = self._fill_song(prs, song_result, dbg)
        for container in emptied:
            container.remove()

        output_path.parent.mkdir(parents=True, exist_ok=True)
        prs.save(output_path)
        dbg.log(f"[SAVE] {output_path} slides={len(prs.slides)}")
        dbg.flush()

        return BuildResult(
            output_path=output_path,
            opening_title=opening.title,
            closing_title=closing.title,
            opening_slides=opening_n,
            closing_slides=closing_n,
            scripture_refs=split_references(service.scripture_reading),
            song_status=song_result.status if song_result.ok else SegmentStatus.FAILED,
            song_slides=song_n,
            warnings=list(dbg.warnings),
        )
