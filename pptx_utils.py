import re
from copy import deepcopy
from typing import Dict, Iterator, Optional

from pptx import Presentation
from pptx.enum.dml import MSO_COLOR_TYPE
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.util import Pt

from errors import TemplateError
from models import TemplateAnchor

EMU_PER_PT = 12700

MARKER_RE = re.compile(r"\{\{[^{}]+\}\}")

_R_NS = "{http://schemas.openxmlformats.org/officeDocument/2006/relationships}"

_BRACKET_SPAN_RE = re.compile(r"\[[^\]\n]+\]")


def load_template(path):
    return Presentation(str(path))


# -------------------------
# Slide duplication / ordering
# -------------------------

def _copy_relationships(src_slide, dst_slide) -> Dict[str, str]:
    """
    Relate the destination slide to everything the source slide uses
    (images, media, hyperlinks) and return {source rId: destination rId}.

    The layout relationship already exists on the new slide, and a notes
    slide belongs to exactly one slide, so both are skipped.
    """
    src_part = src_slide.part
    dst_part = dst_slide.part
    rid_map: Dict[str, str] = {}

    for rId, rel_obj in src_part.rels.items():
        if rel_obj.reltype in (RT.SLIDE_LAYOUT, RT.NOTES_SLIDE):
            continue
        if rel_obj.is_external:
            rid_map[rId] = dst_part.relate_to(rel_obj.target_ref, rel_obj.reltype, is_external=True)
        else:
            rid_map[rId] = dst_part.relate_to(rel_obj.target_part, rel_obj.reltype)
    return rid_map


def _remap_rids(element, rid_map: Dict[str, str]) -> None:
    for el in element.iter():
        for key, value in list(el.attrib.items()):
            if key.startswith(_R_NS) and value in rid_map:
                el.set(key, rid_map[value])


def move_slide(prs, old_index: int, new_index: int) -> None:
    slide_id_list = prs.slides._sldIdLst  # pylint: disable=protected-access
    slides = list(slide_id_list)
    el = slides[old_index]
    slide_id_list.remove(el)
    slide_id_list.insert(new_index, el)


def _ensure_unique_partname(prs, part) -> None:
    # add_slide names the new part after the slide count, which repeats a live
    # part name once any slide has been removed.
    package = prs.part.package
    if any(p is not part and p.partname == part.partname for p in package.iter_parts()):
        part.partname = package.next_partname("/ppt/slides/slide%d.xml")


def duplicate_slide(prs, slide_index: int, insert_at: Optional[int] = None):
    """
    Duplicate a slide (shapes, background, media relationships) and place the
    copy at `insert_at` (default: end of the deck).
    """
    src = prs.slides[slide_index]
    dst = prs.slides.add_slide(src.slide_layout)

    # remove default placeholder shapes on destination slide
    for shape in list(dst.shapes):
        el = shape._element
        el.getparent().remove(el)

    rid_map = _copy_relationships(src, dst)

    src_bg = src._element.cSld.bg
    if src_bg is not None:
        dst_cSld = dst._element.cSld
        if dst_cSld.bg is not None:
            dst_cSld.remove(dst_cSld.bg)
        new_bg = deepcopy(src_bg)
        _remap_rids(new_bg, rid_map)
        dst_cSld.insert(0, new_bg)

    for shape in src.shapes:
        new_el = deepcopy(shape._element)
        _remap_rids(new_el, rid_map)
        dst.shapes._spTree.insert_element_before(new_el, "p:extLst")

    _ensure_unique_partname(prs, dst.part)
    if insert_at is not None:
        move_slide(prs, len(prs.slides) - 1, insert_at)
    return dst


def remove_slide(prs, slide_index: int) -> None:
    """
    Delete slide at slide_index: drop it from the slide list and release the
    relationship to its part.
    """
    slide_id_list = prs.slides._sldIdLst  # pylint: disable=protected-access
    sld_id = list(slide_id_list)[slide_index]
    rId = sld_id.rId
    slide_id_list.remove(sld_id)
    if rId in prs.part.rels:
        prs.part.drop_rel(rId)


# -------------------------
# Text writing
# -------------------------

def _capture_format(tf) -> dict:
    """Paragraph + font formatting of the first paragraph (the marker's)."""
    p0 = tf.paragraphs[0]
    # Keynote exports often store the real formatting on the first run.
    font = p0.runs[0].font if p0.runs else p0.font

    color = None
    try:
        if font.color is not None and font.color.type == MSO_COLOR_TYPE.RGB:
            color = font.color.rgb
    except AttributeError:
        color = None

    return {
        "alignment": p0.alignment,
        "level": p0.level,
        "space_before": p0.space_before,
        "space_after": p0.space_after,
        "line_spacing": p0.line_spacing,
        "font_name": font.name,
        "font_size": font.size,
        "font_bold": font.bold,
        "font_italic": font.italic,
        "font_color": color,
    }


def _add_run(p, text: str, fmt: dict, italic=None):
    r = p.add_run()
    r.text = text
    r.font.name = fmt["font_name"]
    r.font.size = fmt["font_size"]
    r.font.bold = fmt["font_bold"]
    r.font.italic = fmt["font_italic"] if italic is None else italic
    if fmt["font_color"] is not None:
        r.font.color.rgb = fmt["font_color"]
    return r


def write_text(tf, text: str) -> None:
    """
    Replace the whole text frame with `text`, one paragraph per line, keeping
    the formatting of the first paragraph. [Bracketed] spans become italic
    runs; the brackets stay visible.
    """
    fmt = _capture_format(tf)
    tf.clear()

    for i, line in enumerate(text.split("\n")):
        p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()

        p.alignment = fmt["alignment"]
        p.level = fmt["level"]
        p.space_before = fmt["space_before"]
        p.space_after = fmt["space_after"]
        p.line_spacing = fmt["line_spacing"]

        pos = 0
        for m in _BRACKET_SPAN_RE.finditer(line):
            if m.start() > pos:
                _add_run(p, line[pos:m.start()], fmt)
            _add_run(p, m.group(0), fmt, italic=True)
            pos = m.end()
        if pos < len(line) or not line:
            _add_run(p, line[pos:], fmt)


def replace_in_text_frame(tf, marker: str, value: str) -> int:
    """
    Literal substring replacement that keeps run formatting. A marker split
    across runs is handled by folding the paragraph's runs into the first one.
    """
    value = (value or "").replace("\n", " ")
    count = 0
    for p in tf.paragraphs:
        runs = list(p.runs)
        if marker not in "".join(r.text for r in runs):
            continue
        for r in runs:
            if marker in r.text:
                count += r.text.count(marker)
                r.text = r.text.replace(marker, value)
        joined = "".join(r.text for r in runs)
        if marker in joined:
            count += joined.count(marker)
            runs[0].text = joined.replace(marker, value)
            for r in runs[1:]:
                r.text = ""
    return count


# -------------------------
# Container adapter
# -------------------------

class SlideTextContainer:
    """
    One text box on one slide, exposing the narrow interface the template
    expander and autofit need.
    """

    def __init__(self, prs, slide, shape):
        self.prs = prs
        self.slide = slide
        self.shape = shape

    @property
    def has_text_region(self) -> bool:
        return bool(getattr(self.shape, "has_text_frame", False))

    @property
    def slide_index(self) -> int:
        return self.prs.slides.index(self.slide)

    def _shape_position(self) -> int:
        for i, sh in enumerate(self.slide.shapes):
            if sh._element is self.shape._element:
                return i
        raise TemplateError("Shape no longer present on its slide.")

    def get_text(self) -> str:
        if not self.has_text_region:
            return ""
        return self.shape.text_frame.text

    def set_text(self, text: str) -> None:
        if self.has_text_region:
            write_text(self.shape.text_frame, text)

    def get_height(self) -> Optional[float]:
        if not self.has_text_region or self.shape.height is None:
            return None
        return int(self.shape.height) / EMU_PER_PT

    def set_font_size(self, size: int) -> None:
        if not self.has_text_region:
            return
        for p in self.shape.text_frame.paragraphs:
            p.font.size = Pt(size)
            for r in p.runs:
                r.font.size = Pt(size)

    def replace(self, marker: str, value: str) -> int:
        if not self.has_text_region:
            return 0
        return replace_in_text_frame(self.shape.text_frame, marker, value)

    def duplicate(self, offset: int = 1) -> "SlideTextContainer":
        """Copy this slide to `offset` positions after it; return the copy's matching box."""
        idx = self.slide_index
        pos = self._shape_position()
        new_slide = duplicate_slide(self.prs, idx, insert_at=idx + offset)
        return SlideTextContainer(self.prs, new_slide, list(new_slide.shapes)[pos])

    def remove(self) -> None:
        remove_slide(self.prs, self.slide_index)


# -------------------------
# Document scan
# -------------------------

def iter_text_containers(prs) -> Iterator[SlideTextContainer]:
    for slide in prs.slides:
        for shape in slide.shapes:
            if getattr(shape, "has_text_frame", False):
                yield SlideTextContainer(prs, slide, shape)


def find_anchor(prs, marker: str) -> TemplateAnchor:
    """The first text box containing `marker`; TemplateError when there is none."""
    for container in iter_text_containers(prs):
        if marker in container.get_text():
            return TemplateAnchor(marker=marker, container=container)
    raise TemplateError(f"Template is missing the {marker} marker.", marker=marker)


def replace_marker(prs, marker: str, value: str) -> int:
    """Replace `marker` everywhere in the deck; returns how many were replaced."""
    return sum(c.replace(marker, value) for c in iter_text_containers(prs))


def leftover_markers(prs) -> Dict[int, list]:
    """{1-based slide number: [markers still present]}"""
    out: Dict[int, list] = {}
    for idx, slide in enumerate(prs.slides, start=1):
        found = []
        for shape in slide.shapes:
            if getattr(shape, "has_text_frame", False):
                found.extend(MARKER_RE.findall(shape.text_frame.text))
        if found:
            out[idx] = found
    return out
