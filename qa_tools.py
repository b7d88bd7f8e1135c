from __future__ import annotations

from pathlib import Path

from pptx import Presentation

from autofit import estimate_text_height
from config import PipelineConfig
from pptx_utils import EMU_PER_PT, MARKER_RE

# Lines this long almost always wrap on a 16:9 slide at service font sizes.
LONG_LINE_CHARS = 60


def _iter_text_shapes(slide):
    for sh in slide.shapes:
        if getattr(sh, "has_text_frame", False):
            yield sh, sh.text_frame.text or ""


def _font_sizes(shape) -> list[float]:
    sizes = []
    for p in shape.text_frame.paragraphs:
        if p.runs and p.runs[0].font.size:
            sizes.append(float(p.runs[0].font.size.pt))
        elif p.font.size:
            sizes.append(float(p.font.size.pt))
    return sizes


def analyze_deck(pptx_path: Path, config: PipelineConfig | None = None) -> dict:
    """Quick checks on a built service deck.

    Flags:
      - LEFTOVER_MARKER: a {{marker}} survived the build
      - BELOW_MIN_FONT: text set smaller than the configured minimum
      - OVERFLOW: estimated text height exceeds the text box even at the chosen size
      - LONG_LINE: a line long enough that it will likely wrap
    """
    config = config or PipelineConfig()
    prs = Presentation(str(pptx_path))

    leftover = []
    below_min = []
    overflow = []
    long_line = []
    slide_stats = []

    for idx, slide in enumerate(prs.slides, start=1):
        markers = []
        min_font_pt = None
        lines = 0

        for sh, txt in _iter_text_shapes(slide):
            markers.extend(MARKER_RE.findall(txt))
            if not txt.strip():
                continue
            lines += sum(1 for ln in txt.splitlines() if ln.strip())

            sizes = _font_sizes(sh)
            if sizes:
                smallest = min(sizes)
                min_font_pt = smallest if min_font_pt is None else min(min_font_pt, smallest)
                if sh.height:
                    height_pt = int(sh.height) / EMU_PER_PT
                    if estimate_text_height(txt, max(sizes), config.line_spacing) > height_pt:
                        overflow.append(idx)

            if any(len(ln) > LONG_LINE_CHARS for ln in txt.splitlines()):
                long_line.append(idx)

        if markers:
            leftover.append(idx)
        if min_font_pt is not None and min_font_pt < config.min_font_size:
            below_min.append(idx)

        slide_stats.append({"slide": idx, "lines": lines, "min_font_pt": min_font_pt, "markers": markers})

    return {
        "pptx": str(pptx_path),
        "slide_count": len(prs.slides),
        "flags": {
            "LEFTOVER_MARKER": leftover,
            "BELOW_MIN_FONT": below_min,
            "OVERFLOW": sorted(set(overflow)),
            "LONG_LINE": sorted(set(long_line)),
        },
        "slides": slide_stats,
    }


def format_report(report: dict) -> str:
    out = [f"{report['pptx']}: {report['slide_count']} slides"]
    for name, slides in report["flags"].items():
        if slides:
            out.append(f"  {name}: slides {', '.join(str(s) for s in slides)}")
    if len(out) == 1:
        out.append("  no issues")
    return "\n".join(out)
