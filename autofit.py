from typing import Optional

from config import PipelineConfig


def count_lines(text: str) -> int:
    return max(1, len((text or "").split("\n")))


def estimate_text_height(text: str, font_size: float, line_spacing: float) -> float:
    """
    Rough height (points) of `text` set at `font_size`.

    No glyph metrics and no wrapping: each newline-separated line counts once.
    """
    return font_size * line_spacing * count_lines(text)


def fit_font_size(
    text: str,
    container_height: float,
    max_size: int,
    min_size: int,
    line_spacing: float,
) -> int:
    """
    Largest size in [min_size, max_size] whose estimated height fits the container.
    Stops at min_size even if the text still overflows.
    """
    size = int(max_size)
    while estimate_text_height(text, size, line_spacing) > container_height and size > min_size:
        size -= 1
    return size


def apply_autofit(container, config: PipelineConfig) -> Optional[int]:
    """
    Size the container's current text to fit its height.
    Returns the chosen size, or None when the container has no text region.
    """
    height = container.get_height()
    if height is None:
        return None
    size = fit_font_size(
        container.get_text(),
        height,
        max_size=config.default_font_size,
        min_size=config.min_font_size,
        line_spacing=config.line_spacing,
    )
    container.set_font_size(size)
    return size
