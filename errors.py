"""
Error taxonomy for the hymn slides pipeline.

ParseError is recovered inside the extractors; the others are raised to the
deck builder, which decides whether the run aborts or a feature degrades.
"""


class HymnSlidesError(Exception):
    """Base exception for the hymn slides pipeline."""


class FetchError(HymnSlidesError):
    """Transport failure or non-200 response while fetching a page."""

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(HymnSlidesError):
    """An expected structural marker was not found in markup or email text."""


class TemplateError(HymnSlidesError):
    """A required marker token is absent from the working deck."""

    def __init__(self, message: str, marker: str = ""):
        super().__init__(message)
        self.marker = marker


class MissingDataError(HymnSlidesError):
    """A required upstream field (e.g. a hymn number) is absent."""
