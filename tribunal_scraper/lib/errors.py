"""Exception types raised by the scraping pipeline.

Content-level conditions (no results, case not found, empty extraction)
are reported through ``ExtractionOutcome`` and never raised.
"""


class ScraperError(Exception):
    """Base class for scraper failures."""


class NavigationError(ScraperError):
    """The target page could not be reached within the navigation timeout."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        msg = f"Navigation to {url} failed"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class SolverUnavailable(ScraperError):
    """The captcha-solving collaborator could not produce an answer."""


class DetailPageFailure(ScraperError):
    """A single detail page could not be read; the walk continues with the next row."""


class InvalidQueryError(ScraperError, ValueError):
    """A search query is missing its bench or every searchable field."""
