from __future__ import annotations

from typing import Optional


class ListScoutError(Exception):
    """Base class for every error raised by the engine."""


class NotFoundError(ListScoutError):
    def __init__(self, message: str = "No list container found on this page") -> None:
        super().__init__(message)


class NoItemsFoundError(ListScoutError):
    def __init__(self, message: str = "No items found in the list container") -> None:
        super().__init__(message)


class CrossOriginAccessError(ListScoutError):
    def __init__(self, frame_src: Optional[str] = None) -> None:
        self.frame_src = frame_src
        msg = "Cannot read the iframe content (cross-origin restriction)."
        if frame_src:
            msg += f" Open the frame URL directly and run the scraper there: {frame_src}"
        else:
            msg += " Open the frame URL directly and run the scraper there."
        super().__init__(msg)


class InvalidSelectorError(ListScoutError):
    def __init__(self, selector: str, reason: str = "") -> None:
        self.selector = selector
        msg = f"Invalid selector: {selector!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class AlreadyRunningError(ListScoutError):
    def __init__(self) -> None:
        super().__init__("Scraping already in progress")


class UnsupportedScraperError(ListScoutError):
    def __init__(self, scraper_type: str) -> None:
        self.scraper_type = scraper_type
        if scraper_type == "details":
            msg = "Details scraping not implemented yet"
        else:
            msg = f"Unsupported scraper type: {scraper_type!r}"
        super().__init__(msg)


class FetchError(ListScoutError):
    def __init__(self, url: str, reason: str, status_code: Optional[int] = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class ConfigError(ListScoutError):
    pass
