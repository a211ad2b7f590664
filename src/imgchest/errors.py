from __future__ import annotations

from enum import Enum


class ImgchestError(Exception):
    """Base class for every error raised by the imgchest client."""


class NetworkError(ImgchestError):
    """The transport failed before a response was received.

    Covers connection errors, TLS failures, timeouts and cancelled requests.
    The original exception is available as ``__cause__``.
    """


class ApiError(ImgchestError):
    """The service answered with an error.

    Attributes:
        status: HTTP status code of the response.
        message: Error message reported by the service.
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"imgchest api error {status}: {message}")
        self.status: int = status
        self.message: str = message


class DeserializeError(ImgchestError):
    """A response body did not match the expected entity shape."""


class ScrapeErrorReason(str, Enum):
    """Machine-readable reason attached to a scrape failure."""

    ANCHOR_NOT_FOUND = "anchor_not_found"
    MISSING_ATTRIBUTE = "missing_attribute"
    INVALID_DATA_PAGE = "invalid_data_page"
    MISSING_FIELD = "missing_field"
    UNEXPECTED_TYPE = "unexpected_type"
    MALFORMED_FILE_LIST = "malformed_file_list"
    CONTENT_UNAVAILABLE = "content_unavailable"


class _ScrapeError(ImgchestError):
    def __init__(self, reason: ScrapeErrorReason, detail: str) -> None:
        super().__init__(f"{reason.value}: {detail}")
        self.reason: ScrapeErrorReason = reason
        self.detail: str = detail


class InvalidScrapedPostError(_ScrapeError):
    """A post page could not be turned into a ScrapedPost.

    Check ``reason`` to tell markup drift (``anchor_not_found``,
    ``missing_field``, ...) apart from a post that is simply gone
    (``content_unavailable``).
    """


class InvalidScrapedUserError(_ScrapeError):
    """A user page could not be turned into a ScrapedUser."""


class RequestErrorReason(str, Enum):
    MISSING_TOKEN = "missing_token"
    MISSING_FILES = "missing_files"
    TITLE_TOO_SHORT = "title_too_short"
    MISSING_DESCRIPTION = "missing_description"
    MISSING_POST_ID = "missing_post_id"
    EMPTY_UPDATE = "empty_update"
    INVALID_URL = "invalid_url"
    INVALID_PAGE = "invalid_page"


class InvalidRequestError(ImgchestError):
    """A request was rejected locally, before anything was sent."""

    def __init__(self, reason: RequestErrorReason, detail: str) -> None:
        super().__init__(f"{reason.value}: {detail}")
        self.reason: RequestErrorReason = reason
        self.detail: str = detail


class BuilderAlreadySentError(ImgchestError):
    """A single-use builder was modified or sent after it was already sent."""
