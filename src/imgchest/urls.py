from __future__ import annotations

import re
from typing import TYPE_CHECKING
from typing import Literal
from urllib.parse import ParseResult
from urllib.parse import urlparse

from pydantic import BaseModel

from imgchest.errors import InvalidRequestError
from imgchest.errors import RequestErrorReason

if TYPE_CHECKING:
    from collections.abc import Callable

_ID_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z0-9]{8,16}$")
_USERNAME_RE: re.Pattern[str] = re.compile(r"^[\w.-]{1,64}$")
SITE_HOSTS: set[str] = {"imgchest.com", "www.imgchest.com"}
CDN_HOSTS: set[str] = {"cdn.imgchest.com"}
MIN_PATH_SEGMENTS = 2


ImgchestKind = Literal["post", "user", "file"]


class ImgchestUrlInfo(BaseModel):
    """Parsed details from an imgchest URL.

    Attributes:
        kind: What the URL points to.
        original_url: The URL that was parsed.
        post_id: The post ID if applicable.
        username: The username if applicable.
        file_id: The file ID if applicable.
    """

    class Config:
        frozen = True

    kind: ImgchestKind
    original_url: str

    post_id: str | None = None
    username: str | None = None
    file_id: str | None = None


def _invalid(msg: str) -> InvalidRequestError:
    return InvalidRequestError(RequestErrorReason.INVALID_URL, msg)


def _normalize_netloc(netloc: str) -> str:
    return netloc.lower().split(":", maxsplit=1)[0]


def _split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _parse_cdn_path(
    netloc: str,
    segments: list[str],
    url: str,
) -> ImgchestUrlInfo | None:
    if netloc not in CDN_HOSTS:
        return None

    if len(segments) < MIN_PATH_SEGMENTS or segments[0] != "files":
        msg = "CDN URL does not point to a file"
        raise _invalid(msg)

    file_id: str = segments[1].split(".", maxsplit=1)[0]
    if not _ID_RE.match(file_id):
        msg = "CDN URL contains an invalid file ID"
        raise _invalid(msg)

    return ImgchestUrlInfo(kind="file", original_url=url, file_id=file_id)


def _parse_post_path(
    _netloc: str,
    segments: list[str],
    url: str,
) -> ImgchestUrlInfo | None:
    if len(segments) < MIN_PATH_SEGMENTS or segments[0] != "p":
        return None

    post_id: str = segments[1]
    if not _ID_RE.match(post_id):
        msg = "URL contains an invalid post ID"
        raise _invalid(msg)

    return ImgchestUrlInfo(kind="post", original_url=url, post_id=post_id)


def _parse_user_path(
    _netloc: str,
    segments: list[str],
    url: str,
) -> ImgchestUrlInfo | None:
    if len(segments) < MIN_PATH_SEGMENTS or segments[0] != "u":
        return None

    username: str = segments[1]
    if not _USERNAME_RE.match(username):
        msg = "URL contains an invalid username"
        raise _invalid(msg)

    return ImgchestUrlInfo(kind="user", original_url=url, username=username)


def parse_imgchest_url(url: str) -> ImgchestUrlInfo:
    """Parse imgchest URL details.

    Args:
        url: A post (``/p/<id>``), user (``/u/<name>``) or CDN file URL.

    Returns:
        ImgchestUrlInfo describing what the URL points to.

    Raises:
        InvalidRequestError: If the URL is empty, not imgchest, or unrecognized.
    """
    if not url or not url.strip():
        msg = "A non-empty imgchest URL is required"
        raise _invalid(msg)

    parsed: ParseResult = urlparse(url.strip())
    netloc: str = _normalize_netloc(parsed.netloc)
    if netloc not in SITE_HOSTS and netloc not in CDN_HOSTS:
        msg = "URL does not belong to imgchest"
        raise _invalid(msg)

    segments: list[str] = _split_path(parsed.path)

    parsers: tuple[Callable[..., ImgchestUrlInfo | None], ...] = (
        _parse_cdn_path,
        _parse_post_path,
        _parse_user_path,
    )

    for parser in parsers:
        info: ImgchestUrlInfo | None = parser(netloc, segments, url)
        if info:
            return info

    msg = "URL does not match a supported imgchest pattern"
    raise _invalid(msg)


def extract_post_id(post_url_or_id: str) -> str:
    """Return the post ID from a post URL, or the argument itself if it is an ID.

    Raises:
        InvalidRequestError: If the value is neither a post URL nor a post ID.
    """
    value: str = post_url_or_id.strip()
    if _ID_RE.match(value):
        return value

    info: ImgchestUrlInfo = parse_imgchest_url(value)
    if not info.post_id:
        msg = "Provided URL does not point to an imgchest post"
        raise _invalid(msg)

    return info.post_id
