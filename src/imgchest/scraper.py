"""Scrape imgchest post and user pages.

imgchest pages are rendered with Inertia.js, so every page carries its data as
JSON in the ``data-page`` attribute of the ``#app`` element. Everything that
depends on that markup lives in this module.
"""

from __future__ import annotations

import logging
from datetime import UTC
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel
from pydantic import NonNegativeInt
from pydantic import ValidationError
from pydantic import field_validator
from selectolax.parser import HTMLParser
from selectolax.parser import Node

from imgchest.errors import InvalidScrapedPostError
from imgchest.errors import InvalidScrapedUserError
from imgchest.errors import ScrapeErrorReason
from imgchest.models import PostPrivacy

logger: logging.Logger = logging.getLogger(__name__)

UNAVAILABLE_STATUSES: frozenset[int] = frozenset({403, 404, 410})
_ERROR_COMPONENTS: frozenset[str] = frozenset({"Error", "Errors/NotFound"})
_DEBUG_SNIPPET_LENGTH = 1000


class ScrapedPostFile(BaseModel):
    """A file entry parsed from a post page.

    Attributes:
        id: File ID.
        link: Direct link to the file on the CDN.
        filename: File name taken from the last segment of the link.
        description: File description, None when the file has none.
        video_link: Link to the video version of an animated file.
    """

    class Config:
        frozen = True

    id: str
    link: str
    filename: str
    description: str | None = None
    video_link: str | None = None


class ScrapedPost(BaseModel):
    """A post reconstructed from its HTML page.

    Scraping is best-effort, so everything except the ID and the file list may
    be None when the page does not expose it.
    """

    class Config:
        frozen = True

    id: str
    title: str | None = None
    username: str | None = None
    privacy: PostPrivacy | None = None
    views: int | None = None
    nsfw: bool | None = None
    created: datetime | None = None
    files: tuple[ScrapedPostFile, ...] = ()


class ScrapedUser(BaseModel):
    """A user profile reconstructed from its HTML page."""

    class Config:
        frozen = True

    name: str
    """The user's name."""

    posts: int
    """Number of posts created by this user."""

    comments: int
    """Number of comments created by this user."""

    created: datetime
    """When the user joined. Only the day is known; the time is midnight UTC."""

    post_views: int
    """Views across all posts made by this user. Not part of the API user."""

    experience: int
    """Experience points. Not part of the API user."""

    favorites: int
    """Number of favorites by the user. Not part of the API user."""


class _PageEnvelope(BaseModel):
    component: str | None = None
    props: dict[str, Any]

    @property
    def is_unavailable(self) -> bool:
        if self.component in _ERROR_COMPONENTS:
            return True
        return self.props.get("status") in UNAVAILABLE_STATUSES


class _PageFile(BaseModel):
    id: str
    link: str
    description: str | None = None
    video_link: str | None = None

    @field_validator("description", "video_link", mode="before")
    @classmethod
    def _empty_str_is_none(cls, value: Any) -> Any:  # noqa: ANN401
        if value == "":
            return None
        return value


class _PageUser(BaseModel):
    username: str


class _PagePost(BaseModel):
    id: str
    title: str | None = None
    privacy: PostPrivacy | None = None
    views: NonNegativeInt | None = None
    nsfw: bool | None = None
    created: datetime | None = None
    user: _PageUser | None = None
    files: list[_PageFile]

    @field_validator("privacy", mode="before")
    @classmethod
    def _unknown_privacy_is_none(cls, value: Any) -> Any:  # noqa: ANN401
        if not isinstance(value, str) or value not in {privacy.value for privacy in PostPrivacy}:
            return None
        return value


class _TargetUser(BaseModel):
    username: str
    post_count: NonNegativeInt
    comment_count: NonNegativeInt
    created_at: datetime
    post_views: NonNegativeInt
    experience: NonNegativeInt
    favorite_count: NonNegativeInt

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_mdy_date(cls, value: Any) -> Any:  # noqa: ANN401
        if not isinstance(value, str):
            return value

        # Profile pages show the join date as MM/DD/YYYY.
        return datetime.strptime(value, "%m/%d/%Y").replace(tzinfo=UTC)


def _describe_validation_error(
    exc: ValidationError,
    prefix: str,
) -> tuple[ScrapeErrorReason, str]:
    """Map the first pydantic error to a scrape reason and a readable detail.

    Args:
        exc: The validation error raised for the page payload.
        prefix: Name of the payload object, used in the detail message.

    Returns:
        Tuple of (reason, detail).
    """
    error = exc.errors()[0]
    loc: tuple[int | str, ...] = error["loc"]
    path: str = ".".join([prefix, *(str(part) for part in loc)])

    if loc and loc[0] == "files" and (len(loc) > 1 or error["type"] != "missing"):
        detail: str = f"invalid file entry at {path}: {error['msg']}"
        return ScrapeErrorReason.MALFORMED_FILE_LIST, detail

    if error["type"] == "missing":
        return ScrapeErrorReason.MISSING_FIELD, f"missing field {path}"

    return ScrapeErrorReason.UNEXPECTED_TYPE, f"unexpected type for field {path}: {error['msg']}"


def _read_data_page(
    the_page: str,
    error_cls: type[InvalidScrapedPostError | InvalidScrapedUserError],
) -> _PageEnvelope:
    """Locate the #app anchor and parse its data-page payload.

    Args:
        the_page: Raw HTML of the page.
        error_cls: Error type to raise on failure.

    Returns:
        The parsed Inertia page object.

    Raises:
        InvalidScrapedPostError | InvalidScrapedUserError: If the anchor is
            missing, its payload is not valid JSON, or the page reports that
            the content is unavailable.
    """
    parser = HTMLParser(the_page)

    app_node: Node | None = parser.css_first("#app")
    if app_node is None:
        debug_snippet: str = the_page[:_DEBUG_SNIPPET_LENGTH].replace("\n", " ")
        logger.debug("Could not find #app element. HTML snippet: %s", debug_snippet)
        raise error_cls(ScrapeErrorReason.ANCHOR_NOT_FOUND, "missing #app element")

    data_page: str | None = app_node.attributes.get("data-page")
    if not data_page:
        raise error_cls(ScrapeErrorReason.MISSING_ATTRIBUTE, "missing attribute data-page")

    try:
        envelope: _PageEnvelope = _PageEnvelope.model_validate_json(data_page)
    except ValidationError as exc:
        msg = f"invalid data page: {exc.errors()[0]['msg']}"
        raise error_cls(ScrapeErrorReason.INVALID_DATA_PAGE, msg) from exc

    if envelope.is_unavailable:
        msg = f"page reports the content is unavailable (component={envelope.component})"
        raise error_cls(ScrapeErrorReason.CONTENT_UNAVAILABLE, msg)

    return envelope


def has_data_page(the_page: str) -> bool:
    """Return True if the HTML carries an Inertia ``#app[data-page]`` payload."""
    app_node: Node | None = HTMLParser(the_page).css_first("#app")
    return app_node is not None and bool(app_node.attributes.get("data-page"))


def _infer_filename(link: str, fallback: str) -> str:
    name: str = PurePosixPath(urlparse(link).path).name
    return name or fallback


def parse_post_page(the_page: str) -> ScrapedPost:
    """Parse an imgchest post page.

    A single malformed file entry fails the whole page.

    Args:
        the_page: Raw HTML of ``https://imgchest.com/p/<id>``.

    Returns:
        ScrapedPost with the post metadata and its files in page order.

    Raises:
        InvalidScrapedPostError: If the page cannot be parsed into a post.
    """
    envelope: _PageEnvelope = _read_data_page(the_page, InvalidScrapedPostError)

    raw_post: Any = envelope.props.get("post")
    if raw_post is None:
        raise InvalidScrapedPostError(ScrapeErrorReason.MISSING_FIELD, "missing field props.post")

    try:
        post: _PagePost = _PagePost.model_validate(raw_post)
    except ValidationError as exc:
        reason, detail = _describe_validation_error(exc, "post")
        raise InvalidScrapedPostError(reason, detail) from exc

    files: list[ScrapedPostFile] = [
        ScrapedPostFile(
            id=file.id,
            link=file.link,
            filename=_infer_filename(file.link, file.id),
            description=file.description,
            video_link=file.video_link,
        )
        for file in post.files
    ]

    return ScrapedPost(
        id=post.id,
        title=post.title,
        username=post.user.username if post.user else None,
        privacy=post.privacy,
        views=post.views,
        nsfw=post.nsfw,
        created=post.created,
        files=tuple(files),
    )


def parse_user_page(the_page: str) -> ScrapedUser:
    """Parse an imgchest user profile page.

    Args:
        the_page: Raw HTML of ``https://imgchest.com/u/<name>``.

    Returns:
        ScrapedUser with the profile stats.

    Raises:
        InvalidScrapedUserError: If the page cannot be parsed into a user.
    """
    envelope: _PageEnvelope = _read_data_page(the_page, InvalidScrapedUserError)

    raw_user: Any = envelope.props.get("targetUser")
    if raw_user is None:
        msg = "missing field props.targetUser"
        raise InvalidScrapedUserError(ScrapeErrorReason.MISSING_FIELD, msg)

    try:
        user: _TargetUser = _TargetUser.model_validate(raw_user)
    except ValidationError as exc:
        reason, detail = _describe_validation_error(exc, "targetUser")
        raise InvalidScrapedUserError(reason, detail) from exc

    return ScrapedUser(
        name=user.username,
        posts=user.post_count,
        comments=user.comment_count,
        created=user.created_at,
        post_views=user.post_views,
        experience=user.experience,
        favorites=user.favorite_count,
    )
