"""Typed entities for imgchest API responses."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from typing import Generic
from typing import Self
from typing import TypeVar

from pydantic import BaseModel
from pydantic import Field
from pydantic import NonNegativeInt
from pydantic import PositiveInt
from pydantic import ValidationError
from pydantic import field_validator

from imgchest.errors import DeserializeError

T = TypeVar("T")


class PostPrivacy(str, Enum):
    """Who can see a post."""

    PUBLIC = "public"
    """Listed on the site and visible to anyone."""

    HIDDEN = "hidden"
    """Unlisted, visible to anyone with the link."""

    SECRET = "secret"
    """Visible only to the owner."""


class SortOrder(str, Enum):
    """Ordering for post listings."""

    POPULAR = "popular"
    NEW = "new"
    OLD = "old"


def _empty_str_is_none(value: Any) -> Any:  # noqa: ANN401
    if value == "":
        return None
    return value


class ImgchestModel(BaseModel):
    """Base for entities decoded from imgchest responses.

    Use ``from_json`` or ``from_data`` to decode; both raise DeserializeError
    instead of pydantic's ValidationError.
    """

    @classmethod
    def from_json(cls, data: bytes | str) -> Self:
        """Decode a JSON document.

        Raises:
            DeserializeError: If the document does not match the entity.
        """
        try:
            return cls.model_validate_json(data)
        except ValidationError as exc:
            msg = f"unexpected response body for {cls.__name__}: {exc}"
            raise DeserializeError(msg) from exc

    @classmethod
    def from_data(cls, data: Any) -> Self:  # noqa: ANN401
        """Decode already parsed JSON data.

        Raises:
            DeserializeError: If the data does not match the entity.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            msg = f"unexpected data for {cls.__name__}: {exc}"
            raise DeserializeError(msg) from exc


class PostFile(ImgchestModel):
    """A file attached to a post, as returned by the API.

    Attributes:
        id: File ID.
        description: File description, None when the post has none.
        link: Direct link to the file on the CDN.
        position: Position of the file in the post, starting at 1.
        created: When the file was uploaded.
        original_name: Name of the uploaded file. Only present for the owner.
    """

    class Config:
        frozen = True

    id: str
    description: str | None = None
    link: str
    position: PositiveInt
    created: datetime
    original_name: str | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _empty_description_is_none(cls, value: Any) -> Any:  # noqa: ANN401
        return _empty_str_is_none(value)


class Post(ImgchestModel):
    """A post, as returned by the API.

    The wire format calls the files ``images``; they are exposed as ``files``
    in upload order.
    """

    class Config:
        frozen = True
        populate_by_name = True

    id: str
    title: str
    username: str
    privacy: PostPrivacy
    report_status: int
    views: NonNegativeInt
    nsfw: bool
    image_count: NonNegativeInt
    created: datetime
    files: tuple[PostFile, ...] = Field(alias="images")

    delete_url: str | None = None
    """Only present if the current user owns this post."""


class User(ImgchestModel):
    """A user, as returned by the API."""

    class Config:
        frozen = True

    name: str
    posts: NonNegativeInt
    comments: NonNegativeInt
    created: datetime
    flagged: bool = False


class Thumbnail(ImgchestModel):
    """Thumbnail of a listed post."""

    class Config:
        frozen = True
        extra = "allow"

    id: str
    description: str | None = None
    link: str

    @field_validator("description", mode="before")
    @classmethod
    def _empty_description_is_none(cls, value: Any) -> Any:  # noqa: ANN401
        return _empty_str_is_none(value)


class ListPostsPost(ImgchestModel):
    """A post entry from the post listing endpoint.

    The listing endpoint is undocumented, so unknown keys are kept in
    ``model_extra`` instead of being dropped.
    """

    class Config:
        frozen = True
        extra = "allow"

    id: str
    title: str
    slug: str
    link: str
    nsfw: bool
    score: int
    """Sent as a string by the service."""

    comments: NonNegativeInt
    """Sent as either a string or a number by the service."""

    views: NonNegativeInt
    thumbnail: Thumbnail


class FileUpdate(ImgchestModel):
    """A new description for an existing file.

    The API rejects empty descriptions even though its docs say the field is
    nullable.
    """

    class Config:
        frozen = True

    id: str
    description: str


class ApiResponse(ImgchestModel, Generic[T]):
    """The ``{"data": ...}`` envelope around every API payload."""

    data: T


class PaginationMeta(BaseModel):
    current_page: int
    last_page: int


class PaginationLinks(BaseModel):
    next: str | None = None


class ListPostsResponse(ImgchestModel):
    """A page from the listing endpoint, with optional pagination info."""

    data: list[ListPostsPost]
    meta: PaginationMeta | None = None
    links: PaginationLinks | None = None

    @property
    def is_last_page(self) -> bool:
        """Return True if the response says no page follows this one."""
        if not self.data:
            return True
        if self.meta is not None:
            return self.meta.current_page >= self.meta.last_page
        if self.links is not None:
            return self.links.next is None
        return False


class ApiCompletedResponse(ImgchestModel):
    """Answer to an operation that returns no entity."""

    success: bool
    message: str | None = None
