"""Single-use builders for requests that take many optional parameters.

A builder collects settings through chained setters, validates them in
``build()``, and dispatches the resulting immutable request in ``send()``.
After a successful ``send()`` the builder is spent: any further use raises
BuilderAlreadySentError.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING
from typing import BinaryIO

from pydantic import BaseModel

from imgchest.errors import BuilderAlreadySentError
from imgchest.errors import InvalidRequestError
from imgchest.errors import RequestErrorReason
from imgchest.models import FileUpdate
from imgchest.models import PostPrivacy
from imgchest.models import SortOrder

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from collections.abc import Iterable

    from imgchest.client import Client
    from imgchest.models import ListPostsPost
    from imgchest.models import ListPostsResponse
    from imgchest.models import Post

logger: logging.Logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 3


class UploadPostFile:
    """A file waiting to be uploaded.

    The content is either bytes or a readable binary stream. A stream is read
    once, when the request is built.
    """

    def __init__(self, file_name: str, content: bytes | BinaryIO) -> None:
        self.file_name: str = file_name
        self._content: bytes | BinaryIO = content

    def __repr__(self) -> str:
        kind: str = "bytes" if isinstance(self._content, bytes) else "stream"
        return f"UploadPostFile(file_name={self.file_name!r}, content=<{kind}>)"

    @classmethod
    def from_bytes(cls, file_name: str, data: bytes) -> UploadPostFile:
        return cls(file_name, data)

    @classmethod
    def from_file(cls, file_name: str, file: BinaryIO) -> UploadPostFile:
        return cls(file_name, file)

    @classmethod
    def from_path(cls, path: str | Path) -> UploadPostFile:
        """Load a file from disk, using its name as the upload file name."""
        path = Path(path)
        if not path.name:
            msg = f"Path has no file name: {path}"
            raise ValueError(msg)

        return cls(path.name, path.read_bytes())

    def read(self) -> bytes:
        """Return the file content, reading the stream on first use."""
        if not isinstance(self._content, bytes):
            self._content = self._content.read()
        return self._content


class UploadedFilePart(BaseModel):
    """A file as it will be sent in a multipart body."""

    class Config:
        frozen = True

    file_name: str
    content: bytes


class CreatePostRequest(BaseModel):
    """Validated parameters for creating a post."""

    class Config:
        frozen = True

    title: str | None = None
    privacy: PostPrivacy | None = None
    anonymous: bool | None = None
    nsfw: bool | None = None
    files: tuple[UploadedFilePart, ...]


class UpdatePostRequest(BaseModel):
    """Validated parameters for updating a post and its files."""

    class Config:
        frozen = True

    post_id: str
    title: str | None = None
    privacy: PostPrivacy | None = None
    nsfw: bool | None = None
    new_files: tuple[UploadedFilePart, ...] = ()
    file_updates: tuple[FileUpdate, ...] = ()

    @property
    def has_post_fields(self) -> bool:
        """Return True if the post itself (not its files) changes."""
        return self.title is not None or self.privacy is not None or self.nsfw is not None


class ListPostsRequest(BaseModel):
    """Parameters for one page of the post listing."""

    class Config:
        frozen = True

    sort: SortOrder = SortOrder.POPULAR
    page: int = 1
    username: str | None = None
    profile: bool = False

    def next_page(self) -> ListPostsRequest:
        return self.model_copy(update={"page": self.page + 1})


def _validate_title(title: str | None) -> None:
    if title is not None and len(title) < MIN_TITLE_LENGTH:
        msg = f"title must be at least {MIN_TITLE_LENGTH} characters long"
        raise InvalidRequestError(RequestErrorReason.TITLE_TOO_SHORT, msg)


def validate_file_updates(updates: tuple[FileUpdate, ...]) -> None:
    """Reject file updates with an empty description.

    Raises:
        InvalidRequestError: If a description is empty.
    """
    for update in updates:
        if not update.description:
            msg = f"file {update.id} needs a non-empty description"
            raise InvalidRequestError(RequestErrorReason.MISSING_DESCRIPTION, msg)


def to_upload_parts(
    files: Iterable[UploadPostFile | UploadedFilePart],
) -> tuple[UploadedFilePart, ...]:
    """Read pending uploads into multipart file parts, keeping their order."""
    return tuple(
        UploadedFilePart(file_name=file.file_name, content=file.read())
        if isinstance(file, UploadPostFile)
        else file
        for file in files
    )


class _SingleUseBuilder:
    def __init__(self, client: Client) -> None:
        self._client: Client = client
        self._sent: bool = False

    def _check_not_sent(self) -> None:
        if self._sent:
            msg = f"{type(self).__name__} was already sent; create a new builder"
            raise BuilderAlreadySentError(msg)


class CreatePostBuilder(_SingleUseBuilder):
    """Builder for creating a post.

    Example:
        post = await (
            client.create_post_builder()
            .title("My album")
            .privacy(PostPrivacy.HIDDEN)
            .add_file(UploadPostFile.from_path("cat.png"))
            .send()
        )
    """

    def __init__(self, client: Client) -> None:
        super().__init__(client)
        self._title: str | None = None
        self._privacy: PostPrivacy | None = None
        self._anonymous: bool | None = None
        self._nsfw: bool | None = None
        self._files: list[UploadPostFile] = []

    def __repr__(self) -> str:
        return (
            f"CreatePostBuilder(title={self._title!r}, privacy={self._privacy!r}, "
            f"anonymous={self._anonymous!r}, nsfw={self._nsfw!r}, files={self._files!r})"
        )

    def title(self, title: str) -> CreatePostBuilder:
        """Set the title. It must be at least 3 characters long."""
        self._check_not_sent()
        self._title = title
        return self

    def privacy(self, privacy: PostPrivacy) -> CreatePostBuilder:
        """Set the post privacy. The service defaults to hidden."""
        self._check_not_sent()
        self._privacy = privacy
        return self

    def anonymous(self, anonymous: bool) -> CreatePostBuilder:  # noqa: FBT001
        """Set whether the post should not be tied to the user."""
        self._check_not_sent()
        self._anonymous = anonymous
        return self

    def nsfw(self, nsfw: bool) -> CreatePostBuilder:  # noqa: FBT001
        self._check_not_sent()
        self._nsfw = nsfw
        return self

    def add_file(self, file: UploadPostFile) -> CreatePostBuilder:
        """Append a file. Files keep the order they are added in."""
        self._check_not_sent()
        self._files.append(file)
        return self

    def build(self) -> CreatePostRequest:
        """Validate the settings and return the request.

        Raises:
            InvalidRequestError: If no file was added or the title is too short.
            BuilderAlreadySentError: If the builder was already sent.
        """
        self._check_not_sent()
        _validate_title(self._title)

        if not self._files:
            msg = "a post needs at least one file"
            raise InvalidRequestError(RequestErrorReason.MISSING_FILES, msg)

        return CreatePostRequest(
            title=self._title,
            privacy=self._privacy,
            anonymous=self._anonymous,
            nsfw=self._nsfw,
            files=to_upload_parts(self._files),
        )

    async def send(self) -> Post:
        """Create the post."""
        request: CreatePostRequest = self.build()
        self._sent = True
        return await self._client.create_post(request)


class UpdatePostBuilder(_SingleUseBuilder):
    """Builder for updating a post, its files, or both."""

    def __init__(self, client: Client, post_id: str) -> None:
        super().__init__(client)
        self._post_id: str = post_id
        self._title: str | None = None
        self._privacy: PostPrivacy | None = None
        self._nsfw: bool | None = None
        self._new_files: list[UploadPostFile] = []
        self._file_updates: list[FileUpdate] = []

    def __repr__(self) -> str:
        return (
            f"UpdatePostBuilder(post_id={self._post_id!r}, title={self._title!r}, "
            f"privacy={self._privacy!r}, nsfw={self._nsfw!r}, "
            f"new_files={self._new_files!r}, file_updates={self._file_updates!r})"
        )

    def title(self, title: str) -> UpdatePostBuilder:
        """Update the title. It must be at least 3 characters long."""
        self._check_not_sent()
        self._title = title
        return self

    def privacy(self, privacy: PostPrivacy) -> UpdatePostBuilder:
        self._check_not_sent()
        self._privacy = privacy
        return self

    def nsfw(self, nsfw: bool) -> UpdatePostBuilder:  # noqa: FBT001
        self._check_not_sent()
        self._nsfw = nsfw
        return self

    def add_file(self, file: UploadPostFile) -> UpdatePostBuilder:
        """Append a new file to the post."""
        self._check_not_sent()
        self._new_files.append(file)
        return self

    def update_file(self, update: FileUpdate) -> UpdatePostBuilder:
        """Change the description of an existing file."""
        self._check_not_sent()
        self._file_updates.append(update)
        return self

    def build(self) -> UpdatePostRequest:
        """Validate the settings and return the request.

        Raises:
            InvalidRequestError: If the post ID is empty, nothing changes, the
                title is too short, or a file description is empty.
            BuilderAlreadySentError: If the builder was already sent.
        """
        self._check_not_sent()

        if not self._post_id or not self._post_id.strip():
            msg = "a post ID is required"
            raise InvalidRequestError(RequestErrorReason.MISSING_POST_ID, msg)

        _validate_title(self._title)
        file_updates: tuple[FileUpdate, ...] = tuple(self._file_updates)
        validate_file_updates(file_updates)

        request = UpdatePostRequest(
            post_id=self._post_id.strip(),
            title=self._title,
            privacy=self._privacy,
            nsfw=self._nsfw,
            new_files=to_upload_parts(self._new_files),
            file_updates=file_updates,
        )
        if not (request.has_post_fields or request.new_files or request.file_updates):
            msg = "the update does not change anything"
            raise InvalidRequestError(RequestErrorReason.EMPTY_UPDATE, msg)

        return request

    async def send(self) -> Post:
        """Apply the update and return the post as it is afterwards.

        New files are uploaded first, then file descriptions are changed, then
        the post fields. If no post field changes, the post is fetched again so
        the result reflects the file changes.
        """
        request: UpdatePostRequest = self.build()
        self._sent = True

        post: Post | None = None
        if request.new_files:
            post = await self._client.add_post_files(request.post_id, request.new_files)

        if request.file_updates:
            await self._client.update_files_bulk(request.file_updates)

        if request.has_post_fields:
            return await self._client.update_post(request)

        if post is None or request.file_updates:
            post = await self._client.get_post(request.post_id)

        return post


class ListPostsBuilder(_SingleUseBuilder):
    """Builder for listing posts, one page at a time or as a lazy stream."""

    def __init__(self, client: Client) -> None:
        super().__init__(client)
        self._sort: SortOrder = SortOrder.POPULAR
        self._page: int = 1
        self._username: str | None = None
        self._profile: bool = False

    def __repr__(self) -> str:
        return (
            f"ListPostsBuilder(sort={self._sort!r}, page={self._page!r}, "
            f"username={self._username!r}, profile={self._profile!r})"
        )

    def sort(self, sort: SortOrder) -> ListPostsBuilder:
        self._check_not_sent()
        self._sort = sort
        return self

    def page(self, page: int) -> ListPostsBuilder:
        """Set the page to fetch (or to start from). Pages start at 1.

        Raises:
            InvalidRequestError: If the page is below 1.
        """
        self._check_not_sent()
        if page < 1:
            msg = "page must be >= 1"
            raise InvalidRequestError(RequestErrorReason.INVALID_PAGE, msg)

        self._page = page
        return self

    def username(self, username: str) -> ListPostsBuilder:
        """Only list posts by this user."""
        self._check_not_sent()
        self._username = username
        return self

    def profile(self, profile: bool) -> ListPostsBuilder:  # noqa: FBT001
        """List posts as shown on the user's profile page."""
        self._check_not_sent()
        self._profile = profile
        return self

    def build(self) -> ListPostsRequest:
        self._check_not_sent()
        return ListPostsRequest(
            sort=self._sort,
            page=self._page,
            username=self._username,
            profile=self._profile,
        )

    async def send(self) -> list[ListPostsPost]:
        """Fetch a single page."""
        request: ListPostsRequest = self.build()
        self._sent = True
        return await self._client.list_posts(request)

    def iter_posts(self) -> AsyncIterator[ListPostsPost]:
        """Stream posts across pages, fetching each page when it is needed.

        The stream ends after the last page reported by the service, or at the
        first empty page. It cannot be restarted; create a new builder instead.
        """
        request: ListPostsRequest = self.build()
        self._sent = True
        return self._iter_pages(request)

    async def _iter_pages(self, request: ListPostsRequest) -> AsyncIterator[ListPostsPost]:
        while True:
            response: ListPostsResponse = await self._client.list_posts_page(request)
            logger.debug("Fetched listing page %d with %d posts", request.page, len(response.data))

            for post in response.data:
                yield post

            if response.is_last_page:
                return

            request = request.next_page()
