from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from typing import Any
from typing import TypeVar
from urllib.parse import quote
from urllib.parse import urlencode

from pydantic import BaseModel
from pydantic import ValidationError
from urllib3 import encode_multipart_formdata

from imgchest.builders import CreatePostBuilder
from imgchest.builders import ListPostsBuilder
from imgchest.builders import UpdatePostBuilder
from imgchest.builders import to_upload_parts
from imgchest.builders import validate_file_updates
from imgchest.config import ClientConfig
from imgchest.errors import ApiError
from imgchest.errors import DeserializeError
from imgchest.errors import InvalidRequestError
from imgchest.errors import InvalidScrapedPostError
from imgchest.errors import InvalidScrapedUserError
from imgchest.errors import NetworkError
from imgchest.errors import RequestErrorReason
from imgchest.errors import ScrapeErrorReason
from imgchest.models import ApiCompletedResponse
from imgchest.models import ApiResponse
from imgchest.models import FileUpdate
from imgchest.models import ImgchestModel
from imgchest.models import ListPostsResponse
from imgchest.models import Post
from imgchest.models import PostFile
from imgchest.models import User
from imgchest.ratelimit import RateLimiter
from imgchest.scraper import UNAVAILABLE_STATUSES
from imgchest.scraper import has_data_page
from imgchest.scraper import parse_post_page
from imgchest.scraper import parse_user_page
from imgchest.transport import RnetTransport
from imgchest.transport import TransportError
from imgchest.urls import extract_post_id

if TYPE_CHECKING:
    from collections.abc import Iterable

    from imgchest.builders import CreatePostRequest
    from imgchest.builders import ListPostsRequest
    from imgchest.builders import UpdatePostRequest
    from imgchest.builders import UploadedFilePart
    from imgchest.builders import UploadPostFile
    from imgchest.models import ListPostsPost
    from imgchest.scraper import ScrapedPost
    from imgchest.scraper import ScrapedUser
    from imgchest.transport import Transport
    from imgchest.transport import TransportResponse

logger: logging.Logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=ImgchestModel)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
FAVORITE_ADDED = "Favorite added."
FAVORITE_REMOVED = "Favorite removed."
MAX_ERROR_TEXT_LENGTH = 200


class _ApiErrorBody(BaseModel):
    error: str | None = None
    message: str | None = None


def _bool_to_str(value: bool) -> str:  # noqa: FBT001
    return "true" if value else "false"


def _error_message(response: TransportResponse) -> str:
    """Pull a human-readable message out of an error response.

    Args:
        response: A non-2xx response.

    Returns:
        The JSON ``error`` or ``message`` field, or the start of the raw body.
    """
    try:
        body: _ApiErrorBody = _ApiErrorBody.model_validate_json(response.body)
    except ValidationError:
        body = _ApiErrorBody()

    if body.error:
        return body.error
    if body.message:
        return body.message

    text: str = response.text().strip()
    return text[:MAX_ERROR_TEXT_LENGTH] or f"HTTP {response.status}"


def _decode(response: TransportResponse, model: type[ModelT]) -> ModelT:
    return model.from_json(response.body)


def _check_completed(response: TransportResponse) -> ApiCompletedResponse:
    completed: ApiCompletedResponse = _decode(response, ApiCompletedResponse)
    if not completed.success:
        raise ApiError(response.status, completed.message or "operation failed")
    return completed


def _path_segment(value: str) -> str:
    return quote(value, safe="")


def _post_id(post_url_or_id: str) -> str:
    value: str = post_url_or_id.strip()
    if "://" in value:
        return extract_post_id(value)
    if not value:
        msg = "a post ID is required"
        raise InvalidRequestError(RequestErrorReason.MISSING_POST_ID, msg)
    return value


def _post_path(post_url_or_id: str) -> str:
    return f"/v1/post/{_path_segment(_post_id(post_url_or_id))}"


def _multipart(
    fields: list[tuple[str, str]],
    files: list[UploadedFilePart],
) -> tuple[bytes, str]:
    """Encode text fields and files as a multipart/form-data body.

    Returns:
        Tuple of (body, content type header value).
    """
    encoded: list[tuple[str, Any]] = list(fields)
    encoded.extend(("images[]", (file.file_name, file.content)) for file in files)
    return encode_multipart_formdata(encoded)


class Client:
    """Client for the imgchest API and website.

    The configuration is read-only. To use another token, create a new client
    with ``with_token``; the new client shares this client's transport and
    rate limiter.

    The client never retries. Every failure is raised as an ImgchestError
    subclass on first occurrence.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: Transport | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._transport: Transport = transport or RnetTransport(
            impersonate=self._config.impersonate,
            timeout_seconds=self._config.timeout_seconds,
        )
        self._rate_limiter: RateLimiter = rate_limiter or RateLimiter(
            self._config.requests_per_minute,
        )

    def __repr__(self) -> str:
        return f"Client(config={self._config!r})"

    @property
    def config(self) -> ClientConfig:
        return self._config

    def with_token(self, token: str | None) -> Client:
        """Return a client that uses a different token."""
        return Client(
            self._config.with_token(token),
            transport=self._transport,
            rate_limiter=self._rate_limiter,
        )

    def create_post_builder(self) -> CreatePostBuilder:
        return CreatePostBuilder(self)

    def update_post_builder(self, post_id: str) -> UpdatePostBuilder:
        return UpdatePostBuilder(self, post_id)

    def list_posts_builder(self) -> ListPostsBuilder:
        return ListPostsBuilder(self)

    def _require_token(self) -> str:
        if not self._config.token:
            msg = "this call requires an API token"
            raise InvalidRequestError(RequestErrorReason.MISSING_TOKEN, msg)
        return self._config.token

    async def _send(
        self,
        method: str,
        url: str,
        *,
        body: bytes | None = None,
        content_type: str | None = None,
        token: str | None = None,
        allowed_statuses: frozenset[int] = frozenset(),
    ) -> TransportResponse:
        """Send one request and raise for transport failures and error statuses.

        Requests carrying a token go to the JSON API and count against the
        rate limit. Statuses in ``allowed_statuses`` are returned instead of
        raised.

        Raises:
            NetworkError: If the transport failed or timed out.
            ApiError: If the response status is not 2xx.
        """
        headers: dict[str, str] = {"Accept": JSON_CONTENT_TYPE}
        if content_type:
            headers["Content-Type"] = content_type
        if token:
            headers["Authorization"] = f"Bearer {token}"
            await self._rate_limiter.acquire()

        try:
            response: TransportResponse = await self._transport.send(method, url, headers, body)
        except TimeoutError as exc:
            msg = f"{method} {url} timed out"
            raise NetworkError(msg) from exc
        except TransportError as exc:
            msg = f"{method} {url} failed: {exc}"
            raise NetworkError(msg) from exc

        logger.debug("%s %s -> %d", method, url, response.status)

        if not response.ok and response.status not in allowed_statuses:
            raise ApiError(response.status, _error_message(response))

        return response

    async def _api(
        self,
        method: str,
        path: str,
        *,
        body: bytes | None = None,
        content_type: str | None = None,
    ) -> TransportResponse:
        token: str = self._require_token()
        url: str = f"{self._config.api_base}{path}"
        return await self._send(method, url, body=body, content_type=content_type, token=token)

    async def _get_page(
        self,
        url: str,
        error_cls: type[InvalidScrapedPostError | InvalidScrapedUserError],
    ) -> str:
        """Fetch a website page and return its HTML.

        Raises:
            InvalidScrapedPostError | InvalidScrapedUserError: If the site
                answered with its own "not found" or "forbidden" page.
            ApiError: For any other error status.
        """
        response: TransportResponse = await self._send(
            "GET",
            url,
            allowed_statuses=UNAVAILABLE_STATUSES,
        )
        the_page: str = response.text()
        if response.ok:
            return the_page

        if await asyncio.to_thread(has_data_page, the_page):
            msg = f"page reports the content is unavailable (HTTP {response.status})"
            raise error_cls(ScrapeErrorReason.CONTENT_UNAVAILABLE, msg)

        raise ApiError(response.status, _error_message(response))

    async def get_scraped_post(self, post_id: str) -> ScrapedPost:
        """Scrape a post from its page.

        Does not need a token.

        Args:
            post_id: Post ID or post URL.

        Raises:
            InvalidScrapedPostError: If the page cannot be parsed.
        """
        url: str = f"{self._config.site_base}/p/{_path_segment(_post_id(post_id))}"
        the_page: str = await self._get_page(url, InvalidScrapedPostError)
        return await asyncio.to_thread(parse_post_page, the_page)

    async def get_scraped_user(self, name: str) -> ScrapedUser:
        """Scrape a user from their profile page.

        Does not need a token.

        Raises:
            InvalidScrapedUserError: If the page cannot be parsed.
        """
        url: str = f"{self._config.site_base}/u/{_path_segment(name)}"
        the_page: str = await self._get_page(url, InvalidScrapedUserError)
        return await asyncio.to_thread(parse_user_page, the_page)

    async def list_posts_page(self, request: ListPostsRequest) -> ListPostsResponse:
        """Fetch one page of the post listing, with its pagination info.

        Does not need a token. This endpoint is undocumented.
        """
        query: list[tuple[str, str]] = [
            ("sort", request.sort.value),
            ("page", str(request.page)),
        ]
        if request.username:
            query.append(("username", request.username))
        if request.profile:
            query.append(("profile", "true"))

        url: str = f"{self._config.site_base}/api/posts?{urlencode(query)}"
        response: TransportResponse = await self._send("GET", url)
        return _decode(response, ListPostsResponse)

    async def list_posts(self, request: ListPostsRequest) -> list[ListPostsPost]:
        """Fetch one page of the post listing."""
        page: ListPostsResponse = await self.list_posts_page(request)
        return page.data

    async def get_post(self, post_id: str) -> Post:
        """Get a post by ID or URL. Requires a token."""
        response: TransportResponse = await self._api("GET", _post_path(post_id))
        return _decode(response, ApiResponse[Post]).data

    async def create_post(self, request: CreatePostRequest) -> Post:
        """Create a post. Requires a token."""
        if not request.files:
            msg = "a post needs at least one file"
            raise InvalidRequestError(RequestErrorReason.MISSING_FILES, msg)

        fields: list[tuple[str, str]] = []
        if request.title is not None:
            fields.append(("title", request.title))
        if request.privacy is not None:
            fields.append(("privacy", request.privacy.value))
        if request.anonymous is not None:
            fields.append(("anonymous", _bool_to_str(request.anonymous)))
        if request.nsfw is not None:
            fields.append(("nsfw", _bool_to_str(request.nsfw)))

        body, content_type = _multipart(fields, list(request.files))
        response: TransportResponse = await self._api(
            "POST",
            "/v1/post",
            body=body,
            content_type=content_type,
        )
        return _decode(response, ApiResponse[Post]).data

    async def update_post(self, request: UpdatePostRequest) -> Post:
        """Update the title, privacy and nsfw flag of a post. Requires a token.

        File changes in the request are ignored; UpdatePostBuilder.send
        applies them.
        """
        fields: list[tuple[str, str]] = []
        if request.title is not None:
            fields.append(("title", request.title))
        if request.privacy is not None:
            fields.append(("privacy", request.privacy.value))
        if request.nsfw is not None:
            fields.append(("nsfw", _bool_to_str(request.nsfw)))

        # The service silently ignores multipart bodies on this endpoint.
        response: TransportResponse = await self._api(
            "PATCH",
            f"/v1/post/{_path_segment(request.post_id)}",
            body=urlencode(fields).encode(),
            content_type=FORM_CONTENT_TYPE,
        )
        return _decode(response, ApiResponse[Post]).data

    async def delete_post(self, post_id: str) -> None:
        """Delete a post. Requires a token."""
        response: TransportResponse = await self._api("DELETE", _post_path(post_id))
        _check_completed(response)

    async def favorite_post(self, post_id: str) -> bool:
        """Toggle the favorite flag of a post. Requires a token.

        Returns:
            True if the favorite was added, False if it was removed.
        """
        response: TransportResponse = await self._api(
            "POST",
            f"{_post_path(post_id)}/favorite",
        )
        completed: ApiCompletedResponse = _check_completed(response)

        if completed.message == FAVORITE_ADDED:
            return True
        if completed.message == FAVORITE_REMOVED:
            return False

        msg = f"unknown favorite response message: {completed.message!r}"
        raise DeserializeError(msg)

    async def add_post_files(
        self,
        post_id: str,
        files: Iterable[UploadPostFile | UploadedFilePart],
    ) -> Post:
        """Append files to a post. Requires a token."""
        parts: list[UploadedFilePart] = list(to_upload_parts(files))
        if not parts:
            msg = "at least one file is required"
            raise InvalidRequestError(RequestErrorReason.MISSING_FILES, msg)

        body, content_type = _multipart([], parts)
        response: TransportResponse = await self._api(
            "POST",
            f"{_post_path(post_id)}/add",
            body=body,
            content_type=content_type,
        )
        return _decode(response, ApiResponse[Post]).data

    async def get_user(self, username: str) -> User:
        """Get a user by name. Requires a token."""
        response: TransportResponse = await self._api("GET", f"/v1/user/{_path_segment(username)}")
        return _decode(response, ApiResponse[User]).data

    async def get_file(self, file_id: str) -> PostFile:
        """Get a file by ID. Requires a token.

        The service currently answers this endpoint without data, so this
        usually raises DeserializeError.
        """
        response: TransportResponse = await self._api("GET", f"/v1/file/{_path_segment(file_id)}")
        return _decode(response, ApiResponse[PostFile]).data

    async def update_file(self, file_id: str, description: str) -> None:
        """Change the description of a file. Requires a token."""
        if not description:
            msg = f"file {file_id} needs a non-empty description"
            raise InvalidRequestError(RequestErrorReason.MISSING_DESCRIPTION, msg)

        response: TransportResponse = await self._api(
            "PATCH",
            f"/v1/file/{_path_segment(file_id)}",
            body=urlencode([("description", description)]).encode(),
            content_type=FORM_CONTENT_TYPE,
        )
        _check_completed(response)

    async def delete_file(self, file_id: str) -> None:
        """Delete a file. Requires a token."""
        response: TransportResponse = await self._api(
            "DELETE",
            f"/v1/file/{_path_segment(file_id)}",
        )
        _check_completed(response)

    async def update_files_bulk(self, updates: Iterable[FileUpdate]) -> list[PostFile]:
        """Change the descriptions of several files at once. Requires a token."""
        data: tuple[FileUpdate, ...] = tuple(updates)
        validate_file_updates(data)

        body: bytes = ApiResponse[list[FileUpdate]](data=list(data)).model_dump_json().encode()
        response: TransportResponse = await self._api(
            "PATCH",
            "/v1/files",
            body=body,
            content_type=JSON_CONTENT_TYPE,
        )
        return _decode(response, ApiResponse[list[PostFile]]).data
