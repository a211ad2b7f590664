"""HTTP transport boundary.

The client only depends on the ``Transport`` protocol. ``RnetTransport`` is the
default implementation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from typing import Protocol
from urllib.parse import urljoin

from pydantic import BaseModel
from pydantic import Field
from rnet import Client
from rnet import Impersonate
from rnet import Method

if TYPE_CHECKING:
    from rnet import Response

logger: logging.Logger = logging.getLogger(__name__)

REDIRECT_STATUSES: frozenset[int] = frozenset({301, 302, 303, 307, 308})
MAX_REDIRECTS = 5


class TransportError(Exception):
    """Raised by a transport when no response could be obtained."""


class TransportResponse(BaseModel):
    """A raw HTTP response.

    Attributes:
        status: HTTP status code.
        headers: Response headers with lower-cased names.
        body: Raw response body.
    """

    class Config:
        frozen = True

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """Return True for 2xx responses."""
        return 200 <= self.status < 300  # noqa: PLR2004

    def text(self) -> str:
        """Decode the body as UTF-8, replacing invalid bytes."""
        return self.body.decode("utf-8", errors="replace")


class Transport(Protocol):
    """Anything that can send one HTTP request and return the response."""

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> TransportResponse:
        """Send a request.

        asyncio.CancelledError is not caught and propagates unchanged when the
        calling task is cancelled.

        Raises:
            TransportError: If the request failed before a response arrived.
            TimeoutError: If the request timed out.
        """
        ...


def _header_str(value: bytes | str | None) -> str | None:
    if value is None:
        return None

    # rnet may return bytes for headers
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _status_code(resp: Response) -> int:
    status = resp.status
    if isinstance(status, int):
        return status
    return status.as_int()


class RnetTransport:
    """Transport backed by an rnet client impersonating a browser."""

    def __init__(
        self,
        *,
        impersonate: str = "Chrome137",
        timeout_seconds: float = 30.0,
        client: Client | None = None,
    ) -> None:
        self._client: Client = client or Client(
            impersonate=getattr(Impersonate, impersonate),
        )
        self._timeout_seconds: float = timeout_seconds

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> TransportResponse:
        """Send a request, following redirects for GET requests."""
        try:
            async with asyncio.timeout(self._timeout_seconds):
                return await self._send_following_redirects(method, url, headers, body)
        except (TimeoutError, TransportError):
            raise
        except Exception as exc:
            msg = f"{method} {url} failed: {exc}"
            raise TransportError(msg) from exc

    async def _send_following_redirects(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> TransportResponse:
        rnet_method: Method = getattr(Method, method.upper())
        kwargs: dict[str, object] = {"headers": headers}
        if body is not None:
            kwargs["body"] = body

        for _ in range(MAX_REDIRECTS):
            resp: Response = await self._client.request(rnet_method, url, **kwargs)
            status: int = _status_code(resp)

            location: str | None = _header_str(resp.headers.get("Location"))
            if method.upper() == "GET" and status in REDIRECT_STATUSES and location:
                # Handle relative redirects
                url = urljoin(url, location)
                logger.debug("Following redirect to %s", url)
                continue

            return TransportResponse(
                status=status,
                headers=_collect_headers(resp, location),
                body=await resp.bytes(),
            )

        msg = f"Too many redirects for {url}"
        raise TransportError(msg)


def _collect_headers(resp: Response, location: str | None) -> dict[str, str]:
    headers: dict[str, str] = {}

    content_type: str | None = _header_str(resp.headers.get("Content-Type"))
    if content_type:
        headers["content-type"] = content_type
    if location:
        headers["location"] = location

    return headers
