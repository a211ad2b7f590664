from __future__ import annotations

import html
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from imgchest.client import Client
from imgchest.config import ClientConfig
from imgchest.ratelimit import RateLimiter
from imgchest.transport import TransportResponse


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None


class ScriptedTransport:
    """Transport that replays canned responses and records every request."""

    def __init__(self, responses: list[Any]) -> None:
        self._responses: list[Any] = list(responses)
        self.requests: list[RecordedRequest] = []

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> TransportResponse:
        self.requests.append(RecordedRequest(method, url, dict(headers), body))
        if not self._responses:
            msg = f"unexpected request: {method} {url}"
            raise AssertionError(msg)

        item: Any = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, TransportResponse):
            return item
        if isinstance(item, tuple):
            status, payload = item
            return TransportResponse(status=status, body=json.dumps(payload).encode())
        return TransportResponse(status=200, body=json.dumps(item).encode())


@pytest.fixture
def make_client() -> Callable[..., tuple[Client, ScriptedTransport]]:
    """Build a client wired to a scripted transport.

    Responses may be dicts (200 JSON), (status, dict) tuples, TransportResponse
    objects, or exceptions to raise from the transport.
    """

    def _make(
        responses: list[Any],
        *,
        token: str | None = "test-token",
        **config: Any,
    ) -> tuple[Client, ScriptedTransport]:
        transport = ScriptedTransport(responses)
        client = Client(
            ClientConfig(token=token, **config),
            transport=transport,
            rate_limiter=RateLimiter(1000),
        )
        return client, transport

    return _make


def make_file_payload(file_id: str, position: int, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": file_id,
        "description": "",
        "link": f"https://cdn.imgchest.com/files/{file_id}.png",
        "position": position,
        "created": "2024-05-01T12:00:00.000000Z",
        "original_name": f"{file_id}.png",
    }
    payload.update(overrides)
    return payload


def make_post_payload(post_id: str = "3qe4gdvj4j2", **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": post_id,
        "title": "Donkey Kong",
        "username": "LunarLandr",
        "privacy": "hidden",
        "report_status": 1,
        "views": 198,
        "nsfw": 0,
        "image_count": 2,
        "created": "2019-11-03T00:36:00.000000Z",
        "images": [
            make_file_payload("nw7w6cmlvye", 1, description="first"),
            make_file_payload("kwye3cpag4b", 2),
        ],
        "delete_url": f"https://imgchest.com/p/{post_id}/delete",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def post_payload() -> dict[str, Any]:
    return make_post_payload()


def make_page(data: dict[str, Any]) -> str:
    """Wrap an Inertia page object in a minimal imgchest HTML page."""
    data_page: str = html.escape(json.dumps(data), quote=True)
    return f'<html><body><div id="app" data-page="{data_page}"></div></body></html>'


def html_response(text: str, status: int = 200) -> TransportResponse:
    return TransportResponse(
        status=status,
        headers={"content-type": "text/html; charset=UTF-8"},
        body=text.encode("utf-8"),
    )


@pytest.fixture
def page_html() -> Callable[[dict[str, Any]], str]:
    return make_page


@pytest.fixture
def html_page_response() -> Callable[..., TransportResponse]:
    return html_response


@pytest.fixture
def file_payload_factory() -> Callable[..., dict[str, Any]]:
    return make_file_payload
