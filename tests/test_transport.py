from __future__ import annotations

import asyncio
from typing import Any

import pytest

from imgchest.transport import MAX_REDIRECTS
from imgchest.transport import RnetTransport
from imgchest.transport import TransportError


class FakeStatus:
    def __init__(self, code: int) -> None:
        self._code: int = code

    def as_int(self) -> int:
        return self._code


class FakeResponse:
    def __init__(
        self,
        status: int | FakeStatus,
        headers: dict[str, Any] | None = None,
        body: bytes = b"",
    ) -> None:
        self.status: int | FakeStatus = status
        self.headers: dict[str, Any] = headers or {}
        self._body: bytes = body

    async def bytes(self) -> bytes:
        return self._body


class FakeRnetClient:
    """Stands in for rnet.Client, answering from a fixed list of responses."""

    def __init__(self, responses: list[Any]) -> None:
        self._responses: list[Any] = list(responses)
        self.calls: list[tuple[Any, str, dict[str, Any]]] = []

    async def request(self, method: Any, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        item: Any = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, BaseException):
            raise item
        return item


class SlowClient:
    async def request(self, method: Any, url: str, **kwargs: Any) -> FakeResponse:
        await asyncio.sleep(5)
        return FakeResponse(200)


def _send(
    transport: RnetTransport,
    method: str,
    url: str,
    body: bytes | None = None,
) -> Any:
    return asyncio.run(transport.send(method, url, {"Accept": "application/json"}, body))


def test_returns_status_headers_and_body() -> None:
    fake = FakeRnetClient(
        [FakeResponse(200, {"Content-Type": b"text/html; charset=UTF-8"}, b"<html></html>")],
    )
    transport = RnetTransport(client=fake)

    response = _send(transport, "GET", "https://imgchest.com/p/3qe4gdvj4j2")

    assert response.status == 200
    assert response.headers == {"content-type": "text/html; charset=UTF-8"}
    assert response.body == b"<html></html>"
    _, url, kwargs = fake.calls[0]
    assert url == "https://imgchest.com/p/3qe4gdvj4j2"
    assert kwargs == {"headers": {"Accept": "application/json"}}


def test_status_objects_are_converted_to_int() -> None:
    fake = FakeRnetClient([FakeResponse(FakeStatus(404))])
    transport = RnetTransport(client=fake)

    response = _send(transport, "GET", "https://imgchest.com/p/3qe4gdvj4j2")

    assert response.status == 404
    assert not response.ok


def test_body_is_passed_when_present() -> None:
    fake = FakeRnetClient([FakeResponse(200)])
    transport = RnetTransport(client=fake)

    _send(transport, "PATCH", "https://api.imgchest.com/v1/file/nw7w6cmlvye", b"description=x")

    _, _, kwargs = fake.calls[0]
    assert kwargs["body"] == b"description=x"


def test_get_follows_relative_redirect() -> None:
    fake = FakeRnetClient(
        [
            FakeResponse(302, {"Location": "/p/newid12345"}),
            FakeResponse(200, body=b"moved here"),
        ],
    )
    transport = RnetTransport(client=fake)

    response = _send(transport, "GET", "https://imgchest.com/p/3qe4gdvj4j2")

    assert response.status == 200
    assert response.body == b"moved here"
    assert [url for _, url, _ in fake.calls] == [
        "https://imgchest.com/p/3qe4gdvj4j2",
        "https://imgchest.com/p/newid12345",
    ]


def test_too_many_redirects() -> None:
    fake = FakeRnetClient([FakeResponse(302, {"Location": "/p/again"})])
    transport = RnetTransport(client=fake)

    with pytest.raises(TransportError, match="Too many redirects"):
        _send(transport, "GET", "https://imgchest.com/p/3qe4gdvj4j2")

    assert len(fake.calls) == MAX_REDIRECTS


def test_non_get_redirect_is_returned() -> None:
    fake = FakeRnetClient([FakeResponse(303, {"Location": b"/p/3qe4gdvj4j2"})])
    transport = RnetTransport(client=fake)

    response = _send(transport, "POST", "https://api.imgchest.com/v1/post", b"body")

    assert response.status == 303
    assert response.headers == {"location": "/p/3qe4gdvj4j2"}
    assert len(fake.calls) == 1


def test_client_errors_become_transport_errors() -> None:
    fake = FakeRnetClient([OSError("connection reset by peer")])
    transport = RnetTransport(client=fake)

    with pytest.raises(TransportError, match="connection reset") as exc_info:
        _send(transport, "GET", "https://imgchest.com/p/3qe4gdvj4j2")

    assert isinstance(exc_info.value.__cause__, OSError)


def test_slow_request_times_out() -> None:
    transport = RnetTransport(client=SlowClient(), timeout_seconds=0.01)  # type: ignore[arg-type]

    with pytest.raises(TimeoutError):
        _send(transport, "GET", "https://imgchest.com/p/3qe4gdvj4j2")


def test_cancellation_is_not_wrapped() -> None:
    transport = RnetTransport(client=SlowClient())  # type: ignore[arg-type]

    async def run() -> None:
        task = asyncio.create_task(
            transport.send("GET", "https://imgchest.com/p/3qe4gdvj4j2", {}, None),
        )
        await asyncio.sleep(0)
        task.cancel()
        await task

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(run())
