"""Shared pytest fixtures for atmosclient tests.

HTTP traffic never leaves the process: every client is built on an
``httpx.MockTransport`` whose handler records the requests it receives.
"""

from collections.abc import Callable

import httpx
import pytest

from atmosclient.client import AtmosClient

UID = "a1b2c3/user1"
SECRET = "LJLuryj6zs8ste6Y3jTGQp71xq0="
OBJECT_ID = "4924264aa10573d404924281caf51f049242d810edc8"
OTHER_OBJECT_ID = "4924264aa10573d404924281caf51f049242d810edc9"

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it handles."""

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            request.read()
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def make_client():
    """Factory returning (client, transport) for a given response handler."""

    def factory(handler: Handler, **kwargs) -> tuple[AtmosClient, RecordingTransport]:
        transport = RecordingTransport(handler)
        client = AtmosClient(
            "atmos.example.com",
            UID,
            SECRET,
            port=80,
            transport=transport,
            **kwargs,
        )
        return client, transport

    return factory


def respond(status: int = 200, headers: dict[str, str] | None = None, content: bytes | str = b""):
    """Handler that always returns the same response."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, headers=headers or {}, content=content)

    return handler
