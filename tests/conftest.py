"""Shared fixtures: a scripted backend, a fake clock and client factories."""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from dining_client.client import ApiClient
from dining_client.credentials import MemoryStore, StoredCredentials

BASE_URL = "http://backend.test/api"


class FakeSleep:
    """Stands in for asyncio.sleep; records every requested delay."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class ScriptedBackend:
    """httpx MockTransport handler replaying canned replies in order.

    Each reply is `(status, body)` (dict/list -> JSON, str -> text, None ->
    empty) or a callable taking the request. The last reply repeats once the
    script runs out.
    """

    def __init__(self, *replies: Any) -> None:
        if not replies:
            raise ValueError("at least one reply is required")
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if callable(reply):
            return reply(request)
        status, body = reply
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    @property
    def calls(self) -> int:
        return len(self.requests)


def connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def read_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def credentials(store: MemoryStore) -> StoredCredentials:
    return StoredCredentials(store)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def make_client(credentials: StoredCredentials, fake_sleep: FakeSleep) -> Callable[..., ApiClient]:
    """Build an ApiClient wired to a ScriptedBackend (use with `async with`)."""

    def _make(script: ScriptedBackend, **kwargs: Any) -> ApiClient:
        kwargs.setdefault("credentials", credentials)
        kwargs.setdefault("sleep", fake_sleep)
        return ApiClient(
            kwargs.pop("credentials"),
            base_url=BASE_URL,
            transport=httpx.MockTransport(script),
            **kwargs,
        )

    return _make
