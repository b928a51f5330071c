"""Shared fixtures: an in-memory stand-in for ``requests.Session``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
import requests

from critical_prep.config import LoadOptions
from critical_prep.http_client import HttpClient


class FakeResponse:
    def __init__(
        self,
        url: str,
        status_code: int = 200,
        body: bytes = b"",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.content = body
        self.headers = headers or {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


@dataclass
class FakeSession:
    routes: dict[str, tuple[int, bytes]] = field(default_factory=dict)
    broken: set[str] = field(default_factory=set)
    calls: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)

    def add(self, url: str, body: bytes | str = b"", status: int = 200) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, body)

    def request(self, method: str, url: str, headers=None, **kwargs: Any):
        self.calls.append((method, url, {"headers": dict(headers or {}), **kwargs}))
        if url in self.broken:
            raise requests.ConnectionError(f"cannot connect to {url}")
        status, body = self.routes.get(url, (404, b"not found"))
        return FakeResponse(url, status_code=status, body=body)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def options(session: FakeSession) -> LoadOptions:
    return LoadOptions(http=HttpClient(session))  # type: ignore[arg-type]
