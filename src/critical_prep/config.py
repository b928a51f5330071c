"""Options shared by every loader entry point."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence, Union

import requests

from .diagnostics import Diagnostics
from .http_client import HttpClient

RebaseOption = Union[bool, Mapping[str, str], Callable[..., Any], None]

# camelCase spellings accepted by `LoadOptions.from_dict`.
_KEY_ALIASES = {
    "assetPaths": "asset_paths",
    "userAgent": "user_agent",
    "pass": "password",
    "maxWorkers": "max_workers",
}


@dataclass
class LoadOptions:
    base: str | None = None
    css: str | Sequence[str] | None = None
    rebase: RebaseOption = None
    asset_paths: Sequence[str] = ()
    strict: bool = False
    user: str | None = None
    password: str | None = None
    user_agent: str | None = None
    request: dict[str, Any] = field(default_factory=dict)
    max_workers: int = 4
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    http: HttpClient | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LoadOptions":
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise TypeError(f"Unknown option: {key}")
            kwargs[name] = value
        if "request" in kwargs and kwargs["request"] is None:
            kwargs["request"] = {}
        return cls(**kwargs)

    def client(self) -> HttpClient:
        if self.http is None:
            self.http = HttpClient(requests.Session())
        return self.http

    def rebase_endpoints(self) -> tuple[str, str]:
        """Return the configured (from, to) pair; missing ends are ``""``."""

        if isinstance(self.rebase, Mapping):
            return (
                str(self.rebase.get("from") or ""),
                str(self.rebase.get("to") or ""),
            )
        return "", ""
