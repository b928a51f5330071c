from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import requests
from requests import exceptions as req_exc

from .urls import basic_auth_token, url_resolve

if TYPE_CHECKING:
    from .config import LoadOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    url: str
    status_code: int
    headers: dict[str, str]
    body: bytes


def _to_result(resp: requests.Response) -> FetchResult:
    return FetchResult(
        url=str(resp.url),
        status_code=int(resp.status_code),
        headers={k: str(v) for k, v in resp.headers.items()},
        body=resp.content or b"",
    )


class HttpClient:
    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: int = 45,
    ) -> None:
        self._session = session
        self._timeout_s = timeout_s

    def fetch(
        self,
        uri: str,
        options: LoadOptions,
        *,
        method: str | None = None,
        secure: bool = True,
    ) -> FetchResult | None:
        """Fetch a remote resource.

        Protocol-relative URIs are tried over https first and once more over
        http if that fails. Error statuses (>= 400) count as failures; the
        failing response is still handed back when there is one, so callers
        can read error bodies. Returns ``None`` only for a HEAD request that
        produced no response at all.
        """

        request = dict(options.request or {})
        configured = str(request.pop("method", None) or "get")
        method = (method or configured).lower()
        headers = dict(request.pop("headers", None) or {})
        request.setdefault("timeout", self._timeout_s)
        request["verify"] = False

        resource_url = uri
        protocol_relative = False
        if uri.startswith("//"):
            protocol_relative = True
            resource_url = url_resolve(f"http{'s' if secure else ''}://te.st", uri)

        if options.user and options.password:
            headers["Authorization"] = "Basic " + basic_auth_token(
                options.user, options.password
            )
        if options.user_agent:
            headers["User-Agent"] = options.user_agent

        logger.debug("Fetching resource: %s (%s)", resource_url, method.upper())

        try:
            resp = self._session.request(
                method.upper(), resource_url, headers=headers, **request
            )
            resp.raise_for_status()
            return _to_result(resp)
        except req_exc.RequestException as e:
            if secure and protocol_relative:
                logger.debug("%s - trying again over http", e)
                return self.fetch(uri, options, method=method, secure=False)

            logger.debug("%s failed: %s", resource_url, e)

            response = e.response
            if response is not None:
                return _to_result(response)
            if method == "head":
                return None
            raise

    def get_body(self, uri: str, options: LoadOptions) -> bytes:
        result = self.fetch(uri, options, method="get")
        return result.body if result is not None else b""

    def head(self, uri: str, options: LoadOptions) -> FetchResult | None:
        return self.fetch(uri, options, method="head")
