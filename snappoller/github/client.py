"""Minimal GitHub REST client used by the poller."""

from __future__ import annotations

import http.client
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from ..errors import AuthError, UpstreamError
from ..logging import get_logger

DEFAULT_API_URL = "https://api.github.com"
JSON_MEDIA_TYPE = "application/vnd.github.v3+json"
RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"

logger = get_logger("github")


@dataclass
class GitHubRequest:
    """A single outbound API call."""

    url: str
    headers: Dict[str, str]
    timeout: Optional[float]
    raw: bool = False


@dataclass
class GitHubResponse:
    """Status, decoded body and headers of an API response.

    Non-2xx statuses are returned rather than raised so callers can branch on
    304/404 themselves.
    """

    status: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        if isinstance(self.body, dict):
            message = self.body.get("message")
            if isinstance(message, str):
                return message
        if isinstance(self.body, str) and self.body.strip():
            return self.body.strip()
        return "Unexpected response"


Transport = Callable[[GitHubRequest], GitHubResponse]


class GitHubClient:
    """Issues authenticated GET requests against the GitHub API."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        token: str | None = None,
        request_timeout: Optional[float] = 30.0,
        transport: Transport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.request_timeout = request_timeout
        self._transport = transport or self._urllib_transport

    def get(
        self,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        raw: bool = False,
    ) -> GitHubResponse:
        """GET ``path`` (relative to the API root) and return the response."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{urlencode(params)}"

        merged = {
            "Accept": RAW_MEDIA_TYPE if raw else JSON_MEDIA_TYPE,
            "User-Agent": "snappoller",
        }
        if self.token:
            merged["Authorization"] = f"token {self.token}"
        if headers:
            merged.update(headers)

        logger.debug("GET %s", url)
        request = GitHubRequest(url=url, headers=merged, timeout=self.request_timeout, raw=raw)
        response = self._transport(request)
        logger.debug("GET %s -> %d", url, response.status)
        return response

    @staticmethod
    def repo_path(owner: str, name: str, *suffix: str) -> str:
        parts = ["repos", quote(owner, safe=""), quote(name, safe="")]
        parts.extend(quote(part, safe="") for part in suffix)
        return "/".join(parts)

    # ------------------------------------------------------------------
    # Transport

    @staticmethod
    def _urllib_transport(request: GitHubRequest) -> GitHubResponse:
        http_request = Request(request.url, headers=request.headers, method="GET")
        try:
            with urlopen(http_request, timeout=request.timeout) as response:  # type: ignore[arg-type]
                status = response.status
                payload = response.read()
                headers = dict(response.headers.items())
        except HTTPError as exc:
            # 304 and every 4xx/5xx land here; they are answers, not failures.
            status = exc.code
            payload = exc.read() if exc.fp is not None else b""
            headers = dict(exc.headers.items()) if exc.headers else {}
        except URLError as exc:
            raise UpstreamError(None, f"request failed: {exc.reason}", url=request.url) from exc
        except TimeoutError as exc:
            raise UpstreamError(None, "request timed out", url=request.url) from exc
        except (http.client.HTTPException, OSError) as exc:
            # Dropped connections surface from getresponse()/read(), outside urllib's wrapping.
            raise UpstreamError(None, f"request failed: {exc}", url=request.url) from exc

        return GitHubResponse(
            status=status,
            body=_decode_body(payload, raw=request.raw),
            headers=headers,
        )


def error_from_response(response: GitHubResponse, *, url: str | None = None) -> UpstreamError:
    """Map an unexpected response to ``AuthError`` or ``UpstreamError``."""
    message = response.message
    if response.status == 401 or message == "Bad credentials":
        return AuthError(response.status, message, url=url)
    return UpstreamError(response.status, message, url=url)


def _decode_body(payload: bytes, *, raw: bool) -> Any:
    text = payload.decode("utf-8", errors="replace")
    if not text.strip():
        return None
    if raw:
        # Error bodies are still JSON even when the raw media type was requested.
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            return text
        return decoded if isinstance(decoded, dict) and "message" in decoded else text
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


__all__ = [
    "DEFAULT_API_URL",
    "GitHubClient",
    "GitHubRequest",
    "GitHubResponse",
    "JSON_MEDIA_TYPE",
    "RAW_MEDIA_TYPE",
    "Transport",
    "error_from_response",
]
