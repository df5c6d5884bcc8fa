"""Outbound HTTP for all feeds.

All network I/O goes through a single HttpFetcher shared by the feed
components. It receives an httpx.AsyncClient via constructor injection; the
server lifespan owns the client lifecycle. Every call carries an explicit
timeout so a slow upstream cannot stall an inbound request.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from parishfeeds import __version__
from parishfeeds.errors import ErrorCode, FeedError

log = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 15.0


def build_http_client() -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        # Calendar exports answer with a redirect to the actual .ics file
        follow_redirects=True,
        timeout=httpx.Timeout(DEFAULT_TIMEOUT_SECONDS),
        headers={"User-Agent": f"parishfeeds/{__version__}"},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def _redact(url: httpx.URL) -> str:
    """Drop the query string, which may carry access tokens."""
    return str(url.copy_with(query=None))


class HttpFetcher:
    """Thin wrapper over httpx that turns every failure into a FeedError."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def get_text(
        self,
        url: str,
        *,
        params: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> str:
        response = await self._send("GET", url, params=params, timeout=timeout)
        return response.text

    async def get_json(
        self,
        url: str,
        *,
        params: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> Any:
        response = await self._send("GET", url, params=params, timeout=timeout)
        return _decode_json(response)

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> Any:
        response = await self._send("POST", url, json=payload, timeout=timeout)
        return _decode_json(response)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Issue one request. Raises FeedError on network errors and non-2xx."""
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as exc:
            raise FeedError(
                code=ErrorCode.FEED_FETCH_FAILED,
                message=f"Timed out after {timeout}s requesting {url}",
                suggestion="The upstream service is slow or unreachable.",
                recoverable=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise FeedError(
                code=ErrorCode.FEED_FETCH_FAILED,
                message=f"Network error requesting {url}: {exc}",
                suggestion="The upstream service may be temporarily unavailable.",
                recoverable=True,
            ) from exc

        if not response.is_success:
            raise FeedError(
                code=ErrorCode.FEED_FETCH_FAILED,
                message=f"HTTP {response.status_code} from {_redact(response.url)}",
                suggestion="The upstream service rejected the request or is unavailable.",
                recoverable=True,
            )

        log.debug(
            "fetch_complete",
            method=method,
            url=_redact(response.url),
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise FeedError(
            code=ErrorCode.FEED_MALFORMED,
            message=f"Malformed JSON from {_redact(response.url)}",
            suggestion="The upstream service returned an unexpected payload.",
            recoverable=True,
        ) from exc
