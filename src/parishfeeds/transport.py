"""HTTP transport: admin gate middleware and the uvicorn runner."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.datastructures import Headers
from starlette.responses import JSONResponse

from parishfeeds.errors import ErrorCode, FeedError

if TYPE_CHECKING:
    from starlette.applications import Starlette
    from starlette.types import ASGIApp, Receive, Scope, Send

    from parishfeeds.config import Settings

log = structlog.get_logger()

ADMIN_PATH_PREFIX = "/api/admin/"
_READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class AdminGateMiddleware:
    """Pure ASGI middleware guarding admin writes.

    Any non-read request under ``/api/admin/`` must carry
    ``Authorization: Bearer <admin key>``. Public feed routes and admin
    reads pass through untouched.
    """

    def __init__(self, app: ASGIApp, *, auth_key: str) -> None:
        self.app = app
        self.auth_key = auth_key

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] == "http"
            and scope["path"].startswith(ADMIN_PATH_PREFIX)
            and scope["method"] not in _READ_METHODS
        ):
            headers = Headers(scope=scope)
            auth_header = headers.get("authorization", "")
            token = auth_header[7:] if auth_header.startswith("Bearer ") else ""
            if not token or not secrets.compare_digest(token.encode(), self.auth_key.encode()):
                log.warning("admin_unauthorized", path=scope["path"], method=scope["method"])
                error = FeedError(
                    code=ErrorCode.UNAUTHORIZED,
                    message="Admin authorization required.",
                    suggestion="Send the admin key as a bearer token.",
                    recoverable=False,
                )
                await JSONResponse(error.to_dict(), status_code=401)(scope, receive, send)
                return

        await self.app(scope, receive, send)


def resolve_admin_key(settings: Settings) -> str:
    """Return the configured admin key, generating one if none is set."""
    if settings.admin.auth_key:
        return settings.admin.auth_key
    auth_key = secrets.token_urlsafe(32)
    log.warning("admin_auth_key_auto_generated", auth_key=auth_key)
    return auth_key


def run_http_server(app: Starlette, settings: Settings) -> None:
    """Serve the app with uvicorn."""
    log.info("http_server_starting", host=settings.server.host, port=settings.server.port)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )
