"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState in the Starlette lifespan
- Register routes
- Start uvicorn
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import JSONResponse
from starlette.routing import Route

import parishfeeds.routes.facebook_posts as r_facebook
import parishfeeds.routes.manual_verse as r_manual_verse
import parishfeeds.routes.upcoming_events as r_events
import parishfeeds.routes.weekly_verse as r_verse
import parishfeeds.routes.youtube_videos as r_youtube
from parishfeeds import __version__
from parishfeeds.config import Settings
from parishfeeds.errors import ErrorCode, FeedError
from parishfeeds.fetcher import build_http_client
from parishfeeds.state import AppState, build_state
from parishfeeds.store import SettingsStore
from parishfeeds.transport import AdminGateMiddleware, resolve_admin_key, run_http_server

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def open_state(settings: Settings) -> AsyncGenerator[AppState, None]:
    """Create and tear down the HTTP client and settings database."""
    db_path = Path(settings.store.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    http_client = build_http_client()
    db = await aiosqlite.connect(str(db_path))
    try:
        store = SettingsStore(db)
        await store.init_db()
        state = build_state(settings, store, http_client)
        log.info(
            "server_started",
            version=__version__,
            facebook_configured=state.resolver.configured,
            verse_configured=bool(settings.verse.api_key),
        )
        yield state
    finally:
        await http_client.aclose()
        await db.close()
        log.info("server_stopping")


def _state(request: Request) -> AppState:
    return request.app.state.feeds


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _error_response(error: FeedError) -> JSONResponse:
    status_code = 401 if error.code == ErrorCode.UNAUTHORIZED else 400
    return JSONResponse(error.to_dict(), status_code=status_code)


async def calendar_events(request: Request) -> JSONResponse:
    return JSONResponse(await r_events.handle(_state(request)))


async def facebook_posts(request: Request) -> JSONResponse:
    return JSONResponse(await r_facebook.handle(_state(request)))


async def youtube_videos(request: Request) -> JSONResponse:
    return JSONResponse(await r_youtube.handle(_state(request)))


async def weekly_verse(request: Request) -> JSONResponse:
    return JSONResponse(await r_verse.handle(_state(request)))


async def manual_verse(request: Request) -> JSONResponse:
    state = _state(request)
    try:
        if request.method == "GET":
            return JSONResponse(await r_manual_verse.get_override(state))
        if request.method == "DELETE":
            return JSONResponse(await r_manual_verse.clear_override(state))

        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}
        result = await r_manual_verse.set_override(body.get("text"), body.get("source"), state)
        return JSONResponse(result)
    except FeedError as exc:
        log.warning(
            "route_error",
            route="manual_verse",
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _error_response(exc)


ROUTES = [
    Route("/api/calendar-events", calendar_events, methods=["GET"]),
    Route("/api/facebook-posts", facebook_posts, methods=["GET"]),
    Route("/api/youtube-videos", youtube_videos, methods=["GET"]),
    Route("/api/weekly-verse", weekly_verse, methods=["GET"]),
    Route("/api/admin/manual-verse", manual_verse, methods=["GET", "PUT", "DELETE"]),
]


def create_app(settings: Settings | None = None, state: AppState | None = None) -> Starlette:
    """Build the ASGI app.

    When ``state`` is given it is used as-is and the lifespan opens nothing,
    which is how tests inject fake feeds.
    """
    settings = settings if settings is not None else Settings()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        if state is not None:
            yield
            return
        async with open_state(settings) as opened:
            app.state.feeds = opened
            yield

    app = Starlette(
        routes=ROUTES,
        middleware=[Middleware(AdminGateMiddleware, auth_key=resolve_admin_key(settings))],
        lifespan=lifespan,
    )
    if state is not None:
        app.state.feeds = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)
    log.info("server_starting", version=__version__)
    run_http_server(create_app(settings), settings)


if __name__ == "__main__":
    main()
