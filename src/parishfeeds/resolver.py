"""Facebook page-token resolution.

Turns the configured long-lived token into the (page id, page token, slug)
triple that page-scoped Graph API calls need. Two token shapes are accepted:
a user token that manages one or more pages, or a page token used directly.

Resolution is an explicit two-state machine. A successful resolution is kept
for the process lifetime; a failed one leaves the resolver unresolved so the
next request cycle tries again. A revoked token therefore needs a restart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import structlog
from rapidfuzz import fuzz, process

from parishfeeds.errors import FeedError

if TYPE_CHECKING:
    from parishfeeds.config import FacebookSettings
    from parishfeeds.protocols import FetcherProtocol

log = structlog.get_logger()

FUZZY_SCORE_CUTOFF = 80


@dataclass(frozen=True)
class ResolvedPageCredential:
    page_id: str
    access_token: str
    slug: str


@dataclass(frozen=True)
class Unresolved:
    pass


@dataclass(frozen=True)
class Resolved:
    credential: ResolvedPageCredential


TokenState = Unresolved | Resolved


def transition(state: TokenState, outcome: ResolvedPageCredential | None) -> TokenState:
    """Apply a resolution outcome. Only the first success is ever recorded."""
    if isinstance(state, Resolved):
        return state
    if outcome is None:
        return state
    return Resolved(outcome)


def slug_from_link(link: Any, default: str) -> str:
    """``'https://www.facebook.com/wislajawornik/'`` → ``'wislajawornik'``."""
    if not isinstance(link, str) or not link:
        return default
    try:
        path = urlparse(link).path
    except ValueError:
        return default
    slug = path.replace("/", "")
    return slug or default


def select_page(pages: list[dict], configured_slug: str) -> dict:
    """Pick the managed page that best matches the configured slug.

    Steps:
      1. Only one page → that page
      2. Name contains the slug, link contains it, or id equals it
      3. Fuzzy match of the slug against page names
      4. First page
    """
    if len(pages) == 1:
        return pages[0]

    needle = configured_slug.lower()
    for page in pages:
        name = str(page.get("name") or "").lower()
        link = str(page.get("link") or "")
        if (needle and needle in name) or (configured_slug and configured_slug in link):
            return page
        if str(page.get("id") or "") == configured_slug:
            return page

    names = [str(page.get("name") or "").lower() for page in pages]
    match = process.extractOne(
        needle,
        names,
        scorer=fuzz.partial_ratio,
        score_cutoff=FUZZY_SCORE_CUTOFF,
    )
    if match is not None:
        _name, _score, idx = match
        return pages[idx]

    return pages[0]


class PageTokenResolver:
    """Owns the resolved-credential cell for the Facebook feed."""

    def __init__(self, fetcher: FetcherProtocol, settings: FacebookSettings) -> None:
        self._fetcher = fetcher
        self._settings = settings
        self._state: TokenState = Unresolved()
        # Survives even when the credential is unavailable, for embed fallbacks
        self.last_known_slug = settings.page_slug

    @property
    def configured(self) -> bool:
        return bool(self._settings.page_token)

    @property
    def credential(self) -> ResolvedPageCredential | None:
        if isinstance(self._state, Resolved):
            return self._state.credential
        return None

    async def resolve(self) -> ResolvedPageCredential | None:
        """Return the page credential, resolving it on first use.

        Returns ``None`` when no token is configured or resolution failed.
        Never raises.
        """
        if isinstance(self._state, Resolved):
            return self._state.credential

        if not self.configured:
            return None

        try:
            outcome = await self._resolve_from_accounts()
            if outcome is None:
                log.info("facebook_accounts_empty", fallback="page_token")
                outcome = await self._resolve_as_page_token()
        except Exception:
            log.warning("facebook_resolve_failed", exc_info=True)
            outcome = None

        self._state = transition(self._state, outcome)
        if outcome is not None:
            self.last_known_slug = outcome.slug
        return outcome

    async def _resolve_from_accounts(self) -> ResolvedPageCredential | None:
        """Resolve through the pages the token manages. ``None`` if there are none."""
        try:
            payload = await self._fetcher.get_json(
                f"{self._settings.graph_url}/me/accounts",
                params={
                    "fields": "id,name,access_token,link",
                    "access_token": self._settings.page_token,
                },
                timeout=self._settings.timeout_seconds,
            )
        except FeedError as exc:
            log.warning("facebook_accounts_failed", code=exc.code, message=exc.message)
            return None

        pages = payload.get("data") if isinstance(payload, dict) else None
        pages = [p for p in pages or [] if isinstance(p, dict) and p.get("id")]
        if not pages:
            return None

        log.info(
            "facebook_pages_found",
            count=len(pages),
            pages=[f"{p.get('name')} ({p.get('id')})" for p in pages],
        )
        page = select_page(pages, self._settings.page_slug)
        credential = ResolvedPageCredential(
            page_id=str(page["id"]),
            access_token=str(page.get("access_token") or self._settings.page_token),
            slug=slug_from_link(page.get("link"), self._settings.page_slug),
        )
        log.info(
            "facebook_page_resolved",
            page_name=page.get("name"),
            page_id=credential.page_id,
            slug=credential.slug,
            token_kind="user",
        )
        return credential

    async def _resolve_as_page_token(self) -> ResolvedPageCredential | None:
        """Treat the configured token as a page token and ask who it belongs to."""
        try:
            me = await self._fetcher.get_json(
                f"{self._settings.graph_url}/me",
                params={
                    "fields": "id,name,link",
                    "access_token": self._settings.page_token,
                },
                timeout=self._settings.timeout_seconds,
            )
        except FeedError as exc:
            log.warning("facebook_me_failed", code=exc.code, message=exc.message)
            return None

        if not isinstance(me, dict) or not me.get("id"):
            log.warning("facebook_me_malformed")
            return None

        credential = ResolvedPageCredential(
            page_id=str(me["id"]),
            access_token=self._settings.page_token,
            slug=slug_from_link(me.get("link"), self._settings.page_slug),
        )
        log.info(
            "facebook_page_resolved",
            page_name=me.get("name"),
            page_id=credential.page_id,
            slug=credential.slug,
            token_kind="page",
        )
        return credential
