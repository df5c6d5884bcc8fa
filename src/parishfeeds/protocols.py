"""Protocol interfaces for swappable components.

Feeds and route handlers reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory fakes instead of SQLite or the network
- Another settings backend to be swapped in without changing handler code
"""

from __future__ import annotations

from typing import Any, Protocol


class FetcherProtocol(Protocol):
    """Interface for outbound HTTP used by the feeds."""

    async def get_text(
        self,
        url: str,
        *,
        params: dict[str, str] | None = None,
        timeout: float = ...,
    ) -> str: ...

    async def get_json(
        self,
        url: str,
        *,
        params: dict[str, str] | None = None,
        timeout: float = ...,
    ) -> Any: ...

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        timeout: float = ...,
    ) -> Any: ...


class SettingsStoreProtocol(Protocol):
    """Interface for the admin key/value settings store."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def get_all_by_prefix(self, prefix: str) -> list[tuple[str, str]]: ...
