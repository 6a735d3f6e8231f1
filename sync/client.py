"""REST table-store client used as the remote replica."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from utils.errors import TransportError

logger = logging.getLogger(__name__)

Row = dict[str, Any]


def eq_filter(column: str, value: Any) -> str:
    """Build an equality filter query, e.g. ``?deck_id=eq.deck-1``."""
    return f"?{column}=eq.{quote(str(value), safe='')}"


class RemoteStoreClient:
    """HTTP client for a row-oriented REST table API.

    Every call is an independent round-trip: there is no batching and no
    transaction across calls. Any failure is raised as ``TransportError``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float | None = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "apikey": api_key,
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        table: str,
        query: str = "",
        body: Row | None = None,
    ) -> Any:
        """Send one request to ``/rest/v1/{table}{query}`` and decode the reply."""
        path = f"/rest/v1/{table}{query}"
        try:
            response = await self._client.request(method, path, json=body)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e!r}")
            raise TransportError(f"{method} {path}: {e}") from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise TransportError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{method} {path}: response is not JSON") from e

    async def select(self, table: str, query: str = "") -> list[Row]:
        """Fetch the rows of ``table`` matching ``query``."""
        result = await self._request("GET", table, query)
        if not isinstance(result, list):
            raise TransportError(f"GET {table}: expected a list of rows")
        return result

    async def insert(self, table: str, row: Row) -> Row | None:
        """Insert one row and return the stored row as echoed by the server."""
        result = await self._request("POST", table, "", row)
        return _first(result)

    async def update(self, table: str, query: str, patch: Row) -> Row | None:
        """Apply ``patch`` to the rows matching ``query``."""
        result = await self._request("PATCH", table, query, patch)
        return _first(result)

    async def delete(self, table: str, query: str) -> None:
        """Delete the rows matching ``query``."""
        await self._request("DELETE", table, query)

    async def ping(self, table: str = "decks") -> bool:
        """Cheap connectivity check. Returns False instead of raising."""
        try:
            await self.select(table, "?limit=1")
        except TransportError as e:
            logger.warning(f"Remote store unreachable: {e}")
            return False
        logger.info("Remote store connection successful")
        return True


def _first(result: Any) -> Row | None:
    if isinstance(result, list):
        return result[0] if result else None
    return result


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"Remote request failed with status {response.status_code}"
