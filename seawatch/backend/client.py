"""Async client for the hosted Postgres-as-a-service backend.

Tables are reached through the PostgREST surface at ``/rest/v1/{table}`` and
database functions through ``/rest/v1/rpc/{fn}``. Filters use PostgREST
operator syntax, built with the helpers at the bottom of this module::

    rows = await backend.select(
        "vessel_positions",
        [("mmsi", eq("366999999")), ("timestamp_utc", gte(cutoff))],
        order="timestamp_utc.desc",
        limit=100,
    )
"""

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from seawatch.core.exceptions import BackendError, BackendNotInitializedError

if TYPE_CHECKING:
    from seawatch.core.config import Settings

Filters = Sequence[tuple[str, str]]

_RETURN_REPRESENTATION = "return=representation"


class BackendClientManager:
    """Manages the HTTP client used to talk to the backend.

    The manager follows the same lifecycle as a database session manager:
    ``init`` once at startup, ``close`` at shutdown, and any use in between
    raises :class:`BackendNotInitializedError` if ``init`` was skipped.
    """

    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None

    def init(
        self,
        settings: "Settings",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the HTTP client.

        Args:
            settings: Application settings with backend URL, key and timeout
            transport: Optional transport override, used by tests
        """
        headers = {"Content-Type": "application/json"}
        if settings.BACKEND_API_KEY:
            headers["apikey"] = settings.BACKEND_API_KEY
            headers["Authorization"] = f"Bearer {settings.BACKEND_API_KEY}"

        self._client = httpx.AsyncClient(
            base_url=settings.backend_rest_url,
            headers=headers,
            timeout=settings.BACKEND_TIMEOUT_SECONDS,
            transport=transport,
        )
        logger.bind(backend_url=settings.backend_rest_url).info(
            "Backend client initialized"
        )

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client.

        Raises:
            BackendNotInitializedError: If the manager is not initialized
        """
        if not self._client:
            raise BackendNotInitializedError()
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        **kwargs: Any,
    ) -> Any:
        client = self.client
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.bind(operation=operation).error(
                f"Backend transport error: {type(e).__name__}: {e}"
            )
            raise BackendError(operation, str(e) or type(e).__name__) from e

        if response.is_error:
            message = _error_message(response)
            logger.bind(operation=operation, status_code=response.status_code).error(
                f"Backend returned an error: {message}"
            )
            raise BackendError(operation, message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.bind(operation=operation, status_code=response.status_code).error(
                "Backend returned a body that is not JSON"
            )
            raise BackendError(
                operation, "invalid JSON response", status_code=response.status_code
            ) from e

    async def rpc(self, function: str, params: dict[str, Any] | None = None) -> Any:
        """Call a database function.

        Args:
            function: Function name, e.g. ``get_system_health``
            params: JSON argument object

        Returns:
            The decoded JSON result, or None for void functions
        """
        return await self._request(
            "POST", f"/rpc/{function}", f"rpc:{function}", json=params or {}
        )

    async def select(
        self,
        table: str,
        filters: Filters = (),
        *,
        columns: str = "*",
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Read rows from a table."""
        params: list[tuple[str, str]] = [("select", columns), *filters]
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        rows = await self._request("GET", f"/{table}", f"select:{table}", params=params)
        return rows or []

    async def insert(
        self, table: str, rows: dict[str, Any] | list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Insert one or more rows and return them as stored."""
        result = await self._request(
            "POST",
            f"/{table}",
            f"insert:{table}",
            json=rows,
            headers={"Prefer": _RETURN_REPRESENTATION},
        )
        return result or []

    async def upsert(
        self,
        table: str,
        rows: list[dict[str, Any]],
        on_conflict: str,
    ) -> list[dict[str, Any]]:
        """Insert rows, merging into existing rows that share ``on_conflict``."""
        result = await self._request(
            "POST",
            f"/{table}",
            f"upsert:{table}",
            json=rows,
            params={"on_conflict": on_conflict},
            headers={
                "Prefer": f"resolution=merge-duplicates,{_RETURN_REPRESENTATION}"
            },
        )
        return result or []

    async def update(
        self, table: str, values: dict[str, Any], filters: Filters
    ) -> list[dict[str, Any]]:
        """Patch rows matching ``filters`` and return them."""
        if not filters:
            raise ValueError("update requires at least one filter")
        result = await self._request(
            "PATCH",
            f"/{table}",
            f"update:{table}",
            json=values,
            params=list(filters),
            headers={"Prefer": _RETURN_REPRESENTATION},
        )
        return result or []

    async def delete(self, table: str, filters: Filters) -> None:
        """Delete rows matching ``filters``."""
        if not filters:
            raise ValueError("delete requires at least one filter")
        await self._request("DELETE", f"/{table}", f"delete:{table}", params=list(filters))


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


def _format(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def eq(value: Any) -> str:
    return f"eq.{_format(value)}"


def gte(value: Any) -> str:
    return f"gte.{_format(value)}"


def lte(value: Any) -> str:
    return f"lte.{_format(value)}"


def lt(value: Any) -> str:
    return f"lt.{_format(value)}"


# Global instance of the backend client manager
backend = BackendClientManager()


def get_backend() -> BackendClientManager:
    """FastAPI dependency for the backend client manager."""
    return backend
