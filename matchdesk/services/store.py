"""Supabase-backed record store with async context manager support."""

import asyncio
from typing import Any, Callable, Optional

from supabase import create_client, Client
from supabase.client import ClientOptions

from matchdesk.utils.config import StoreConfig
from matchdesk.utils.errors import StoreError, StoreTimeout, StoreUnavailable
from matchdesk.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        StoreConfig.validate()

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(StoreConfig.SUPABASE_URL, StoreConfig.SUPABASE_SERVICE_ROLE_KEY, options)
        logger.info("Supabase client initialized", url=StoreConfig.SUPABASE_URL)

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self, client: Optional[Client] = None):
        self.client: Optional[Client] = client

    async def __aenter__(self) -> Client:
        if self.client is None:
            self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                type=exc_type.__name__
            )
        return False


def _error_message(exc: Exception) -> str:
    # postgrest APIError carries the server message separately
    message = getattr(exc, "message", None)
    return message if isinstance(message, str) and message else str(exc)


def _apply_filters(query, filters: Optional[dict]):
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            query = query.in_(column, list(value))
        elif value is None:
            query = query.is_(column, "null")
        else:
            query = query.eq(column, value)
    return query


class RecordStore:
    """
    Keyed record store over Supabase tables.

    Each call runs the blocking supabase-py request in a worker thread and is
    bounded by ``timeout_seconds``. Failures surface as ``StoreUnavailable``
    with the store's own message; timeouts as ``StoreTimeout``.
    """

    def __init__(self, client: Optional[Client] = None, timeout_seconds: Optional[float] = None):
        self._client = client
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else StoreConfig.STORE_TIMEOUT_SECONDS

    async def _run(self, operation: str, table: str, build: Callable[[Client], Any]) -> Any:
        async with SupabaseClient(self._client) as client:
            with log_timing(operation, logger=logger, table=table):
                try:
                    result = await asyncio.wait_for(
                        asyncio.to_thread(lambda: build(client).execute()),
                        timeout=self.timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    logger.error(
                        "Store call timed out",
                        operation=operation,
                        table=table,
                        timeout_seconds=self.timeout_seconds
                    )
                    raise StoreTimeout(f"{operation} {table}", self.timeout_seconds)
                except StoreError:
                    raise
                except Exception as e:
                    logger.error(
                        "Store call failed",
                        operation=operation,
                        table=table,
                        error=_error_message(e)
                    )
                    raise StoreUnavailable(_error_message(e)) from e
        return result.data if result is not None else None

    async def get(self, table: str, filters: dict) -> Optional[dict]:
        """First row matching ``filters``, or None."""
        rows = await self._run(
            "get",
            table,
            lambda client: _apply_filters(client.table(table).select("*"), filters).limit(1),
        )
        return rows[0] if rows else None

    async def upsert(self, table: str, record: dict, on_conflict: str) -> dict:
        """Insert or update ``record`` on the unique key ``on_conflict``; returns the stored row."""
        rows = await self._run(
            "upsert",
            table,
            lambda client: client.table(table).upsert(record, on_conflict=on_conflict),
        )
        if not rows:
            raise StoreUnavailable(f"Upsert into {table} returned no row")
        return rows[0]

    async def update(self, table: str, record_id: str, patch: dict) -> None:
        await self._run(
            "update",
            table,
            lambda client: client.table(table).update(patch).eq("id", record_id),
        )

    async def update_where(self, table: str, record_id: str, patch: dict, expected: dict) -> bool:
        """
        Conditional update: ``UPDATE table SET patch WHERE id = record_id AND expected``.

        Returns True when a row was changed, False when the condition no longer held.
        """
        rows = await self._run(
            "update_where",
            table,
            lambda client: _apply_filters(client.table(table).update(patch).eq("id", record_id), expected),
        )
        return bool(rows)

    async def list(
        self,
        table: str,
        filters: Optional[dict] = None,
        order: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        def build(client: Client):
            query = _apply_filters(client.table(table).select("*"), filters)
            if order:
                query = query.order(order, desc=descending)
            if limit:
                query = query.limit(limit)
            return query

        rows = await self._run("list", table, build)
        return rows or []
