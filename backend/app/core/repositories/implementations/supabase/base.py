from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from app.core.exceptions import StorageError

if TYPE_CHECKING:
    from collections.abc import Callable

    from supabase import Client


class SupabaseRepository:
    """Shared plumbing for PostgREST-backed repositories.

    supabase-py is synchronous; every call runs in a worker thread so the event
    loop is never blocked. Client errors surface as `StorageError`.
    """

    def __init__(self, client: Client) -> None:
        self._client: Client = client

    @staticmethod
    async def _run(func: Callable[[], Any]) -> Any:
        try:
            return await asyncio.to_thread(func)
        except StorageError:
            raise
        except Exception as err:
            raise StorageError(str(err)) from err

    async def _rpc(self, name: str, params: dict[str, Any]) -> Any:
        resp = await self._run(lambda: self._client.rpc(name, params=params).execute())
        return resp.data

    @staticmethod
    def _first(data: Any) -> dict[str, Any] | None:
        if isinstance(data, list):
            return data[0] if data else None
        if isinstance(data, dict):
            return data
        return None
