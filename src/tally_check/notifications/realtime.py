"""Background subscription to Supabase realtime row changes.

The SDK's realtime client is asyncio based; it runs on its own event loop in a
daemon thread so the Flask workers stay synchronous.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Optional

from supabase import acreate_client

from ..cache import QueryCache
from ..database.connection import SupabaseConfig
from .events import INVALIDATIONS, SUBSCRIPTIONS, ChangeEvent, ChangeEventMapper
from .feed import NotificationFeed

logger = logging.getLogger(__name__)


class ChangeHandler:
    """Apply one change payload: invalidate cached reads, then record a notification."""

    def __init__(self, feed: NotificationFeed, cache: QueryCache, mapper: Optional[ChangeEventMapper] = None):
        self._feed = feed
        self._cache = cache
        self._mapper = mapper or ChangeEventMapper()

    def __call__(self, payload: dict[str, Any]) -> None:
        change = ChangeEvent.from_payload(payload)
        for prefix in INVALIDATIONS.get(change.table, ()):
            self._cache.invalidate(prefix)
        notification = self._mapper.map(change.table, change.event, change.new, change.old)
        if notification:
            logger.info("Realtime %s %s -> %s", change.table, change.event, notification.title)
            self._feed.push(notification)


class RealtimeListener:
    def __init__(self, config: SupabaseConfig, handler: ChangeHandler):
        self._config = config
        self._handler = handler
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._client: Optional[Any] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name="supabase-realtime", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        loop = self._loop
        if loop is not None:
            loop.call_soon_threadsafe(loop.stop)
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        self._loop = loop
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._subscribe())
            loop.run_forever()
        except Exception:
            logger.exception("Realtime listener stopped")
        finally:
            try:
                loop.run_until_complete(self._shutdown())
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                loop.close()
                self._loop = None

    async def _subscribe(self) -> None:
        self._client = await acreate_client(self._config.url, self._config.anon_key)
        for table, event in SUBSCRIPTIONS:
            channel = self._client.channel(f"{table}-notifications")
            channel.on_postgres_changes(event, schema="public", table=table, callback=self._handler)
            await channel.subscribe()
            logger.info("Subscribed to %s %s changes", table, event)

    async def _shutdown(self) -> None:
        """Leave the channels, then cancel whatever the SDK still has scheduled."""

        if self._client is not None:
            try:
                await self._client.remove_all_channels()
            except Exception:
                logger.exception("Failed to leave realtime channels")
            self._client = None
        pending = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if pending:
            logger.debug("Cancelled %d realtime tasks", len(pending))
