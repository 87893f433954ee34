from __future__ import annotations

import asyncio
import logging
import uuid

from ..common import PendingPrefetch

logger = logging.getLogger("ignore_bot")


class WorkersMixin:
    def _enqueue_prefetch(self, user_id: uuid.UUID) -> None:
        if user_id in self.prefetch_pending:
            return
        self.prefetch_pending.add(user_id)

        if self.prefetch_queue.full():
            try:
                dropped = self.prefetch_queue.get_nowait()
                self.prefetch_queue.task_done()
                self.prefetch_pending.discard(dropped.user_id)
                logger.warning("Prefetch queue full; dropped pending load for %s", dropped.user_id)
            except asyncio.QueueEmpty:
                pass

        try:
            self.prefetch_queue.put_nowait(PendingPrefetch(user_id=user_id))
        except asyncio.QueueFull:
            self.prefetch_pending.discard(user_id)
            logger.warning("Prefetch queue full; ignore list for %s will load lazily", user_id)

    async def _prefetch_worker(self) -> None:
        while True:
            item = await self.prefetch_queue.get()
            try:
                await self._prefetch_one(item.user_id)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Prefetch worker error for user=%s", item.user_id)
            finally:
                self.prefetch_pending.discard(item.user_id)
                self.prefetch_queue.task_done()

    async def _prefetch_one(self, user_id: uuid.UUID) -> None:
        # The user may have left while the item waited in the queue.
        if not self.lobby.is_online(user_id):
            return
        if not await self.ignore_service.load_on_connect(user_id):
            logger.warning("Could not warm ignore cache for %s; lookups will hit the store", user_id)
            return
        if not self.lobby.is_online(user_id):
            self.ignore_service.evict_on_disconnect(user_id)
