# app/services/sweeper.py
from typing import Callable, Dict, List, Optional
import asyncio
import logging

from ..store import MessageStore
from ..utils import now_ms
from .realtime import ConnectionManager, STATE_CHANGED

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Borra periódicamente los mensajes cuyo expires_at ya pasó.

    Los mensajes que nunca se han visto no se tocan. Cada barrido que elimina
    algo envía un único evento "state_changed" a cada participante afectado.
    Un barrido fallido se registra y se reintenta en el siguiente tick.
    """

    def __init__(
        self,
        store: MessageStore,
        channel: ConnectionManager,
        interval_seconds: float,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.channel = channel
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    async def sweep_once(self) -> int:
        removed = self.store.purge_expired(self.clock())
        if not removed:
            return 0

        affected: Dict[str, List[str]] = {}
        for doc in removed:
            for user_id in (doc["sender_id"], doc["receiver_id"]):
                affected.setdefault(user_id, []).append(str(doc["_id"]))
        logger.info(f"Sweep removed {len(removed)} expired messages")

        for user_id, message_ids in affected.items():
            await self.channel.send_personal_message(
                {"type": STATE_CHANGED, "removed": message_ids}, user_id
            )
        return len(removed)

    async def run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"Sweep failed, retrying next tick: {e}", exc_info=True)

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
            logger.info(f"Expiry sweeper started (every {self.interval_seconds}s)")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiry sweeper stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
