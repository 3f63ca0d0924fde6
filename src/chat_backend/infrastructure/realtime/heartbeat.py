"""Liveness sweep over the connection registry."""
from __future__ import annotations

import asyncio
import logging

from chat_backend.domain.value_objects.enums import ConnectionState
from chat_backend.infrastructure.realtime.registry import ConnectionRegistry, Session

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_PING_TIMEOUT_SECONDS = 10.0


class HeartbeatMonitor:
    """Pings every session each interval and reaps the ones that stayed silent.

    A session whose pong has not arrived by the next sweep is aborted, so a
    peer that goes quiet is dropped on the second sweep after its last pong.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        ping_timeout: float = DEFAULT_PING_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._interval = interval
        self._ping_timeout = min(ping_timeout, interval)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="ws-heartbeat")
        logger.info("Heartbeat monitor started (interval=%.1fs)", self._interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Heartbeat monitor stopped")

    async def sweep(self) -> int:
        """Run one liveness pass. Returns the number of sessions terminated.

        Pings go out concurrently and each is bounded by the ping timeout,
        so a peer that stopped reading cannot stall the pass.
        """
        terminated = 0
        pings = []
        for session in self._registry.sessions():
            if session not in self._registry:
                continue
            if not session.is_alive:
                self._terminate(session)
                terminated += 1
                continue
            session.is_alive = False
            pings.append(self._ping(session))
        if pings:
            await asyncio.gather(*pings)
        if terminated:
            logger.info("Heartbeat terminated %d unresponsive session(s)", terminated)
        return terminated

    async def _ping(self, session: Session) -> None:
        # Not retried: the next sweep or the read loop reaps it.
        try:
            async with asyncio.timeout(self._ping_timeout):
                await session.transport.ping(session.mark_alive)
        except TimeoutError:
            logger.debug("Ping to session %s timed out", session.id)
        except Exception:
            logger.debug("Ping failed for session %s", session.id, exc_info=True)

    def _terminate(self, session: Session) -> None:
        session.state = ConnectionState.CLOSING
        try:
            session.transport.abort()
        except Exception:
            logger.warning("Abort failed for session %s", session.id, exc_info=True)
        self._registry.unregister(session)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Heartbeat sweep error")
