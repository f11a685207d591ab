"""
Mission Progress Simulator
==========================

One asyncio task per mission:

1. Sleep ``initial_delay`` seconds after the booking is confirmed.
2. Advance the mission one status.
3. If it is not terminal, sleep a fresh uniform delay in
   ``[min_delay, max_delay]`` and go back to 2.

A step that raises (e.g. a brief ``StorageError``) is logged and retried
after another delay.  A mission stops only when it is terminal or gone.

Tasks are fire-and-forget: nothing awaits them during normal operation.
They are tracked only so ``stop()`` can cancel the stragglers on shutdown.
Missions progress independently and may complete in any order.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from smart_taxis.domain.entities import InvalidStateTransition, Mission

logger = logging.getLogger(__name__)

AdvanceFn = Callable[[str], Awaitable[Optional[Mission]]]


class MissionSimulator:
    def __init__(
        self,
        advance: AdvanceFn,
        initial_delay: float = 1.0,
        min_delay: float = 2.0,
        max_delay: float = 5.0,
        rng: Optional[random.Random] = None,
    ):
        self.advance = advance
        self.initial_delay = initial_delay
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.rng = rng or random.Random()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # ── Public API ────────────────────────────────────────────────────

    def schedule(self, mission_id: str) -> None:
        task = asyncio.create_task(self._run(mission_id), name=f"mission-{mission_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Block until every scheduled mission has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("Mission simulator stopped")

    # ── Internals ─────────────────────────────────────────────────────

    def next_delay(self) -> float:
        return self.rng.uniform(self.min_delay, self.max_delay)

    async def _run(self, mission_id: str) -> None:
        await asyncio.sleep(self.initial_delay)
        while True:
            try:
                mission = await self.advance(mission_id)
            except InvalidStateTransition:
                logger.warning("Mission %s already finished", mission_id)
                return
            except Exception:
                # advance re-reads the stored mission; repeating a step is idempotent
                logger.exception("Mission %s: progress step failed, retrying", mission_id)
                await asyncio.sleep(self.next_delay())
                continue

            if mission is None:
                logger.warning("Mission %s vanished, stopping simulation", mission_id)
                return
            if mission.is_terminal:
                return
            await asyncio.sleep(self.next_delay())
