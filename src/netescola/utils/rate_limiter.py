"""Concurrency gate that spaces out outbound AI requests."""

import asyncio
import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class ConcurrencyGate:
    """Caps in-flight requests and enforces a minimum interval between starts.

    ``acquire`` polls cooperatively until a slot is free and ``min_interval``
    seconds have passed since the last request began. ``release`` never lets
    the in-flight counter go below zero.
    """

    def __init__(
        self,
        max_concurrent: int = 1,
        min_interval: float = 3.0,
        poll_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_concurrent = max_concurrent
        self.min_interval = min_interval
        self.poll_interval = poll_interval
        self._clock = clock
        self._in_flight = 0
        self._last_start: float = float("-inf")

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def _can_start(self) -> bool:
        if self._in_flight >= self.max_concurrent:
            return False
        return self._clock() - self._last_start >= self.min_interval

    async def acquire(self) -> None:
        waited = False
        while not self._can_start():
            if not waited:
                logger.debug(
                    f"Waiting for AI slot ({self._in_flight} in flight, "
                    f"min interval {self.min_interval}s)"
                )
                waited = True
            await asyncio.sleep(self.poll_interval)

        self._in_flight += 1
        self._last_start = self._clock()

    def release(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)

    async def __aenter__(self) -> "ConcurrencyGate":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
