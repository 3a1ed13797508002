from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from scout.registry.client import RegistryClient

log = logging.getLogger(__name__)


class RegistrationLifecycle:
    """Owns the registration and heartbeat timers of one service instance.

    start(): one immediate registration, then three independent tasks:
    periodic re-registration, a single delayed first heartbeat and the
    periodic heartbeat. The tasks never wait on each other, so a
    registration and a heartbeat may overlap.

    stop(): cancels every task. No deregistration call is made.
    """

    def __init__(
        self,
        client: RegistryClient,
        registration_interval: float = 30.0,
        heartbeat_interval: float = 30.0,
        initial_heartbeat_delay: float = 2.0,
    ) -> None:
        self.client = client
        self.registration_interval = registration_interval
        self.heartbeat_interval = heartbeat_interval
        self.initial_heartbeat_delay = initial_heartbeat_delay
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return

        await self._fire(self.client.register)

        self._tasks = [
            asyncio.create_task(
                self._every(self.registration_interval, self.client.register), name="registry-register"
            ),
            asyncio.create_task(
                self._after(self.initial_heartbeat_delay, self.client.send_heartbeat), name="registry-heartbeat-first"
            ),
            asyncio.create_task(
                self._every(self.heartbeat_interval, self.client.send_heartbeat), name="registry-heartbeat"
            ),
        ]
        log.info(
            "registry_lifecycle_started",
            extra={
                "registry_url": self.client.registry_url,
                "registration_interval_s": self.registration_interval,
                "heartbeat_interval_s": self.heartbeat_interval,
            },
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        if not tasks:
            return
        for task in tasks:
            task.cancel()
        # only waits for the cancellation itself to land
        await asyncio.gather(*tasks, return_exceptions=True)
        log.info("registry_lifecycle_stopped")

    @classmethod
    async def _every(cls, interval: float, call: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(interval)
            await cls._fire(call)

    @classmethod
    async def _after(cls, delay: float, call: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)
        await cls._fire(call)

    @staticmethod
    async def _fire(call: Callable[[], Awaitable[None]]) -> None:
        # a failing tick must not end its timer
        try:
            await call()
        except Exception:
            log.exception("registry_tick_failed", extra={"call": getattr(call, "__name__", repr(call))})
