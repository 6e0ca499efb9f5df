"""Cron-driven runner for background schedules."""

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any, NewType

from apscheduler import AsyncScheduler
from apscheduler.triggers.cron import CronTrigger
from dishka import AsyncContainer

from sdcat.domain.shared.schedule import Schedule
from sdcat.util.di.scope import Scope

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_FAILURES = 5


@dataclass
class ScheduleConfig:
    """Configuration for a scheduled task."""

    schedule_type: type[Schedule]
    cron: str
    id: str
    params: dict[str, Any] = field(default_factory=dict)


ScheduleConfigs = NewType("ScheduleConfigs", list[ScheduleConfig])


class ScheduleRunner:
    """Registers schedules as cron jobs and runs each in a fresh UOW scope.

    Usage:
        runner = ScheduleRunner(container, schedules)
        async with runner:
            await serve_forever()
    """

    def __init__(
        self,
        container: AsyncContainer | None = None,
        schedules: ScheduleConfigs | None = None,
    ) -> None:
        self._container = container
        self._schedules = schedules or ScheduleConfigs([])
        self._scheduler: AsyncScheduler | None = None
        self._exit_stack: AsyncExitStack | None = None
        self._schedule_failures: dict[str, int] = {}

    def set_container(self, container: AsyncContainer) -> None:
        self._container = container

    @property
    def schedules(self) -> ScheduleConfigs:
        return self._schedules

    def failures(self, schedule_id: str) -> int:
        """Consecutive failures of a schedule since its last success."""
        return self._schedule_failures.get(schedule_id, 0)

    async def start(self) -> None:
        if self._container is None:
            raise RuntimeError("Container not set. Call set_container() first.")

        self._exit_stack = AsyncExitStack()
        await self._exit_stack.__aenter__()

        self._scheduler = AsyncScheduler()
        await self._exit_stack.enter_async_context(self._scheduler)

        for config in self._schedules:
            await self._scheduler.add_schedule(
                self._run_schedule,
                CronTrigger.from_crontab(config.cron),
                id=config.id,
                kwargs={"config": config},
            )
            logger.debug(f"Registered schedule {config.id} (cron={config.cron})")

        await self._scheduler.start_in_background()
        logger.info(f"ScheduleRunner started with {len(self._schedules)} schedules")

    async def stop(self) -> None:
        if self._exit_stack:
            await self._exit_stack.__aexit__(None, None, None)
            self._exit_stack = None
            self._scheduler = None
        logger.info("ScheduleRunner stopped")

    async def _run_schedule(self, config: ScheduleConfig) -> None:
        """Cron task: run a scheduled task in UOW scope."""
        if self._container is None:
            return

        try:
            async with self._container(scope=Scope.UOW) as scope:
                schedule = await scope.get(config.schedule_type)
                await schedule.run(**config.params)

            self._schedule_failures.pop(config.id, None)
            logger.debug(f"Ran schedule {config.id}")

        except (asyncio.CancelledError, SystemExit, KeyboardInterrupt):
            raise
        except Exception as e:
            failures = self._schedule_failures.get(config.id, 0) + 1
            self._schedule_failures[config.id] = failures
            logger.error(f"Failed to run schedule {config.id} (failures: {failures}): {e}")
            if failures >= MAX_CONSECUTIVE_FAILURES:
                logger.critical(f"Schedule {config.id} has failed {failures} consecutive times")

    async def __aenter__(self) -> "ScheduleRunner":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.stop()
