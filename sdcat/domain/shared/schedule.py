from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class Schedule(ABC):
    """Base class for scheduled tasks.

    Subclasses are dataclasses with DI-injected dependencies.
    The cron expression is provided via config, not on the class.

    Example:
        @dataclass
        class ExpirationSchedule(Schedule):
            store: SelfDescriptionStore

            async def run(self, **params: Any) -> None:
                await self.store.invalidate_self_descriptions()
    """

    @abstractmethod
    async def run(self, **params: Any) -> None:
        """Run the scheduled task with parameters from config."""
        ...
