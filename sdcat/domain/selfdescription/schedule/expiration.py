import logging
from dataclasses import dataclass
from typing import Any

from sdcat.domain.selfdescription.service.store import SelfDescriptionStore
from sdcat.domain.shared.schedule import Schedule

logger = logging.getLogger(__name__)


@dataclass
class ExpirationSchedule(Schedule):
    """Periodically moves expired self-descriptions to EOL."""

    store: SelfDescriptionStore

    async def run(self, **params: Any) -> None:
        examined = await self.store.invalidate_self_descriptions()
        logger.info(f"Expiration sweep finished, {examined} self-descriptions examined")
