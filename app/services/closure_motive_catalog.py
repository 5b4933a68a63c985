"""Closure motive catalog - read-only list for the manual override selector."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.closure_motive import ClosureMotive
from app.schemas.closure_motive import ClosureMotiveResponse, DEFAULT_CLOSURE_MOTIVES

logger = logging.getLogger(__name__)


class ClosureMotiveCatalog:
    """Reads the closure_motives table, falling back to the built-in catalog."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_motives(self) -> list[ClosureMotiveResponse]:
        async with self.session_factory() as session:
            result = await session.execute(select(ClosureMotive).order_by(ClosureMotive.code))
            motives = result.scalars().all()

        if not motives:
            logger.debug("closure_motives table empty, using built-in catalog")
            return [
                ClosureMotiveResponse(code=int(code), label=label)
                for code, label in DEFAULT_CLOSURE_MOTIVES.items()
            ]
        return [ClosureMotiveResponse.model_validate(m) for m in motives]
