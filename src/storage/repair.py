import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database import GoalDoc, MatchDoc, TournamentDoc

logger = logging.getLogger(__name__)


@dataclass
class RepairReport:
    back_references_fixed: int = 0
    orphans_removed: int = 0

    def to_dict(self) -> dict:
        return {
            "backReferencesFixed": self.back_references_fixed,
            "orphansRemoved": self.orphans_removed,
        }


class IntegrityRepair:
    """Heals goal documents left inconsistent by older versions of the schema.

    Safe to run any number of times: a second pass over repaired data
    changes nothing.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self.sessions = sessions

    async def repair_missing_back_references(self) -> int:
        """Copy tournament_id from the parent match onto goals lacking it."""
        fixed = 0
        async with self.sessions() as session:
            async with session.begin():
                goals = await session.scalars(select(GoalDoc).where(GoalDoc.tournament_id.is_(None)))
                for goal in goals.all():
                    if not goal.match_id:
                        continue
                    match = await session.get(MatchDoc, goal.match_id)
                    if match is None or not match.tournament_id:
                        continue  # left for remove_orphans
                    goal.tournament_id = match.tournament_id
                    fixed += 1
        if fixed:
            logger.info("Restored tournament reference on %d goal(s)", fixed)
        return fixed

    async def remove_orphans(self) -> int:
        """Delete goals whose match or tournament no longer exists."""
        removed = 0
        async with self.sessions() as session:
            async with session.begin():
                goals = await session.scalars(select(GoalDoc))
                for goal in goals.all():
                    if await self._is_dangling(session, goal):
                        await session.delete(goal)
                        removed += 1
        if removed:
            logger.info("Removed %d orphaned goal(s)", removed)
        return removed

    @staticmethod
    async def _is_dangling(session: AsyncSession, goal: GoalDoc) -> bool:
        # An unset reference is not a dangling one
        if goal.match_id and await session.get(MatchDoc, goal.match_id) is None:
            return True
        if goal.tournament_id and await session.get(TournamentDoc, goal.tournament_id) is None:
            return True
        return False

    async def run(self) -> RepairReport:
        report = RepairReport()
        report.back_references_fixed = await self.repair_missing_back_references()
        report.orphans_removed = await self.remove_orphans()
        return report
