import logging
from typing import Iterable, List, Set

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from database import (
    GoalDoc, MatchDoc, PlayerDoc, TeamDoc, TournamentDoc,
    init_models, make_sessionmaker, utcnow,
)
from football.models import Goal, Match, Player, Team, TeamStats, Tournament

logger = logging.getLogger(__name__)


# -- Documents -> aggregate ----------------------------------------------------

def _doc_to_player(row: PlayerDoc) -> Player:
    return Player(
        id=row.id, name=row.name or "", alias=row.alias or "",
        goals=row.goals or 0, hat=row.hat or "first",
    )


def _doc_to_goal(row: GoalDoc) -> Goal:
    return Goal(
        id=row.id, player_id=row.player_id or "", team_id=row.team_id or "",
        minute=row.minute, player_name=row.player_name or "",
    )


def _resolve_team(ref, teams: List[Team]) -> Team:
    stub = Team.from_dict(ref)
    return next((t for t in teams if t.id == stub.id), stub)


# -- Aggregate -> documents ----------------------------------------------------

def _tournament_to_docs(t: Tournament) -> list:
    docs = [TournamentDoc(
        id=t.id, name=t.name, date=t.date, status=t.status,
        rounds=t.rounds, team_size=t.team_size, has_half_time=t.has_half_time,
        updated_at=utcnow(),
    )]
    for ti, team in enumerate(t.teams):
        docs.append(TeamDoc(
            id=team.id, tournament_id=t.id, position=ti,
            name=team.name, stats=team.stats.to_dict(),
        ))
        for pi, p in enumerate(team.players):
            docs.append(PlayerDoc(
                id=p.id, team_id=team.id, position=pi,
                name=p.name, alias=p.alias, hat=p.hat, goals=p.goals,
            ))
    for mi, m in enumerate(t.matches):
        docs.append(MatchDoc(
            id=m.id, tournament_id=t.id, position=mi,
            team1=m.team1.ref(), team2=m.team2.ref(),
            score1=m.score1, score2=m.score2, status=m.status,
            round=m.round, duration=m.duration, comments=m.comments or "",
        ))
        for gi, g in enumerate(m.goals):
            docs.append(GoalDoc(
                id=g.id, match_id=m.id, tournament_id=t.id, position=gi,
                player_id=g.player_id, player_name=g.player_name,
                team_id=g.team_id, minute=g.minute,
            ))
    return docs


class DocumentStore:
    """Tournament aggregates stored as five flat collections.

    tournaments, teams (tournament_id), players (team_id), matches
    (tournament_id) and goals (match_id, tournament_id) reference each other
    by id only. Every write or delete of an aggregate runs in one transaction.
    Errors from the database propagate unchanged.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.sessions = make_sessionmaker(engine)

    async def ensure_schema(self):
        await init_models(self.engine)

    async def list_all(self) -> List[Tournament]:
        async with self.sessions() as session:
            rows = await session.scalars(
                select(TournamentDoc).order_by(TournamentDoc.date.desc())
            )
            return [await self._load_aggregate(session, row) for row in rows.all()]

    async def _load_aggregate(self, session: AsyncSession, t_row: TournamentDoc) -> Tournament:
        tournament = Tournament(
            id=t_row.id, name=t_row.name or "", date=t_row.date or "",
            status=t_row.status or "setup", rounds=t_row.rounds or 1,
            team_size=t_row.team_size or 2, has_half_time=bool(t_row.has_half_time),
        )

        team_rows = await session.scalars(
            select(TeamDoc).where(TeamDoc.tournament_id == t_row.id).order_by(TeamDoc.position)
        )
        for team_row in team_rows.all():
            players = await session.scalars(
                select(PlayerDoc).where(PlayerDoc.team_id == team_row.id).order_by(PlayerDoc.position)
            )
            tournament.teams.append(Team(
                id=team_row.id, name=team_row.name or "",
                players=[_doc_to_player(p) for p in players.all()],
                stats=TeamStats.from_dict(team_row.stats),
            ))

        match_rows = await session.scalars(
            select(MatchDoc).where(MatchDoc.tournament_id == t_row.id).order_by(MatchDoc.position)
        )
        for m in match_rows.all():
            goals = await session.scalars(
                select(GoalDoc).where(GoalDoc.match_id == m.id).order_by(GoalDoc.position)
            )
            tournament.matches.append(Match(
                id=m.id,
                team1=_resolve_team(m.team1, tournament.teams),
                team2=_resolve_team(m.team2, tournament.teams),
                round=m.round or 1, score1=m.score1 or 0, score2=m.score2 or 0,
                status=m.status or "pending", duration=m.duration or 0,
                goals=[_doc_to_goal(g) for g in goals.all()],
                comments=m.comments or "",
            ))
        return tournament

    async def save(self, tournament: Tournament):
        async with self.sessions() as session:
            async with session.begin():
                await self._prune_stale(session, tournament)
                for doc in _tournament_to_docs(tournament):
                    await session.merge(doc)
        logger.info("Tournament %s saved to the remote store", tournament.id)

    async def _prune_stale(self, session: AsyncSession, t: Tournament):
        """Delete children of `t` that are no longer part of the aggregate."""
        team_ids = {team.id for team in t.teams}
        player_ids = {p.id for team in t.teams for p in team.players}
        match_ids = {m.id for m in t.matches}
        goal_ids = {g.id for m in t.matches for g in m.goals}

        old_teams = set(await _ids(session, select(TeamDoc.id).where(TeamDoc.tournament_id == t.id)))
        old_matches = set(await _ids(session, select(MatchDoc.id).where(MatchDoc.tournament_id == t.id)))
        old_players = set(await _ids(session, select(PlayerDoc.id).where(
            PlayerDoc.team_id.in_(list(old_teams | team_ids))
        )))
        old_goals = set(await _ids(session, select(GoalDoc.id).where(or_(
            GoalDoc.tournament_id == t.id,
            GoalDoc.match_id.in_(list(old_matches | match_ids)),
        ))))

        await _delete_ids(session, GoalDoc, old_goals - goal_ids)
        await _delete_ids(session, MatchDoc, old_matches - match_ids)
        await _delete_ids(session, PlayerDoc, old_players - player_ids)
        await _delete_ids(session, TeamDoc, old_teams - team_ids)

    async def delete(self, tournament_id: str):
        async with self.sessions() as session:
            async with session.begin():
                match_ids = await _ids(session, select(MatchDoc.id).where(MatchDoc.tournament_id == tournament_id))
                team_ids = await _ids(session, select(TeamDoc.id).where(TeamDoc.tournament_id == tournament_id))

                goal_ids = set(await _ids(session, select(GoalDoc.id).where(GoalDoc.tournament_id == tournament_id)))
                # Goals written before the tournament_id back-reference existed
                for match_id in match_ids:
                    goal_ids.update(await _ids(session, select(GoalDoc.id).where(GoalDoc.match_id == match_id)))

                player_ids: Set[str] = set()
                for team_id in team_ids:
                    player_ids.update(await _ids(session, select(PlayerDoc.id).where(PlayerDoc.team_id == team_id)))

                await _delete_ids(session, GoalDoc, goal_ids)
                await _delete_ids(session, MatchDoc, match_ids)
                await _delete_ids(session, PlayerDoc, player_ids)
                await _delete_ids(session, TeamDoc, team_ids)
                await _delete_ids(session, TournamentDoc, [tournament_id])
        logger.info("Tournament %s deleted from the remote store", tournament_id)


async def _ids(session: AsyncSession, stmt) -> List[str]:
    return list((await session.scalars(stmt)).all())


async def _delete_ids(session: AsyncSession, model, ids: Iterable[str]):
    ids = list(ids)
    if ids:
        await session.execute(delete(model).where(model.id.in_(ids)))
