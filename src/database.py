from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from asyncpg import Connection
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Integer, String,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from settings import SQL_ECHO


class Base(DeclarativeBase): pass


class FixedConnection(Connection):
    def _get_unique_id(self, prefix: str) -> str:
        return f'__asyncpg_{prefix}_{uuid4()}__'


def make_engine(url: str, echo: bool = SQL_ECHO) -> AsyncEngine:
    connect_args = {}
    if url.startswith("postgresql+asyncpg"):
        connect_args = {
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
            "connection_class": FixedConnection,
        }
    elif url.startswith("sqlite"):
        db_path = url.split(":///", 1)[-1]
        if db_path and db_path != ":memory:" and "://" not in db_path:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    return create_async_engine(url, echo=echo, future=True, connect_args=connect_args)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def utcnow():
    return datetime.now(timezone.utc)


JsonDoc = JSON().with_variant(JSONB(), "postgresql")

# Documents. The five collections are linked by plain string columns with no
# foreign keys: child documents may outlive or predate their parents.

class TournamentDoc(Base):
    __tablename__ = "tournaments"

    id            = Column(String, primary_key=True)
    name          = Column(String, nullable=True)
    date          = Column(String, nullable=True, index=True)
    status        = Column(String, nullable=False, default="setup")  # setup | active | completed
    rounds        = Column(Integer, nullable=False, default=1)
    team_size     = Column(Integer, nullable=False, default=2)
    has_half_time = Column(Boolean, nullable=False, default=False)
    updated_at    = Column(DateTime(timezone=True), nullable=True, default=utcnow)


class TeamDoc(Base):
    __tablename__ = "teams"

    id            = Column(String, primary_key=True)
    tournament_id = Column(String, nullable=True, index=True)
    position      = Column(Integer, nullable=False, default=0)
    name          = Column(String, nullable=True)
    stats         = Column(JsonDoc, nullable=True)


class PlayerDoc(Base):
    __tablename__ = "players"

    id            = Column(String, primary_key=True)
    team_id       = Column(String, nullable=True, index=True)
    position      = Column(Integer, nullable=False, default=0)
    name          = Column(String, nullable=True)
    alias         = Column(String, nullable=True)
    hat           = Column(String, nullable=True)  # first | second
    goals         = Column(Integer, nullable=False, default=0)


class MatchDoc(Base):
    __tablename__ = "matches"

    id            = Column(String, primary_key=True)
    tournament_id = Column(String, nullable=True, index=True)
    position      = Column(Integer, nullable=False, default=0)
    team1         = Column(JsonDoc, nullable=True)   # {"id", "name"}
    team2         = Column(JsonDoc, nullable=True)
    score1        = Column(Integer, nullable=False, default=0)
    score2        = Column(Integer, nullable=False, default=0)
    status        = Column(String, nullable=False, default="pending")  # pending | live | completed
    round         = Column(Integer, nullable=False, default=1)
    duration      = Column(Integer, nullable=False, default=0)
    comments      = Column(String, nullable=False, default="")


class GoalDoc(Base):
    __tablename__ = "goals"

    id            = Column(String, primary_key=True)
    match_id      = Column(String, nullable=True, index=True)
    tournament_id = Column(String, nullable=True, index=True)  # back-reference, absent on old documents
    position      = Column(Integer, nullable=False, default=0)
    player_id     = Column(String, nullable=True)
    player_name   = Column(String, nullable=True)
    team_id       = Column(String, nullable=True)
    minute        = Column(Integer, nullable=False)
