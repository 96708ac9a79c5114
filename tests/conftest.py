import pytest
from fastapi.testclient import TestClient

from database import make_engine
from football.models import Goal, Match, Player, Team, Tournament
from main import create_app
from storage.document_store import DocumentStore
from storage.local_cache import LocalCache


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'remote.db'}"


@pytest.fixture
async def store(database_url):
    """Document store backed by a fresh SQLite file per test."""
    engine = make_engine(database_url, echo=False)
    store = DocumentStore(engine)
    await store.ensure_schema()
    yield store
    await engine.dispose()


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / "cache")


@pytest.fixture(name="client")
def client_fixture(database_url, tmp_path):
    app = create_app(database_url=database_url, cache_dir=str(tmp_path / "cache"), repair_on_load=False)
    with TestClient(app) as client:
        yield client


def make_tournament(tid="t1", name="Cup", date="2024-05-01", goals=None) -> Tournament:
    """Two teams, one completed match 2-1 with a single tracked goal by default."""
    team_a = Team(id=f"{tid}_A", name="Alpha", players=[
        Player(id=f"{tid}_p1", name="Ann", hat="first"),
        Player(id=f"{tid}_p2", name="Bob", alias="Bobby", hat="second"),
    ])
    team_b = Team(id=f"{tid}_B", name="Beta", players=[
        Player(id=f"{tid}_p3", name="Cid", hat="first"),
        Player(id=f"{tid}_p4", name="Dee", hat="second"),
    ])
    if goals is None:
        goals = [Goal(id=f"{tid}_g1", player_id=f"{tid}_p1", player_name="Ann", team_id=team_a.id, minute=10)]
    match = Match(
        id=f"{tid}_m1", team1=team_a, team2=team_b,
        score1=2, score2=1, status="completed", round=1, duration=600,
        goals=goals, comments="close one",
    )
    return Tournament(
        id=tid, name=name, date=date, status="active",
        rounds=1, team_size=2, has_half_time=True,
        teams=[team_a, team_b], matches=[match],
    )
