import pytest
from sqlalchemy import select

from database import GoalDoc
from storage.repair import IntegrityRepair
from tests.conftest import make_tournament

pytestmark = pytest.mark.anyio


async def _add_goals(store, *goals):
    async with store.sessions() as session:
        async with session.begin():
            session.add_all(goals)


async def _goals(store):
    async with store.sessions() as session:
        rows = await session.scalars(select(GoalDoc).order_by(GoalDoc.id))
        return {g.id: g.tournament_id for g in rows.all()}


def _goal(goal_id, match_id=None, tournament_id=None):
    return GoalDoc(
        id=goal_id, match_id=match_id, tournament_id=tournament_id,
        player_id="p", team_id="A", minute=1,
    )


@pytest.fixture
async def seeded(store):
    """One healthy tournament plus the kinds of goal documents older versions left behind."""
    await store.save(make_tournament())
    await _add_goals(
        store,
        _goal("legacy", match_id="t1_m1"),                           # missing back-reference
        _goal("lost_match", match_id="gone_m"),                      # parent match deleted
        _goal("lost_tournament", match_id="t1_m1", tournament_id="gone_t"),
        _goal("unlinked"),                                           # no references at all
    )
    return store


async def test_missing_back_reference_is_copied_from_match(seeded):
    repair = IntegrityRepair(seeded.sessions)

    fixed = await repair.repair_missing_back_references()

    assert fixed == 1
    goals = await _goals(seeded)
    assert goals["legacy"] == "t1"
    assert goals["lost_match"] is None


async def test_orphans_are_removed_only_for_dangling_references(seeded):
    repair = IntegrityRepair(seeded.sessions)

    removed = await repair.remove_orphans()

    assert removed == 2
    assert set(await _goals(seeded)) == {"t1_g1", "legacy", "unlinked"}


async def test_run_repairs_before_removing(seeded):
    report = await IntegrityRepair(seeded.sessions).run()

    assert report.back_references_fixed == 1
    assert report.orphans_removed == 2
    assert await _goals(seeded) == {"legacy": "t1", "t1_g1": "t1", "unlinked": None}
    assert report.to_dict() == {"backReferencesFixed": 1, "orphansRemoved": 2}


async def test_second_pass_changes_nothing(seeded):
    repair = IntegrityRepair(seeded.sessions)
    await repair.run()
    after_first = await _goals(seeded)

    report = await repair.run()

    assert report.back_references_fixed == 0
    assert report.orphans_removed == 0
    assert await _goals(seeded) == after_first


async def test_repaired_goal_still_listed_with_its_match(seeded):
    await IntegrityRepair(seeded.sessions).run()

    [listed] = await seeded.list_all()
    goal_ids = sorted(g.id for g in listed.matches[0].goals)
    assert goal_ids == ["legacy", "t1_g1"]


async def test_repaired_goals_are_removed_with_their_tournament(seeded):
    await IntegrityRepair(seeded.sessions).run()

    await seeded.delete("t1")

    assert await _goals(seeded) == {"unlinked": None}
