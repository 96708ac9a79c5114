from fastapi import APIRouter, Body, Depends, HTTPException

from football.functions import (
    calculate_league_table, effective_status, generate_teams, record_goal, refresh_stats, start_tournament,
)
from football.models import Player, Tournament, new_tournament
from storage.coordinator import TournamentStorage
from storage.router import get_storage
from storage.validation import InvalidTournamentError

router = APIRouter(prefix="/api/tournaments", tags=["Tournaments"])

# -- Helpers -------------------------------------------------------------------

def _to_payload(t: Tournament) -> dict:
    data = t.to_dict()
    data["status"] = effective_status(t)
    return data


def _get_tournament(tid: str, storage: TournamentStorage) -> Tournament:
    t = storage.get(tid)
    if not t:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return t


async def _save(t: Tournament, storage: TournamentStorage):
    # Stored stats are a cache of the match results
    refresh_stats(t)
    try:
        await storage.save(t)
    except InvalidTournamentError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except Exception:
        raise HTTPException(status_code=503, detail=storage.last_error)


# Routes

@router.get("")
async def list_tournaments(storage: TournamentStorage = Depends(get_storage)):
    return [_to_payload(t) for t in storage.list()]


@router.post("", status_code=201)
async def create_tournament(payload: dict = Body(...), storage: TournamentStorage = Depends(get_storage)):
    fields = Tournament.from_dict(payload)
    t = new_tournament(
        fields.name, fields.date, max(fields.rounds, 1), max(fields.team_size, 1), fields.has_half_time,
    )
    await _save(t, storage)
    return _to_payload(_get_tournament(t.id, storage))


@router.get("/{tid}")
async def tournament_view(tid: str, storage: TournamentStorage = Depends(get_storage)):
    return _to_payload(_get_tournament(tid, storage))


@router.put("/{tid}")
async def save_tournament(
    tid: str,
    payload: dict = Body(...),
    storage: TournamentStorage = Depends(get_storage),
):
    t = Tournament.from_dict(payload)
    if t.id != tid:
        raise HTTPException(status_code=422, detail="Tournament id does not match the URL")
    await _save(t, storage)
    return _to_payload(_get_tournament(tid, storage))


@router.delete("/{tid}", status_code=204)
async def delete_tournament(tid: str, storage: TournamentStorage = Depends(get_storage)):
    try:
        await storage.delete(tid)
    except Exception:
        raise HTTPException(status_code=503, detail=storage.last_error)


@router.post("/{tid}/teams")
async def draw_teams(
    tid: str,
    payload: dict = Body(...),
    storage: TournamentStorage = Depends(get_storage),
):
    """Draw teams from a player list. Only allowed before fixtures exist."""
    t = _get_tournament(tid, storage)
    if t.status != "setup":
        raise HTTPException(status_code=409, detail="Teams can only be drawn during setup")

    players = [Player.from_dict(p) for p in payload.get("players") or [] if isinstance(p, dict)]
    players = [p for p in players if p.name]
    teams = generate_teams(players, t.team_size)
    if len(teams) < 2:
        raise HTTPException(status_code=422, detail="Not enough players for two teams")
    t.teams = teams
    await _save(t, storage)
    return _to_payload(_get_tournament(tid, storage))


@router.post("/{tid}/fixtures")
async def generate_fixtures(tid: str, storage: TournamentStorage = Depends(get_storage)):
    t = _get_tournament(tid, storage)
    if len(t.teams) < 2:
        raise HTTPException(status_code=422, detail="At least two teams are needed")
    await _save(start_tournament(t), storage)
    return _to_payload(_get_tournament(tid, storage))


@router.post("/{tid}/matches/{mid}/goals", status_code=201)
async def add_goal(
    tid: str,
    mid: str,
    payload: dict = Body(...),
    storage: TournamentStorage = Depends(get_storage),
):
    t = _get_tournament(tid, storage)
    match = next((m for m in t.matches if m.id == mid), None)
    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")
    if match.status == "completed":
        raise HTTPException(status_code=409, detail="Match is already completed")

    scorer = None
    for team in (match.team1, match.team2):
        scorer = next((p for p in team.players if p.id == payload.get("playerId")), None)
        if scorer:
            break
    if scorer is None:
        raise HTTPException(status_code=422, detail="Player is not in this match")

    try:
        minute = int(payload.get("minute"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=422, detail="Minute must be a number")

    record_goal(match, scorer, team.id, minute)
    if match.status == "pending":
        match.status = "live"
    await _save(t, storage)
    return _to_payload(_get_tournament(tid, storage))


@router.get("/{tid}/standings")
async def standings(tid: str, storage: TournamentStorage = Depends(get_storage)):
    return calculate_league_table(_get_tournament(tid, storage))
