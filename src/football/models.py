from dataclasses import dataclass, field
from typing import List, Optional
import time
import uuid


def generate_id():
    return str(uuid.uuid4())[:8]


def timestamp_id():
    return str(int(time.time() * 1000))


def _int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _bool(value, default=False):
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return default


@dataclass
class TeamStats:
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0

    def to_dict(self) -> dict:
        return {
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goalsFor": self.goals_for,
            "goalsAgainst": self.goals_against,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TeamStats":
        data = data if isinstance(data, dict) else {}
        return cls(
            played=_int(data.get("played")),
            won=_int(data.get("won")),
            drawn=_int(data.get("drawn")),
            lost=_int(data.get("lost")),
            goals_for=_int(data.get("goalsFor")),
            goals_against=_int(data.get("goalsAgainst")),
            points=_int(data.get("points")),
        )


@dataclass
class Player:
    id: str
    name: str
    alias: str = ""
    goals: int = 0
    hat: str = "first"  # first = strong seed, second = weak seed

    def __post_init__(self):
        if not self.alias:
            self.alias = self.name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "alias": self.alias,
            "goals": self.goals,
            "hat": self.hat,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Player":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            alias=data.get("alias") or "",
            goals=_int(data.get("goals")),
            hat=data.get("hat") or "first",
        )


@dataclass
class Team:
    id: str
    name: str
    players: List[Player] = field(default_factory=list)
    stats: TeamStats = field(default_factory=TeamStats)

    def ref(self) -> dict:
        return {"id": self.id, "name": self.name}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "players": [p.to_dict() for p in self.players],
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Team":
        data = data if isinstance(data, dict) else {}
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            players=[Player.from_dict(p) for p in data.get("players") or [] if isinstance(p, dict)],
            stats=TeamStats.from_dict(data.get("stats")),
        )


@dataclass
class Goal:
    id: str
    player_id: str
    team_id: str
    minute: int
    player_name: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "playerId": self.player_id,
            "playerName": self.player_name,
            "teamId": self.team_id,
            "minute": self.minute,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Goal":
        return cls(
            id=data.get("id") or "",
            player_id=data.get("playerId") or "",
            team_id=data.get("teamId") or "",
            minute=_int(data.get("minute")),
            player_name=data.get("playerName") or "",
        )


@dataclass
class Match:
    id: str
    team1: Team   # frozen copy taken when fixtures are generated
    team2: Team
    round: int = 1
    score1: int = 0
    score2: int = 0
    status: str = "pending"  # pending, live, completed
    duration: int = 0        # elapsed seconds
    goals: List[Goal] = field(default_factory=list)
    comments: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "team1": self.team1.to_dict(),
            "team2": self.team2.to_dict(),
            "score1": self.score1,
            "score2": self.score2,
            "status": self.status,
            "round": self.round,
            "duration": self.duration,
            "goals": [g.to_dict() for g in self.goals],
            "comments": self.comments,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Match":
        return cls(
            id=data.get("id") or "",
            team1=Team.from_dict(data.get("team1")),
            team2=Team.from_dict(data.get("team2")),
            round=_int(data.get("round"), 1),
            score1=_int(data.get("score1")),
            score2=_int(data.get("score2")),
            status=data.get("status") or "pending",
            duration=_int(data.get("duration")),
            goals=[Goal.from_dict(g) for g in data.get("goals") or [] if isinstance(g, dict)],
            comments=data.get("comments") or "",
        )


@dataclass
class Tournament:
    id: str
    name: str
    date: str = ""
    status: str = "setup"  # setup, active, completed
    rounds: int = 1
    team_size: int = 2
    has_half_time: bool = False
    teams: List[Team] = field(default_factory=list)
    matches: List[Match] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date,
            "status": self.status,
            "rounds": self.rounds,
            "teamSize": self.team_size,
            "hasHalfTime": self.has_half_time,
            "teams": [t.to_dict() for t in self.teams],
            "fixtures": [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Tournament":
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            date=data.get("date") or "",
            status=data.get("status") or "setup",
            rounds=_int(data.get("rounds"), 1),
            team_size=_int(data.get("teamSize"), 2),
            has_half_time=_bool(data.get("hasHalfTime")),
            teams=[Team.from_dict(t) for t in data.get("teams") or [] if isinstance(t, dict)],
            matches=[Match.from_dict(m) for m in data.get("fixtures") or [] if isinstance(m, dict)],
        )


def new_tournament(name: str = "", date: str = "", rounds: int = 1,
                   team_size: int = 2, has_half_time: bool = False) -> Tournament:
    return Tournament(
        id=timestamp_id(), name=name, date=date,
        rounds=rounds, team_size=team_size, has_half_time=has_half_time,
    )
