import copy
import random
from typing import List

from football.models import Goal, Match, Player, Team, TeamStats, Tournament, generate_id


def generate_teams(players: List[Player], team_size: int = 2) -> List[Team]:
    """Shuffle players into teams, pairing strong (first hat) with weak (second hat) seeds."""
    strong = [p for p in players if p.hat != "second"]
    weak = [p for p in players if p.hat == "second"]
    random.shuffle(strong)
    random.shuffle(weak)

    # Alternate hats so each team gets a mix; leftovers are dropped
    pool: List[Player] = []
    while strong or weak:
        if strong:
            pool.append(strong.pop())
        if weak:
            pool.append(weak.pop())

    teams = []
    for i in range(0, len(pool) - team_size + 1, team_size):
        members = [
            Player(id=generate_id(), name=p.name, alias=p.alias, hat=p.hat)
            for p in pool[i:i + team_size]
        ]
        teams.append(Team(id=generate_id(), name=f"Team {len(teams) + 1}", players=members))
    return teams


def generate_fixtures(tournament_id: str, teams: List[Team], rounds: int = 1) -> List[Match]:
    """Round robin: every pair of teams meets once per round."""
    fixtures = []
    if len(teams) < 2:
        return fixtures

    number = 1
    for round_num in range(1, rounds + 1):
        for i in range(len(teams)):
            for j in range(i + 1, len(teams)):
                fixtures.append(Match(
                    id=f"{tournament_id}_m{number}",
                    team1=copy.deepcopy(teams[i]),
                    team2=copy.deepcopy(teams[j]),
                    round=round_num,
                ))
                number += 1
    return fixtures


def start_tournament(tournament: Tournament) -> Tournament:
    tournament.matches = generate_fixtures(tournament.id, tournament.teams, tournament.rounds)
    tournament.status = "active"
    return tournament


def is_completed(tournament: Tournament) -> bool:
    return bool(tournament.matches) and all(m.status == "completed" for m in tournament.matches)


def effective_status(tournament: Tournament) -> str:
    if tournament.status == "active" and is_completed(tournament):
        return "completed"
    return tournament.status


def _apply_result(stats: TeamStats, scored: int, conceded: int):
    stats.played += 1
    stats.goals_for += scored
    stats.goals_against += conceded
    if scored > conceded:
        stats.won += 1
        stats.points += 3
    elif scored < conceded:
        stats.lost += 1
    else:
        stats.drawn += 1
        stats.points += 1


def calculate_league_table(tournament: Tournament) -> List[dict]:
    stats = {team.id: TeamStats() for team in tournament.teams}
    for match in tournament.matches:
        if match.status != "completed":
            continue
        if match.team1.id not in stats or match.team2.id not in stats:
            continue
        _apply_result(stats[match.team1.id], match.score1, match.score2)
        _apply_result(stats[match.team2.id], match.score2, match.score1)

    table = []
    for team in tournament.teams:
        row = {"id": team.id, "name": team.name}
        row.update(stats[team.id].to_dict())
        row["goalDifference"] = row["goalsFor"] - row["goalsAgainst"]
        table.append(row)
    table.sort(key=lambda r: (-r["points"], -r["goalDifference"], -r["goalsFor"]))
    for i, row in enumerate(table):
        row["rank"] = i + 1
    return table


def refresh_stats(tournament: Tournament) -> Tournament:
    """Recompute the cached team stats and player goal counters from the match list."""
    by_id = {row["id"]: row for row in calculate_league_table(tournament)}
    scored = {}
    for match in tournament.matches:
        for goal in match.goals:
            scored[goal.player_id] = scored.get(goal.player_id, 0) + 1

    for team in tournament.teams:
        team.stats = TeamStats.from_dict(by_id[team.id])
        for player in team.players:
            player.goals = scored.get(player.id, 0)
    return tournament


def record_goal(match: Match, player: Player, team_id: str, minute: int) -> Goal:
    goal = Goal(
        id=generate_id(),
        player_id=player.id,
        player_name=player.alias or player.name,
        team_id=team_id,
        minute=minute,
    )
    match.goals.append(goal)
    if team_id == match.team1.id:
        match.score1 += 1
    elif team_id == match.team2.id:
        match.score2 += 1
    return goal
