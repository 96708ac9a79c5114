import copy
import logging
import re
from typing import List

from football.models import Tournament

logger = logging.getLogger(__name__)


class InvalidTournamentError(ValueError):
    pass


def validate_tournament(tournament: Tournament) -> Tournament:
    """Check the aggregate before it is written anywhere.

    Returns a cleaned copy. Missing ids or names on the tournament, its teams
    or its matches raise InvalidTournamentError; goals without an id, player
    or team are dropped so the rest of the match can still be saved.
    """
    if not tournament.id or not tournament.name:
        raise InvalidTournamentError("Invalid tournament data: missing ID or name")

    for team in tournament.teams:
        if not team.id or not team.name:
            raise InvalidTournamentError(f"Invalid team data: {team.name or 'unnamed team'}")

    for match in tournament.matches:
        if not match.id or not match.team1.id or not match.team2.id:
            raise InvalidTournamentError(f"Invalid match data: {match.id or 'unnamed match'}")

    cleaned = copy.deepcopy(tournament)
    for match in cleaned.matches:
        valid = [g for g in match.goals if g.id and g.player_id and g.team_id]
        if len(valid) != len(match.goals):
            logger.warning(
                "Skipping %d invalid goal(s) in match %s",
                len(match.goals) - len(valid), match.id,
            )
            match.goals = valid
    return cleaned


def drop_invalid(tournaments: List[Tournament]) -> List[Tournament]:
    valid = []
    for t in tournaments:
        if not t.id or not t.name:
            logger.warning("Invalid tournament found and ignored: id=%r name=%r", t.id, t.name)
            continue
        valid.append(t)
    return valid


def check_integrity(tournaments: List[Tournament]) -> List[str]:
    issues = []
    for t in tournaments:
        if t.id.startswith("team_"):
            issues.append(f'Tournament "{t.name}" has invalid ID with \'team\' prefix: {t.id}')
        if not t.teams:
            issues.append(f'Tournament "{t.name}" has no teams')

        for match in t.matches:
            if re.fullmatch(r"\d+", match.id):
                issues.append(f'Match has generic ID "{match.id}" in tournament "{t.name}"')
            for goal in match.goals:
                if not goal.id or not goal.player_id or not goal.team_id:
                    issues.append(f"Invalid goal in match {match.id}: {goal.to_dict()}")

    if issues:
        logger.warning("Data integrity issues found: %d", len(issues))
    return issues
