"""Validation functions for alliance tables and ranking tables."""

from collections import Counter
from typing import Iterable, Optional

from .constants import ROLES
from .models import AllianceSlot, RankingRow


def validate_alliance_table(
    slots: Iterable[AllianceSlot],
    known_teams: Optional[set[str]] = None,
) -> list[str]:
    """
    Validate an alliance table supplied from outside the engine.

    Checks:
    - No team occupies more than one slot
    - Every team is in known_teams (when given)

    Args:
        slots: Alliance table to check
        known_teams: Optional set of team numbers attending the event

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []
    slots = list(slots)

    placements = Counter(team for slot in slots for team in slot.teams())
    duplicates = sorted(team for team, count in placements.items() if count > 1)
    if duplicates:
        errors.append(f'Teams placed more than once: {", ".join(duplicates)}')

    if known_teams is not None:
        for slot in slots:
            for role in ROLES:
                team = slot.get(role)
                if team and team not in known_teams:
                    errors.append(
                        f'Alliance {slot.alliance_number} {role} team {team} is not at this event'
                    )

    return errors


def validate_rankings(rows: Iterable[RankingRow]) -> list[str]:
    """
    Sanity-check a normalized ranking table.

    Checks:
    - Each team appears once
    - Ranks are positive and in ascending order

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []
    rows = list(rows)

    counts = Counter(row.team_number for row in rows)
    duplicates = sorted(team for team, count in counts.items() if count > 1)
    if duplicates:
        errors.append(f'Teams ranked more than once: {", ".join(map(str, duplicates))}')

    for row in rows:
        if row.rank < 1:
            errors.append(f'Team {row.team_number} has invalid rank {row.rank}')

    ranks = [row.rank for row in rows]
    if ranks != sorted(ranks):
        errors.append('Rows are not sorted by rank')

    return errors
