"""Field diagram placement for match planning.

Each team on the diagram sits either at a symbolic starting position
(L / M / R, mirrored per alliance color) or at a free-form coordinate
dragged onto the field. Coordinates are percentages of the field surface
measured from its top-left corner.
"""

import logging
from typing import Iterable, Optional

from .constants import (
    ALLIANCE_COLORS,
    DEFAULT_FIELD_POSITION,
    FIELD_POSITIONS,
    TEAMS_PER_ALLIANCE,
)
from .models import FieldPosition

logger = logging.getLogger('reefscout.field')


def clamp_percent(value: float) -> float:
    """Clamp a coordinate into [0, 100]."""
    value = float(value)
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(100.0, value))


def position_for(alliance: str, code: Optional[str]) -> tuple[float, float]:
    """
    Look up the field coordinate for a symbolic starting position.

    Unknown codes, including 'N' (does not move), use the alliance's
    middle position.

    Raises:
        ValueError: If alliance is not 'blue' or 'red'
    """
    try:
        table = FIELD_POSITIONS[alliance]
    except KeyError:
        raise ValueError(f'Invalid alliance color: {alliance!r}') from None
    return table.get(code, table[DEFAULT_FIELD_POSITION])


class FieldBoard:
    """Teams placed on the field diagram, at most three per alliance color."""

    def __init__(self):
        self.alliances: dict[str, list[str]] = {color: [] for color in ALLIANCE_COLORS}
        self.positions: dict[str, FieldPosition] = {}

    def alliance_of(self, team_number: str) -> Optional[str]:
        team_number = str(team_number)
        for color, teams in self.alliances.items():
            if team_number in teams:
                return color
        return None

    def assign_team(
        self,
        team_number: str,
        alliance: str,
        starting_positions: Iterable[str] = (),
    ) -> Optional[str]:
        """
        Put a team on an alliance, moving it off the other color if needed.

        When the alliance already has three teams the earliest one is
        dropped from the diagram. The team starts at its first scouted
        starting position, or the middle if none was scouted.

        Returns:
            Team number that was dropped to make room, or None
        """
        if alliance not in self.alliances:
            raise ValueError(f'Invalid alliance color: {alliance!r}')

        team_number = str(team_number)
        current = self.alliance_of(team_number)
        if current == alliance:
            return None
        if current is not None:
            self.alliances[current].remove(team_number)

        dropped = None
        teams = self.alliances[alliance]
        if len(teams) >= TEAMS_PER_ALLIANCE:
            dropped = teams.pop(0)
            self.positions.pop(dropped, None)
            logger.debug(f'{alliance} alliance full; dropped team {dropped}')
        teams.append(team_number)

        codes = list(starting_positions)
        code = codes[0] if codes else DEFAULT_FIELD_POSITION
        self.positions[team_number] = FieldPosition(
            team_number=team_number,
            alliance=alliance,
            position=code,
            last_position=code,
        )
        return dropped

    def remove_team(self, team_number: str) -> bool:
        team_number = str(team_number)
        color = self.alliance_of(team_number)
        if color is None:
            return False
        self.alliances[color].remove(team_number)
        self.positions.pop(team_number, None)
        return True

    def set_starting_position(self, team_number: str, code: str) -> bool:
        """Choose a symbolic position; clears any custom coordinate."""
        team_number = str(team_number)
        placement = self.positions.get(team_number)
        if placement is None:
            return False
        placement.position = code
        placement.last_position = code
        placement.custom = None
        return True

    def set_custom_position(self, team_number: str, x: float, y: float) -> bool:
        """Place a team at a dragged coordinate; clears the symbolic position."""
        team_number = str(team_number)
        placement = self.positions.get(team_number)
        if placement is None:
            return False
        placement.custom = (clamp_percent(x), clamp_percent(y))
        placement.position = None
        return True

    def clear_custom_position(self, team_number: str) -> bool:
        """Drop a custom coordinate and return to the last symbolic position."""
        team_number = str(team_number)
        placement = self.positions.get(team_number)
        if placement is None:
            return False
        placement.custom = None
        placement.position = placement.last_position
        return True

    def coordinates(self, team_number: str) -> Optional[tuple[float, float]]:
        """Effective (x, y) for a team on the diagram, or None if absent."""
        team_number = str(team_number)
        placement = self.positions.get(team_number)
        if placement is None:
            return None
        if placement.custom is not None:
            return placement.custom
        return position_for(placement.alliance, placement.position)

    def layout(self) -> list[dict]:
        """Snapshot of every placed team, blue first, in assignment order."""
        snapshot = []
        for color in ALLIANCE_COLORS:
            for team in self.alliances[color]:
                placement = self.positions[team]
                x, y = self.coordinates(team)
                snapshot.append({
                    'teamNumber': team,
                    'alliance': color,
                    'position': placement.position,
                    'custom': placement.custom is not None,
                    'x': x,
                    'y': y,
                })
        return snapshot
