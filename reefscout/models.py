"""Data models for the reefscout core."""

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Capabilities:
    """Capability flags derived from a team's scouted values."""
    auto_scoring: bool = False
    high_scoring: bool = False
    algae_handling: bool = False
    climbing: bool = False
    fast_driving: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            'autoScoring': self.auto_scoring,
            'highScoring': self.high_scoring,
            'algaeHandling': self.algae_handling,
            'climbing': self.climbing,
            'fastDriving': self.fast_driving,
        }


@dataclass
class RankingRow:
    """One team's line in the alliance-selection ranking table."""
    rank: int
    team_number: int
    team_name: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    avg_score: float = 0.0
    avg_auto: float = 0.0
    opr: float = 0.0
    selected: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            'rank': self.rank,
            'teamNumber': self.team_number,
            'teamName': self.team_name,
            'wins': self.wins,
            'losses': self.losses,
            'ties': self.ties,
            'avgScore': self.avg_score,
            'avgAuto': self.avg_auto,
            'opr': self.opr,
            'selected': self.selected,
        }


@dataclass(frozen=True)
class AllianceSlot:
    """One alliance: a captain and two picks, each a team number or None."""
    alliance_number: int
    captain: Optional[str] = None
    first_pick: Optional[str] = None
    second_pick: Optional[str] = None

    _ATTRS = {'captain': 'captain', 'firstPick': 'first_pick', 'secondPick': 'second_pick'}

    def get(self, role: str) -> Optional[str]:
        return getattr(self, self._ATTRS[role])

    def with_role(self, role: str, team_number: Optional[str]) -> 'AllianceSlot':
        return replace(self, **{self._ATTRS[role]: team_number})

    def teams(self) -> list[str]:
        return [t for t in (self.captain, self.first_pick, self.second_pick) if t]


@dataclass
class FieldPosition:
    """Placement of one team on the field diagram.

    Exactly one of ``position`` (symbolic starting-position code) and
    ``custom`` (an (x, y) percentage pair) is set.
    """
    team_number: str
    alliance: str
    position: Optional[str] = 'M'
    custom: Optional[Tuple[float, float]] = None
    # Last symbolic code chosen, restored when a custom coordinate is cleared
    last_position: str = 'M'


@dataclass
class FetchResult:
    """Outcome of a network call that never raises to the caller."""
    data: Any = None
    error: Optional[str] = None
    cancelled: bool = False
    attempts: int = 0
    notes: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled
