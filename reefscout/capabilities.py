"""Capability flags derived from scouted values."""

from typing import Any, Mapping

from pydantic import BaseModel

from .constants import CLIMB_ACTIONS, FAST_SPEEDS, HIGH_CORAL_LOCATIONS, NO_ALGAE
from .models import Capabilities
from .utils import as_list


def _count(raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None:
        return '0'
    value = str(value).strip()
    return value or '0'


def derive_capabilities(raw: Mapping[str, Any] | BaseModel) -> Capabilities:
    """
    Derive capability flags from one team's raw scouting values.

    Rules:
        - auto_scoring: scored coral in auto (L1 or reef count is not "0")
        - high_scoring: scores coral on L3 or L4 branches in teleop
        - algae_handling: handles algae in any way other than "doesNotHandle"
        - climbing: shallow or deep cage climb in endgame
        - fast_driving: driving speed rated fast or very fast

    Missing values take the branch that yields False. Never raises.

    Args:
        raw: Submission dict (camelCase form keys) or a TeamSubmission
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()

    auto_scoring = _count(raw, 'coralScoredAutoL1') != '0' or _count(raw, 'coralScoredAutoReef') != '0'

    locations = set(map(str, as_list(raw.get('coralScoringLocation'))))
    high_scoring = bool(locations & HIGH_CORAL_LOCATIONS)

    algae = set(map(str, as_list(raw.get('algaeHandling'))))
    algae_handling = bool(algae) and algae != {NO_ALGAE}

    climbing = str(raw.get('endgameAction') or '') in CLIMB_ACTIONS
    fast_driving = str(raw.get('drivingSpeed') or '') in FAST_SPEEDS

    return Capabilities(
        auto_scoring=auto_scoring,
        high_scoring=high_scoring,
        algae_handling=algae_handling,
        climbing=climbing,
        fast_driving=fast_driving,
    )
