"""Pydantic schemas for documents crossing the API and storage boundaries."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .constants import (
    EVENT_KEY_PATTERN,
    LEGACY_STARTING_POSITIONS,
    NUM_ALLIANCES,
    TEAM_NUMBER_PATTERN,
)
from .utils import as_list


def _team_number_or_none(v):
    """Saved tables store team numbers as ints, strings, or 0/null for empty."""
    if v is None or v == '' or v == 0:
        return None
    if isinstance(v, bool):
        raise ValueError('Team number must be a number or string')
    if isinstance(v, (int, float)):
        return str(int(v))
    v = str(v).strip()
    return None if v in ('', '0') else v


class CapabilitiesDoc(BaseModel):
    """Stored capability flags."""

    autoScoring: bool = False
    highScoring: bool = False
    algaeHandling: bool = False
    climbing: bool = False
    fastDriving: bool = False

    class Config:
        extra = 'forbid'


class TeamSubmission(BaseModel):
    """Raw scouting form submission for one team."""

    teamNumber: str = Field(..., pattern=TEAM_NUMBER_PATTERN)
    name: str | None = None
    # Autonomous
    startingPosition: list[str] = Field(default_factory=list)
    leavesStartingLine: str = ''
    coralScoredAutoL1: str = ''
    coralScoredAutoReef: str = ''
    algaeScoredAutoReef: str = ''
    primaryAutoActivity: str = ''
    # Teleop
    coralScoringLocation: list[str] = Field(default_factory=list)
    algaeHandling: list[str] = Field(default_factory=list)
    defensePlayed: str = ''
    drivingSpeed: str = ''
    # Endgame
    endgameAction: str = ''

    @field_validator('teamNumber', mode='before')
    @classmethod
    def coerce_team_number(cls, v):
        """Accept numeric team numbers and stray whitespace."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator(
        'coralScoredAutoL1',
        'coralScoredAutoReef',
        'algaeScoredAutoReef',
        mode='before',
    )
    @classmethod
    def coerce_count(cls, v):
        """Counts are option strings ('0', '1', '3+'); numbers are stringified."""
        if v is None:
            return ''
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v

    @field_validator('startingPosition', mode='before')
    @classmethod
    def normalize_starting_position(cls, v):
        """Wrap scalars and translate legacy long position names."""
        return [LEGACY_STARTING_POSITIONS.get(code, code) for code in as_list(v)]

    @field_validator('coralScoringLocation', 'algaeHandling', mode='before')
    @classmethod
    def normalize_selection(cls, v):
        return as_list(v)

    class Config:
        extra = 'ignore'


class TeamRecord(TeamSubmission):
    """Stored team document. Capabilities are always populated at write time."""

    capabilities: CapabilitiesDoc


class AllianceSlotDoc(BaseModel):
    """One alliance in a saved table."""

    allianceNumber: int = Field(..., ge=1, le=NUM_ALLIANCES)
    captain: str | None = None
    firstPick: str | None = None
    secondPick: str | None = None

    @field_validator('captain', 'firstPick', 'secondPick', mode='before')
    @classmethod
    def coerce_team(cls, v):
        return _team_number_or_none(v)

    class Config:
        extra = 'ignore'


class AllianceTableDoc(BaseModel):
    """Saved alliance selections for an event."""

    eventKey: str = Field(..., pattern=EVENT_KEY_PATTERN)
    alliances: list[AllianceSlotDoc]
    timestamp: str | None = None
    version: int = Field(default=0, ge=0)

    @field_validator('alliances', mode='before')
    @classmethod
    def wrap_single_alliance(cls, v):
        """A single alliance object is wrapped; anything else must be an array."""
        if isinstance(v, dict):
            return [v]
        if not isinstance(v, list):
            raise ValueError('alliances must be an array')
        return v

    @field_validator('alliances')
    @classmethod
    def validate_unique_numbers(cls, v):
        """Ensure each alliance number appears once."""
        numbers = [a.allianceNumber for a in v]
        if len(numbers) != len(set(numbers)):
            raise ValueError('Duplicate allianceNumber in alliances')
        return v

    class Config:
        extra = 'ignore'


class AllianceSaveRequest(AllianceTableDoc):
    """POST /api/alliances body; expectedVersion enables compare-and-swap."""

    expectedVersion: int | None = Field(default=None, ge=0)


class TBATeam(BaseModel):
    """Team entry from /event/{key}/teams."""

    key: str = ''
    team_number: int
    nickname: str | None = None
    name: str | None = None

    class Config:
        extra = 'ignore'


class StatInfo(BaseModel):
    """Legend entry describing one slot of sort_orders or extra_stats."""

    name: str = ''
    precision: int = 0

    class Config:
        extra = 'ignore'


class RankingRecord(BaseModel):
    wins: int = 0
    losses: int = 0
    ties: int = 0

    class Config:
        extra = 'ignore'


class TBARanking(BaseModel):
    """One row of /event/{key}/rankings."""

    rank: int
    team_key: str
    record: RankingRecord | None = None
    qual_average: float | None = None
    matches_played: int = 0
    sort_orders: list[float | None] | None = None
    extra_stats: list[float | None] | None = None

    class Config:
        extra = 'ignore'


class TBARankings(BaseModel):
    """Complete /event/{key}/rankings payload."""

    rankings: list[TBARanking] = Field(default_factory=list)
    sort_order_info: list[StatInfo] | None = None
    extra_stats_info: list[StatInfo] | None = None

    @field_validator('rankings', mode='before')
    @classmethod
    def null_rankings(cls, v):
        """TBA returns null rankings before the first qualification match."""
        return v or []

    class Config:
        extra = 'ignore'


class AppConfig(BaseModel):
    """Runtime settings."""

    data_dir: Path = Path('data')
    tba_api_key: str = ''
    tba_api_url: str = 'https://www.thebluealliance.com/api/v3'
    api_url: str = 'http://localhost:5000'
    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_delay: float = Field(default=0.5, ge=0)
    timeout: float = Field(default=10.0, gt=0)
    port: int = Field(default=5000, ge=0, le=65535)
    env: str = 'development'

    class Config:
        extra = 'forbid'
