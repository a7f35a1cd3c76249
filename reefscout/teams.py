"""Team records: building them from submissions and browsing them."""

from typing import Any, Iterable, Mapping

from .capabilities import derive_capabilities
from .constants import POSITION_NAMES
from .schemas import CapabilitiesDoc, TeamRecord, TeamSubmission


def build_team_record(submission: TeamSubmission | Mapping[str, Any]) -> TeamRecord:
    """
    Turn a scouting submission into a stored record.

    Capabilities are always recomputed from the raw values; any
    capabilities sent by the client are discarded.

    Raises:
        pydantic.ValidationError: If the submission is malformed
    """
    if not isinstance(submission, TeamSubmission):
        submission = TeamSubmission.model_validate(submission)
    capabilities = derive_capabilities(submission)
    return TeamRecord(
        **submission.model_dump(),
        capabilities=CapabilitiesDoc(**capabilities.to_dict()),
    )


def merge_team_record(existing: TeamRecord, submission: Mapping[str, Any]) -> TeamRecord:
    """
    Overwrite-merge a re-submission onto an existing record.

    Fields present in the submission replace the stored ones; fields it
    omits keep their stored values.
    """
    merged = existing.model_dump(exclude={'capabilities'})
    merged.update({k: v for k, v in submission.items() if k in TeamSubmission.model_fields})
    return build_team_record(merged)


def position_name(code: str) -> str:
    """Display name for a starting position code, e.g. 'L' -> 'Left'."""
    return POSITION_NAMES.get(code, code)


def filter_teams(
    teams: Iterable[TeamRecord],
    search: str = '',
    auto_scoring: bool = False,
    high_scoring: bool = False,
    algae_handling: bool = False,
    climbing: bool = False,
    fast_driving: bool = False,
) -> list[TeamRecord]:
    """
    Filter teams for the team browser.

    A team matches when its number contains ``search`` and it has every
    capability whose flag is set.
    """
    required = {
        'autoScoring': auto_scoring,
        'highScoring': high_scoring,
        'algaeHandling': algae_handling,
        'climbing': climbing,
        'fastDriving': fast_driving,
    }
    wanted = [name for name, on in required.items() if on]
    search = search.strip()

    matches = []
    for team in teams:
        if search and search not in team.teamNumber:
            continue
        flags = team.capabilities.model_dump()
        if all(flags[name] for name in wanted):
            matches.append(team)
    return matches


def sort_teams(teams: Iterable[TeamRecord]) -> list[TeamRecord]:
    """Order teams numerically by team number."""
    return sorted(teams, key=lambda t: int(t.teamNumber))
