"""Merge TBA roster, ranking and OPR data into one table for alliance selection.

The ranking payload's ``sort_orders`` and ``extra_stats`` arrays have no fixed
layout; their meaning is described per event by ``sort_order_info`` and
``extra_stats_info``. We locate the auto and overall-score columns by
matching legend names. When no legend entry matches, fixed positions are
used instead (auto -> sort_orders[1], score -> sort_orders[2]). That
fallback matches recent game layouts but is NOT guaranteed: if TBA changes
the legend wording the numbers can be silently wrong, which is why
``StatIndices.used_fallback`` is exposed and a warning is logged.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, NamedTuple, Optional

import polars as pl

from .constants import DEFAULT_AUTO_INDEX, DEFAULT_SCORE_INDEX, TEAM_KEY_PREFIX
from .models import AllianceSlot, RankingRow
from .schemas import RankingRecord, StatInfo, TBARanking, TBARankings, TBATeam

logger = logging.getLogger('reefscout.rankings')

SORT_ORDERS = 'sort_orders'
EXTRA_STATS = 'extra_stats'


class StatIndex(NamedTuple):
    """Position of a stat within one of the two ranking arrays."""
    source: str
    index: int

    def read(self, ranking: TBARanking) -> float:
        values = getattr(ranking, self.source) or []
        if 0 <= self.index < len(values) and values[self.index] is not None:
            return float(values[self.index])
        return 0.0


@dataclass
class StatIndices:
    """Resolved column positions for the auto and overall-score stats."""
    auto: StatIndex
    score: StatIndex
    used_fallback: list[str] = field(default_factory=list)


def _info_name(info: StatInfo | Mapping[str, Any]) -> str:
    if isinstance(info, StatInfo):
        return info.name.lower()
    return str(info.get('name') or '').lower()


def resolve_stat_indices(
    sort_order_info: Optional[Iterable[StatInfo | Mapping[str, Any]]],
    extra_stats_info: Optional[Iterable[StatInfo | Mapping[str, Any]]] = None,
) -> StatIndices:
    """
    Find where the auto and overall-score averages live in a ranking row.

    Legend names containing "auto" identify the auto column; otherwise names
    containing "match" or "score" identify the overall column. The last
    matching entry wins. The auto stat is looked up in extra_stats_info only
    when sort_order_info has no auto entry.

    Args:
        sort_order_info: Legend for each ranking's sort_orders array
        extra_stats_info: Legend for each ranking's extra_stats array

    Returns:
        StatIndices; ``used_fallback`` names each stat that got a default
    """
    auto = None
    score = None

    for i, info in enumerate(sort_order_info or []):
        name = _info_name(info)
        if 'auto' in name:
            auto = StatIndex(SORT_ORDERS, i)
        elif 'match' in name or 'score' in name:
            score = StatIndex(SORT_ORDERS, i)

    if auto is None:
        for i, info in enumerate(extra_stats_info or []):
            if 'auto' in _info_name(info):
                auto = StatIndex(EXTRA_STATS, i)

    used_fallback = []
    if auto is None:
        auto = StatIndex(SORT_ORDERS, DEFAULT_AUTO_INDEX)
        used_fallback.append('auto')
    if score is None:
        score = StatIndex(SORT_ORDERS, DEFAULT_SCORE_INDEX)
        used_fallback.append('score')

    if used_fallback:
        logger.warning(
            f'Ranking legend has no entry for {", ".join(used_fallback)}; '
            f'using default sort_orders positions (auto={auto.index}, score={score.index})'
        )

    return StatIndices(auto=auto, score=score, used_fallback=used_fallback)


def parse_team_key(team_key: str) -> Optional[int]:
    """
    Recover the team number from a TBA team key.

    The 3-character 'frc' prefix is stripped and the leading digits are
    read, so offseason B-teams map to their parent ('frc254B' -> 254).

    Returns:
        Team number, or None if the key has no digits after the prefix
    """
    match = re.match(r'\d+', team_key[len(TEAM_KEY_PREFIX):])
    return int(match.group()) if match else None


def normalize(
    teams: Iterable[TBATeam | Mapping[str, Any]],
    rankings: TBARankings | Mapping[str, Any] | None,
    oprs: Optional[Mapping[str, float]] = None,
) -> list[RankingRow]:
    """
    Build one RankingRow per ranked team, sorted by rank.

    Args:
        teams: Event roster from /event/{key}/teams
        rankings: Payload from /event/{key}/rankings
        oprs: OPR map keyed by team key (the 'oprs' member of /event/{key}/oprs)

    Returns:
        List of RankingRow; teams missing from the roster are named
        'Team <number>', and missing OPRs are 0.0
    """
    if rankings is None:
        return []
    table = rankings if isinstance(rankings, TBARankings) else TBARankings.model_validate(rankings)
    roster = [t if isinstance(t, TBATeam) else TBATeam.model_validate(t) for t in teams or []]
    oprs = oprs or {}

    indices = resolve_stat_indices(table.sort_order_info, table.extra_stats_info)

    records = []
    for ranking in table.rankings:
        team_number = parse_team_key(ranking.team_key)
        if team_number is None:
            logger.warning(f'Skipping ranking with unparseable team key: {ranking.team_key!r}')
            continue
        record = ranking.record or RankingRecord()
        records.append({
            'rank': ranking.rank,
            'team_key': ranking.team_key,
            'team_number': team_number,
            'wins': record.wins,
            'losses': record.losses,
            'ties': record.ties,
            'avg_score': indices.score.read(ranking),
            'avg_auto': indices.auto.read(ranking),
        })

    if not records:
        return []

    ranked = pl.DataFrame(records)
    names = pl.DataFrame(
        {
            'team_number': [t.team_number for t in roster],
            'nickname': [t.nickname or '' for t in roster],
        },
        schema={'team_number': pl.Int64, 'nickname': pl.Utf8},
    ).unique(subset='team_number', keep='first')
    opr_frame = pl.DataFrame(
        {
            'team_key': list(oprs.keys()),
            'opr': [float(v or 0) for v in oprs.values()],
        },
        schema={'team_key': pl.Utf8, 'opr': pl.Float64},
    )

    merged = (
        ranked.join(names, on='team_number', how='left')
        .join(opr_frame, on='team_key', how='left')
        .with_columns(pl.col('opr').fill_null(0.0))
        .sort('rank', maintain_order=True)
    )

    return [
        RankingRow(
            rank=row['rank'],
            team_number=row['team_number'],
            team_name=row['nickname'] or f'Team {row["team_number"]}',
            wins=row['wins'],
            losses=row['losses'],
            ties=row['ties'],
            avg_score=row['avg_score'],
            avg_auto=row['avg_auto'],
            opr=row['opr'],
        )
        for row in merged.iter_rows(named=True)
    ]


def mark_selected(rows: Iterable[RankingRow], slots: Iterable[AllianceSlot]) -> list[RankingRow]:
    """Set each row's ``selected`` flag from an alliance table, by team number."""
    chosen = {team for slot in slots for team in slot.teams()}
    return [replace(row, selected=str(row.team_number) in chosen) for row in rows]


def rows_to_frame(rows: Iterable[RankingRow]) -> pl.DataFrame:
    """Tabulate ranking rows for display."""
    return pl.DataFrame([row.to_dict() for row in rows])
