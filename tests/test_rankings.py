"""Unit tests for ranking normalization."""

import pytest

from reefscout.alliances import assign, empty_slots
from reefscout.rankings import (
    EXTRA_STATS,
    SORT_ORDERS,
    StatIndex,
    mark_selected,
    normalize,
    parse_team_key,
    resolve_stat_indices,
    rows_to_frame,
)
from reefscout.schemas import TBARanking
from reefscout.validators import validate_rankings


@pytest.fixture
def event_payload():
    """Roster, rankings and OPRs for a small event."""
    teams = [
        {'key': 'frc254', 'team_number': 254, 'nickname': 'The Cheesy Poofs'},
        {'key': 'frc1678', 'team_number': 1678, 'nickname': 'Citrus Circuits'},
    ]
    rankings = {
        'rankings': [
            {
                'rank': 2,
                'team_key': 'frc1678',
                'record': {'wins': 7, 'losses': 2, 'ties': 1},
                'sort_orders': [2.1, 10.0, 40.0],
            },
            {
                'rank': 1,
                'team_key': 'frc254',
                'record': {'wins': 9, 'losses': 1, 'ties': 0},
                'sort_orders': [2.4, 12.5, 45.0],
            },
            {
                'rank': 3,
                'team_key': 'frc9999',
                'record': None,
                'sort_orders': [1.0],
            },
        ],
        'sort_order_info': [
            {'name': 'Ranking Score', 'precision': 2},
            {'name': 'Avg Auto', 'precision': 2},
            {'name': 'Avg Match', 'precision': 2},
        ],
        'extra_stats_info': [],
    }
    oprs = {'frc254': 60.2, 'frc1678': 55.0}
    return teams, rankings, oprs


class TestResolveStatIndices:
    """Tests for locating stats from the ranking legend."""

    def test_auto_and_match_names(self):
        indices = resolve_stat_indices([
            {'name': 'Ranking Score'},
            {'name': 'Avg Auto'},
            {'name': 'Avg Match'},
        ])
        assert indices.auto == StatIndex(SORT_ORDERS, 1)
        # 'Ranking Score' matches too, but the later 'Avg Match' wins
        assert indices.score == StatIndex(SORT_ORDERS, 2)
        assert indices.used_fallback == []

    def test_auto_name_is_not_score(self):
        """An entry containing both 'auto' and 'score' is the auto stat only."""
        indices = resolve_stat_indices([{'name': 'Auto Score'}, {'name': 'Total Score'}])
        assert indices.auto == StatIndex(SORT_ORDERS, 0)
        assert indices.score == StatIndex(SORT_ORDERS, 1)

    def test_auto_from_extra_stats(self):
        indices = resolve_stat_indices(
            [{'name': 'Ranking Score'}, {'name': 'Avg Match'}],
            [{'name': 'Total Ranking Points'}, {'name': 'Auto Points'}],
        )
        assert indices.auto == StatIndex(EXTRA_STATS, 1)
        assert indices.score == StatIndex(SORT_ORDERS, 1)

    def test_extra_stats_ignored_when_sort_orders_has_auto(self):
        indices = resolve_stat_indices([{'name': 'Auto'}], [{'name': 'Auto Points'}])
        assert indices.auto == StatIndex(SORT_ORDERS, 0)

    def test_fallback_defaults(self, caplog):
        indices = resolve_stat_indices([{'name': 'Ranking Score'}, {'name': 'Coopertition'}])
        assert indices.auto == StatIndex(SORT_ORDERS, 1)
        # 'Ranking Score' contains 'score', so only auto falls back
        assert indices.score == StatIndex(SORT_ORDERS, 0)
        assert indices.used_fallback == ['auto']
        assert 'default sort_orders positions' in caplog.text

    def test_no_legend(self):
        indices = resolve_stat_indices(None, None)
        assert indices.auto == StatIndex(SORT_ORDERS, 1)
        assert indices.score == StatIndex(SORT_ORDERS, 2)
        assert indices.used_fallback == ['auto', 'score']

    def test_auto_avg_and_avg_score_legend(self):
        rankings = {
            'rankings': [{'rank': 1, 'team_key': 'frc254', 'sort_orders': [0, 12.5, 45.0]}],
            'sort_order_info': [{'name': 'Ranking Points'}, {'name': 'Auto Avg'}, {'name': 'Avg Score'}],
        }
        row = normalize([], rankings)[0]
        assert row.avg_auto == 12.5
        assert row.avg_score == 45.0


class TestStatIndexRead:
    """Tests for reading stats out of a ranking row."""

    def test_out_of_range_is_zero(self):
        ranking = TBARanking(rank=1, team_key='frc1', sort_orders=[1.0])
        assert StatIndex(SORT_ORDERS, 5).read(ranking) == 0.0

    def test_missing_array_is_zero(self):
        ranking = TBARanking(rank=1, team_key='frc1')
        assert StatIndex(EXTRA_STATS, 0).read(ranking) == 0.0

    def test_null_value_is_zero(self):
        ranking = TBARanking(rank=1, team_key='frc1', sort_orders=[None, 3.5])
        assert StatIndex(SORT_ORDERS, 0).read(ranking) == 0.0
        assert StatIndex(SORT_ORDERS, 1).read(ranking) == 3.5


class TestParseTeamKey:
    """Tests for TBA team key parsing."""

    @pytest.mark.parametrize('key,expected', [
        ('frc254', 254),
        ('frc1678', 1678),
        ('frc254B', 254),
        ('frcB', None),
    ])
    def test_parse(self, key, expected):
        assert parse_team_key(key) == expected


class TestNormalize:
    """Tests for merging roster, rankings and OPRs."""

    def test_merges_and_sorts(self, event_payload):
        teams, rankings, oprs = event_payload
        rows = normalize(teams, rankings, oprs)

        assert [r.team_number for r in rows] == [254, 1678, 9999]
        top = rows[0]
        assert top.rank == 1
        assert top.team_name == 'The Cheesy Poofs'
        assert (top.wins, top.losses, top.ties) == (9, 1, 0)
        assert top.avg_auto == 12.5
        assert top.avg_score == 45.0
        assert top.opr == 60.2
        assert not top.selected
        assert validate_rankings(rows) == []

    def test_unrostered_team_defaults(self, event_payload):
        """Teams missing from the roster, OPRs and record get safe defaults."""
        teams, rankings, oprs = event_payload
        last = normalize(teams, rankings, oprs)[-1]
        assert last.team_name == 'Team 9999'
        assert last.opr == 0.0
        assert (last.wins, last.losses, last.ties) == (0, 0, 0)
        assert last.avg_auto == 0.0
        assert last.avg_score == 0.0

    def test_auto_from_extra_stats(self):
        rankings = {
            'rankings': [
                {'rank': 1, 'team_key': 'frc118', 'sort_orders': [3.0, 50.0], 'extra_stats': [20, 8.5]},
            ],
            'sort_order_info': [{'name': 'Ranking Score'}, {'name': 'Avg Match'}],
            'extra_stats_info': [{'name': 'Total RP'}, {'name': 'Avg Auto'}],
        }
        row = normalize([], rankings, {})[0]
        assert row.avg_auto == 8.5
        assert row.avg_score == 50.0

    def test_b_team_joins_parent_roster_entry(self):
        rankings = {'rankings': [{'rank': 1, 'team_key': 'frc254B'}]}
        rows = normalize([{'team_number': 254, 'nickname': 'The Cheesy Poofs'}], rankings)
        assert rows[0].team_number == 254
        assert rows[0].team_name == 'The Cheesy Poofs'

    def test_no_rankings(self):
        assert normalize([], None) == []
        assert normalize([], {'rankings': None}) == []

    def test_unparseable_key_skipped(self):
        rankings = {'rankings': [{'rank': 1, 'team_key': 'frcX'}, {'rank': 2, 'team_key': 'frc1'}]}
        assert [r.team_number for r in normalize([], rankings)] == [1]


class TestMarkSelected:
    """Tests for rehydrating selected flags from an alliance table."""

    def test_flags_follow_table(self, event_payload):
        rows = normalize(*event_payload)
        slots = assign(empty_slots(), '254', 0, 'captain')
        marked = mark_selected(rows, slots)
        assert [r.selected for r in marked] == [True, False, False]
        # Input rows are not modified
        assert not rows[0].selected

    def test_frame_has_camel_case_columns(self, event_payload):
        frame = rows_to_frame(normalize(*event_payload))
        assert frame.height == 3
        assert 'teamNumber' in frame.columns
        assert frame['avgAuto'].to_list()[0] == 12.5
