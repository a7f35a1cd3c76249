"""Tests for the JSON document store."""

import json

import pytest

from reefscout.errors import ConflictError, StoreUnavailable, ValidationFailed
from reefscout.store import DocumentStore, check_event_key


@pytest.fixture
def store(tmp_path):
    """Store rooted in a fresh data directory."""
    return DocumentStore(tmp_path / 'data')


def alliance_payload(**overrides):
    payload = {
        'eventKey': '2025txcha',
        'alliances': [
            {'allianceNumber': 1, 'captain': '254', 'firstPick': '1678', 'secondPick': None},
            {'allianceNumber': 2, 'captain': '118', 'firstPick': None, 'secondPick': None},
        ],
    }
    payload.update(overrides)
    return payload


class TestTeams:
    """Tests for team upserts."""

    def test_create_then_update(self, store):
        record, created = store.upsert_team({'teamNumber': '714', 'name': 'TNTH', 'drivingSpeed': 'moderate'})
        assert created
        assert not record.capabilities.fastDriving

        record, created = store.upsert_team({'teamNumber': '714', 'drivingSpeed': 'fast'})
        assert not created
        assert record.name == 'TNTH'
        assert record.capabilities.fastDriving

        assert len(store.list_teams()) == 1
        assert store.get_team('714').drivingSpeed == 'fast'

    def test_list_sorted_numerically(self, store):
        for number in ('1812', '254', '118'):
            store.upsert_team({'teamNumber': number})
        assert [t.teamNumber for t in store.list_teams()] == ['118', '254', '1812']

    def test_missing_team(self, store):
        assert store.get_team('9999') is None
        assert store.list_teams() == []

    def test_empty_submission(self, store):
        with pytest.raises(ValidationFailed):
            store.upsert_team({})

    def test_invalid_submission(self, store):
        with pytest.raises(ValidationFailed, match='Invalid team submission'):
            store.upsert_team({'teamNumber': 'abc'})

    def test_persisted_to_disk(self, store):
        store.upsert_team({'teamNumber': '254', 'algaeHandling': 'bothBandC'})
        with open(store.teams_path) as f:
            saved = json.load(f)
        assert saved[0]['teamNumber'] == '254'
        assert saved[0]['algaeHandling'] == ['bothBandC']
        assert saved[0]['capabilities']['algaeHandling'] is True

    def test_invalid_stored_document_skipped(self, store):
        store.data_dir.mkdir(parents=True)
        store.teams_path.write_text(json.dumps([
            {'teamNumber': '254', 'capabilities': {}},
            {'teamNumber': 'bad'},
        ]))
        assert [t.teamNumber for t in store.list_teams()] == ['254']

    def test_corrupt_file(self, store):
        store.data_dir.mkdir(parents=True)
        store.teams_path.write_text('{not json')
        with pytest.raises(StoreUnavailable):
            store.list_teams()


class TestAlliances:
    """Tests for alliance table upserts and version checks."""

    def test_save_and_load(self, store):
        table, created = store.upsert_alliances(alliance_payload())
        assert created
        assert table.version == 1
        assert table.timestamp

        loaded = store.get_alliances('2025txcha')
        assert loaded == table
        assert loaded.alliances[1].firstPick is None

    def test_update_bumps_version(self, store):
        store.upsert_alliances(alliance_payload())
        table, created = store.upsert_alliances(alliance_payload(expectedVersion=1))
        assert not created
        assert table.version == 2

    def test_stale_version_conflicts(self, store):
        store.upsert_alliances(alliance_payload())
        store.upsert_alliances(alliance_payload(expectedVersion=1))
        with pytest.raises(ConflictError) as exc_info:
            store.upsert_alliances(alliance_payload(expectedVersion=1))
        assert exc_info.value.current == 2
        assert store.get_alliances('2025txcha').version == 2

    def test_without_expected_version_overwrites(self, store):
        store.upsert_alliances(alliance_payload())
        table, _ = store.upsert_alliances(alliance_payload(alliances=[]))
        assert table.alliances == []
        assert table.version == 2

    def test_duplicate_team_rejected(self, store):
        payload = alliance_payload(alliances=[
            {'allianceNumber': 1, 'captain': '254'},
            {'allianceNumber': 2, 'captain': '254'},
        ])
        with pytest.raises(ValidationFailed, match='254'):
            store.upsert_alliances(payload)
        assert store.get_alliances('2025txcha') is None

    @pytest.mark.parametrize('payload', [
        {},
        {'alliances': []},
        {'eventKey': 'nope', 'alliances': []},
        {'eventKey': '2025txcha', 'alliances': 'oops'},
    ])
    def test_invalid_payloads(self, store, payload):
        with pytest.raises(ValidationFailed):
            store.upsert_alliances(payload)

    def test_missing_event(self, store):
        assert store.get_alliances('2024casj') is None

    def test_check_event_key(self):
        assert check_event_key('2025txcha') == '2025txcha'
        with pytest.raises(ValidationFailed):
            check_event_key('../etc')

    def test_ping(self, store):
        assert store.ping()
        assert store.data_dir.is_dir()
