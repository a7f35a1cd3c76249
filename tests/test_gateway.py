"""Tests for the API client's retry and degradation behavior."""

import threading
from unittest.mock import MagicMock, Mock

import pytest
import requests

from reefscout.alliances import AllianceBoard
from reefscout.gateway import PersistenceGateway


def make_response(status_code, body=None, reason='OK'):
    """Fake requests.Response with a JSON body (or none)."""
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    if body is None:
        response.json.side_effect = ValueError('No JSON')
    else:
        response.json.return_value = body
    return response


def table_body(version=1, alliances=None):
    return {
        'eventKey': '2025txcha',
        'alliances': alliances if alliances is not None else [
            {'allianceNumber': 1, 'captain': '254', 'firstPick': None, 'secondPick': None},
        ],
        'timestamp': '2025-03-01T12:00:00+00:00',
        'version': version,
    }


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def gateway(session):
    """Gateway with no backoff delay."""
    return PersistenceGateway('http://api.test/', session=session, attempts=3, delay=0)


class TestRetries:
    """Tests for bounded retries on transient failures."""

    def test_recovers_after_connection_error(self, gateway, session):
        session.request.side_effect = [
            requests.exceptions.ConnectionError('refused'),
            make_response(200, [{'teamNumber': '254', 'capabilities': {}}]),
        ]
        result = gateway.get_teams()
        assert result.ok
        assert result.attempts == 2
        assert [t.teamNumber for t in result.data] == ['254']
        session.request.assert_called_with('GET', 'http://api.test/api/teams', timeout=10.0)

    def test_gives_up_after_max_attempts(self, gateway, session):
        session.request.side_effect = requests.exceptions.Timeout('slow')
        result = gateway.get_teams()
        assert result.data == []
        assert result.error == 'slow'
        assert result.attempts == 3
        assert session.request.call_count == 3

    def test_server_errors_are_retried(self, gateway, session):
        session.request.return_value = make_response(503, reason='Service Unavailable')
        result = gateway.get_team('254')
        assert result.data is None
        assert '503' in result.error
        assert session.request.call_count == 3

    def test_attempts_count_only_tries_made(self, gateway, session):
        session.request.side_effect = requests.exceptions.InvalidURL('bad url')
        result = gateway.get_teams()
        assert not result.ok
        assert result.attempts == 1
        assert session.request.call_count == 1

    def test_client_errors_are_not_retried(self, gateway, session):
        session.request.return_value = make_response(400, {'error': 'Invalid team submission'}, 'Bad Request')
        result = gateway.submit_team({'teamNumber': 'abc'})
        assert result.error == 'Invalid team submission'
        assert session.request.call_count == 1


class TestReads:
    """Tests for decoding API responses."""

    def test_missing_team_is_not_an_error(self, gateway, session):
        session.request.return_value = make_response(404, {'error': 'Team 1 not found'}, 'Not Found')
        result = gateway.get_team('1')
        assert result.ok
        assert result.data is None

    def test_unexpected_body(self, gateway, session):
        session.request.return_value = make_response(200, {'not': 'a list'})
        result = gateway.get_teams()
        assert result.data == []
        assert 'Unexpected response' in result.error

    def test_load_board_saved_table_is_finalized(self, gateway, session):
        session.request.return_value = make_response(200, table_body(version=3))
        result = gateway.load_board('2025txcha')
        board = result.data
        assert board.finalized
        assert board.version == 3
        assert board.slots[0].captain == '254'
        assert len(board.slots) == 8

    def test_load_board_nothing_saved(self, gateway, session):
        session.request.return_value = make_response(404, {'error': 'none'})
        board = gateway.load_board('2025txcha').data
        assert not board.finalized
        assert board.version == 0

    def test_load_board_degrades_to_empty(self, gateway, session):
        session.request.side_effect = requests.exceptions.ConnectionError('down')
        result = gateway.load_board('2025txcha')
        assert result.error == 'down'
        assert isinstance(result.data, AllianceBoard)
        assert not result.data.finalized

    def test_load_board_cancelled(self, gateway, session):
        session.request.return_value = make_response(200, table_body())
        cancel = threading.Event()
        cancel.set()
        result = gateway.load_board('2025txcha', cancel=cancel)
        assert result.cancelled
        assert result.data is None
        assert not result.ok

    def test_status(self, gateway, session):
        session.request.return_value = make_response(200, {'status': 'OK', 'storeConnected': True})
        result = gateway.status()
        assert result.ok
        assert result.data['storeConnected']


class TestSave:
    """Tests for saving alliance tables with version checks."""

    def test_save_sends_expected_version(self, gateway, session):
        session.request.return_value = make_response(200, table_body(version=5))
        board = AllianceBoard('2025txcha', version=4)
        board.assign('254', 0, 'captain')

        result = gateway.save_alliances(board)
        assert result.ok
        assert board.version == 5
        payload = session.request.call_args.kwargs['json']
        assert payload['expectedVersion'] == 4
        assert payload['alliances'][0]['captain'] == '254'

    def test_conflict_without_overwrite(self, gateway, session):
        session.request.return_value = make_response(
            409, {'error': 'Alliance table for 2025txcha is at version 7, expected 4', 'currentVersion': 7}, 'Conflict'
        )
        board = AllianceBoard('2025txcha', version=4)
        result = gateway.save_alliances(board)
        assert not result.ok
        assert 'version 7' in result.error
        assert board.version == 4
        assert session.request.call_count == 1

    def test_conflict_with_overwrite_retries(self, gateway, session):
        session.request.side_effect = [
            make_response(409, {'error': 'stale', 'currentVersion': 7}, 'Conflict'),
            make_response(200, table_body(version=8)),
        ]
        board = AllianceBoard('2025txcha', version=4)
        result = gateway.save_alliances(board, overwrite=True)
        assert result.ok
        assert result.attempts == 2
        assert board.version == 8
        assert session.request.call_args.kwargs['json']['expectedVersion'] == 7

    def test_conflict_retries_exhausted(self, gateway, session):
        session.request.return_value = make_response(409, {'error': 'stale', 'currentVersion': 9}, 'Conflict')
        result = gateway.save_alliances(AllianceBoard('2025txcha'), overwrite=True)
        assert result.error == 'stale'
        assert session.request.call_count == 3

    def test_finalize(self, gateway, session):
        session.request.return_value = make_response(201, table_body(version=1))
        board = AllianceBoard('2025txcha')
        result = gateway.finalize(board)
        assert result.ok
        assert board.finalized

    def test_failed_finalize_reopens_board(self, gateway, session):
        session.request.side_effect = requests.exceptions.ConnectionError('down')
        board = AllianceBoard('2025txcha')
        result = gateway.finalize(board)
        assert not result.ok
        assert not board.finalized
        ok, _ = board.assign('254', 0, 'captain')
        assert ok

    def test_unreadable_save_response_reopens_board(self, gateway, session):
        session.request.return_value = make_response(200)
        board = AllianceBoard('2025txcha')
        board.assign('254', 0, 'captain')

        result = gateway.finalize(board)
        assert not result.ok
        assert 'Unexpected response' in result.error
        assert not board.finalized
        ok, _ = board.assign('118', 0, 'firstPick')
        assert ok

    def test_invalid_board_is_not_sent(self, gateway, session):
        board = AllianceBoard()
        result = gateway.finalize(board)
        assert not result.ok
        assert 'Invalid alliance table' in result.error
        assert not board.finalized
        session.request.assert_not_called()
