"""Client for the reefscout HTTP API.

Every call returns a FetchResult instead of raising: once retries run out
``data`` holds an empty value (``[]`` or ``None``) and ``error``
describes what went wrong, so callers can show a status banner and keep
going with empty data.
"""

import logging
import threading
import time
from typing import Any, Callable, Mapping, Optional

import requests
from pydantic import ValidationError
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_incrementing

from .alliances import AllianceBoard
from .models import FetchResult
from .schemas import AllianceTableDoc, TeamRecord

logger = logging.getLogger('reefscout.gateway')


class ServerError(Exception):
    """The API answered with a 5xx status."""

    def __init__(self, response: requests.Response):
        super().__init__(f'Server returned {response.status_code}: {response.reason}')
        self.response = response


def is_transient(exc: BaseException) -> bool:
    """Connection failures, timeouts and 5xx responses are worth retrying."""
    return isinstance(
        exc,
        (requests.exceptions.ConnectionError, requests.exceptions.Timeout, ServerError),
    )


class PersistenceGateway:
    """Talks to /api/teams and /api/alliances with bounded retries."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        attempts: int = 3,
        delay: float = 0.5,
        timeout: float = 10.0,
    ):
        """
        Args:
            base_url: API origin, e.g. 'http://localhost:5000'
            session: requests session to reuse (a new one is created if None)
            attempts: Tries per call, including the first
            delay: Wait before the first retry; each later retry waits one
                more multiple of it (linear backoff)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.attempts = attempts
        self.delay = delay
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> tuple[requests.Response, int]:
        """
        Send one request with retries. On final failure the raised
        exception carries the number of tries made as ``attempts``.
        """
        url = f'{self.base_url}{path}'
        tries = 0
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self.attempts),
                wait=wait_incrementing(start=self.delay, increment=self.delay),
                retry=retry_if_exception(is_transient),
                reraise=True,
            ):
                with attempt:
                    tries += 1
                    if tries > 1:
                        logger.info(f'Retrying {method} {path} (attempt {tries}/{self.attempts})')
                    response = self.session.request(method, url, timeout=self.timeout, **kwargs)
                    if response.status_code >= 500:
                        raise ServerError(response)
                    return response, tries
        except (requests.exceptions.RequestException, ServerError) as e:
            e.attempts = tries
            raise

    def _call(
        self,
        method: str,
        path: str,
        parse: Callable[[Any], Any],
        empty: Any = None,
        **kwargs,
    ) -> FetchResult:
        """Issue a request; 404 yields ``empty`` without an error."""
        try:
            response, tries = self._request(method, path, **kwargs)
        except (requests.exceptions.RequestException, ServerError) as e:
            logger.error(f'{method} {path} failed after {e.attempts} attempts: {e}')
            return FetchResult(data=empty, error=str(e), attempts=e.attempts)

        if response.status_code == 404:
            return FetchResult(data=empty, attempts=tries)
        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f'{method} {path} rejected: {message}')
            return FetchResult(data=empty, error=message, attempts=tries)

        try:
            return FetchResult(data=parse(response.json()), attempts=tries)
        except (ValueError, ValidationError) as e:
            logger.error(f'{method} {path} returned an unexpected body: {e}')
            return FetchResult(data=empty, error=f'Unexpected response: {e}', attempts=tries)

    # Teams

    def get_teams(self) -> FetchResult:
        """All team records (``[]`` on failure)."""
        return self._call(
            'GET', '/api/teams', lambda body: [TeamRecord.model_validate(t) for t in body], empty=[]
        )

    def get_team(self, team_number: str) -> FetchResult:
        """One team record, or None when the team has not been scouted."""
        return self._call('GET', f'/api/teams/{team_number}', TeamRecord.model_validate)

    def submit_team(self, submission: Mapping[str, Any]) -> FetchResult:
        """Upsert a scouting submission; the server computes capabilities."""
        return self._call('POST', '/api/teams', TeamRecord.model_validate, json=dict(submission))

    # Alliances

    def load_alliances(self, event_key: str) -> FetchResult:
        """Saved table for an event, or None if nothing was saved yet."""
        return self._call('GET', f'/api/alliances/{event_key}', AllianceTableDoc.model_validate)

    def load_board(self, event_key: str, cancel: Optional[threading.Event] = None) -> FetchResult:
        """
        Load an event's board: the saved (finalized) table or a fresh one.

        If ``cancel`` is set by the time the response arrives, the result
        is discarded and returned as cancelled.
        """
        result = self.load_alliances(event_key)
        if cancel is not None and cancel.is_set():
            return FetchResult(cancelled=True, attempts=result.attempts)
        if not result.ok:
            return FetchResult(data=AllianceBoard(event_key), error=result.error, attempts=result.attempts)
        if result.data is None:
            return FetchResult(data=AllianceBoard(event_key), attempts=result.attempts)
        return FetchResult(data=AllianceBoard.from_document(result.data), attempts=result.attempts)

    def save_alliances(self, board: AllianceBoard, overwrite: bool = False) -> FetchResult:
        """
        Save a board, guarded by its version token.

        A 409 means someone saved the event since this board was loaded.
        With ``overwrite`` the save is retried against the fresh version,
        waiting a little longer each time; otherwise the conflict is
        returned as an error.
        """
        for attempt in range(self.attempts):
            try:
                payload = board.to_document().model_dump(mode='json')
            except (ValueError, ValidationError) as e:
                logger.error(f'Alliance table for {board.event_key!r} is not valid: {e}')
                return FetchResult(error=f'Invalid alliance table: {e}', attempts=attempt)
            payload['expectedVersion'] = board.version
            try:
                response, _ = self._request('POST', '/api/alliances', json=payload)
            except (requests.exceptions.RequestException, ServerError) as e:
                logger.error(f'Saving alliances for {board.event_key} failed: {e}')
                return FetchResult(error=str(e), attempts=attempt + 1)

            if response.status_code == 409:
                current = (_json_or_none(response) or {}).get('currentVersion', board.version)
                if overwrite and attempt < self.attempts - 1:
                    logger.warning(
                        f'Alliances for {board.event_key} changed on the server; '
                        f'retrying ({attempt + 1}/{self.attempts})'
                    )
                    board.version = current
                    time.sleep(self.delay * (attempt + 1))
                    continue
                return FetchResult(error=_error_message(response), attempts=attempt + 1)

            if response.status_code >= 400:
                return FetchResult(error=_error_message(response), attempts=attempt + 1)

            try:
                table = AllianceTableDoc.model_validate(response.json())
            except (ValueError, ValidationError) as e:
                logger.error(f'Saving alliances for {board.event_key} returned an unexpected body: {e}')
                return FetchResult(error=f'Unexpected response: {e}', attempts=attempt + 1)
            board.version = table.version
            return FetchResult(data=table, attempts=attempt + 1)

        return FetchResult(error='Failed to save alliances after max retries', attempts=self.attempts)

    def finalize(self, board: AllianceBoard, overwrite: bool = False) -> FetchResult:
        """
        Lock a board and persist it. If the save fails the board is
        reopened so the selection can be finalized again.
        """
        ok, message = board.finalize()
        if not ok:
            return FetchResult(error=message)
        result = None
        try:
            result = self.save_alliances(board, overwrite=overwrite)
        finally:
            if result is None or not result.ok:
                board.unfinalize()
        return result

    def status(self) -> FetchResult:
        """Liveness probe; ``data`` is the status document."""
        try:
            response, tries = self._request('GET', '/api/status')
        except (requests.exceptions.RequestException, ServerError) as e:
            body = _json_or_none(e.response) if isinstance(e, ServerError) else None
            return FetchResult(data=body, error=str(e), attempts=e.attempts)
        return FetchResult(data=response.json(), attempts=tries)


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(response: requests.Response) -> str:
    body = _json_or_none(response)
    if isinstance(body, dict) and body.get('error'):
        return str(body['error'])
    return f'Server returned {response.status_code}: {response.reason}'
