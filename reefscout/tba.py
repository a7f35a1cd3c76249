"""The Blue Alliance API client for event rosters, rankings and OPRs."""

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

import requests
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_incrementing

from .constants import EVENT_KEY_PATTERN, TBA_API_URL, TBA_AUTH_HEADER
from .models import FetchResult, RankingRow
from .rankings import normalize
from .schemas import TBARankings, TBATeam

logger = logging.getLogger('reefscout.tba')


def extract_event_key(url_or_key: str) -> str:
    """
    Get the event key from a TBA event URL or a bare key.

    Example:
        extract_event_key('https://www.thebluealliance.com/event/2025txcha')  # '2025txcha'
        extract_event_key('2025txcha')                                        # '2025txcha'

    Raises:
        ValueError: If no event key can be found
    """
    value = (url_or_key or '').strip()
    parsed = urlparse(value)
    if parsed.scheme and parsed.netloc:
        parts = [p for p in parsed.path.split('/') if p]
        if 'event' in parts:
            index = parts.index('event')
            if index < len(parts) - 1 and re.match(EVENT_KEY_PATTERN, parts[index + 1]):
                return parts[index + 1]
        raise ValueError(f'Event key not found in URL: {value}')
    if re.match(EVENT_KEY_PATTERN, value):
        return value
    raise ValueError(f'Invalid URL or event key format: {value!r}')


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    if isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None:
        return exc.response.status_code >= 500
    return False


@dataclass
class EventData:
    """Everything alliance selection needs from TBA for one event."""
    event_key: str
    teams: list[TBATeam] = field(default_factory=list)
    rankings: Optional[TBARankings] = None
    oprs: dict[str, float] = field(default_factory=dict)
    rows: list[RankingRow] = field(default_factory=list)


class TBAClient:
    """Read-only TBA v3 client with bounded retries."""

    def __init__(
        self,
        api_key: str,
        base_url: str = TBA_API_URL,
        session: Optional[requests.Session] = None,
        attempts: int = 3,
        delay: float = 0.5,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.session.headers.update({TBA_AUTH_HEADER: api_key})
        self.attempts = attempts
        self.delay = delay
        self.timeout = timeout

    def get(self, endpoint: str) -> Any:
        """
        GET one endpoint, retrying connection errors, timeouts and 5xx.

        Raises:
            requests.exceptions.RequestException: After the last attempt fails,
                or immediately on a 4xx (bad key, unknown event)
        """
        url = f'{self.base_url}/{endpoint.lstrip("/")}'
        for attempt in Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_incrementing(start=self.delay, increment=self.delay),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        ):
            with attempt:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

    def fetch_event_teams(self, event_key: str) -> list[TBATeam]:
        data = self.get(f'event/{event_key}/teams') or []
        return [TBATeam.model_validate(t) for t in data]

    def fetch_event_rankings(self, event_key: str) -> TBARankings:
        return TBARankings.model_validate(self.get(f'event/{event_key}/rankings') or {})

    def fetch_event_oprs(self, event_key: str) -> dict[str, float]:
        data = self.get(f'event/{event_key}/oprs') or {}
        return {key: float(value or 0) for key, value in (data.get('oprs') or {}).items()}

    def load_event(self, event: str, cancel: Optional[threading.Event] = None) -> FetchResult:
        """
        Fetch roster, rankings and OPRs in parallel and normalize them.

        Args:
            event: TBA event URL or event key
            cancel: Set this from another thread to discard the result
                (e.g. the user switched events while the fetch was running)

        Returns:
            FetchResult whose data is an EventData; on failure data is an
            empty EventData and error says which request failed

        Raises:
            ValueError: If ``event`` is not a valid URL or key
        """
        event_key = extract_event_key(event)
        logger.info(f'Loading {event_key} from The Blue Alliance')

        with ThreadPoolExecutor(max_workers=3) as pool:
            futures = {
                'teams': pool.submit(self.fetch_event_teams, event_key),
                'rankings': pool.submit(self.fetch_event_rankings, event_key),
                'oprs': pool.submit(self.fetch_event_oprs, event_key),
            }
            results = {}
            errors = []
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except (requests.exceptions.RequestException, ValueError) as e:
                    logger.error(f'Fetching {name} for {event_key} failed: {e}')
                    errors.append(f'{name}: {e}')

        if cancel is not None and cancel.is_set():
            logger.info(f'Discarding results for {event_key}; request was cancelled')
            return FetchResult(cancelled=True)

        if errors:
            return FetchResult(
                data=EventData(event_key),
                error=f'Failed to fetch event data ({"; ".join(errors)})',
            )

        rankings = results['rankings']
        rows = normalize(results['teams'], rankings, results['oprs'])
        if not rows:
            logger.warning(f'{event_key} has no rankings yet')
        return FetchResult(data=EventData(
            event_key=event_key,
            teams=results['teams'],
            rankings=rankings,
            oprs=results['oprs'],
            rows=rows,
        ))
