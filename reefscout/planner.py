"""Alliance selection session for one event.

Ties the ranking table to the alliance board: a team can only be placed
if it is ranked at the event, and every placement or removal keeps the
rows' ``selected`` flags in step with the board.
"""

import logging
import threading
from typing import Optional

from .alliances import AllianceBoard
from .gateway import PersistenceGateway
from .models import FetchResult, RankingRow
from .rankings import mark_selected
from .tba import TBAClient

logger = logging.getLogger('reefscout.planner')


class AllianceSelection:
    """Ranking rows plus the alliance board being filled from them."""

    def __init__(self, event_key: str, rows: list[RankingRow], board: Optional[AllianceBoard] = None):
        self.event_key = event_key
        self.board = board or AllianceBoard(event_key)
        self.rows = mark_selected(rows, self.board.slots)
        self.status = ''

    @classmethod
    def load(
        cls,
        event: str,
        tba: TBAClient,
        gateway: PersistenceGateway,
        cancel: Optional[threading.Event] = None,
    ) -> FetchResult:
        """
        Start a session: fetch TBA data, then any saved selections.

        Returns:
            FetchResult whose data is an AllianceSelection. A failed
            rankings fetch is returned as-is; a failed board load still
            yields a session with an empty board and the error attached.

        Raises:
            ValueError: If ``event`` is not a valid TBA URL or event key
        """
        fetched = tba.load_event(event, cancel=cancel)
        if not fetched.ok:
            return fetched

        event_data = fetched.data
        loaded = gateway.load_board(event_data.event_key, cancel=cancel)
        if loaded.cancelled:
            return loaded

        session = cls(event_data.event_key, event_data.rows, loaded.data)
        if loaded.error:
            session.status = f'Could not load saved selections: {loaded.error}'
        elif session.board.finalized:
            session.status = 'Loaded previously saved alliance selections'
        return FetchResult(data=session, error=loaded.error, attempts=fetched.attempts)

    def row(self, team_number: int | str) -> Optional[RankingRow]:
        team_number = str(team_number)
        return next((r for r in self.rows if str(r.team_number) == team_number), None)

    def _refresh(self) -> None:
        self.rows = mark_selected(self.rows, self.board.slots)

    def assign(self, team_number: int | str, alliance_index: int, role: str) -> tuple[bool, str]:
        """Place a ranked team on the board."""
        if self.row(team_number) is None:
            return False, f'Team {team_number} is not ranked at {self.event_key}'
        ok, message = self.board.assign(str(team_number), alliance_index, role)
        if ok:
            self._refresh()
        self.status = message
        return ok, message

    def unassign(self, alliance_index: int, role: str) -> tuple[bool, str]:
        ok, message = self.board.unassign(alliance_index, role)
        if ok:
            self._refresh()
        self.status = message
        return ok, message

    def available(self) -> list[RankingRow]:
        """Ranked teams not yet on an alliance, in rank order."""
        return [r for r in self.rows if not r.selected]

    def finalize(self, gateway: PersistenceGateway, overwrite: bool = False) -> FetchResult:
        """Lock the board and save it."""
        result = gateway.finalize(self.board, overwrite=overwrite)
        if result.ok:
            self.status = 'Selections saved successfully!'
        else:
            self.status = f'Error saving selections: {result.error}'
            logger.error(self.status)
        return result

    def unfinalize(self) -> tuple[bool, str]:
        ok, message = self.board.unfinalize()
        self.status = message
        return ok, message
