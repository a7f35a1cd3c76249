"""JSON document store for team records and alliance tables.

Layout under the data directory:

    teams.json                   list of TeamRecord documents
    alliances/<eventKey>.json    one AllianceTableDoc per event

A single store instance is created at startup and handed to the request
handler; all reads and writes go through its lock, so the threaded dev
server never interleaves a read-modify-write.
"""

import json
import logging
import os
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from .alliances import slots_from_docs
from .constants import EVENT_KEY_PATTERN
from .errors import ConflictError, StoreUnavailable, ValidationFailed
from .schemas import AllianceSaveRequest, AllianceTableDoc, TeamRecord
from .teams import build_team_record, merge_team_record, sort_teams
from .utils import load_json, save_json
from .validators import validate_alliance_table

logger = logging.getLogger('reefscout.store')


def check_event_key(event_key: str) -> str:
    """Validate an event key such as '2025txcha'."""
    if not isinstance(event_key, str) or not re.match(EVENT_KEY_PATTERN, event_key):
        raise ValidationFailed(f'Invalid event key: {event_key!r}')
    return event_key


class DocumentStore:
    """File-backed document collections."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)
        self._lock = threading.RLock()

    @property
    def teams_path(self) -> Path:
        return self.data_dir / 'teams.json'

    @property
    def alliances_dir(self) -> Path:
        return self.data_dir / 'alliances'

    def ping(self) -> bool:
        """True if the data directory exists (or can be created) and is writable."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f'Data directory {self.data_dir} unavailable: {e}')
            return False
        return os.access(self.data_dir, os.W_OK)

    def _read(self, path: Path) -> Any:
        try:
            return load_json(path)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            raise StoreUnavailable(f'Could not read {path.name}: {e}') from e

    def _write(self, path: Path, data: Any) -> None:
        try:
            save_json(path, data)
        except (OSError, TypeError) as e:
            raise StoreUnavailable(f'Could not write {path.name}: {e}') from e

    # Teams

    def _load_teams(self) -> list[TeamRecord]:
        raw = self._read(self.teams_path) or []
        teams = []
        for doc in raw:
            try:
                teams.append(TeamRecord.model_validate(doc))
            except ValidationError as e:
                number = doc.get('teamNumber') if isinstance(doc, dict) else None
                logger.error(f'Skipping invalid team document {number!r}: {e}')
        return teams

    def list_teams(self) -> list[TeamRecord]:
        """All team records, ordered by team number."""
        with self._lock:
            return sort_teams(self._load_teams())

    def get_team(self, team_number: str) -> Optional[TeamRecord]:
        team_number = str(team_number).strip()
        with self._lock:
            return next((t for t in self._load_teams() if t.teamNumber == team_number), None)

    def upsert_team(self, submission: Mapping[str, Any]) -> tuple[TeamRecord, bool]:
        """
        Insert or overwrite-merge a team by teamNumber.

        Returns:
            (stored record, True if the team was created)

        Raises:
            ValidationFailed: If the submission is empty or malformed
        """
        if not submission:
            raise ValidationFailed('Empty request body')
        try:
            record = build_team_record(submission)
        except ValidationError as e:
            raise ValidationFailed(f'Invalid team submission: {e}') from e

        with self._lock:
            teams = self._load_teams()
            index = next(
                (i for i, t in enumerate(teams) if t.teamNumber == record.teamNumber), None
            )
            if index is None:
                teams.append(record)
                created = True
            else:
                record = merge_team_record(teams[index], submission)
                teams[index] = record
                created = False
            self._write(self.teams_path, sort_teams(teams))

        logger.info(f'{"Created" if created else "Updated"} team {record.teamNumber}')
        return record, created

    # Alliances

    def _alliance_path(self, event_key: str) -> Path:
        return self.alliances_dir / f'{check_event_key(event_key)}.json'

    def get_alliances(self, event_key: str) -> Optional[AllianceTableDoc]:
        """Saved alliance table for an event, or None."""
        path = self._alliance_path(event_key)
        with self._lock:
            raw = self._read(path)
        if raw is None:
            return None
        try:
            return AllianceTableDoc.model_validate(raw)
        except ValidationError as e:
            raise StoreUnavailable(f'Stored alliance table for {event_key} is invalid: {e}') from e

    def upsert_alliances(self, payload: Mapping[str, Any] | AllianceSaveRequest) -> tuple[AllianceTableDoc, bool]:
        """
        Replace (or create) the alliance table for payload's eventKey.

        When the payload carries expectedVersion, the save only succeeds if
        the stored table is still at that version.

        Returns:
            (stored table, True if it was created)

        Raises:
            ValidationFailed: Malformed payload or a team placed twice
            ConflictError: expectedVersion does not match the stored version
        """
        if not payload:
            raise ValidationFailed('Empty request body')
        if isinstance(payload, AllianceSaveRequest):
            request = payload
        else:
            if not payload.get('eventKey'):
                raise ValidationFailed('Missing eventKey')
            check_event_key(payload['eventKey'])
            try:
                request = AllianceSaveRequest.model_validate(payload)
            except ValidationError as e:
                raise ValidationFailed(f'Invalid alliances data: {e}') from e

        errors = validate_alliance_table(slots_from_docs(request.alliances))
        if errors:
            raise ValidationFailed('; '.join(errors))

        path = self._alliance_path(request.eventKey)
        with self._lock:
            existing = self._read(path)
            current = AllianceTableDoc.model_validate(existing).version if existing else 0
            if request.expectedVersion is not None and request.expectedVersion != current:
                raise ConflictError(request.eventKey, request.expectedVersion, current)

            table = AllianceTableDoc(
                eventKey=request.eventKey,
                alliances=request.alliances,
                timestamp=datetime.now(timezone.utc).isoformat(),
                version=current + 1,
            )
            self._write(path, table)

        created = existing is None
        logger.info(
            f'{"Created" if created else "Updated"} alliances for {table.eventKey} (version {table.version})'
        )
        return table, created
