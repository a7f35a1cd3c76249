"""Alliance selection: assign teams to captain / first pick / second pick slots.

The functional core works on immutable tuples of AllianceSlot so each
assignment produces a complete new table in one step; a team moved from
one slot to another is never visible in both. AllianceBoard adds the
per-event state (finalized flag, version token) the planner needs.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from .constants import NUM_ALLIANCES, ROLE_ALIASES, ROLES
from .models import AllianceSlot
from .schemas import AllianceSlotDoc, AllianceTableDoc

logger = logging.getLogger('reefscout.alliances')

Slots = tuple[AllianceSlot, ...]


def empty_slots(count: int = NUM_ALLIANCES) -> Slots:
    """Create a table of empty alliances numbered 1..count."""
    return tuple(AllianceSlot(alliance_number=i + 1) for i in range(count))


def canonical_role(role: str) -> str:
    """Map a role name (camelCase or snake_case) to its canonical form."""
    try:
        return ROLE_ALIASES[role]
    except (KeyError, TypeError):
        raise ValueError(f'Invalid role: {role!r} (expected one of {", ".join(ROLES)})') from None


def _check_index(slots: Sequence[AllianceSlot], alliance_index: int) -> None:
    if isinstance(alliance_index, bool) or not isinstance(alliance_index, int):
        raise ValueError(f'Alliance index must be an int, got {alliance_index!r}')
    if not 0 <= alliance_index < len(slots):
        raise ValueError(f'Alliance index {alliance_index} out of range [0, {len(slots)})')


def find_team(slots: Iterable[AllianceSlot], team_number: str) -> Optional[tuple[int, str]]:
    """Return (alliance_index, role) holding team_number, or None."""
    team_number = str(team_number)
    for index, slot in enumerate(slots):
        for role in ROLES:
            if slot.get(role) == team_number:
                return index, role
    return None


def is_assigned(slots: Iterable[AllianceSlot], team_number: str) -> bool:
    """True if team_number occupies any slot in the table."""
    return find_team(slots, team_number) is not None


def assigned_teams(slots: Iterable[AllianceSlot]) -> list[str]:
    """All team numbers currently placed, in table order."""
    return [team for slot in slots for team in slot.teams()]


def assign(slots: Sequence[AllianceSlot], team_number: str, alliance_index: int, role: str) -> Slots:
    """
    Place a team in one slot, vacating any slot it held before.

    Whoever was in the target slot is displaced (left unassigned).

    Args:
        slots: Current table
        team_number: Team to place
        alliance_index: 0-based alliance index
        role: 'captain', 'firstPick' or 'secondPick'

    Returns:
        New table; the input is not modified

    Raises:
        ValueError: If alliance_index or role is out of range
    """
    _check_index(slots, alliance_index)
    role = canonical_role(role)
    team_number = str(team_number)

    updated = []
    for index, slot in enumerate(slots):
        for r in ROLES:
            if slot.get(r) == team_number:
                slot = slot.with_role(r, None)
        if index == alliance_index:
            slot = slot.with_role(role, team_number)
        updated.append(slot)
    return tuple(updated)


def unassign(slots: Sequence[AllianceSlot], alliance_index: int, role: str) -> Slots:
    """Empty one slot. Emptying an already empty slot is a no-op."""
    _check_index(slots, alliance_index)
    role = canonical_role(role)
    return tuple(
        slot.with_role(role, None) if index == alliance_index else slot
        for index, slot in enumerate(slots)
    )


def slots_from_docs(docs: Iterable[AllianceSlotDoc], count: int = NUM_ALLIANCES) -> Slots:
    """Build a full table from saved alliances; missing alliances are empty."""
    by_number = {doc.allianceNumber: doc for doc in docs}
    slots = []
    for number in range(1, count + 1):
        doc = by_number.get(number)
        if doc is None:
            slots.append(AllianceSlot(alliance_number=number))
        else:
            slots.append(AllianceSlot(
                alliance_number=number,
                captain=doc.captain,
                first_pick=doc.firstPick,
                second_pick=doc.secondPick,
            ))
    return tuple(slots)


def slots_to_docs(slots: Iterable[AllianceSlot]) -> list[AllianceSlotDoc]:
    return [
        AllianceSlotDoc(
            allianceNumber=slot.alliance_number,
            captain=slot.captain,
            firstPick=slot.first_pick,
            secondPick=slot.second_pick,
        )
        for slot in slots
    ]


class AllianceBoard:
    """
    Alliance table for one event, with the finalize lock.

    Editing methods return ``(ok, message)``. While the board is finalized
    they return ``(False, ...)`` and leave the table untouched; call
    ``unfinalize()`` (or ``reset()``) to edit again.
    """

    def __init__(self, event_key: str = '', slots: Optional[Sequence[AllianceSlot]] = None,
                 finalized: bool = False, version: int = 0):
        self.event_key = event_key
        self.slots: Slots = tuple(slots) if slots is not None else empty_slots()
        self.finalized = finalized
        self.version = version

    def _locked(self, action: str) -> tuple[bool, str]:
        message = f'Alliance selections for {self.event_key or "this event"} are finalized; cannot {action}'
        logger.warning(message)
        return False, message

    def assign(self, team_number: str, alliance_index: int, role: str) -> tuple[bool, str]:
        """Place a team, moving it if it already holds another slot."""
        if self.finalized:
            return self._locked(f'assign team {team_number}')
        previous = find_team(self.slots, team_number)
        self.slots = assign(self.slots, team_number, alliance_index, role)
        role = canonical_role(role)
        if previous and previous != (alliance_index, role):
            old_index, old_role = previous
            return True, (
                f'Moved team {team_number} from alliance {old_index + 1} {old_role} '
                f'to alliance {alliance_index + 1} {role}'
            )
        return True, f'Team {team_number} is alliance {alliance_index + 1} {role}'

    def unassign(self, alliance_index: int, role: str) -> tuple[bool, str]:
        """Clear one slot."""
        if self.finalized:
            return self._locked('remove a team')
        role = canonical_role(role)
        team = self.slots[alliance_index].get(role) if 0 <= alliance_index < len(self.slots) else None
        self.slots = unassign(self.slots, alliance_index, role)
        if team is None:
            return True, f'Alliance {alliance_index + 1} {role} was already empty'
        return True, f'Removed team {team} from alliance {alliance_index + 1} {role}'

    def is_assigned(self, team_number: str) -> bool:
        return is_assigned(self.slots, team_number)

    def find_team(self, team_number: str) -> Optional[tuple[int, str]]:
        return find_team(self.slots, team_number)

    def finalize(self) -> tuple[bool, str]:
        """Lock the table. The caller persists it (see gateway.save_alliances)."""
        if self.finalized:
            return False, 'Alliance selections are already finalized'
        self.finalized = True
        return True, 'Alliance selections finalized'

    def unfinalize(self) -> tuple[bool, str]:
        """Reopen a finalized table for editing."""
        if not self.finalized:
            return False, 'Alliance selections are not finalized'
        self.finalized = False
        return True, 'Alliance selections reopened for editing'

    def reset(self) -> None:
        """Empty every slot and reopen the table."""
        self.slots = empty_slots(len(self.slots))
        self.finalized = False

    def to_document(self) -> AllianceTableDoc:
        return AllianceTableDoc(
            eventKey=self.event_key,
            alliances=slots_to_docs(self.slots),
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=self.version,
        )

    @classmethod
    def from_document(cls, doc: AllianceTableDoc) -> 'AllianceBoard':
        """Rebuild a board from a saved table. A table with any alliances loads finalized."""
        return cls(
            event_key=doc.eventKey,
            slots=slots_from_docs(doc.alliances),
            finalized=bool(doc.alliances),
            version=doc.version,
        )
