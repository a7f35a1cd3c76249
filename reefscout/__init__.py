from .models import Capabilities, RankingRow, AllianceSlot, FieldPosition, FetchResult
from .capabilities import derive_capabilities
from .rankings import (
    normalize,
    resolve_stat_indices,
    parse_team_key,
    mark_selected,
    StatIndex,
    StatIndices,
)
from .alliances import (
    empty_slots,
    assign,
    unassign,
    is_assigned,
    find_team,
    assigned_teams,
    AllianceBoard,
)
from .field import position_for, clamp_percent, FieldBoard
from .teams import build_team_record, merge_team_record, filter_teams
from .store import DocumentStore
from .server import make_handler, create_server
from .gateway import PersistenceGateway
from .tba import TBAClient, extract_event_key
from .planner import AllianceSelection

__all__ = [
    # Models
    'Capabilities',
    'RankingRow',
    'AllianceSlot',
    'FieldPosition',
    'FetchResult',
    # Capability flags
    'derive_capabilities',
    # Rankings
    'normalize',
    'resolve_stat_indices',
    'parse_team_key',
    'mark_selected',
    'StatIndex',
    'StatIndices',
    # Alliance selection
    'empty_slots',
    'assign',
    'unassign',
    'is_assigned',
    'find_team',
    'assigned_teams',
    'AllianceBoard',
    'AllianceSelection',
    # Field diagram
    'position_for',
    'clamp_percent',
    'FieldBoard',
    # Teams
    'build_team_record',
    'merge_team_record',
    'filter_teams',
    # Persistence
    'DocumentStore',
    'make_handler',
    'create_server',
    'PersistenceGateway',
    # The Blue Alliance
    'TBAClient',
    'extract_event_key',
]
