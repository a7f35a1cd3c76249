"""Constants and mappings for the REEFSCAPE scouting app."""

# Alliance selection
NUM_ALLIANCES = 8
ROLES = ('captain', 'firstPick', 'secondPick')

# snake_case spellings accepted by the engine
ROLE_ALIASES = {
    'captain': 'captain',
    'firstPick': 'firstPick',
    'first_pick': 'firstPick',
    'pick1': 'firstPick',
    'secondPick': 'secondPick',
    'second_pick': 'secondPick',
    'pick2': 'secondPick',
}

# Scouting form option codes
STARTING_POSITIONS = ('L', 'M', 'R', 'N')

# Older submissions stored long names for starting positions
LEGACY_STARTING_POSITIONS = {
    'leftCoralStation': 'L',
    'middle': 'M',
    'rightCoralStation': 'R',
}

POSITION_NAMES = {
    'L': 'Left',
    'M': 'Middle',
    'R': 'Right',
    'N': 'Does Not Move',
    'leftCoralStation': 'Left',
    'middle': 'Middle',
    'rightCoralStation': 'Right',
}

CORAL_SCORING_LOCATIONS = ('troughL1', 'L2Branches', 'L3Branches', 'L4Branches', 'notObserved')
HIGH_CORAL_LOCATIONS = frozenset({'L3Branches', 'L4Branches'})

ALGAE_HANDLING_MODES = (
    'doesNotHandle',
    'collectsFromReef',
    'collectsFromFloor',
    'scoresInProcessor',
    'scoresInOwnNet',
    'bothBandC',
)
NO_ALGAE = 'doesNotHandle'

CLIMB_ACTIONS = frozenset({'climbsCageShallow', 'climbsCageDeep'})
FAST_SPEEDS = frozenset({'fast', 'veryFast'})

# Field visualization: (x, y) percentages from the top-left corner of the field.
# Red is mirrored across the barge, so its L/R run bottom-to-top.
FIELD_POSITIONS = {
    'blue': {
        'L': (40.0, 25.0),
        'M': (40.0, 50.0),
        'R': (40.0, 75.0),
    },
    'red': {
        'L': (67.0, 86.0),
        'M': (67.0, 62.0),
        'R': (67.0, 36.0),
    },
}
DEFAULT_FIELD_POSITION = 'M'
ALLIANCE_COLORS = ('blue', 'red')
TEAMS_PER_ALLIANCE = 3

# The Blue Alliance
TBA_API_URL = 'https://www.thebluealliance.com/api/v3'
TBA_AUTH_HEADER = 'X-TBA-Auth-Key'
TEAM_KEY_PREFIX = 'frc'

# Legend lookups fall back to these sort_orders positions
DEFAULT_AUTO_INDEX = 1
DEFAULT_SCORE_INDEX = 2

EVENT_KEY_PATTERN = r'^\d{4}[a-z0-9]+$'
TEAM_NUMBER_PATTERN = r'^\d{1,5}$'
