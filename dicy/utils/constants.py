"""Game configuration constants."""

# Game defaults
MAX_TURNS = 999
DEFAULT_MAX_DICE = 9
DEFAULT_DICE_SIDES = 6
MAX_DICE_SIDES = 16  # Probability tables are precomputed for 1..16 sides
MAX_DICE_PER_TERRITORY = 16
MIN_PLAYERS = 2
MIN_TILES_PER_PLAYER = 4
INITIAL_DICE_MULTIPLIER = 2.5  # Average dice per tile at start

HUMAN_COLORS = [
    0xAA00FF,  # Purple
    0x0088FF,  # Azure blue
    0xFFCC00,  # Gold
    0x00AA44,  # Dark green
]
BOT_COLORS = [
    0xFF0055,  # Red/pink
    0x55FF00,  # Lime
    0xFF00AA,  # Pink
    0xFF8800,  # Orange
    0x00AAFF,  # Light blue
    0xFFFF00,  # Bright yellow
    0xFFFFFF,  # White
]

# Map styles
MAP_STYLES = ("full", "continents", "caves", "islands", "maze", "tunnels", "swiss", "preset")
RANDOM_STYLE_CHOICES = ("continents", "caves", "islands", "maze")
GAME_MODES = ("classic", "madness", "2of2", "fair")

# Cellular automata (caves)
CAVES_INITIAL_BLOCK_CHANCE = 0.45
CAVES_ITERATIONS = 5
CAVES_BLOCK_THRESHOLD = 5  # Become blocked if >= this many neighbours blocked
CAVES_UNBLOCK_THRESHOLD = 3  # Become unblocked if <= this many neighbours blocked

# Swiss cheese
SWISS_MIN_HOLE_PERCENTAGE = 0.3
SWISS_MAX_HOLE_PERCENTAGE = 0.4
SWISS_MAX_ATTEMPTS_MULTIPLIER = 20

# Tunnels
TUNNELS_MIN_PATHS = 3
TUNNELS_MAX_ADDITIONAL_PATHS = 3
TUNNELS_PATH_LENGTH_FACTOR = 0.4
TUNNELS_DIRECTION_CHANGE_CHANCE = 0.3
TUNNELS_WIDEN_CHANCE = 0.2

# Continents
CONTINENTS_SMALL_MAP_TILES = 25
CONTINENTS_MIN_DISTANCE_FACTOR = 0.4
CONTINENTS_MAX_RADIUS_FACTOR = 0.6
CONTINENTS_NOISE_FACTOR = 0.6
CONTINENTS_MAX_PLACEMENT_ATTEMPTS = 50

# Islands
ISLANDS_MAIN_RADIUS_FACTOR = 1 / 3
ISLANDS_LAKE_RADIUS_FACTOR = 1 / 3
ISLANDS_MIN_SMALL_ISLANDS = 3
ISLANDS_MAX_ADDITIONAL_ISLANDS = 4
ISLANDS_SMALL_MIN_RADIUS = 2
ISLANDS_SMALL_MAX_ADDITIONAL_RADIUS = 2

# Maze
MAZE_WIDEN_CHANCE = 0.3

# Simple fallback
SIMPLE_HOLE_PERCENTAGE = 0.2
SIMPLE_MAX_ATTEMPTS_MULTIPLIER = 10

# Circle carving noise
CIRCLE_NOISE_FACTOR = 0.3

# Agent sandbox
AGENT_DEFAULT_TIMEOUT = 5.0  # Seconds of wall-clock time per turn
AGENT_DEFAULT_MAX_MOVES = 200  # Attack intents per turn
AGENT_MEMORY_LIMIT_BYTES = 1024 * 1024 * 1024
AGENT_MAX_LOG_LINES = 200
AGENT_MAX_LOG_CHARS = 2000  # Longer log lines are truncated
AGENT_MAX_STORAGE_BYTES = 1024 * 1024  # Serialized size of one agent's storage

# Testing
RNG_SEED_DEFAULT = 42
