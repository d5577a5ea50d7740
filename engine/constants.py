"""
Engine constants: piece values, search parameters, and time-management tuning.

All numeric constants used throughout the engine are defined here so that
the search and the time planner never need to introduce new magic numbers.
The time-management coefficients in particular are the output of long
tuning runs; changing one of them changes how the engine spends its clock,
so keep them together and keep them named.

Piece values follow the standard centipawn convention (1 pawn = 100 cp).
Times are integer milliseconds unless a name says otherwise.
"""

import chess

# ---------------------------------------------------------------------------
# Piece values (centipawns)
# ---------------------------------------------------------------------------

PAWN_VALUE: int = 100
KNIGHT_VALUE: int = 320
BISHOP_VALUE: int = 330
ROOK_VALUE: int = 500
QUEEN_VALUE: int = 900
KING_VALUE: int = 20_000  # Only used for move ordering; kings are never counted as material

PIECE_VALUES: dict[int, int] = {
    chess.PAWN:   PAWN_VALUE,
    chess.KNIGHT: KNIGHT_VALUE,
    chess.BISHOP: BISHOP_VALUE,
    chess.ROOK:   ROOK_VALUE,
    chess.QUEEN:  QUEEN_VALUE,
    chess.KING:   KING_VALUE,
}

CHECKMATE_SCORE: int = 99_999
DRAW_SCORE: int = 0

# ---------------------------------------------------------------------------
# Search parameters
# ---------------------------------------------------------------------------
MAX_DEPTH: int = 64

# TIME_CHECK_NODES: how often (in nodes) the search compares elapsed time
# against the planner's maximum. A Python search visits a few thousand nodes
# per second, so this has to be small or short budgets are overshot.
TIME_CHECK_NODES: int = 256

# ---------------------------------------------------------------------------
# UCI options
# ---------------------------------------------------------------------------
# (default, min, max) for the spin options the time planner reads.
MOVE_OVERHEAD_DEFAULT: int = 10
MOVE_OVERHEAD_RANGE: tuple[int, int] = (0, 5_000)
NODESTIME_DEFAULT: int = 0
NODESTIME_RANGE: tuple[int, int] = (0, 10_000)

# ---------------------------------------------------------------------------
# Time management: move horizon
# ---------------------------------------------------------------------------
# The planner works in "centi-moves" (hundredths of a move) so the horizon
# can be fractional without floats.
# Under sudden death, ~50.5 moves are assumed to remain.
SUDDEN_DEATH_CENTI_MTG: int = 5_051
MAX_CENTI_MTG: int = 5_000

# Below one second of (scaled) clock, the horizon shrinks to
# scaled_time * SHORT_TC_CENTI_MTG_PER_MS centi-moves.
SHORT_TC_THRESHOLD_MS: int = 1_000
SHORT_TC_CENTI_MTG_PER_MS: float = 5.051

# ---------------------------------------------------------------------------
# Time management: sudden death
# ---------------------------------------------------------------------------
# Per-game calibration: time_adjust = A * log10(time_left) + B
TIME_ADJUST_LOG_FACTOR: float = 0.3128
TIME_ADJUST_OFFSET: float = -0.4354

OPT_CONSTANT_BASE: float = 0.0032116
OPT_CONSTANT_LOG_FACTOR: float = 0.000321123
OPT_CONSTANT_CAP: float = 0.00508017

MAX_CONSTANT_BASE: float = 3.3977
MAX_CONSTANT_LOG_FACTOR: float = 3.03950
MAX_CONSTANT_FLOOR: float = 2.94761

OPT_SCALE_BASE: float = 0.0121431
OPT_SCALE_PLY_OFFSET: float = 2.94693
OPT_SCALE_PLY_EXPONENT: float = 0.461073
OPT_SCALE_TIME_LEFT_CAP: float = 0.213035

MAX_SCALE_CAP: float = 6.67704
MAX_SCALE_PLY_DIVISOR: float = 11.9847

# ---------------------------------------------------------------------------
# Time management: fixed moves-to-go
# ---------------------------------------------------------------------------
MTG_OPT_BASE: float = 0.88
MTG_OPT_PLY_DIVISOR: float = 116.4
MTG_OPT_TIME_LEFT_CAP: float = 0.88
MTG_MAX_BASE: float = 1.3
MTG_MAX_PER_MOVE: float = 0.11

# ---------------------------------------------------------------------------
# Time management: final clamps
# ---------------------------------------------------------------------------
# Fractions of the remaining clock that the optimum and the maximum may
# never exceed, and the overall usable share of the clock.
OPTIMUM_TIME_CAP: float = 0.20
MAXIMUM_TIME_CAP: float = 0.30
MAXIMUM_USABLE_FRACTION: float = 0.825179

# Pondering extends the optimum by 1/PONDER_BONUS_DIVISOR.
PONDER_BONUS_DIVISOR: int = 4
