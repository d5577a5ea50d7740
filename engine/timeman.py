"""
Time management: how long to think about the current move.

At the start of every move the planner turns the side-to-move's clock into
two numbers:

    optimum  — the time the search should aim to stop near. The search does
               not start a new iteration once it is past the optimum.
    maximum  — the hard ceiling. The search aborts mid-iteration when it is
               past the maximum.

The model is piecewise and heavily tuned (see engine.constants):

1. Estimate how many moves remain (the "horizon", in centi-moves). Known
   under a moves-to-go control, assumed ~50 under sudden death, and shrunk
   when less than a second is left.
2. Fold the future increments and per-move overhead over that horizon into
   `time_left`, the clock we can actually plan with.
3. Turn `time_left` into fractions (opt_scale, max_scale). Sudden death uses
   a logarithmic model of the remaining seconds and a power of the game
   ply; moves-to-go is close to an even split with a ply bonus.
4. Clamp: the optimum never exceeds 20% of the clock, the maximum never
   exceeds 30% and never falls below the optimum. Both are at least 1.

Node-time emulation ("nodestime" option): instead of a wall clock the
engine spends a budget of searched nodes, `nodestime` nodes per ms. The
planner converts the clock to node units once per game and from then on
tracks the remaining budget itself, so results are reproducible on any
hardware.
"""

import logging
import math
from dataclasses import dataclass, replace

import chess

from engine.constants import (
    MAX_CENTI_MTG,
    MAX_CONSTANT_BASE,
    MAX_CONSTANT_FLOOR,
    MAX_CONSTANT_LOG_FACTOR,
    MAX_SCALE_CAP,
    MAX_SCALE_PLY_DIVISOR,
    MAXIMUM_TIME_CAP,
    MAXIMUM_USABLE_FRACTION,
    MTG_MAX_BASE,
    MTG_MAX_PER_MOVE,
    MTG_OPT_BASE,
    MTG_OPT_PLY_DIVISOR,
    MTG_OPT_TIME_LEFT_CAP,
    OPT_CONSTANT_BASE,
    OPT_CONSTANT_CAP,
    OPT_CONSTANT_LOG_FACTOR,
    OPT_SCALE_BASE,
    OPT_SCALE_PLY_EXPONENT,
    OPT_SCALE_PLY_OFFSET,
    OPT_SCALE_TIME_LEFT_CAP,
    OPTIMUM_TIME_CAP,
    PONDER_BONUS_DIVISOR,
    SHORT_TC_CENTI_MTG_PER_MS,
    SHORT_TC_THRESHOLD_MS,
    SUDDEN_DEATH_CENTI_MTG,
    TIME_ADJUST_LOG_FACTOR,
    TIME_ADJUST_OFFSET,
)
from engine.limits import SearchLimits
from engine.options import OptionsMap

_log = logging.getLogger(__name__)


@dataclass
class Calibration:
    """
    Per-game calibration of the sudden-death optimum.

    Computed from the first sudden-death clock of the game and reused for
    every later move, so the optimum does not feed back on itself as the
    clock runs down. A negative value (first clock nearly used up by the
    move overhead) is not kept: the next sudden-death move recomputes it.
    Owned by the game session, not by the planner.

    Attributes:
        time_adjust: Multiplier applied to the sudden-death opt_scale, or
                     None while not yet computed this game.
    """

    time_adjust: float | None = None

    def reset(self) -> None:
        self.time_adjust = None


def _div_trunc(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero (denominator > 0)."""
    quotient = abs(numerator) // denominator
    return quotient if numerator >= 0 else -quotient


def centi_moves_to_go(movestogo: int, scaled_time: int) -> int:
    """
    Number of moves the remaining clock must cover, in hundredths of a move.

    Args:
        movestogo:   Moves until the next time control, 0 for sudden death.
        scaled_time: Remaining clock in real milliseconds.

    Returns:
        Centi-moves, at least 1.
    """
    if movestogo:
        centi_mtg = min(movestogo * 100, MAX_CENTI_MTG)
    else:
        centi_mtg = SUDDEN_DEATH_CENTI_MTG

    # With under a second left, do not pretend there are 50 moves to plan for.
    if scaled_time < SHORT_TC_THRESHOLD_MS:
        centi_mtg = min(centi_mtg, int(scaled_time * SHORT_TC_CENTI_MTG_PER_MS))

    return max(1, centi_mtg)


def horizon_time_left(time_ms: int, inc_ms: int, centi_mtg: int, move_overhead: int) -> int:
    """
    Clock available for planning: remaining time plus the increments still
    to come over the horizon, minus the overhead paid on every one of those
    moves. At least 1.
    """
    adjustment = inc_ms * (centi_mtg - 100) - move_overhead * (200 + centi_mtg)
    return max(1, time_ms + _div_trunc(adjustment, 100))


def sudden_death_scales(
    time_ms: int,
    time_left: int,
    scaled_time: int,
    ply: int,
    time_adjust: float,
) -> tuple[float, float]:
    """
    (opt_scale, max_scale) when no moves-to-go is given.

    Later plies raise the optimum through the power term; a short clock
    compresses both scales through the log of the remaining seconds.
    """
    # An exhausted node budget leaves scaled_time at 0; every bound clamps
    # to 1 in that case, so any finite logarithm will do.
    log_seconds = math.log10(max(scaled_time, 1) / 1000.0)

    opt_constant = min(OPT_CONSTANT_BASE + OPT_CONSTANT_LOG_FACTOR * log_seconds, OPT_CONSTANT_CAP)
    max_constant = max(MAX_CONSTANT_BASE + MAX_CONSTANT_LOG_FACTOR * log_seconds, MAX_CONSTANT_FLOOR)
    time_left_factor = time_ms / time_left

    opt_scale = min(
        OPT_SCALE_BASE + math.pow(ply + OPT_SCALE_PLY_OFFSET, OPT_SCALE_PLY_EXPONENT) * opt_constant,
        OPT_SCALE_TIME_LEFT_CAP * time_left_factor,
    ) * time_adjust
    max_scale = min(MAX_SCALE_CAP, max_constant + ply / MAX_SCALE_PLY_DIVISOR)
    return opt_scale, max_scale


def moves_to_go_scales(time_ms: int, time_left: int, centi_mtg: int, ply: int) -> tuple[float, float]:
    """(opt_scale, max_scale) under a fixed moves-to-go control."""
    moves_to_go = centi_mtg / 100.0
    opt_scale = min(
        (MTG_OPT_BASE + ply / MTG_OPT_PLY_DIVISOR) / moves_to_go,
        MTG_OPT_TIME_LEFT_CAP * time_ms / time_left,
    )
    max_scale = MTG_MAX_BASE + MTG_MAX_PER_MOVE * moves_to_go
    return opt_scale, max_scale


class TimeBudgetPlanner:
    """
    Stateful time planner, one per engine session.

    Attributes:
        start_time:      Timestamp (ms) when the current move's search began.
        optimum_time:    Target duration for the current move.
        maximum_time:    Hard ceiling for the current move; never below
                         optimum_time.
        use_nodes_time:  True when node-time emulation is active this move.
        available_nodes: Remaining node budget under node-time emulation, or
                         None while not seeded this game.

    Durations are in ms, or in nodes under node-time emulation.
    """

    def __init__(self) -> None:
        self.start_time: int = 0
        self.optimum_time: int = 0
        self.maximum_time: int = 0
        self.use_nodes_time: bool = False
        self.available_nodes: int | None = None

    def optimum(self) -> int:
        return self.optimum_time

    def maximum(self) -> int:
        return self.maximum_time

    def clear(self) -> None:
        """Forget the node budget. Call at the start of every game."""
        self.available_nodes = None

    def advance_nodes_time(self, nodes: int) -> None:
        """Spend `nodes` from the node budget. Only valid under node-time emulation."""
        assert self.use_nodes_time, "advance_nodes_time() without node-time emulation"
        self.available_nodes = max(0, self.available_nodes - nodes)

    def init(
        self,
        limits: SearchLimits,
        us: chess.Color,
        ply: int,
        options: OptionsMap,
        calibration: Calibration,
    ) -> SearchLimits:
        """
        Compute optimum and maximum for the move about to be searched.

        Args:
            limits:      Limits of the "go" command. Never modified.
            us:          Side to move.
            ply:         Game ply of the root position.
            options:     Reads "nodestime", "Move Overhead" and "Ponder".
            calibration: The game's calibration; set on the first
                         sudden-death move of the game.

        Returns:
            The limits the search should use. Under node-time emulation this
            is a copy whose clock and increment for `us` are in nodes and
            whose npmsec is set; otherwise it is `limits` itself.
        """
        self.start_time = limits.start_time

        # No clock (infinite, fixed depth/nodes/movetime): nothing to plan.
        if limits.time[us] == 0:
            self.use_nodes_time = False
            return limits

        npmsec = int(options["nodestime"])
        self.use_nodes_time = npmsec != 0

        if self.use_nodes_time:
            if self.available_nodes is None:
                self.available_nodes = max(0, npmsec * limits.time[us])
            limits = replace(
                limits,
                time={**limits.time, us: self.available_nodes},
                inc={**limits.inc, us: limits.inc[us] * npmsec},
                npmsec=npmsec,
            )

        time_ms = limits.time[us]
        inc_ms = limits.inc[us]
        move_overhead = int(options["Move Overhead"])
        scale_factor = npmsec if self.use_nodes_time else 1
        scaled_time = time_ms // scale_factor

        centi_mtg = centi_moves_to_go(limits.movestogo, scaled_time)
        time_left = horizon_time_left(time_ms, inc_ms, centi_mtg, move_overhead)

        if limits.movestogo == 0:
            if calibration.time_adjust is None or calibration.time_adjust < 0:
                calibration.time_adjust = (
                    TIME_ADJUST_LOG_FACTOR * math.log10(time_left) + TIME_ADJUST_OFFSET
                )
            opt_scale, max_scale = sudden_death_scales(
                time_ms, time_left, scaled_time, ply, calibration.time_adjust
            )
        else:
            opt_scale, max_scale = moves_to_go_scales(time_ms, time_left, centi_mtg, ply)

        self.optimum_time = max(
            1, min(int(OPTIMUM_TIME_CAP * time_ms), int(opt_scale * time_left))
        )
        self.maximum_time = max(
            1,
            self.optimum_time,
            min(
                int(MAXIMUM_TIME_CAP * time_ms),
                int(min(MAXIMUM_USABLE_FRACTION * time_ms - move_overhead,
                        max_scale * self.optimum_time)),
            ),
        )

        # Pondering thinks on the opponent's clock too, so we can afford more of ours.
        if options["Ponder"]:
            self.optimum_time += self.optimum_time // PONDER_BONUS_DIVISOR
            self.maximum_time = max(self.maximum_time, self.optimum_time)

        _log.debug(
            "time plan: clock=%d inc=%d centi_mtg=%d time_left=%d optimum=%d maximum=%d%s",
            time_ms,
            inc_ms,
            centi_mtg,
            time_left,
            self.optimum_time,
            self.maximum_time,
            " (nodes)" if self.use_nodes_time else "",
        )
        return limits
