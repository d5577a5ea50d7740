"""
Search limits: the clock and stopping parameters of a single "go" command.

The UCI handler (or the web API) fills a SearchLimits per move. The time
planner reads the side-to-move's clock from it, and the search reads the
remaining stopping criteria (depth, nodes, movetime, infinite, ponder).

Times are integer milliseconds taken from a monotonic clock, so a timestamp
is only meaningful relative to another timestamp from now().
"""

import time
from dataclasses import dataclass, field

import chess


def now() -> int:
    """Current monotonic timestamp in milliseconds."""
    return int(time.monotonic() * 1000)


def _per_side() -> dict[chess.Color, int]:
    return {chess.WHITE: 0, chess.BLACK: 0}


@dataclass
class SearchLimits:
    """
    Limits for one search, as parsed from a UCI "go" command.

    Attributes:
        time:       Remaining clock per colour (ms). 0 means "no clock".
        inc:        Increment per move per colour (ms).
        movestogo:  Moves until the next time control; 0 means sudden death.
        depth:      Maximum iterative-deepening depth, 0 for none.
        nodes:      Node limit, 0 for none.
        movetime:   Fixed time for this move (ms), 0 for none.
        infinite:   Search until "stop".
        ponder:     Search started in ponder mode (on the opponent's clock).
        npmsec:     Nodes per millisecond when node-time emulation is active.
                    Written by the time planner; 0 otherwise.
        start_time: Timestamp taken when the command was received.
    """

    time: dict[chess.Color, int] = field(default_factory=_per_side)
    inc: dict[chess.Color, int] = field(default_factory=_per_side)
    movestogo: int = 0
    depth: int = 0
    nodes: int = 0
    movetime: int = 0
    infinite: bool = False
    ponder: bool = False
    npmsec: int = 0
    start_time: int = field(default_factory=now)

    def use_time_management(self) -> bool:
        """True when either side has a clock, i.e. the planner's bounds apply."""
        return bool(self.time[chess.WHITE] or self.time[chess.BLACK])

    @classmethod
    def from_clock(
        cls,
        time_ms: int,
        inc_ms: int = 0,
        movestogo: int = 0,
        color: chess.Color = chess.WHITE,
    ) -> "SearchLimits":
        """Build limits where only `color` has a clock (handy for the web API and tests)."""
        limits = cls(movestogo=movestogo)
        limits.time[color] = time_ms
        limits.inc[color] = inc_ms
        return limits
