#!/usr/bin/env python3
"""
Budget table: print the planner's optimum and maximum for standard clocks.

Run before and after touching a time-management constant to see what the
change does across bullet, blitz, rapid, classical, moves-to-go and
node-time controls. Each scenario is planned at several game plies on a
fresh game, so the per-game calibration comes from the first row.

Usage: python3 tools/budget_table.py
"""
import os
import sys

REPO = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO not in sys.path:
    sys.path.insert(0, REPO)

import chess
from engine.limits import SearchLimits
from engine.search import GameSession

# (label, clock ms, increment ms, movestogo, nodestime)
# These are fixed so that tables stay comparable between tuning runs.
SCENARIOS = [
    ("Ultrabullet",  15_000,      0,  0,   0),
    ("Bullet 1+0",   60_000,      0,  0,   0),
    ("Bullet 1+1",   60_000,  1_000,  0,   0),
    ("Blitz 3+2",   180_000,  2_000,  0,   0),
    ("Rapid 10+5",  600_000,  5_000,  0,   0),
    ("Classical",  5_400_000, 30_000, 0,   0),
    ("40/2h",      7_200_000,      0, 40,  0),
    ("Last move",    120_000,      0,  1,   0),
    ("Flagging",         800,      0,  0,   0),
    ("Nodes 1+0",     60_000,      0,  0, 100),
]

PLIES = [0, 20, 60, 120]


def plan(time_ms: int, inc_ms: int, movestogo: int, nodestime: int) -> list[tuple[int, int]]:
    """Return (optimum, maximum) at each of PLIES for one clock on a fresh game.

    The clock is not run down between plies: each row answers "what if the
    game reached this ply with this clock".
    """
    session = GameSession()
    session.options.set("nodestime", str(nodestime))

    rows = []
    for ply in PLIES:
        limits = SearchLimits.from_clock(time_ms, inc_ms, movestogo, chess.WHITE)
        session.planner.init(limits, chess.WHITE, ply, session.options, session.calibration)
        rows.append((session.planner.optimum(), session.planner.maximum()))
    return rows


def main() -> None:
    """Print one line per scenario: optimum/maximum at each ply."""
    header = f"{'Scenario':<12} {'Clock':>9} {'Inc':>6} {'MTG':>4}"
    for ply in PLIES:
        header += f" {'ply ' + str(ply):>15}"
    print(header)
    print("-" * len(header))

    for label, time_ms, inc_ms, movestogo, nodestime in SCENARIOS:
        line = f"{label:<12} {time_ms:>9,} {inc_ms:>6,} {movestogo:>4}"
        for optimum, maximum in plan(time_ms, inc_ms, movestogo, nodestime):
            line += f" {f'{optimum:,}/{maximum:,}':>15}"
        print(line)

    print()
    print("optimum/maximum in ms (in nodes for node-time rows).")


if __name__ == "__main__":
    main()
