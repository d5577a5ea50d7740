"""
Chess engine package with a tuned time-management core.

The engine searches with iterative-deepening negamax and decides how long to
think on every move with a time planner modelled on tournament engines:
an optimum and a maximum per move, derived from the clock, the increment,
moves-to-go, the game ply, and optional node-time emulation.

Modules:
    constants — Piece values, search parameters, time-management coefficients
    limits    — SearchLimits (parsed "go" parameters) and the ms clock
    options   — UCI options (Move Overhead, nodestime, Ponder)
    timeman   — TimeBudgetPlanner: optimum/maximum per move, node budget
    evaluate  — Material evaluation
    search    — GameSession, iterative deepening, time checks
"""
