"""
Search entry point: iterative-deepening negamax driven by the time planner.

This module defines the interface that interface/uci.py and web/app.py
depend on: GameSession (per-game state), prepare_search()/run_search() and
get_best_move(), which chains the two.

How the search spends its clock:

1. prepare_search() asks the TimeBudgetPlanner for this move's optimum and
   maximum (engine/timeman.py).
2. Iterative deepening searches depth 1, 2, 3, ... Each completed iteration
   leaves a valid best move behind.
3. After an iteration, if elapsed time is past the optimum, no new
   iteration is started.
4. Inside an iteration, every few hundred nodes check_time() compares
   elapsed time with the maximum (and with movetime / nodes limits) and
   aborts the iteration when exceeded. The interrupted iteration's result
   is discarded.

Under node-time emulation "elapsed time" is the number of nodes searched,
and the nodes spent are charged to the planner's node budget when the
search ends.

Threading model:
    The UCI handler calls prepare_search() on its own thread, then
    run_search() in a daemon thread. The stop_event is set by "stop" or by
    check_time(). "ponderhit" arrives on the UCI thread and flips the
    pondering flag of the running search.
"""

import threading
from dataclasses import dataclass, field
from typing import Iterable

import chess

from engine.constants import CHECKMATE_SCORE, MAX_DEPTH, PIECE_VALUES, TIME_CHECK_NODES
from engine.evaluate import evaluate
from engine.limits import SearchLimits, now
from engine.options import OptionsMap
from engine.timeman import Calibration, TimeBudgetPlanner

# How often a finished search polls for "stop"/"ponderhit" while it must
# hold its bestmove (pondering or "go infinite").
_HOLD_POLL_SECONDS: float = 0.01


@dataclass
class SearchState:
    """
    Mutable state of one running search.

    Attributes:
        limits:            Limits as normalized by the planner (node units
                           under node-time emulation).
        planner:           The session's planner, already initialized for
                           this move.
        stop_event:        Set to abort the search.
        node_count:        Nodes visited so far.
        best_move:         Best root move of the deepest iteration so far.
        best_score:        Score of best_move, side-to-move's perspective.
        pondering:         True while searching on the opponent's time. The
                           clock checks are suspended until "ponderhit".
        stop_on_ponderhit: The optimum passed while pondering; stop as soon
                           as the ponder move is played.
    """

    limits: SearchLimits
    planner: TimeBudgetPlanner
    stop_event: threading.Event = field(default_factory=threading.Event)
    node_count: int = 0
    best_move: chess.Move | None = None
    best_score: int = 0
    pondering: bool = False
    stop_on_ponderhit: bool = False

    @property
    def check_interval(self) -> int:
        """Nodes between two check_time() calls; tighter when a small node limit is set."""
        if self.limits.nodes:
            return max(1, min(TIME_CHECK_NODES, self.limits.nodes // 1024))
        return TIME_CHECK_NODES

    def elapsed(self) -> int:
        """Time spent on this move: nodes under node-time emulation, else ms."""
        if self.planner.use_nodes_time:
            return self.node_count
        return self.elapsed_time()

    def elapsed_time(self) -> int:
        """Wall-clock ms since the "go" command, regardless of emulation."""
        return now() - self.planner.start_time

    def check_time(self) -> None:
        """Set stop_event when a hard limit has been reached."""
        if self.pondering:
            return

        limits = self.limits
        if (
            (limits.use_time_management() and self.elapsed() > self.planner.maximum())
            or (limits.movetime and self.elapsed_time() >= limits.movetime)
            or (limits.nodes and self.node_count >= limits.nodes)
        ):
            self.stop_event.set()

    def ponderhit(self) -> None:
        """The opponent played the expected move: the search is now on our clock."""
        self.pondering = False
        if self.stop_on_ponderhit:
            self.stop_event.set()


@dataclass
class GameSession:
    """
    Everything that lives for one game (and across games, for options).

    Attributes:
        planner:     Time planner; its node budget is per game.
        calibration: Per-game calibration of the sudden-death optimum.
        options:     UCI options, kept across games.
        search:      The running search, if any.
    """

    planner: TimeBudgetPlanner = field(default_factory=TimeBudgetPlanner)
    calibration: Calibration = field(default_factory=Calibration)
    options: OptionsMap = field(default_factory=OptionsMap)
    search: SearchState | None = None

    def new_game(self) -> None:
        """Game boundary: forget the node budget and the calibration."""
        self.planner.clear()
        self.calibration.reset()

    def ponderhit(self) -> None:
        search = self.search
        if search is not None:
            search.ponderhit()


def _order_moves(board: chess.Board, moves: Iterable[chess.Move]) -> list[chess.Move]:
    """MVV-LVA: captures first, most valuable victim / least valuable attacker first."""
    def _score(move: chess.Move) -> int:
        if not board.is_capture(move):
            return 0
        attacker = board.piece_at(move.from_square)
        victim = board.piece_at(move.to_square)
        attacker_val = PIECE_VALUES[attacker.piece_type] if attacker else 0
        # En passant: the victim is not on to_square.
        victim_val = PIECE_VALUES[victim.piece_type] if victim else PIECE_VALUES[chess.PAWN]
        return 10_000 + victim_val - attacker_val

    return sorted(moves, key=_score, reverse=True)


def negamax(
    board: chess.Board,
    depth: int,
    alpha: int,
    beta: int,
    ply: int,
    state: SearchState,
) -> int:
    """
    Alpha-beta negamax. Returns 0 as soon as the search is stopped; such
    results are discarded by the caller.

    Args:
        board: Position, restored on return.
        depth: Remaining depth in plies.
        alpha: Lower bound of the window.
        beta:  Upper bound of the window.
        ply:   Distance from the root; mate scores are CHECKMATE_SCORE - ply.
        state: The running search.

    Returns:
        Score in centipawns from the side to move's perspective.
    """
    if state.stop_event.is_set():
        return 0

    state.node_count += 1
    if state.node_count % state.check_interval == 0:
        state.check_time()
        if state.stop_event.is_set():
            return 0

    if board.is_game_over():
        if board.is_checkmate():
            return -(CHECKMATE_SCORE - ply)
        return 0

    if depth == 0:
        return evaluate(board)

    best_score = -CHECKMATE_SCORE
    best_move = None

    for move in _order_moves(board, board.legal_moves):
        board.push(move)
        score = -negamax(board, depth - 1, -beta, -alpha, ply + 1, state)
        board.pop()

        if score > best_score:
            best_score = score
            best_move = move
        if best_score > alpha:
            alpha = best_score
        if alpha >= beta:
            break

    if ply == 0:
        state.best_move = best_move
        state.best_score = best_score

    return best_score


def prepare_search(
    board: chess.Board,
    limits: SearchLimits,
    session: GameSession,
    stop_event: threading.Event,
) -> SearchState:
    """
    Plan the move and register the search with the session.

    Runs on the thread that received "go", before the search thread
    starts, so a "ponderhit" sent right after "go" always finds the search.

    Args:
        board:      Position to search (must have a legal move).
        limits:     Limits of the "go" command. Not modified.
        session:    The game session (planner, calibration, options).
        stop_event: Set externally to stop the search.

    Returns:
        The state to hand to run_search().
    """
    limits = session.planner.init(
        limits, board.turn, board.ply(), session.options, session.calibration
    )
    state = SearchState(
        limits=limits,
        planner=session.planner,
        stop_event=stop_event,
        pondering=limits.ponder,
    )
    session.search = state
    return state


def run_search(
    board: chess.Board,
    state: SearchState,
    session: GameSession,
) -> tuple[chess.Move, int, int, int]:
    """
    Iterative deepening until a stopping criterion fires, then charge
    node-time emulation for the nodes spent.

    Args:
        board:   Position to search. Not modified.
        state:   State returned by prepare_search() for this position.
        session: The session the state was registered with.

    Returns:
        (move, score_cp, depth, nodes); depth is the deepest completed
        iteration.
    """
    us = board.turn
    planner = state.planner
    limits = state.limits
    stop_event = state.stop_event

    board = board.copy()
    max_depth = min(limits.depth, MAX_DEPTH) if limits.depth else MAX_DEPTH
    completed_depth = 0

    try:
        for depth in range(1, max_depth + 1):
            prev_best_move = state.best_move
            prev_best_score = state.best_score

            negamax(board, depth, -CHECKMATE_SCORE, CHECKMATE_SCORE, 0, state)

            if stop_event.is_set():
                if prev_best_move is not None:
                    state.best_move = prev_best_move
                    state.best_score = prev_best_score
                break

            completed_depth = depth

            if limits.use_time_management() and state.elapsed() > planner.optimum():
                if state.pondering:
                    state.stop_on_ponderhit = True
                else:
                    break

        # UCI forbids a bestmove while pondering or in infinite mode until
        # the GUI sends "stop" or "ponderhit".
        while not stop_event.is_set() and (state.pondering or limits.infinite):
            stop_event.wait(_HOLD_POLL_SECONDS)
    finally:
        # A newer search may already be registered if this one was slow to stop.
        if session.search is state:
            session.search = None

    if limits.npmsec:
        planner.advance_nodes_time(state.node_count - limits.inc[us])

    if state.best_move is None:
        # Stopped before the first root move finished: any legal move beats a forfeit.
        state.best_move = next(iter(board.legal_moves))

    return (state.best_move, state.best_score, completed_depth, state.node_count)


def get_best_move(
    board: chess.Board,
    limits: SearchLimits,
    session: GameSession,
    stop_event: threading.Event,
) -> tuple[chess.Move | None, int, int, int]:
    """
    Search the position within the limits of a "go" command.

    prepare_search() followed by run_search() on the calling thread.

    Args:
        board:      Position to search. Not modified.
        limits:     Limits of the "go" command. Not modified.
        session:    The game session (planner, calibration, options).
        stop_event: Set externally to stop the search.

    Returns:
        (move, score_cp, depth, nodes). move is None only if the game is
        already over or the search was stopped before it began.
    """
    if not any(board.legal_moves) or stop_event.is_set():
        return (None, 0, 0, 0)

    state = prepare_search(board, limits, session, stop_event)
    return run_search(board, state, session)
