"""
FastAPI web application for the Chess AI engine.

Endpoints:
    POST /api/budget — time plan (optimum/maximum) for a clock state
    POST /api/move   — search a FEN under a clock and return the best move

Architecture notes:
- Sync endpoints (not async): FastAPI runs sync handlers in a thread pool,
  which is the correct pattern for CPU-bound blocking calls like search.
- Stateless per request: every request builds a fresh GameSession. The
  per-game calibration of the time planner is therefore carried by the
  client: each response returns `time_adjust`, and the client sends it back
  with the next move of the same game (omit it on the first move). Under
  node-time emulation the remaining node budget travels the same way, as
  `available_nodes`.
"""

import logging
import threading

import chess
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, field_validator

from engine.constants import MOVE_OVERHEAD_DEFAULT, MOVE_OVERHEAD_RANGE, NODESTIME_RANGE
from engine.limits import SearchLimits
from engine.search import GameSession, get_best_move

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

app = FastAPI(title="Chess AI", version="5.0.0")


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class ClockRequest(BaseModel):
    """
    Clock state and time-management settings for one move.

    Fields:
        time_ms:         Remaining clock of the side to move (ms).
        increment_ms:    Increment per move (ms).
        movestogo:       Moves to the next time control, 0 for sudden death.
        move_overhead:   Per-move latency allowance (ms), clamped to the UCI range.
        nodestime:       Nodes per ms for node-time emulation, 0 for a real clock.
        ponder:          Whether the client lets the engine ponder.
        time_adjust:     Calibration returned by the previous response of this
                         game, or None on the first move.
        available_nodes: Node budget returned by the previous response of this
                         game under nodestime, or None to seed it from time_ms.
    """

    time_ms: int
    increment_ms: int = 0
    movestogo: int = 0
    move_overhead: int = MOVE_OVERHEAD_DEFAULT
    nodestime: int = 0
    ponder: bool = False
    time_adjust: float | None = None
    available_nodes: int | None = None

    @field_validator("time_ms", "increment_ms", "movestogo", "available_nodes")
    @classmethod
    def non_negative(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("move_overhead")
    @classmethod
    def clamp_move_overhead(cls, v: int) -> int:
        """Clamp move_overhead to the range of the UCI option."""
        low, high = MOVE_OVERHEAD_RANGE
        return max(low, min(v, high))

    @field_validator("nodestime")
    @classmethod
    def clamp_nodestime(cls, v: int) -> int:
        low, high = NODESTIME_RANGE
        return max(low, min(v, high))

    def session(self) -> GameSession:
        """A fresh session configured from this request."""
        session = GameSession()
        session.options.set("Move Overhead", str(self.move_overhead))
        session.options.set("nodestime", str(self.nodestime))
        session.options.set("Ponder", "true" if self.ponder else "false")
        session.calibration.time_adjust = self.time_adjust
        session.planner.available_nodes = self.available_nodes
        return session


class BudgetRequest(ClockRequest):
    """ClockRequest plus the game ply and side to move (the planner needs both)."""

    ply: int = 0
    white_to_move: bool = True

    @field_validator("ply")
    @classmethod
    def non_negative_ply(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


class BudgetResponse(BaseModel):
    optimum_ms: int
    maximum_ms: int
    use_nodes_time: bool
    time_adjust: float | None
    available_nodes: int | None


class MoveRequest(ClockRequest):
    """ClockRequest plus the position to search (side to move and ply come from the FEN)."""

    fen: str


class MoveResponse(BaseModel):
    """
    Engine response after computing the best move.

    Fields:
        move:            Best move in UCI notation.
        fen:             Board FEN after the move.
        score:           Centipawns from the engine's perspective.
        depth:           Deepest completed iteration.
        nodes:           Nodes searched.
        optimum_ms:      Planned target time for this move.
        maximum_ms:      Planned ceiling for this move.
        time_adjust:     Calibration to send back with the next move.
        available_nodes: Node budget left after this move under nodestime,
                         to send back with the next move.
    """

    move: str
    fen: str
    score: int
    depth: int
    nodes: int
    optimum_ms: int
    maximum_ms: int
    time_adjust: float | None
    available_nodes: int | None


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------


@app.post("/api/budget", response_model=BudgetResponse)
def api_budget(request: BudgetRequest) -> BudgetResponse:
    """
    Plan the time for one move without searching.

    A zero clock means "no time control": the planner leaves its bounds
    untouched, so both come back as 0.
    """
    session = request.session()
    color = chess.WHITE if request.white_to_move else chess.BLACK
    limits = SearchLimits.from_clock(
        request.time_ms, request.increment_ms, request.movestogo, color
    )
    session.planner.init(limits, color, request.ply, session.options, session.calibration)

    return BudgetResponse(
        optimum_ms=session.planner.optimum(),
        maximum_ms=session.planner.maximum(),
        use_nodes_time=session.planner.use_nodes_time,
        time_adjust=session.calibration.time_adjust,
        available_nodes=session.planner.available_nodes,
    )


@app.post("/api/move", response_model=MoveResponse)
def api_move(request: MoveRequest) -> MoveResponse:
    """
    Compute the engine's best move for the given position and clock.

    Raises:
        HTTPException 400: Malformed FEN or game already over.
        HTTPException 500: Engine failure or no move returned.
    """
    try:
        board = chess.Board(request.fen)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid FEN: {exc}") from exc

    if board.is_game_over():
        raise HTTPException(status_code=400, detail=f"Game is already over: {board.result()}")

    # Without a clock the search would only stop at MAX_DEPTH.
    if request.time_ms == 0:
        raise HTTPException(status_code=400, detail="time_ms must be positive to search")

    session = request.session()
    limits = SearchLimits.from_clock(
        request.time_ms, request.increment_ms, request.movestogo, board.turn
    )

    try:
        move, score, depth, nodes = get_best_move(board, limits, session, threading.Event())
    except Exception as exc:
        _log.exception("Engine search failed for FEN=%s", request.fen)
        raise HTTPException(status_code=500, detail=f"Engine error: {exc}") from exc

    if move is None:
        raise HTTPException(status_code=500, detail="Engine returned no move")

    _log.info(
        "Move=%s score=%d depth=%d nodes=%d optimum=%d maximum=%d fen=%s",
        move.uci(),
        score,
        depth,
        nodes,
        session.planner.optimum(),
        session.planner.maximum(),
        request.fen[:40],
    )

    board.push(move)
    return MoveResponse(
        move=move.uci(),
        fen=board.fen(),
        score=score,
        depth=depth,
        nodes=nodes,
        optimum_ms=session.planner.optimum(),
        maximum_ms=session.planner.maximum(),
        time_adjust=session.calibration.time_adjust,
        available_nodes=session.planner.available_nodes,
    )
