"""Tests for the time-managed search."""

import threading
import time

import chess
import pytest

from engine.evaluate import evaluate
from engine.limits import SearchLimits
from engine.search import GameSession, SearchState, get_best_move, prepare_search, run_search
from engine.timeman import TimeBudgetPlanner

BACK_RANK_MATE = "6k1/5ppp/8/8/8/8/5PPP/R5K1 w - - 0 1"


@pytest.fixture
def session():
    return GameSession()


@pytest.fixture
def board():
    return chess.Board()


def depth_limits(depth):
    return SearchLimits(depth=depth)


class TestEvaluate:
    def test_start_position_is_equal(self, board):
        assert evaluate(board) == 0

    def test_side_to_move_perspective(self):
        board = chess.Board("4k3/8/8/8/8/8/8/3QK3 w - - 0 1")
        assert evaluate(board) == 900
        board.turn = chess.BLACK
        assert evaluate(board) == -900


class TestGameSession:
    def test_new_game_resets_per_game_state(self, session):
        session.planner.available_nodes = 1234
        session.calibration.time_adjust = 0.9
        session.options.set("Move Overhead", "50")

        session.new_game()

        assert session.planner.available_nodes is None
        assert session.calibration.time_adjust is None
        assert session.options["Move Overhead"] == 50

    def test_ponderhit_without_search(self, session):
        session.ponderhit()
        assert session.search is None


class TestSearchState:
    def make_state(self, **limit_fields):
        return SearchState(limits=SearchLimits(**limit_fields), planner=TimeBudgetPlanner())

    def test_node_limit_stops(self):
        state = self.make_state(nodes=10)
        state.node_count = 9
        state.check_time()
        assert not state.stop_event.is_set()
        state.node_count = 10
        state.check_time()
        assert state.stop_event.is_set()

    def test_maximum_stops_under_node_time(self):
        state = self.make_state()
        state.limits.time[chess.WHITE] = 1_000
        state.planner.use_nodes_time = True
        state.planner.maximum_time = 5
        state.node_count = 5
        state.check_time()
        assert not state.stop_event.is_set()
        state.node_count = 6
        state.check_time()
        assert state.stop_event.is_set()

    def test_elapsed_counts_nodes_under_emulation(self):
        state = self.make_state()
        state.planner.use_nodes_time = True
        state.node_count = 42
        assert state.elapsed() == 42

    def test_no_clock_no_maximum(self):
        state = self.make_state()
        state.planner.maximum_time = 0
        state.node_count = 100_000
        state.check_time()
        assert not state.stop_event.is_set()

    def test_pondering_suspends_checks(self):
        state = self.make_state(nodes=10)
        state.pondering = True
        state.node_count = 50
        state.check_time()
        assert not state.stop_event.is_set()

    def test_ponderhit_resumes(self):
        state = self.make_state()
        state.pondering = True
        state.ponderhit()
        assert state.pondering is False
        assert not state.stop_event.is_set()

    def test_ponderhit_after_optimum_stops(self):
        state = self.make_state()
        state.pondering = True
        state.stop_on_ponderhit = True
        state.ponderhit()
        assert state.stop_event.is_set()

    def test_check_interval_follows_node_limit(self):
        assert self.make_state().check_interval == 256
        assert self.make_state(nodes=500).check_interval == 1
        assert self.make_state(nodes=100_000).check_interval == 97


class TestGetBestMove:
    def test_depth_limit(self, board, session):
        move, score, depth, nodes = get_best_move(
            board, depth_limits(2), session, threading.Event()
        )
        assert move in board.legal_moves
        assert depth == 2
        assert nodes > 0

    def test_finds_back_rank_mate(self, session):
        board = chess.Board(BACK_RANK_MATE)
        move, score, depth, _ = get_best_move(board, depth_limits(2), session, threading.Event())
        assert move == chess.Move.from_uci("a1a8")
        assert score > 90_000

    def test_board_not_modified(self, board, session):
        fen = board.fen()
        get_best_move(board, depth_limits(2), session, threading.Event())
        assert board.fen() == fen

    def test_game_over(self, session):
        board = chess.Board("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
        assert get_best_move(board, depth_limits(2), session, threading.Event()) == (None, 0, 0, 0)

    def test_node_limit(self, board, session):
        move, _, _, nodes = get_best_move(
            board, SearchLimits(nodes=500), session, threading.Event()
        )
        assert move in board.legal_moves
        assert nodes <= 500

    def test_no_clock_leaves_planner_idle(self, board, session):
        get_best_move(board, depth_limits(1), session, threading.Event())
        assert session.planner.optimum() == 0
        assert session.planner.use_nodes_time is False

    def test_clock_sets_plan(self, board, session):
        limits = SearchLimits.from_clock(2_000)
        move, _, depth, _ = get_best_move(board, limits, session, threading.Event())
        assert move in board.legal_moves
        assert depth >= 1
        assert 1 <= session.planner.optimum() <= 400
        assert session.calibration.time_adjust is not None

    def test_clock_search_respects_maximum(self, board, session):
        limits = SearchLimits.from_clock(3_000)
        start = time.monotonic()
        get_best_move(board, limits, session, threading.Event())
        elapsed_ms = (time.monotonic() - start) * 1000
        # maximum <= 30% of the clock; allow generous slack for slow machines.
        assert elapsed_ms < 3_000

    def test_node_time_charges_budget(self, board, session):
        session.options.set("nodestime", "1")
        limits = SearchLimits.from_clock(5_000)

        move, _, _, nodes = get_best_move(board, limits, session, threading.Event())

        assert move in board.legal_moves
        assert nodes > 0
        assert session.planner.available_nodes == 5_000 - nodes

    def test_node_time_credits_increment(self, board, session):
        session.options.set("nodestime", "1")
        limits = SearchLimits.from_clock(5_000, inc_ms=10)

        _, _, _, nodes = get_best_move(board, limits, session, threading.Event())

        assert session.planner.available_nodes == max(0, 5_000 - (nodes - 10))

    def test_node_time_is_deterministic(self, board):
        results = []
        for _ in range(2):
            session = GameSession()
            session.options.set("nodestime", "1")
            results.append(get_best_move(
                board, SearchLimits.from_clock(5_000), session, threading.Event()
            ))
        assert results[0] == results[1]

    def test_node_time_budget_spans_moves(self, board, session):
        session.options.set("nodestime", "1")
        get_best_move(board, SearchLimits.from_clock(5_000), session, threading.Event())
        after_first = session.planner.available_nodes

        board.push_uci("e2e4")
        board.push_uci("e7e5")
        _, _, _, nodes = get_best_move(
            board, SearchLimits.from_clock(5_000), session, threading.Event()
        )
        assert session.planner.available_nodes == after_first - nodes

    def test_stopped_before_start(self, board, session):
        stop = threading.Event()
        stop.set()
        assert get_best_move(board, depth_limits(3), session, stop) == (None, 0, 0, 0)


class TestPrepareSearch:
    def test_registers_before_run(self, board, session):
        stop = threading.Event()
        state = prepare_search(board, SearchLimits(depth=1, ponder=True), session, stop)

        assert session.search is state
        assert state.pondering is True
        session.ponderhit()
        assert state.pondering is False

        move, _, depth, _ = run_search(board, state, session)
        assert move in board.legal_moves
        assert depth == 1
        assert session.search is None

    def test_plans_the_move(self, board, session):
        state = prepare_search(board, SearchLimits.from_clock(60_000), session, threading.Event())
        assert state.planner is session.planner
        assert session.planner.optimum() > 0
        assert session.calibration.time_adjust is not None

    def test_stale_search_keeps_newer_registration(self, board, session):
        old = prepare_search(board, SearchLimits(depth=1), session, threading.Event())
        new = prepare_search(board, SearchLimits(depth=1), session, threading.Event())

        run_search(board, old, session)
        assert session.search is new


class TestPonderSearch:
    def test_holds_bestmove_until_ponderhit(self, board, session):
        limits = SearchLimits(depth=1, ponder=True)
        result = {}
        thread = threading.Thread(
            target=lambda: result.update(
                best=get_best_move(board, limits, session, threading.Event())
            )
        )
        thread.start()

        time.sleep(0.3)
        assert thread.is_alive()
        assert session.search is not None

        session.ponderhit()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert result["best"][0] in board.legal_moves
        assert session.search is None

    def test_infinite_holds_until_stop(self, board, session):
        stop = threading.Event()
        limits = SearchLimits(depth=1, infinite=True)
        thread = threading.Thread(target=get_best_move, args=(board, limits, session, stop))
        thread.start()

        time.sleep(0.3)
        assert thread.is_alive()

        stop.set()
        thread.join(timeout=5)
        assert not thread.is_alive()
