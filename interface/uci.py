"""
UCI (Universal Chess Interface) protocol handler.

The engine reads commands from stdin and writes responses to stdout. All
output lines must be flushed immediately.

Protocol overview:
    GUI → Engine: uci, isready, setoption, ucinewgame, position, go,
                  ponderhit, stop, quit
    Engine → GUI: id name, id author, option, uciok, readyok, info, bestmove

Time management:
    "go wtime/btime/winc/binc/movestogo" fill a SearchLimits that the time
    planner turns into an optimum and a maximum for the move. The timestamp
    for the move is taken as soon as "go" is read, so parsing and thread
    start-up count against our clock. "setoption" changes Move Overhead,
    nodestime and Ponder. "ucinewgame" starts a new game for the planner
    (node budget and calibration are per game).

Threading model:
    The UCI loop runs on the main thread and must never block on the search.
    "go" spawns a daemon thread; the main thread keeps reading stdin so it
    can handle "stop" and "ponderhit" at any time. The search is planned and
    registered with the session before the thread starts, so a "ponderhit"
    right after "go" is never lost.

Critical rule: NEVER print to stdout except for valid UCI responses.
Debug output goes to stderr.
"""

import sys
import os
import threading

# Make 'engine' importable when this script is run directly
# (python interface/uci.py from the repo root).
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

import chess
from engine.limits import SearchLimits, now
from engine.search import GameSession, prepare_search, run_search

ENGINE_NAME = "ChessAI-TM"
ENGINE_AUTHOR = "Chess AI Project"

# "go" parameters followed by an integer, and where they land in SearchLimits.
_GO_PER_SIDE = {
    "wtime": ("time", chess.WHITE),
    "btime": ("time", chess.BLACK),
    "winc": ("inc", chess.WHITE),
    "binc": ("inc", chess.BLACK),
}
_GO_SCALARS = ("movestogo", "depth", "nodes", "movetime")


def _send(line: str) -> None:
    """Write a UCI response line to stdout and flush."""
    print(line, flush=True)


def _log(message: str) -> None:
    """Write a diagnostic line to stderr (stdout belongs to the protocol)."""
    print(message, file=sys.stderr, flush=True)


def parse_go(tokens: list[str]) -> SearchLimits:
    """
    Build SearchLimits from "go" command tokens.

    The start timestamp is taken first, before any parsing.

    Supports:
        wtime <ms> btime <ms> winc <ms> binc <ms> movestogo <n>
        depth <n> nodes <n> movetime <ms> infinite ponder

    Unknown tokens (e.g. "searchmoves" and its moves) and malformed numbers
    are skipped.

    Args:
        tokens: The go command tokens (with "go" stripped).

    Returns:
        The parsed limits.
    """
    limits = SearchLimits(start_time=now())

    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token == "infinite":
            limits.infinite = True
        elif token == "ponder":
            limits.ponder = True
        elif (token in _GO_PER_SIDE or token in _GO_SCALARS) and i + 1 < len(tokens):
            try:
                value = int(tokens[i + 1])
            except ValueError:
                _log(f"uci: bad value for {token}: {tokens[i + 1]!r}")
                i += 2
                continue
            if token in _GO_PER_SIDE:
                attr, color = _GO_PER_SIDE[token]
                # A GUI may report an overdrawn clock as a negative number.
                getattr(limits, attr)[color] = max(0, value)
            else:
                setattr(limits, token, value)
            i += 1
        i += 1

    return limits


class UciHandler:
    """
    Stateful handler for the UCI protocol.

    Attributes:
        board:         Current position, updated by "position" commands.
        session:       Game session: time planner, calibration, options.
        search_thread: The active search thread, or None.
        stop_event:    Event shared with the search thread; set to stop it.
    """

    def __init__(self) -> None:
        self.board: chess.Board = chess.Board()
        self.session: GameSession = GameSession()
        self.search_thread: threading.Thread | None = None
        self.stop_event: threading.Event = threading.Event()

    # -----------------------------------------------------------------------
    # Command handlers
    # -----------------------------------------------------------------------

    def handle_uci(self) -> None:
        """Identify the engine and advertise its options."""
        _send(f"id name {ENGINE_NAME}")
        _send(f"id author {ENGINE_AUTHOR}")
        for line in self.session.options.uci_lines():
            _send(line)
        _send("uciok")

    def handle_isready(self) -> None:
        _send("readyok")

    def handle_setoption(self, tokens: list[str]) -> None:
        """
        Apply "setoption name <name> [value <value>]".

        Option names may contain spaces, so everything between "name" and
        "value" is the name. Unknown options and bad values are reported on
        stderr and otherwise ignored.
        """
        if not tokens or tokens[0] != "name":
            _log("uci: setoption without name")
            return

        if "value" in tokens:
            value_idx = tokens.index("value")
            name = " ".join(tokens[1:value_idx])
            value = " ".join(tokens[value_idx + 1:])
        else:
            name = " ".join(tokens[1:])
            value = ""

        try:
            self.session.options.set(name, value)
        except KeyError:
            _log(f"uci: no such option: {name}")
        except ValueError as e:
            _log(f"uci: {e}")

    def handle_ucinewgame(self) -> None:
        """Stop any search, reset the board, and start a new game for the planner."""
        self._stop_search()
        self.board = chess.Board()
        self.session.new_game()

    def handle_position(self, tokens: list[str]) -> None:
        """
        Apply "position startpos|fen <FEN> [moves <m1> <m2> ...]".

        Args:
            tokens: The command tokens with "position" already stripped.
        """
        if not tokens:
            return

        if "moves" in tokens:
            moves_idx = tokens.index("moves")
            setup, move_tokens = tokens[:moves_idx], tokens[moves_idx + 1:]
        else:
            setup, move_tokens = tokens, []

        try:
            if setup[0] == "startpos":
                board = chess.Board()
            elif setup[0] == "fen":
                board = chess.Board(" ".join(setup[1:]))
            else:
                _log(f"uci: unknown position type: {setup[0]}")
                return
        except ValueError as e:
            _log(f"uci: bad FEN in position command: {e}")
            return

        for uci_move in move_tokens:
            try:
                move = chess.Move.from_uci(uci_move)
            except ValueError:
                move = None
            if move is None or move not in board.legal_moves:
                _log(f"uci: illegal move in position command: {uci_move}")
                break
            board.push(move)

        self.board = board

    def handle_go(self, tokens: list[str]) -> None:
        """
        Parse "go" and start the search in a background thread.

        Args:
            tokens: The command tokens with "go" already stripped.
        """
        limits = parse_go(tokens)
        self._stop_search()

        self.stop_event = threading.Event()
        board_copy = self.board.copy()
        session = self.session

        # Planned here rather than in the thread: "ponderhit" must see it.
        state = None
        if any(board_copy.legal_moves):
            try:
                state = prepare_search(board_copy, limits, session, self.stop_event)
            except Exception as e:
                _log(f"search error: {e}")

        def search_and_reply() -> None:
            """Run the search and emit "info" and "bestmove"."""
            try:
                if state is None:
                    _send("bestmove (none)")
                    return
                move, score, depth, nodes = run_search(board_copy, state, session)
                elapsed_ms = max(1, now() - limits.start_time)

                nps = nodes * 1000 // elapsed_ms
                _send(
                    f"info depth {depth} score cp {score} "
                    f"nodes {nodes} nps {nps} time {elapsed_ms}"
                )
                _send(f"bestmove {move.uci()}")

            except Exception as e:
                _log(f"search error: {e}")
                _send("bestmove (none)")

        self.search_thread = threading.Thread(target=search_and_reply, daemon=True)
        self.search_thread.start()

    def handle_ponderhit(self) -> None:
        """The opponent played our ponder move: the search continues on our clock."""
        self.session.ponderhit()

    def handle_stop(self) -> None:
        self._stop_search()

    def handle_quit(self) -> None:
        self._stop_search()
        sys.exit(0)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _stop_search(self) -> None:
        """Stop the current search thread and wait (up to 2s) for its bestmove."""
        self.stop_event.set()
        if self.search_thread is not None and self.search_thread.is_alive():
            self.search_thread.join(timeout=2.0)
        self.search_thread = None


def run_uci_loop() -> None:
    """
    Main UCI protocol loop.

    Reads lines from stdin and dispatches each command to the UciHandler
    until "quit" or end of input. A failing command is logged to stderr and
    the loop continues; a crash would lose the game.
    """
    handler = UciHandler()

    for raw_line in sys.stdin:
        line = raw_line.strip()
        if not line:
            continue

        tokens = line.split()
        command = tokens[0]
        args = tokens[1:]

        try:
            if command == "uci":
                handler.handle_uci()
            elif command == "isready":
                handler.handle_isready()
            elif command == "setoption":
                handler.handle_setoption(args)
            elif command == "ucinewgame":
                handler.handle_ucinewgame()
            elif command == "position":
                handler.handle_position(args)
            elif command == "go":
                handler.handle_go(args)
            elif command == "ponderhit":
                handler.handle_ponderhit()
            elif command == "stop":
                handler.handle_stop()
            elif command == "quit":
                handler.handle_quit()
            else:
                _log(f"uci: ignoring unknown command: {command!r}")

        except Exception as e:
            _log(f"uci: unhandled error for command {command!r}: {e}")


if __name__ == "__main__":
    run_uci_loop()
