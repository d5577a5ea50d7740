"""
Static evaluation: material balance.

The search only needs a cheap, deterministic score to compare positions;
deterministic matters because node-time emulation replays the same node
counts on any machine. Material alone is enough for that.

The score is always returned from the perspective of the side to move
(negamax convention).
"""

import chess

from engine.constants import PIECE_VALUES


def evaluate(board: chess.Board) -> int:
    """
    Centipawn material balance from the side-to-move's perspective.

    Example:
        >>> import chess
        >>> evaluate(chess.Board())
        0
    """
    score = 0
    for piece_type, value in PIECE_VALUES.items():
        if piece_type == chess.KING:
            continue
        white = len(board.pieces(piece_type, chess.WHITE))
        black = len(board.pieces(piece_type, chess.BLACK))
        score += value * (white - black)

    return score if board.turn == chess.WHITE else -score
