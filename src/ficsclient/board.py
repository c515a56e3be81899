"""Board notation transcoding.

Style-12 updates carry the position as eight rank strings, rank 8 first,
using ``-`` for empty squares::

    --Q----- -p---pkp p-----p- ----q--- P-p----- -----r-P ---R--PK --------

which is transcoded to the piece-placement field of a FEN::

    2Q5/1p3pkp/p5p1/4q3/P1p5/5r1P/3R2PK/8
"""

EMPTY_SQUARE = "-"
BOARD_SIZE = 8
PIECE_LETTERS = frozenset("pnbrqkPNBRQK")


def ranks_to_fen(ranks: str) -> str:
    """Convert space-separated style-12 ranks to FEN piece placement.

    Args:
        ranks: Eight rank strings of eight squares each.

    Returns:
        The ranks joined by ``/`` with empty runs collapsed to counts.

    Raises:
        ValueError: If the input is not an 8x8 board.
    """
    rows = ranks.split()
    if len(rows) != BOARD_SIZE:
        raise ValueError(f"Expected {BOARD_SIZE} ranks, got {len(rows)}")

    encoded = []
    for row in rows:
        if len(row) != BOARD_SIZE:
            raise ValueError(f"Rank {row!r} does not have {BOARD_SIZE} squares")

        rank = ""
        empty = 0
        for square in row:
            if square == EMPTY_SQUARE:
                empty += 1
                continue
            if square not in PIECE_LETTERS:
                raise ValueError(f"Unknown piece {square!r} in rank {row!r}")
            if empty:
                rank += str(empty)
                empty = 0
            rank += square
        if empty:
            rank += str(empty)
        encoded.append(rank)

    return "/".join(encoded)


def fen_to_ranks(placement: str) -> str:
    """Expand FEN piece placement back into style-12 ranks.

    Args:
        placement: The piece-placement field of a FEN.

    Returns:
        Eight space-separated rank strings using ``-`` for empty squares.

    Raises:
        ValueError: If the placement does not describe an 8x8 board.
    """
    encoded = placement.split("/")
    if len(encoded) != BOARD_SIZE:
        raise ValueError(f"Expected {BOARD_SIZE} ranks, got {len(encoded)}")

    rows = []
    for rank in encoded:
        row = ""
        for square in rank:
            if square.isdigit():
                row += EMPTY_SQUARE * int(square)
            elif square in PIECE_LETTERS:
                row += square
            else:
                raise ValueError(f"Unknown piece {square!r} in rank {rank!r}")
        if len(row) != BOARD_SIZE:
            raise ValueError(f"Rank {rank!r} does not have {BOARD_SIZE} squares")
        rows.append(row)

    return " ".join(rows)
