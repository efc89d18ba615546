"""Opening recognition by simple move-sequence matching.

A small built-in table of well-known opening lines is loaded into an
in-memory trie keyed by UCI moves. The deepest named line that matches
the start of a game decides how many plies count as book.

Usage:
    from game_review.openings import OpeningBook
    book = OpeningBook()
    result = book.identify_opening(["e2e4", "c7c5"])
"""

from __future__ import annotations

# (eco, name, uci moves)
_OPENING_LINES = [
    ("B00", "King's Pawn Game", "e2e4"),
    ("A40", "Queen's Pawn Game", "d2d4"),
    ("A10", "English Opening", "c2c4"),
    ("A04", "Zukertort Opening", "g1f3"),
    ("C20", "King's Pawn Game: Open Game", "e2e4 e7e5"),
    ("C40", "King's Knight Opening", "e2e4 e7e5 g1f3"),
    ("C44", "King's Knight Opening: Normal Variation", "e2e4 e7e5 g1f3 b8c6"),
    ("C50", "Italian Game", "e2e4 e7e5 g1f3 b8c6 f1c4"),
    ("C50", "Italian Game: Giuoco Piano", "e2e4 e7e5 g1f3 b8c6 f1c4 f8c5"),
    ("C55", "Italian Game: Two Knights Defense", "e2e4 e7e5 g1f3 b8c6 f1c4 g8f6"),
    ("C60", "Ruy Lopez", "e2e4 e7e5 g1f3 b8c6 f1b5"),
    ("C68", "Ruy Lopez: Morphy Defense", "e2e4 e7e5 g1f3 b8c6 f1b5 a7a6"),
    ("C45", "Scotch Game", "e2e4 e7e5 g1f3 b8c6 d2d4"),
    ("C42", "Petrov's Defense", "e2e4 e7e5 g1f3 g8f6"),
    ("C41", "Philidor Defense", "e2e4 e7e5 g1f3 d7d6"),
    ("C30", "King's Gambit", "e2e4 e7e5 f2f4"),
    ("B20", "Sicilian Defense", "e2e4 c7c5"),
    ("B27", "Sicilian Defense", "e2e4 c7c5 g1f3"),
    ("B50", "Sicilian Defense", "e2e4 c7c5 g1f3 d7d6"),
    ("B54", "Sicilian Defense: Open", "e2e4 c7c5 g1f3 d7d6 d2d4"),
    ("B30", "Sicilian Defense: Old Sicilian", "e2e4 c7c5 g1f3 b8c6"),
    ("B40", "Sicilian Defense: French Variation", "e2e4 c7c5 g1f3 e7e6"),
    ("B00", "Nimzowitsch Defense", "e2e4 b8c6"),
    ("C00", "French Defense", "e2e4 e7e6"),
    ("C01", "French Defense: Exchange Variation", "e2e4 e7e6 d2d4 d7d5 e4d5"),
    ("C02", "French Defense: Advance Variation", "e2e4 e7e6 d2d4 d7d5 e4e5"),
    ("B10", "Caro-Kann Defense", "e2e4 c7c6"),
    ("B12", "Caro-Kann Defense: Advance Variation", "e2e4 c7c6 d2d4 d7d5 e4e5"),
    ("B01", "Scandinavian Defense", "e2e4 d7d5"),
    ("B01", "Scandinavian Defense: Main Line", "e2e4 d7d5 e4d5 d8d5"),
    ("B07", "Pirc Defense", "e2e4 d7d6 d2d4 g8f6"),
    ("B02", "Alekhine Defense", "e2e4 g8f6"),
    ("D00", "Queen's Pawn Game", "d2d4 d7d5"),
    ("D02", "London System", "d2d4 d7d5 g1f3 g8f6 c1f4"),
    ("D06", "Queen's Gambit", "d2d4 d7d5 c2c4"),
    ("D20", "Queen's Gambit Accepted", "d2d4 d7d5 c2c4 d5c4"),
    ("D30", "Queen's Gambit Declined", "d2d4 d7d5 c2c4 e7e6"),
    ("D10", "Slav Defense", "d2d4 d7d5 c2c4 c7c6"),
    ("A45", "Indian Defense", "d2d4 g8f6"),
    ("E60", "King's Indian Defense", "d2d4 g8f6 c2c4 g7g6"),
    ("E20", "Nimzo-Indian Defense", "d2d4 g8f6 c2c4 e7e6 b1c3 f8b4"),
    ("A80", "Dutch Defense", "d2d4 f7f5"),
    ("A20", "English Opening: King's English Variation", "c2c4 e7e5"),
]


def _build_trie(lines) -> dict:
    trie: dict = {}
    for eco, name, moves in lines:
        node = trie
        for move in moves.split():
            node = node.setdefault(move, {})
        node["_eco"] = eco
        node["_name"] = name
    return trie


class OpeningBook:
    """Opening recognition over a trie of named lines."""

    def __init__(self, lines=None):
        self._trie = _build_trie(lines if lines is not None else _OPENING_LINES)

    def identify_opening(self, uci_moves):
        """Identify the deepest matching opening for a sequence of UCI moves.

        Args:
            uci_moves: List of UCI move strings, e.g. ["e2e4", "c7c5"].

        Returns:
            Dict with eco, name, family, moves_matched keys, or None if
            the first move is not in the book.
        """
        if not self._trie or not uci_moves:
            return None

        node = self._trie
        best_match = None

        for i, move in enumerate(uci_moves):
            if move not in node:
                break
            node = node[move]
            if "_eco" in node:
                name = node["_name"]
                best_match = {
                    "eco": node["_eco"],
                    "name": name,
                    "family": name.split(":")[0].strip(),
                    "moves_matched": i + 1,
                }

        return best_match
