"""Pytest tests for opening recognition and book-ply counting."""

from __future__ import annotations

import pytest

from game_review.openings import OpeningBook


@pytest.fixture
def book():
    return OpeningBook()


class TestIdentifyOpening:

    def test_deepest_match(self, book):
        moves = ["e2e4", "e7e5", "g1f3", "b8c6", "f1b5", "a7a6", "b5a4"]
        result = book.identify_opening(moves)
        assert result["eco"] == "C68"
        assert result["name"] == "Ruy Lopez: Morphy Defense"
        assert result["family"] == "Ruy Lopez"
        assert result["moves_matched"] == 6

    def test_single_move(self, book):
        result = book.identify_opening(["e2e4"])
        assert result["name"] == "King's Pawn Game"
        assert result["moves_matched"] == 1

    def test_leaves_book_early(self, book):
        result = book.identify_opening(["e2e4", "c7c5", "a2a3"])
        assert result["eco"] == "B20"
        assert result["moves_matched"] == 2

    def test_unknown_first_move(self, book):
        assert book.identify_opening(["h2h4", "a7a5"]) is None

    def test_empty_moves(self, book):
        assert book.identify_opening([]) is None


class TestMovesMatched:

    def test_count(self, book):
        assert book.identify_opening(["e2e4", "c7c5", "g1f3", "d7d6", "d2d4", "c5d4"])["moves_matched"] == 5

    def test_custom_lines(self):
        custom = OpeningBook(lines=[("Z99", "Test Line: Deep", "a2a3 a7a6 b2b3")])
        assert custom.identify_opening(["a2a3", "a7a6", "b2b3", "b7b6"])["moves_matched"] == 3
        assert custom.identify_opening(["a2a3"]) is None

    def test_empty_book(self):
        assert OpeningBook(lines=[]).identify_opening(["e2e4"]) is None
