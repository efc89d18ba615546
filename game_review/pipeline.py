"""Analyze one game: sequence, evaluate, classify, aggregate, summarize.

evaluate_game() is the entry point for callers; the CLI below renders its
result with Rich.

Usage:
    python -m game_review.pipeline game.pgn
    python -m game_review.pipeline game.pgn --engine local --depth 12
    python -m game_review.pipeline - --json < game.pgn
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import threading
from pathlib import Path

import chess
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress
from rich.table import Table

from game_review.accuracy import game_accuracy, get_aggregator
from game_review.classifier import WIN_PROBABILITY_TABLE, classify_game, get_threshold_table
from game_review.config import Settings
from game_review.errors import CoachUnavailable, GameReviewError
from game_review.evaluator import EvaluationClient, PositionEvaluator, ProgressCallback
from game_review.models import Evaluation, EvaluatedMove, GameEvaluation
from game_review.openings import OpeningBook
from game_review.sequencer import sequence_game
from game_review.summary import format_summary, move_label

logger = logging.getLogger(__name__)

_CLASS_STYLES = {
    "brilliant": "bold magenta",
    "excellent": "cyan",
    "good": "green",
    "book": "blue",
    "inaccuracy": "yellow",
    "mistake": "dark_orange",
    "blunder": "bold red",
}


def evaluate_game(
    movetext: str,
    progress_callback: ProgressCallback | None = None,
    *,
    evaluator: PositionEvaluator | None = None,
    settings: Settings | None = None,
    cancel_event: threading.Event | None = None,
    book: OpeningBook | None = None,
) -> GameEvaluation:
    """Run the full analysis for one game record.

    Args:
        movetext: PGN or bare movetext.
        progress_callback: Called as progress_callback(done, total) while
            positions are evaluated.
        evaluator: Position evaluator; a remote EvaluationClient is created
            (and closed) when omitted.
        settings: Depth, thresholds and aggregation. Defaults to Settings().
        cancel_event: Checked between evaluator calls.
        book: Opening book for book-move labels.

    Returns:
        A fully populated GameEvaluation. Plies next to an unscored position
        carry no classification.

    Raises:
        InvalidRecord: The record cannot be parsed or has no moves.
        EvaluationUnavailable: The evaluator could not be reached.
        AnalysisCancelled: cancel_event was set.
        ValueError: Unknown threshold table or aggregation name.
    """
    settings = settings or Settings()
    table = get_threshold_table(settings.thresholds)
    get_aggregator(settings.aggregation)
    book = book if book is not None else OpeningBook()

    game = sequence_game(movetext)
    positions = game.positions
    # Opening lines only apply to games from the standard start
    opening = None
    if game.starting_fen == chess.STARTING_FEN:
        opening = book.identify_opening(game.uci_moves)
    logger.info("Analyzing %d plies at depth %d", len(game.plies), settings.depth)

    owns_evaluator = evaluator is None
    if evaluator is None:
        evaluator = EvaluationClient(settings)
    try:
        evaluations = evaluator.evaluate_positions(
            positions,
            depth=settings.depth,
            on_progress=progress_callback,
            cancel_event=cancel_event,
        )
    finally:
        if owns_evaluator:
            evaluator.close()

    if len(evaluations) != len(positions):
        raise ValueError(
            f"Evaluator returned {len(evaluations)} results for {len(positions)} positions"
        )

    book_plies = opening["moves_matched"] if opening else 0
    classifications = classify_game(game.plies, evaluations, table, book_plies)

    # Accuracy is always computed on the win-probability scale
    if table is WIN_PROBABILITY_TABLE:
        accuracy_input = classifications
    else:
        accuracy_input = classify_game(game.plies, evaluations, WIN_PROBABILITY_TABLE)

    moves = [
        EvaluatedMove(
            ply=ply,
            evaluation=evaluations[ply.index + 1]
            if isinstance(evaluations[ply.index + 1], Evaluation) else None,
            classification=classification,
        )
        for ply, classification in zip(game.plies, classifications)
    ]

    result = GameEvaluation(
        moves=moves,
        accuracy=game_accuracy(accuracy_input, settings.aggregation),
        depth=settings.depth,
        opening=f"{opening['name']} ({opening['eco']})" if opening else None,
        starting_fen=game.starting_fen,
        thresholds=table.name,
    )
    result.summary_text = format_summary(result, settings.summary_limit)

    if result.unscored_plies:
        logger.warning("%d plies left unscored", len(result.unscored_plies))
    logger.info(
        "Accuracy white %.1f%%, black %.1f%%",
        result.accuracy["white"], result.accuracy["black"],
    )
    return result


# ---------------------------------------------------------------------------
# CLI interface
# ---------------------------------------------------------------------------


def _render(console: Console, evaluation: GameEvaluation) -> None:
    """Print the move table and digest."""
    table = Table(title="Move review")
    table.add_column("Move")
    table.add_column("Side")
    table.add_column("Class")
    table.add_column("Loss", justify="right")
    table.add_column("Eval", justify="right")
    table.add_column("Best reply")

    for move in evaluation.moves:
        c = move.classification
        label = c.classification if c else "n/a"
        loss = f"{c.loss:+.1f}" if c else ""
        ev = move.evaluation
        score = ""
        if ev is not None:
            score = f"M{ev.mate}" if ev.mate else f"{ev.score / 100:+.2f}"
        table.add_row(
            move_label(move),
            move.side,
            f"[{_CLASS_STYLES.get(label, 'dim')}]{label}[/]",
            loss,
            score,
            (ev.best_reply or "") if ev else "",
        )

    console.print(table)
    console.print(evaluation.summary_text)


def _make_evaluator(engine: str, settings: Settings) -> PositionEvaluator:
    if engine == "local":
        from game_review.engine import LocalEngine

        return LocalEngine(depth=settings.depth)
    return EvaluationClient(settings)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for pipeline.py."""
    parser = argparse.ArgumentParser(
        description="Classify every move of a game and compute accuracy per side"
    )
    parser.add_argument("pgn", help="PGN file path, or '-' for stdin")
    parser.add_argument("--depth", type=int, default=None, help="Search depth")
    parser.add_argument(
        "--engine", choices=["remote", "local"], default="remote",
        help="Remote evaluator service or local Stockfish",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("--coach", action="store_true", help="Also request AI coaching")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    console = Console()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    try:
        settings = Settings.from_env()
        if args.depth is not None:
            settings = dataclasses.replace(settings, depth=args.depth)
            settings.validate()
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    if args.pgn == "-":
        movetext = sys.stdin.read()
    else:
        try:
            movetext = Path(args.pgn).read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Could not read %s: %s", args.pgn, exc)
            return 2

    try:
        evaluator = _make_evaluator(args.engine, settings)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return 2

    try:
        with Progress(console=Console(stderr=True), transient=True) as progress:
            task = progress.add_task("Evaluating positions", total=None)

            def _on_progress(done: int, total: int) -> None:
                progress.update(task, completed=done, total=total)

            evaluation = evaluate_game(
                movetext,
                _on_progress,
                evaluator=evaluator,
                settings=settings,
            )
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    except GameReviewError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        evaluator.close()

    if args.json:
        print(json.dumps(evaluation.to_dict(), indent=2, ensure_ascii=False))
    else:
        _render(console, evaluation)

    if args.coach:
        from game_review.coach import request_coaching

        try:
            review = request_coaching(movetext, evaluation.summary_text, settings)
        except CoachUnavailable as exc:
            logger.warning("Coaching unavailable: %s", exc)
        else:
            console.print_json(json.dumps(review))

    return 0


if __name__ == "__main__":
    sys.exit(main())
