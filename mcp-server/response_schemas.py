"""Response minification for MCP tool results.

Keeps tool return values small: per-move entries become compact dicts
and move lists are rendered as PGN-style strings the LLM reads naturally.
"""

from __future__ import annotations


def _moves_to_pgn_string(moves: list[dict]) -> str:
    """Render minified moves as ``1.e4 e5 2.Nf3 ...``."""
    parts = []
    for i, move in enumerate(moves):
        if move["side"] == "white":
            parts.append(f"{move['move_number']}.{move['san']}")
        elif i == 0:
            parts.append(f"{move['move_number']}...{move['san']}")
        else:
            parts.append(move["san"])
    return " ".join(parts)


def minify_move(move: dict) -> dict:
    """Minify one EvaluatedMove dict (from dataclasses.asdict).

    Drops the FENs and the ply index, keeps the label, loss and the
    evaluator's preferred reply.
    """
    ply = move["ply"]
    result = {
        "move_number": ply["move_number"],
        "side": ply["side"],
        "san": ply["notation"],
        "class": None,
        "loss": None,
    }
    classification = move.get("classification")
    if classification is not None:
        result["class"] = classification["classification"]
        result["loss"] = round(classification["loss"], 1)

    evaluation = move.get("evaluation")
    if evaluation is not None:
        result["win_pct"] = round(evaluation["win_probability"], 1)
        if evaluation.get("best_reply"):
            result["best_reply"] = evaluation["best_reply"]
    return result


def minify_game_evaluation(evaluation: dict, include_moves: bool = False) -> dict:
    """Minify a GameEvaluation dict (from GameEvaluation.to_dict).

    Args:
        evaluation: Full evaluation dict.
        include_moves: Include the per-move list; otherwise only errors
            are itemized.

    Returns:
        Minified dict with accuracy, opening, counts, errors and summary.
    """
    moves = [minify_move(m) for m in evaluation.get("moves", [])]
    errors = [m for m in moves if m["class"] in ("blunder", "mistake", "inaccuracy")]

    counts: dict[str, dict[str, int]] = {"white": {}, "black": {}}
    for m in moves:
        if m["class"] is not None:
            side_counts = counts[m["side"]]
            side_counts[m["class"]] = side_counts.get(m["class"], 0) + 1

    result = {
        "accuracy": evaluation.get("accuracy"),
        "opening": evaluation.get("opening"),
        "depth": evaluation.get("depth"),
        "move_list": _moves_to_pgn_string(moves),
        "counts": counts,
        "errors": errors,
        "unscored_plies": len(evaluation.get("unscored_plies", [])),
        "summary": evaluation.get("summary_text", ""),
    }
    if include_moves:
        result["moves"] = moves
    return result
