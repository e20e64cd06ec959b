"""Deal validation utility for Pyramid Solitaire card sequences."""
from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from pyramid import (
    KING,
    PYRAMID_ROWS,
    PYRAMID_SIZE,
    TARGET_SUM,
    DeckError,
    card_value,
    deck_problems,
    parse_cards,
)


def load_deal(path: Path) -> list[str]:
    """Read a deal from *path*.

    Cards may be separated by whitespace or commas; anything after ``#`` on a
    line is ignored.
    """

    try:
        text = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise DeckError(f"{path}: file not found") from exc
    except OSError as exc:
        raise DeckError(f"{path}: {exc.strerror or exc}") from exc

    lines = [line.split("#", 1)[0] for line in text.splitlines()]
    return parse_cards(" ".join(lines))


@dataclass
class ValidationResult:
    path: Path
    cards: list[str]
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return not self.errors


def _opening_row_is_stuck(cards: Sequence[str]) -> bool:
    bottom = [card_value(card) for card in cards[PYRAMID_SIZE - PYRAMID_ROWS : PYRAMID_SIZE]]
    if KING in bottom:
        return False
    return not any(
        bottom[i] + bottom[j] == TARGET_SUM
        for i in range(len(bottom))
        for j in range(i + 1, len(bottom))
    )


def validate_deal(path: Path, cards: Sequence[str]) -> ValidationResult:
    result = ValidationResult(path=path, cards=list(cards))
    result.errors.extend(deck_problems(cards))
    if result.is_ok and _opening_row_is_stuck(cards):
        result.warnings.append(
            "Opening row has no King or pair; the first moves must come from the deck"
        )
    return result


def format_result(result: ValidationResult) -> str:
    status = "ok" if result.is_ok else "failed"
    return f"{result.path}: {status} ({len(result.cards)} cards)"


def run(paths: Iterable[str]) -> list[ValidationResult]:
    results: list[ValidationResult] = []
    for raw_path in paths:
        path = Path(raw_path)
        cards = load_deal(path)
        results.append(validate_deal(path, cards))
    return results


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate Pyramid Solitaire deals stored as text files.",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="Paths to deal files. Use shell globs to validate multiple files at once.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        results = run(args.paths)
    except DeckError as exc:
        parser.error(str(exc))

    has_error = False
    for result in results:
        print(format_result(result))
        for warning in result.warnings:
            print(f"  warning: {warning}")
        for error in result.errors:
            print(f"  error: {error}")
            has_error = True
    return 1 if has_error else 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
