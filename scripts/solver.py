#!/usr/bin/env python3
"""Exhaustive Pyramid Solitaire solver.

The solver walks every reachable layout depth first and reports the move
sequence that removes the most pyramid cards, stopping early once all 28 are
gone.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Hashable, Iterator, Optional, Sequence

from pyramid import (
    KING,
    PYRAMID_SIZE,
    TARGET_SUM,
    DeckError,
    GameState,
    Move,
    canonical_signature,
    card_value,
    check_deck,
    draw,
    exposed_cards,
    initial_state,
    parse_cards,
    recycle,
    remove_king,
    remove_pair,
    remove_with_waste,
    removed_count,
)
from rules import CLASSIC, RuleProfile
from scripts.validate import load_deal

LOGGER = logging.getLogger("solver")

SAMPLE_DEAL = (
    "jd 6h 4c 6c ac 3h 7c 2h jh 10s 8c ah qh 3d qd 2d 8s qc jc 4h 5s js 2s 3c 4d 7h "
    "9c 5h 8h as 6d kd 5c kc 10d 8d 3s 9h ad kh 9d qs 7d 4s 9s 10h 10c ks 6s 5d 7s 2c"
)

# Long draw and recycle chains recurse far deeper than the default limit.
RECURSION_LIMIT = 20_000


@dataclass
class SolveResult:
    """Best outcome found for a deal plus the effort spent finding it."""

    moves: tuple[Move, ...]
    removed_count: int
    expanded_nodes: int = 0
    pruned_nodes: int = 0
    unique_states: int = 0
    max_depth: int = 0
    elapsed_ms: float = 0.0
    exhausted: bool = True

    @property
    def descriptions(self) -> list[str]:
        return [move.describe() for move in self.moves]

    @property
    def is_clear(self) -> bool:
        return self.removed_count == PYRAMID_SIZE

    def to_dict(self) -> dict:
        return {
            "removed_count": self.removed_count,
            "cleared": self.is_clear,
            "moves": self.descriptions,
            "expanded_nodes": self.expanded_nodes,
            "pruned_nodes": self.pruned_nodes,
            "unique_states": self.unique_states,
            "max_depth": self.max_depth,
            "elapsed_ms": round(self.elapsed_ms, 3),
            "exhausted": self.exhausted,
        }


def _ensure_recursion_limit(limit: int = RECURSION_LIMIT) -> None:
    # The limit is interpreter-wide, so it is only ever raised, never restored.
    if sys.getrecursionlimit() < limit:
        sys.setrecursionlimit(limit)


class _SearchRun:
    """Visited table and counters for a single call to :meth:`PyramidSolver.solve_state`."""

    def __init__(self, profile: RuleProfile) -> None:
        self.profile = profile
        self.pass_limit = profile.pass_limit
        self.node_budget = profile.node_budget
        self.visited: dict[Hashable, int] = {}
        self.on_path: set[Hashable] = set()
        self.expanded = 0
        self.pruned = 0
        self.max_depth = 0
        self.budget_spent = False

    def _key(self, state: GameState) -> Hashable:
        signature = canonical_signature(state)
        if self.pass_limit is None:
            return signature
        return (signature, state.passes_made)

    def _should_stop(self, removed: int) -> bool:
        if self.budget_spent:
            return True
        return self.profile.stop_on_clear and removed == PYRAMID_SIZE

    def children(self, state: GameState) -> Iterator[GameState]:
        """Yield successor states in exploration order."""

        exposed = sorted(exposed_cards(state.pyramid), key=lambda card: card.row, reverse=True)

        for card in exposed:
            if card.value == KING:
                yield remove_king(state, card)

        for i, first in enumerate(exposed):
            for second in exposed[i + 1 :]:
                if first.value + second.value == TARGET_SUM:
                    yield remove_pair(state, first, second)

        top = state.waste_top
        if top is not None:
            top_value = card_value(top)
            for card in exposed:
                if top_value + card.value == TARGET_SUM:
                    yield remove_with_waste(state, card)

        if state.deck:
            yield draw(state)
        elif state.waste and self.profile.can_recycle(state):
            yield recycle(state)

    def explore(self, state: GameState, depth: int = 0) -> tuple[tuple[Move, ...], int]:
        removed = removed_count(state.pyramid)
        best = (state.moves, removed)
        if depth > self.max_depth:
            self.max_depth = depth

        if removed == PYRAMID_SIZE or self.budget_spent:
            return best

        key = self._key(state)
        if self.profile.memoize:
            seen = self.visited.get(key)
            if seen is not None and seen >= removed:
                self.pruned += 1
                return best
            self.visited[key] = removed
        elif key in self.on_path:
            # Without the visited table only cycles on the current path are cut.
            self.pruned += 1
            return best

        if self.node_budget is not None and self.expanded >= self.node_budget:
            self.budget_spent = True
            return best
        self.expanded += 1

        if not self.profile.memoize:
            self.on_path.add(key)
        try:
            for child in self.children(state):
                result = self.explore(child, depth + 1)
                if result[1] > best[1]:
                    best = result
                if self._should_stop(best[1]):
                    break
        finally:
            if not self.profile.memoize:
                self.on_path.discard(key)
        return best


class PyramidSolver:
    """Depth-first Pyramid Solitaire solver with visited-state pruning."""

    def __init__(self, profile: RuleProfile = CLASSIC) -> None:
        self.profile = profile.validate()

    def solve(self, cards: Sequence[str]) -> SolveResult:
        """Solve the deal *cards*; the first 28 cards form the pyramid."""

        return self.solve_state(initial_state(cards))

    def solve_state(self, state: GameState) -> SolveResult:
        """Search from *state* and return the best result reachable from it."""

        run = _SearchRun(self.profile)
        LOGGER.debug(
            "Solving from %s removed, deck=%s waste=%s profile=%s",
            state.removed_count,
            len(state.deck),
            len(state.waste),
            self.profile.to_json(),
        )
        start = time.perf_counter()
        _ensure_recursion_limit()
        moves, removed = run.explore(state)
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        if run.budget_spent:
            LOGGER.warning(
                "Node budget of %s exhausted; returning best partial result", run.node_budget
            )
        LOGGER.info(
            "Removed %s of %s pyramid cards (expanded=%s pruned=%s unique=%s %.1fms)",
            removed,
            PYRAMID_SIZE,
            run.expanded,
            run.pruned,
            len(run.visited),
            elapsed_ms,
        )
        return SolveResult(
            moves=moves,
            removed_count=removed,
            expanded_nodes=run.expanded,
            pruned_nodes=run.pruned,
            unique_states=len(run.visited),
            max_depth=run.max_depth,
            elapsed_ms=elapsed_ms,
            exhausted=not run.budget_spent,
        )


def solve(cards: Sequence[str], profile: RuleProfile = CLASSIC) -> SolveResult:
    """Return the best move sequence for a validated 52-card deal."""

    return PyramidSolver(profile).solve(cards)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "cards",
        nargs="*",
        help="The 52 cards of the deal, e.g. 'jd 6h 4c ...'. Defaults to a sample deal.",
    )
    parser.add_argument(
        "--file",
        help="Read the deal from a text file instead of the command line.",
    )
    parser.add_argument(
        "--passes",
        default="unlimited",
        help="How many times the waste may be recycled (default: unlimited).",
    )
    parser.add_argument(
        "--max-nodes",
        type=int,
        help="Stop after expanding this many search nodes and report the best found.",
    )
    parser.add_argument(
        "--no-memo",
        action="store_true",
        help="Disable visited-state pruning (only practical for tiny searches).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def _read_cards(args: argparse.Namespace) -> list[str]:
    if args.file and args.cards:
        raise DeckError("pass the deal either as arguments or with --file, not both")
    if args.file:
        return load_deal(Path(args.file))
    if args.cards:
        return parse_cards(" ".join(args.cards))
    return parse_cards(SAMPLE_DEAL)


def format_result(result: SolveResult) -> str:
    lines = [
        f"Best partial solution removed {result.removed_count} of {PYRAMID_SIZE} pyramid cards.",
        "Moves:",
    ]
    lines.extend(result.descriptions)
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cards = _read_cards(args)
        check_deck(cards)
    except DeckError as exc:
        parser.error(f"deck check error: {exc}")

    try:
        profile = RuleProfile(
            passes=args.passes,
            memoize=not args.no_memo,
            max_nodes=args.max_nodes,
        ).validate()
    except (TypeError, ValueError) as exc:
        parser.error(str(exc))

    result = solve(cards, profile)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_result(result))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
