"""Cards, deal validation and the immutable Pyramid Solitaire game state."""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence

PYRAMID_ROWS = 7
PYRAMID_SIZE = 28
DECK_SIZE = 52
TARGET_SUM = 13
KING = 13

RANKS = ("a", "2", "3", "4", "5", "6", "7", "8", "9", "10", "j", "q", "k")
SUITS = ("c", "d", "h", "s")

RANK_VALUES = {rank: value for value, rank in enumerate(RANKS, start=1)}
RANK_NAMES = {"a": "Ace", "j": "Jack", "q": "Queen", "k": "King"}
SUIT_NAMES = {"c": "Clubs", "d": "Diamonds", "h": "Hearts", "s": "Spades"}

# Signature bytes. Card values occupy 1..13.
_EMPTY_SLOT = 0x00
_ROW_END = 0xFE
_SECTION = 0xFF

Row = tuple[Optional[str], ...]
Pyramid = tuple[Row, ...]

REMOVE_KING = "remove_king"
REMOVE_PAIR = "remove_pair"
REMOVE_WASTE_PAIR = "remove_waste_pair"
DRAW = "draw"
DRAW_KING = "draw_king"
RECYCLE = "recycle"


class DeckError(ValueError):
    """Raised when a card sequence is not a complete 52-card deal."""


class InvalidMoveError(AssertionError):
    """Raised when a move breaks the rules of the layout it is applied to."""


# ----------------------------------------------------------------------
# Cards
# ----------------------------------------------------------------------
def _split_card(card: str) -> tuple[str, str]:
    token = card.strip().lower()
    if token.startswith("10"):
        return "10", token[2:]
    return token[:1], token[1:]


def card_value(card: str | None) -> int:
    """Return the pairing value of *card*: Ace=1 up to King=13, else 0."""

    if not card:
        return 0
    rank, _ = _split_card(card)
    return RANK_VALUES.get(rank, 0)


def format_card(card: str | None) -> str:
    """Return a display name such as ``"10 of Clubs"`` for *card*."""

    if not card or card.strip().upper() == "XX":
        return "Empty"
    rank, suit = _split_card(card)
    rank_name = RANK_NAMES.get(rank, rank)
    suit_name = SUIT_NAMES.get(suit, suit)
    return f"{rank_name} of {suit_name}"


def parse_cards(text: str) -> list[str]:
    """Split a deal written as ``"jd 6h 4c ..."`` into lower-case tokens."""

    return [token.lower() for token in re.split(r"[\s,]+", text) if token]


def deck_problems(cards: Sequence[str]) -> list[str]:
    """Return every reason *cards* is not a standard deal, most important first."""

    problems: list[str] = []
    if len(cards) != DECK_SIZE:
        problems.append(f"deck must contain {DECK_SIZE} cards, but found {len(cards)}")

    counts = Counter(card.strip().lower() for card in cards)
    expected = {rank + suit for rank in RANKS for suit in SUITS}
    for rank in RANKS:
        for suit in SUITS:
            card = rank + suit
            count = counts.get(card, 0)
            if count == 0:
                problems.append(f"missing card: {format_card(card)}")
            elif count > 1:
                problems.append(f"duplicate card: {format_card(card)} (appears {count} times)")

    unknown = sorted(card for card in counts if card not in expected)
    if unknown:
        problems.append("unrecognised cards: " + ", ".join(unknown))
    return problems


def check_deck(cards: Sequence[str]) -> None:
    """Raise :class:`DeckError` unless *cards* holds each of the 52 cards once."""

    problems = deck_problems(cards)
    if problems:
        raise DeckError(problems[0])


# ----------------------------------------------------------------------
# Pyramid layout
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class ExposedCard:
    """A pyramid card that is free to be removed."""

    row: int
    col: int
    card: str
    value: int

    @property
    def position(self) -> tuple[int, int]:
        return (self.row, self.col)


def build_pyramid(cards: Sequence[str]) -> Pyramid:
    """Lay the first 28 cards of *cards* out row by row, apex first."""

    rows: list[Row] = []
    index = 0
    for row in range(PYRAMID_ROWS):
        rows.append(tuple(cards[index : index + row + 1]))
        index += row + 1
    return tuple(rows)


def is_exposed(pyramid: Pyramid, row: int, col: int) -> bool:
    if pyramid[row][col] is None:
        return False
    if row == len(pyramid) - 1:
        return True
    below = pyramid[row + 1]
    return below[col] is None and below[col + 1] is None


def exposed_cards(pyramid: Pyramid) -> list[ExposedCard]:
    """Return the uncovered cards of *pyramid* in row-major order."""

    exposed: list[ExposedCard] = []
    for r, cards in enumerate(pyramid):
        for c, card in enumerate(cards):
            if card is not None and is_exposed(pyramid, r, c):
                exposed.append(ExposedCard(row=r, col=c, card=card, value=card_value(card)))
    return exposed


def remove_at(pyramid: Pyramid, row: int, col: int) -> Pyramid:
    """Return a copy of *pyramid* with the slot at (*row*, *col*) cleared.

    Rows other than *row* are shared with the original.  Clearing a slot that
    is outside the pyramid or already empty is a programming error and raises
    :class:`InvalidMoveError`.
    """

    if not (0 <= row < len(pyramid)) or not (0 <= col < len(pyramid[row])):
        raise InvalidMoveError(f"position ({row},{col}) is outside the pyramid")
    cards = pyramid[row]
    if cards[col] is None:
        raise InvalidMoveError(f"position ({row},{col}) is already empty")
    cleared = cards[:col] + (None,) + cards[col + 1 :]
    return pyramid[:row] + (cleared,) + pyramid[row + 1 :]


def is_complete(pyramid: Pyramid) -> bool:
    return all(card is None for cards in pyramid for card in cards)


def removed_count(pyramid: Pyramid) -> int:
    return sum(1 for cards in pyramid for card in cards if card is None)


# ----------------------------------------------------------------------
# Moves and game state
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Move:
    """A single player action with the cards and pyramid slots it touched."""

    kind: str
    cards: tuple[str, ...] = ()
    positions: tuple[tuple[int, int], ...] = ()

    def describe(self) -> str:
        if self.kind == REMOVE_KING:
            (row, col), = self.positions
            return f"Remove {format_card(self.cards[0])} from pyramid at ({row},{col})"
        if self.kind == REMOVE_PAIR:
            (r1, c1), (r2, c2) = self.positions
            return (
                f"Remove pair from pyramid: {format_card(self.cards[0])} at ({r1},{c1}) "
                f"and {format_card(self.cards[1])} at ({r2},{c2})"
            )
        if self.kind == REMOVE_WASTE_PAIR:
            (row, col), = self.positions
            return (
                f"Remove waste card {format_card(self.cards[0])} and pyramid card "
                f"{format_card(self.cards[1])} at ({row},{col})"
            )
        if self.kind == DRAW_KING:
            return f"Draw and remove King from deck: {format_card(self.cards[0])}"
        if self.kind == DRAW:
            return f"Draw card from deck: {format_card(self.cards[0])}"
        if self.kind == RECYCLE:
            return "Recycle waste into deck"
        return self.kind

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of a Pyramid Solitaire game.

    ``moves`` records how the state was reached and never influences which
    moves are available from it.
    """

    pyramid: Pyramid
    deck: tuple[str, ...] = ()
    waste: tuple[str, ...] = ()
    moves: tuple[Move, ...] = ()
    passes_made: int = 0

    @property
    def waste_top(self) -> str | None:
        return self.waste[-1] if self.waste else None

    @property
    def removed_count(self) -> int:
        return removed_count(self.pyramid)

    @property
    def is_complete(self) -> bool:
        return is_complete(self.pyramid)


def initial_state(cards: Sequence[str]) -> GameState:
    """Deal *cards*: 28 into the pyramid, the remaining 24 into the deck."""

    normalised = [card.strip().lower() for card in cards]
    return GameState(
        pyramid=build_pyramid(normalised[:PYRAMID_SIZE]),
        deck=tuple(normalised[PYRAMID_SIZE:]),
    )


def canonical_signature(state: GameState) -> bytes:
    """Encode the pyramid, deck and waste of *state* for duplicate detection.

    Cards are encoded by value only: suits never affect which moves are legal,
    so two states that differ only in suits have the same future.
    """

    out = bytearray()
    for cards in state.pyramid:
        for card in cards:
            out.append(_EMPTY_SLOT if card is None else card_value(card))
        out.append(_ROW_END)
    out.append(_SECTION)
    out.extend(card_value(card) for card in state.deck)
    out.append(_SECTION)
    out.extend(card_value(card) for card in state.waste)
    return bytes(out)


def _advance(state: GameState, move: Move, **changes) -> GameState:
    return replace(state, moves=state.moves + (move,), **changes)


def remove_king(state: GameState, exposed: ExposedCard) -> GameState:
    move = Move(REMOVE_KING, (exposed.card,), (exposed.position,))
    return _advance(state, move, pyramid=remove_at(state.pyramid, exposed.row, exposed.col))


def remove_pair(state: GameState, first: ExposedCard, second: ExposedCard) -> GameState:
    pyramid = remove_at(state.pyramid, first.row, first.col)
    pyramid = remove_at(pyramid, second.row, second.col)
    move = Move(REMOVE_PAIR, (first.card, second.card), (first.position, second.position))
    return _advance(state, move, pyramid=pyramid)


def remove_with_waste(state: GameState, exposed: ExposedCard) -> GameState:
    top = state.waste[-1]
    move = Move(REMOVE_WASTE_PAIR, (top, exposed.card), (exposed.position,))
    return _advance(
        state,
        move,
        pyramid=remove_at(state.pyramid, exposed.row, exposed.col),
        waste=state.waste[:-1],
    )


def draw(state: GameState) -> GameState:
    """Turn over the front card of the deck; a King leaves play at once."""

    drawn = state.deck[0]
    if card_value(drawn) == KING:
        return _advance(state, Move(DRAW_KING, (drawn,)), deck=state.deck[1:])
    return _advance(state, Move(DRAW, (drawn,)), deck=state.deck[1:], waste=state.waste + (drawn,))


def recycle(state: GameState) -> GameState:
    """Turn the waste over into a new deck, most recent card first."""

    return _advance(
        state,
        Move(RECYCLE),
        deck=tuple(reversed(state.waste)),
        waste=(),
        passes_made=state.passes_made + 1,
    )


# ----------------------------------------------------------------------
# Replay
# ----------------------------------------------------------------------
def _exposed_at(state: GameState, position: Sequence[int], expected: str | None) -> ExposedCard:
    row, col = position
    if not (0 <= row < len(state.pyramid)) or not (0 <= col < len(state.pyramid[row])):
        raise InvalidMoveError(f"position ({row},{col}) is outside the pyramid")
    card = state.pyramid[row][col]
    if card is None:
        raise InvalidMoveError(f"position ({row},{col}) is already empty")
    if not is_exposed(state.pyramid, row, col):
        raise InvalidMoveError(f"{format_card(card)} at ({row},{col}) is covered")
    if expected is not None and expected.lower() != card:
        raise InvalidMoveError(
            f"expected {format_card(expected)} at ({row},{col}), found {format_card(card)}"
        )
    return ExposedCard(row=row, col=col, card=card, value=card_value(card))


def _expected(move: Move, index: int) -> str | None:
    return move.cards[index] if len(move.cards) > index else None


def apply_move(state: GameState, move: Move) -> GameState:
    """Check *move* against *state* and return the resulting state."""

    if move.kind == REMOVE_KING:
        if len(move.positions) != 1:
            raise InvalidMoveError("a King removal names exactly one position")
        exposed = _exposed_at(state, move.positions[0], _expected(move, 0))
        if exposed.value != KING:
            raise InvalidMoveError(f"{format_card(exposed.card)} is not a King")
        return remove_king(state, exposed)

    if move.kind == REMOVE_PAIR:
        if len(move.positions) != 2 or move.positions[0] == move.positions[1]:
            raise InvalidMoveError("a pair removal names two distinct positions")
        first = _exposed_at(state, move.positions[0], _expected(move, 0))
        second = _exposed_at(state, move.positions[1], _expected(move, 1))
        if first.value + second.value != TARGET_SUM:
            raise InvalidMoveError(
                f"{format_card(first.card)} and {format_card(second.card)} do not sum to {TARGET_SUM}"
            )
        return remove_pair(state, first, second)

    if move.kind == REMOVE_WASTE_PAIR:
        top = state.waste_top
        if top is None:
            raise InvalidMoveError("the waste is empty")
        expected_top = _expected(move, 0)
        if expected_top is not None and expected_top.lower() != top:
            raise InvalidMoveError(f"waste top is {format_card(top)}, not {format_card(expected_top)}")
        if len(move.positions) != 1:
            raise InvalidMoveError("a waste pairing names exactly one position")
        exposed = _exposed_at(state, move.positions[0], _expected(move, 1))
        if card_value(top) + exposed.value != TARGET_SUM:
            raise InvalidMoveError(
                f"{format_card(top)} and {format_card(exposed.card)} do not sum to {TARGET_SUM}"
            )
        return remove_with_waste(state, exposed)

    if move.kind in (DRAW, DRAW_KING):
        if not state.deck:
            raise InvalidMoveError("the deck is empty")
        front = state.deck[0]
        if (card_value(front) == KING) != (move.kind == DRAW_KING):
            raise InvalidMoveError(f"unexpected draw kind {move.kind!r} for {format_card(front)}")
        expected = _expected(move, 0)
        if expected is not None and expected.lower() != front:
            raise InvalidMoveError(f"deck front is {format_card(front)}, not {format_card(expected)}")
        return draw(state)

    if move.kind == RECYCLE:
        if state.deck:
            raise InvalidMoveError("the deck must be empty before recycling")
        if not state.waste:
            raise InvalidMoveError("the waste is empty")
        return recycle(state)

    raise InvalidMoveError(f"unknown move kind: {move.kind!r}")


def replay(cards: Sequence[str], moves: Iterable[Move]) -> GameState:
    """Apply *moves* in order to the opening layout of *cards*."""

    state = initial_state(cards)
    for move in moves:
        state = apply_move(state, move)
    return state


__all__ = [
    "DeckError",
    "InvalidMoveError",
    "ExposedCard",
    "Move",
    "GameState",
    "card_value",
    "format_card",
    "parse_cards",
    "deck_problems",
    "check_deck",
    "build_pyramid",
    "initial_state",
    "is_exposed",
    "exposed_cards",
    "remove_at",
    "is_complete",
    "removed_count",
    "canonical_signature",
    "remove_king",
    "remove_pair",
    "remove_with_waste",
    "draw",
    "recycle",
    "apply_move",
    "replay",
]
