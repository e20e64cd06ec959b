import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts import validate
from scripts.solver import SAMPLE_DEAL

ORDERED_DEAL = " ".join(
    rank + suit
    for suit in "cdhs"
    for rank in ("a", "2", "3", "4", "5", "6", "7", "8", "9", "10", "j", "q", "k")
)


def _write_deal(path: pathlib.Path, text: str) -> pathlib.Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_validate_deal_success(tmp_path):
    deal_path = _write_deal(tmp_path / "deal.txt", SAMPLE_DEAL)

    cards = validate.load_deal(deal_path)
    result = validate.validate_deal(deal_path, cards)

    assert result.is_ok
    assert result.errors == []
    assert len(result.cards) == 52


def test_load_deal_ignores_comments_and_commas(tmp_path):
    deal_path = _write_deal(
        tmp_path / "commented.txt",
        "# pyramid\nJD, 6H, 4C  # apex and row one\n",
    )

    assert validate.load_deal(deal_path) == ["jd", "6h", "4c"]


def test_duplicate_detection(tmp_path):
    cards = SAMPLE_DEAL.split()
    cards[-1] = cards[0]
    deal_path = _write_deal(tmp_path / "duplicate.txt", " ".join(cards))

    result = validate.validate_deal(deal_path, validate.load_deal(deal_path))

    assert not result.is_ok
    assert any("duplicate card: Jack of Diamonds" in error for error in result.errors)
    assert any("missing card: 2 of Clubs" in error for error in result.errors)


@pytest.mark.parametrize("count", [0, 28, 51])
def test_short_deals_are_rejected(tmp_path, count):
    cards = SAMPLE_DEAL.split()[:count]
    deal_path = _write_deal(tmp_path / f"short_{count}.txt", " ".join(cards))

    result = validate.validate_deal(deal_path, validate.load_deal(deal_path))

    assert not result.is_ok
    assert result.errors[0] == f"deck must contain 52 cards, but found {count}"


def test_stuck_opening_row_is_a_warning(tmp_path):
    # The ordered deck's bottom row is 9d 10d jd qd kd ah 2h: it holds a King.
    deal_path = _write_deal(tmp_path / "ordered.txt", ORDERED_DEAL)
    result = validate.validate_deal(deal_path, validate.load_deal(deal_path))
    assert result.is_ok
    assert result.warnings == []

    cards = ORDERED_DEAL.split()
    # Low cards only: no King, and no two of them reach 13.
    bottom = [cards.index(card) for card in ("ac", "2c", "3c", "4c", "5c", "6c", "ad")]
    for slot, index in zip(range(21, 28), bottom):
        cards[slot], cards[index] = cards[index], cards[slot]
    stuck_path = _write_deal(tmp_path / "stuck.txt", " ".join(cards))
    stuck = validate.validate_deal(stuck_path, validate.load_deal(stuck_path))

    assert stuck.is_ok
    assert any("Opening row" in warning for warning in stuck.warnings)


def test_run_reports_each_file(tmp_path, capsys):
    good = _write_deal(tmp_path / "good.txt", SAMPLE_DEAL)
    bad = _write_deal(tmp_path / "bad.txt", "ah 2c")

    exit_code = validate.main([str(good), str(bad)])

    captured = capsys.readouterr()
    assert "good.txt: ok (52 cards)" in captured.out
    assert "bad.txt: failed (2 cards)" in captured.out
    assert "error" in captured.out
    assert exit_code == 1


def test_missing_file_is_a_usage_error(tmp_path):
    with pytest.raises(SystemExit) as exc:
        validate.main([str(tmp_path / "missing.txt")])

    assert exc.value.code == 2
