"""Minimal Flask API that solves Pyramid Solitaire deals."""
from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Flask, jsonify, request

from pyramid import check_deck, parse_cards
from rules import RuleProfile
from scripts.solver import solve

LOGGER = logging.getLogger("server")

# Requests that do not set their own budget get a bounded search.
DEFAULT_MAX_NODES = 250_000

app = Flask(__name__)


def _cards_from_payload(payload: Dict[str, Any]) -> list[str]:
    cards = payload.get("cards")
    deal = payload.get("deal")
    if cards is not None:
        if not isinstance(cards, list) or not all(isinstance(card, str) for card in cards):
            raise ValueError("cards must be a list of strings")
        return [card.strip().lower() for card in cards]
    if deal is not None:
        if not isinstance(deal, str):
            raise ValueError("deal has invalid type: " + type(deal).__name__)
        return parse_cards(deal)
    raise ValueError("Missing field: cards or deal")


def _profile_from_payload(payload: Dict[str, Any]) -> RuleProfile:
    raw = payload.get("profile") or {}
    if not isinstance(raw, dict):
        raise ValueError("profile has invalid type: " + type(raw).__name__)
    settings = {"max_nodes": DEFAULT_MAX_NODES}
    settings.update(raw)
    return RuleProfile.from_dict(settings).validate()


@app.post("/api/solve")
def solve_deal():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return jsonify({"error": "payload must be a JSON object"}), 400
    try:
        cards = _cards_from_payload(payload)
        check_deck(cards)
        profile = _profile_from_payload(payload)
    except (TypeError, ValueError) as exc:
        return jsonify({"error": str(exc)}), 400

    result = solve(cards, profile)
    LOGGER.info("Solved deal: removed %s, exhausted=%s", result.removed_count, result.exhausted)
    return jsonify(result.to_dict())


@app.get("/api/health")
def health():
    return jsonify({"status": "ok"})


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    logging.basicConfig(level=logging.INFO)
    app.run(host="0.0.0.0", port=5000, debug=True)
