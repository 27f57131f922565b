"""
Deck catalog loader.

Decks are authored as YAML:

    decks:
      - id: antibiotics
        name: Antibiotics
        icon: "💊"
        cards:
          - id: abx-001
            prompt: ...
            answer: ...
            options: [..., ..., ..., ...]
            correct: B
"""

import logging
from pathlib import Path
from typing import Any

import yaml  # type: ignore

from cramdeck.domain.models import Card, Deck, OptionSlot

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """The catalog file is missing or not valid YAML."""


def _parse_card(raw: Any, deck_id: str) -> Card | None:
    if not isinstance(raw, dict):
        logger.warning(f"[{deck_id}] Skipping non-mapping card entry")
        return None

    card_id = raw.get("id")
    if not card_id:
        logger.warning(f"[{deck_id}] Skipping card without id: {str(raw.get('prompt'))[:40]}")
        return None

    options = raw.get("options")
    if not isinstance(options, list) or len(options) != 4:
        logger.warning(f"[{deck_id}] Card {card_id} needs exactly 4 options")
        return None

    try:
        slot = OptionSlot(str(raw.get("correct", raw.get("correct_option", ""))).strip().upper())
    except ValueError:
        logger.warning(f"[{deck_id}] Card {card_id} has invalid correct option {raw.get('correct')!r}")
        return None

    return Card(
        id=str(card_id),
        prompt=str(raw.get("prompt", "")),
        answer=str(raw.get("answer", options[slot.index])),
        options=[str(o) for o in options],
        correct_option=slot,
    )


def parse_catalog(data: Any) -> list[Deck]:
    """Build decks from already-parsed YAML. Invalid entries are skipped."""
    if not isinstance(data, dict) or not isinstance(data.get("decks"), list):
        raise CatalogError("Catalog must contain a top-level 'decks' list")

    decks: list[Deck] = []
    seen_decks: set[str] = set()

    for raw_deck in data["decks"]:
        if not isinstance(raw_deck, dict) or not raw_deck.get("id"):
            logger.warning("Skipping deck without id")
            continue
        deck_id = str(raw_deck["id"])
        if deck_id in seen_decks:
            logger.warning(f"Duplicate deck id {deck_id}; keeping the first")
            continue
        seen_decks.add(deck_id)

        cards: list[Card] = []
        seen_cards: set[str] = set()
        for raw_card in raw_deck.get("cards") or []:
            card = _parse_card(raw_card, deck_id)
            if card is None:
                continue
            if card.id in seen_cards:
                logger.warning(f"[{deck_id}] Duplicate card id {card.id}; keeping the first")
                continue
            seen_cards.add(card.id)
            cards.append(card)

        decks.append(
            Deck(
                id=deck_id,
                name=str(raw_deck.get("name", deck_id)),
                cards=cards,
                icon=raw_deck.get("icon"),
            )
        )

    return decks


def load_catalog(path: Path) -> list[Deck]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in {path}: {e}") from e

    decks = parse_catalog(data)
    logger.info(f"Loaded {len(decks)} decks ({sum(len(d.cards) for d in decks)} cards) from {path}")
    return decks
