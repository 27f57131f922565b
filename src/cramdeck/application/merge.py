"""
Load-time reconciliation of saved progress against the deck catalog.

The catalog is the source of truth for which decks and cards exist and for
their content; the save is the source of truth for learner progress.
"""

import logging
from dataclasses import replace
from datetime import datetime

from cramdeck.domain.constants import BASELINE_COSMETICS, DEFAULT_EASE
from cramdeck.domain.models import Card, CardState, Deck, ProgressState

logger = logging.getLogger(__name__)


def default_fill(card: Card, now: datetime) -> Card:
    """
    Fresh scheduling state for a card that has no saved progress.
    """
    return replace(
        card,
        options=list(card.options),
        ease=DEFAULT_EASE,
        interval_days=0.0,
        reps=0,
        lapses=0,
        due_date=now,
        next_review=None,
        last_reviewed=None,
        seen_count=0,
        suspended=False,
        state=CardState.NEW,
        session_encounter_count=0,
    )


def _merge_card(saved: Card, source: Card, now: datetime) -> Card:
    # Content ships with the catalog, progress stays with the learner
    return replace(
        saved,
        prompt=source.prompt,
        answer=source.answer,
        options=list(source.options),
        correct_option=source.correct_option,
        due_date=saved.due_date or saved.next_review or now,
    )


def reconcile_decks(saved_decks: list[Deck], catalog: list[Deck], now: datetime) -> list[Deck]:
    """
    Merge saved decks into the catalog's deck list.

    Cards and decks only present in the save are dropped.
    """
    saved_by_id = {d.id: d for d in saved_decks}
    merged: list[Deck] = []
    kept = added = 0

    for source_deck in catalog:
        saved_deck = saved_by_id.get(source_deck.id)
        saved_cards = {c.id: c for c in saved_deck.cards} if saved_deck else {}

        cards = []
        for source_card in source_deck.cards:
            saved_card = saved_cards.get(source_card.id)
            if saved_card is not None:
                cards.append(_merge_card(saved_card, source_card, now))
                kept += 1
            else:
                cards.append(default_fill(source_card, now))
                added += 1

        merged.append(replace(source_deck, cards=cards))

    dropped = sum(len(d.cards) for d in saved_decks) - kept
    logger.info(
        f"Merged catalog: {len(merged)} decks, {kept} cards with progress, "
        f"{added} new, {dropped} dropped"
    )
    return merged


def reconcile(saved: ProgressState | None, catalog: list[Deck], now: datetime) -> ProgressState:
    """
    Build the live state from a (possibly absent) save and the catalog.

    Args:
        saved: Decoded save; None on first run or when the save was unusable.
        catalog: Decks as shipped.
        now: Due date given to cards without progress.

    Returns:
        State whose top-level progress (gold, cosmetics, statistics, settings,
        counters) is carried over verbatim, with baseline cosmetics ensured.
    """
    if saved is None:
        state = ProgressState()
        state.decks = reconcile_decks([], catalog, now)
    else:
        state = replace(saved, decks=reconcile_decks(saved.decks, catalog, now))
        state.owned_cosmetics = list(saved.owned_cosmetics)

    for cosmetic_id in BASELINE_COSMETICS:
        if cosmetic_id not in state.owned_cosmetics:
            state.owned_cosmetics.append(cosmetic_id)

    return state
