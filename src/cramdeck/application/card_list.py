"""
Card browser for a single deck.

Filters a deck's cards by status and free-text search, and reports how much
of the deck is mastered. Read-only; suspend and reset go through the
StudyController.
"""

from enum import Enum

from cramdeck.domain.constants import MASTERED_REPS
from cramdeck.domain.models import Card, Deck


class CardFilter(str, Enum):
    ALL = "all"
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    SUSPENDED = "suspended"


def card_status(card: Card) -> str:
    """Badge shown next to a card: new, suspended, review or learning."""
    if card.seen_count == 0:
        return "new"
    if card.suspended:
        return "suspended"
    if card.reps >= MASTERED_REPS:
        return "review"
    return "learning"


def _matches(card: Card, card_filter: CardFilter) -> bool:
    if card_filter is CardFilter.NEW:
        return card.seen_count == 0
    if card_filter is CardFilter.LEARNING:
        return card.seen_count > 0 and card.reps < MASTERED_REPS
    if card_filter is CardFilter.REVIEW:
        return card.reps >= MASTERED_REPS
    if card_filter is CardFilter.SUSPENDED:
        return card.suspended
    return True


def list_cards(deck: Deck, card_filter: CardFilter = CardFilter.ALL, search: str = "") -> list[Card]:
    """
    Cards of `deck` in catalog order, narrowed by filter and search.

    Search is a case-insensitive substring match on prompt or answer.
    """
    needle = search.strip().lower()
    cards = deck.cards
    if needle:
        cards = [c for c in cards if needle in c.prompt.lower() or needle in c.answer.lower()]
    return [c for c in cards if _matches(c, card_filter)]


def mastered_percent(deck: Deck) -> int:
    """Share of cards with at least MASTERED_REPS reviews, rounded half up."""
    if not deck.cards:
        return 0
    mastered = sum(1 for c in deck.cards if c.reps >= MASTERED_REPS)
    return int(mastered * 100 / len(deck.cards) + 0.5)
