"""
Due-set selection for a single deck.

Builds today's study list by:
1. Rolling the daily counters over when the date changed
2. Taking unseen cards up to the remaining new-card quota
3. Taking seen cards due on or before today up to the remaining review quota
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from cramdeck.domain.models import Card, Deck, Settings, StudyCounters

logger = logging.getLogger(__name__)


@dataclass
class DueCounts:
    """How many cards a deck would put into a session today."""

    new: int
    reviews: int

    @property
    def total(self) -> int:
        return self.new + self.reviews


def roll_daily_counters(counters: StudyCounters | None, today: datetime) -> StudyCounters:
    """
    Return counters valid for `today`.

    A stale date yields fresh zeroed counters; otherwise the same object is
    returned untouched, so repeated calls on one day are idempotent.
    """
    today_key = today.date().isoformat()
    if counters is not None and counters.date == today_key:
        return counters

    if counters is not None:
        logger.info(
            f"New study day {today_key} (was {counters.date}); "
            f"resetting counters new={counters.new_cards} reviews={counters.reviews}"
        )
    return StudyCounters(date=today_key)


def is_due_on(card: Card, today: datetime) -> bool:
    """Day-granularity due check. Cards without any due date are due."""
    due = card.effective_due()
    if due is None:
        return True
    return due.date() <= today.date()


def _new_pool(deck: Deck) -> list[Card]:
    return [c for c in deck.cards if not c.suspended and c.seen_count == 0]


def _review_pool(deck: Deck, today: datetime) -> list[Card]:
    return [
        c for c in deck.cards if not c.suspended and c.seen_count > 0 and is_due_on(c, today)
    ]


def select_due_cards(
    deck: Deck,
    settings: Settings,
    counters: StudyCounters,
    today: datetime,
) -> list[Card]:
    """
    Select the cards eligible for study today.

    Args:
        deck: The deck to study; quotas are evaluated per deck.
        settings: Daily quotas.
        counters: Today's consumption, already rolled over for `today`.
        today: Reference time.

    Returns:
        New cards first, then due reviews, each in deck order.
    """
    new_left = max(0, settings.new_cards_per_day - counters.new_cards)
    reviews_left = max(0, settings.reviews_per_day - counters.reviews)

    new_cards = _new_pool(deck)[:new_left]
    due_reviews = _review_pool(deck, today)[:reviews_left]

    logger.debug(
        f"Deck {deck.id}: {len(new_cards)} new (quota left {new_left}), "
        f"{len(due_reviews)} reviews (quota left {reviews_left})"
    )
    return new_cards + due_reviews


def due_counts(
    deck: Deck,
    settings: Settings,
    counters: StudyCounters,
    today: datetime,
) -> DueCounts:
    """Counts shown next to a deck in the picker, capped by the daily quotas."""
    new = min(len(_new_pool(deck)), max(0, settings.new_cards_per_day - counters.new_cards))
    reviews = min(
        len(_review_pool(deck, today)), max(0, settings.reviews_per_day - counters.reviews)
    )
    return DueCounts(new=new, reviews=reviews)
