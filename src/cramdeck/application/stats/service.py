"""
Stats Service: application layer orchestrator.

Combines the persisted progress with computed metrics for the stats page and
the deck picker.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from cramdeck.application.due_set import due_counts, roll_daily_counters
from cramdeck.domain.models import ProgressState

from .metrics_calculator import MetricsCalculator, StatsSummary

logger = logging.getLogger(__name__)


@dataclass
class DeckOverview:
    deck_id: str
    name: str
    icon: str | None
    total_cards: int
    suspended: int
    new_due: int
    reviews_due: int

    @property
    def total_due(self) -> int:
        return self.new_due + self.reviews_due


class StatsService:
    """
    Read-only views over a ProgressState.

    Never mutates the state; stale daily counters are rolled on a copy.
    """

    def __init__(self, state: ProgressState, calculator: MetricsCalculator | None = None):
        """
        Args:
            state: The live progress state.
            calculator: Optional custom calculator; uses default if not provided.
        """
        self._state = state
        self._calc = calculator or MetricsCalculator()

    def summary(self, today: datetime) -> StatsSummary:
        return self._calc.summarize(self._state, today)

    def deck_overview(self, today: datetime) -> list[DeckOverview]:
        """
        Per-deck card totals and today's due counts, in catalog order.
        """
        counters = roll_daily_counters(self._state.studied_today, today)
        rows = []
        for deck in self._state.decks:
            counts = due_counts(deck, self._state.settings, counters, today)
            rows.append(
                DeckOverview(
                    deck_id=deck.id,
                    name=deck.name,
                    icon=deck.icon,
                    total_cards=len(deck.cards),
                    suspended=sum(1 for c in deck.cards if c.suspended),
                    new_due=counts.new,
                    reviews_due=counts.reviews,
                )
            )
        return rows
