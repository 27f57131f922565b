"""
Aggregate statistics bookkeeping and derived study metrics.

This is a pure computation module with no I/O.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime

from cramdeck.domain.constants import SECONDS_PER_DAY
from cramdeck.domain.models import ProgressState, Statistics, StudyDay


@dataclass
class StatsSummary:
    """
    Statistics enriched with computed metrics for display.
    """

    total_cards_studied: int
    total_reviews: int
    perfect_answers: int
    accuracy_percent: int
    streak: int
    longest_streak: int
    gold: int
    total_gold_earned: int
    new_today: int
    reviews_today: int
    days_until_deadline: int
    deadline_status: str


def record_graduation(
    stats: Statistics,
    today: datetime,
    is_new: bool,
    perfect: bool,
    reward: int,
) -> None:
    """
    Fold one graduated card into the aggregate statistics, in place.
    """
    stats.total_reviews += 1
    stats.total_gold_earned += reward
    if perfect:
        stats.perfect_answers += 1

    day_key = today.date().isoformat()
    entry = stats.study_history[-1] if stats.study_history else None
    if entry is None or entry.date != day_key:
        _update_streak(stats, today.date(), entry)
        entry = StudyDay(date=day_key)
        stats.study_history.append(entry)

    if is_new:
        entry.cards_studied += 1
    else:
        entry.reviews += 1


def _update_streak(stats: Statistics, today: date, last: StudyDay | None) -> None:
    """
    Extend the streak when the previous study day was yesterday, else restart it.
    """
    previous = None
    if last is not None:
        try:
            previous = date.fromisoformat(last.date)
        except ValueError:
            previous = None

    if previous is not None and (today - previous).days == 1:
        stats.streak += 1
    else:
        stats.streak = 1
    stats.longest_streak = max(stats.longest_streak, stats.streak)


class MetricsCalculator:
    """
    Computes derived metrics from the persisted progress state.

    Stateless and side-effect free.
    """

    def summarize(self, state: ProgressState, today: datetime) -> StatsSummary:
        stats = state.statistics
        counters = state.studied_today
        on_today = counters.date == today.date().isoformat()
        new_today = counters.new_cards if on_today else 0
        reviews_today = counters.reviews if on_today else 0

        days_left = self._days_until_deadline(state.settings.deadline, today)

        return StatsSummary(
            # Lifetime total is only folded in once the day rolls over
            total_cards_studied=stats.total_cards_studied + new_today,
            total_reviews=stats.total_reviews,
            perfect_answers=stats.perfect_answers,
            accuracy_percent=self._accuracy(stats),
            streak=stats.streak,
            longest_streak=stats.longest_streak,
            gold=state.gold,
            total_gold_earned=stats.total_gold_earned,
            new_today=new_today,
            reviews_today=reviews_today,
            days_until_deadline=days_left,
            deadline_status=self._deadline_status(days_left),
        )

    def _accuracy(self, stats: Statistics) -> int:
        if stats.total_reviews == 0:
            return 0
        return round(stats.perfect_answers / stats.total_reviews * 100)

    def _days_until_deadline(self, deadline: datetime, today: datetime) -> int:
        """
        Whole days left, rounded up. Negative once a full day past the deadline.
        """
        return math.ceil((deadline - today).total_seconds() / SECONDS_PER_DAY)

    def _deadline_status(self, days_left: int) -> str:
        if days_left > 0:
            return f"{days_left} days until deadline."
        if days_left == 0:
            return "Deadline is today!"
        return "Deadline has passed."
