"""
Deadline-aware card scheduler.

Turns a graded outcome into the card's next ease, interval and due date.
Intervals shrink as the deadline approaches and never reach past it.

This is a pure computation module with no I/O and no clock reads.
"""

from datetime import datetime, timedelta
from typing import Any

from cramdeck.domain.constants import (
    CRAM_MAX_INTERVAL_DAYS,
    CRAM_WINDOW_DAYS,
    DEFAULT_EASE,
    LAPSE_EASE_PENALTY,
    LAPSE_INTERVAL_DAYS,
    MAX_EASE,
    MIN_DEADLINE_CEILING_DAYS,
    MIN_EASE,
    MIN_REVIEW_INTERVAL_DAYS,
    SECONDS_PER_DAY,
)
from cramdeck.domain.models import Card, CardState, Grade

EASE_DELTA = {
    Grade.PERFECT: 0.15,
    Grade.ONE_MISS: 0.0,
    Grade.TWO_MISS: -0.15,
    Grade.THREE_PLUS_MISS: -LAPSE_EASE_PENALTY,
}

# Interval for a card's first successful review
GRADUATION_INTERVAL_DAYS = {
    Grade.PERFECT: 2.0,
    Grade.ONE_MISS: 1.0,
    Grade.TWO_MISS: 0.5,
}

INTERVAL_MULTIPLIER = {
    Grade.PERFECT: 1.0,
    Grade.ONE_MISS: 0.75,
    Grade.TWO_MISS: 0.55,
}


def clamp_ease(ease: float) -> float:
    return max(MIN_EASE, min(MAX_EASE, ease))


def days_until(deadline: datetime, today: datetime) -> float:
    """Fractional days from `today` to `deadline`, floored at zero."""
    return max(0.0, (deadline - today).total_seconds() / SECONDS_PER_DAY)


def update_ease(ease: float, grade: Grade, days_to_deadline: float) -> float:
    """
    Apply the grade's ease delta, clamped to [MIN_EASE, MAX_EASE].

    A perfect answer inside the cram window leaves ease untouched.
    """
    if grade is Grade.PERFECT and days_to_deadline <= CRAM_WINDOW_DAYS:
        return clamp_ease(ease)
    return clamp_ease(ease + EASE_DELTA[grade])


def next_interval_days(prev_interval: float | None, ease: float, grade: Grade) -> float:
    """
    Raw interval before floors and caps.

    `prev_interval` is None for a card that has never been reviewed successfully.
    """
    if grade.is_lapse:
        return LAPSE_INTERVAL_DAYS
    if prev_interval is None:
        return GRADUATION_INTERVAL_DAYS[grade]
    return prev_interval * ease * INTERVAL_MULTIPLIER[grade]


def schedule_card(card: Card, grade: Grade, today: datetime, deadline: datetime) -> dict[str, Any]:
    """
    Compute the scheduling update for a graduated card.

    Args:
        card: The card as currently persisted.
        grade: Outcome of this session.
        today: Reference time; the due date is measured from here.
        deadline: Target date no interval may reach past.

    Returns:
        Dict of changed Card fields, to be merged by the caller.
    """
    days_to_deadline = days_until(deadline, today)
    ease = card.ease if card.ease is not None else DEFAULT_EASE
    reps = card.reps or 0
    lapses = card.lapses or 0

    if grade.is_lapse:
        return {
            "interval_days": LAPSE_INTERVAL_DAYS,
            "ease": update_ease(ease, grade, days_to_deadline),
            "lapses": lapses + 1,
            "state": CardState.RELEARN,
            "reps": reps,
            "due_date": today + timedelta(days=LAPSE_INTERVAL_DAYS),
        }

    new_ease = update_ease(ease, grade, days_to_deadline)
    prev_interval = card.interval_days if reps > 0 else None
    interval = next_interval_days(prev_interval, new_ease, grade)

    if reps > 0:
        interval = max(interval, MIN_REVIEW_INTERVAL_DAYS)
    interval = min(interval, max(MIN_DEADLINE_CEILING_DAYS, days_to_deadline))

    if days_to_deadline <= CRAM_WINDOW_DAYS:
        interval = min(interval, CRAM_MAX_INTERVAL_DAYS)

    return {
        "interval_days": interval,
        "ease": new_ease,
        "reps": max(1, reps + 1),
        "due_date": today + timedelta(days=interval),
        "state": CardState.REVIEW,
        "lapses": lapses,
    }
