"""
Domain models for cards, decks and study sessions.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from .constants import (
    BASELINE_COSMETICS,
    DEFAULT_COLOR,
    DEFAULT_DEADLINE_DAYS,
    DEFAULT_EASE,
    DEFAULT_NEW_CARDS_PER_DAY,
    DEFAULT_REVIEWS_PER_DAY,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OptionSlot(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @property
    def index(self) -> int:
        return "ABCD".index(self.value)


class CardState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARN = "relearn"


class Grade(str, Enum):
    """
    Outcome of a graduated card, derived from how often it was re-shown.

    Each grade maps to a scheduler quality from 3 (perfect) down to 0 (lapse).
    """

    PERFECT = "perfect"
    ONE_MISS = "one_miss"
    TWO_MISS = "two_miss"
    THREE_PLUS_MISS = "three_plus_miss"

    @property
    def quality(self) -> int:
        return {
            Grade.PERFECT: 3,
            Grade.ONE_MISS: 2,
            Grade.TWO_MISS: 1,
            Grade.THREE_PLUS_MISS: 0,
        }[self]

    @property
    def is_lapse(self) -> bool:
        return self.quality == 0


class Phase(str, Enum):
    IDLE = "idle"
    LEARN = "learn"
    DRAG = "drag"
    COMPLETE = "complete"


class Feedback(str, Enum):
    CORRECT = "correct"
    WRONG = "wrong"


@dataclass
class Card:
    """
    A multiple-choice flashcard plus its scheduling state.

    Attributes:
        id: Stable identifier, immutable across sessions.
        options: Exactly four answer texts, slots A-D.
        ease: Interval growth factor, kept within [1.80, 2.80].
        interval_days: Current interval, fractional days.
        reps: Successful review count.
        lapses: Failed review count.
        due_date: When the card is next due.
        next_review: Legacy due date from old saves, read only as a fallback.
        seen_count: Lifetime exposures.
        session_encounter_count: Correct answers within the current session.
    """

    id: str
    prompt: str
    answer: str
    options: list[str]
    correct_option: OptionSlot

    ease: float = DEFAULT_EASE
    interval_days: float = 0.0
    reps: int = 0
    lapses: int = 0
    due_date: datetime | None = None
    next_review: datetime | None = None
    last_reviewed: datetime | None = None
    seen_count: int = 0
    suspended: bool = False
    state: CardState = CardState.NEW

    session_encounter_count: int = 0

    def effective_due(self) -> datetime | None:
        return self.due_date or self.next_review


@dataclass
class Deck:
    id: str
    name: str
    cards: list[Card] = field(default_factory=list)
    icon: str | None = None

    def find_card(self, card_id: str) -> Card | None:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None


def default_deadline(now: datetime | None = None) -> datetime:
    return (now or utc_now()) + timedelta(days=DEFAULT_DEADLINE_DAYS)


@dataclass
class Settings:
    new_cards_per_day: int = DEFAULT_NEW_CARDS_PER_DAY
    reviews_per_day: int = DEFAULT_REVIEWS_PER_DAY
    deadline: datetime = field(default_factory=default_deadline)


@dataclass
class StudyCounters:
    """Date-stamped tally of what was consumed from today's quotas."""

    date: str
    new_cards: int = 0
    reviews: int = 0


@dataclass
class StudyDay:
    date: str
    cards_studied: int = 0
    reviews: int = 0


@dataclass
class Statistics:
    total_cards_studied: int = 0
    total_reviews: int = 0
    perfect_answers: int = 0
    streak: int = 0
    longest_streak: int = 0
    total_gold_earned: int = 0
    study_history: list[StudyDay] = field(default_factory=list)


@dataclass
class ProgressState:
    """
    Everything that survives an app restart.

    Sessions are never persisted; only their effects on cards and counters are.
    """

    decks: list[Deck] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)
    studied_today: StudyCounters = field(
        default_factory=lambda: StudyCounters(date=utc_now().date().isoformat())
    )
    score: int = 0
    gold: int = 0
    owned_cosmetics: list[str] = field(default_factory=lambda: list(BASELINE_COSMETICS))
    equipped_cosmetics: dict[str, str] = field(default_factory=lambda: {"color": DEFAULT_COLOR})
    statistics: Statistics = field(default_factory=Statistics)

    def find_deck(self, deck_id: str) -> Deck | None:
        for deck in self.decks:
            if deck.id == deck_id:
                return deck
        return None


@dataclass
class StudySession:
    """
    In-progress study session state.

    `snapshot` holds every card still owed a pass this session; the learning and
    testing batches are views over it for the active phase.
    """

    deck_id: str | None = None
    snapshot: list[Card] = field(default_factory=list)
    original_size: int = 0
    learning_batch: list[Card] = field(default_factory=list)
    testing_batch: list[Card] = field(default_factory=list)
    cursor: int = 0
    phase: Phase = Phase.IDLE
    eliminated: list[OptionSlot] = field(default_factory=list)
    attempts: int = 0
    feedback: Feedback | None = None
    new_card_ids: set[str] = field(default_factory=set)

    def active_card(self) -> Card | None:
        batch = self.learning_batch if self.phase is Phase.LEARN else self.testing_batch
        if self.phase not in (Phase.LEARN, Phase.DRAG):
            return None
        if 0 <= self.cursor < len(batch):
            return batch[self.cursor]
        return None

    def clear_transient(self) -> None:
        self.eliminated = []
        self.attempts = 0
        self.feedback = None
