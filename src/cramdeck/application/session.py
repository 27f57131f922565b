"""
Study session sequencer.

Owns the progress state and the in-progress session, and drives a deck through
a learn pass and repeated quiz passes until every selected card graduates:

    idle -> learn -> drag -> ... -> drag -> complete

Every transition runs synchronously to completion. Answer feedback is
two-phase: `submit_answer` records the feedback and returns a PendingFeedback;
the caller fires it once the feedback window has elapsed. A pending commit is
dropped, never half-applied, when the session is abandoned.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from cramdeck.application import shop
from cramdeck.application.due_set import roll_daily_counters, select_due_cards
from cramdeck.application.scheduler import clamp_ease, schedule_card
from cramdeck.application.stats import record_graduation
from cramdeck.domain.constants import (
    AUTO_GRADUATE_ENCOUNTERS,
    CORRECT_FEEDBACK_SECONDS,
    DEFAULT_EASE,
    PERFECT_REWARD_GOLD,
    WRONG_FEEDBACK_SECONDS,
)
from cramdeck.domain.models import (
    Card,
    CardState,
    Feedback,
    Grade,
    OptionSlot,
    Phase,
    ProgressState,
    Statistics,
    StudySession,
    utc_now,
)

logger = logging.getLogger(__name__)

Listener = Callable[[ProgressState], None]

# Fields a caller may overwrite through reset_card_progress
RESETTABLE_FIELDS = {
    "ease",
    "interval_days",
    "reps",
    "lapses",
    "due_date",
    "last_reviewed",
    "seen_count",
    "state",
}

SETTINGS_FIELDS = {"new_cards_per_day", "reviews_per_day", "deadline"}


def grade_for(encounter: int, attempts: int) -> Grade:
    """
    Grade a correct answer by how many times the card has come up this session.

    Only a first-encounter answer with no wrong attempts is perfect; later
    encounters are graded by the encounter count alone.
    """
    if encounter == 1 and attempts == 0:
        return Grade.PERFECT
    if encounter == 2:
        return Grade.ONE_MISS
    if encounter == 3:
        return Grade.TWO_MISS
    return Grade.THREE_PLUS_MISS


def should_graduate(encounter: int, attempts: int) -> bool:
    return attempts == 0 or encounter >= AUTO_GRADUATE_ENCOUNTERS


def requeue_position(remaining: int, attempts: int) -> int:
    """
    Where a missed card goes back into a queue of `remaining` cards.

    1 miss: end. 2 misses: middle. 3+: after at most one card.
    """
    if attempts <= 1:
        return remaining
    if attempts == 2:
        return remaining // 2
    return min(1, remaining)


def _as_utc(value: Any) -> datetime | None:
    """Datetime or ISO string to an aware datetime. Naive means UTC."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class SessionView:
    """Read-only snapshot of what the UI needs to render."""

    phase: Phase
    deck_id: str | None
    active_card: Card | None
    learning_remaining: int
    testing_remaining: int
    session_remaining: int
    original_size: int
    eliminated: list[OptionSlot]
    attempts: int
    feedback: Feedback | None
    score: int
    gold: int
    statistics: Statistics


@dataclass
class PendingFeedback:
    """
    Deferred continuation of an answer, fired after the feedback window.

    `generation` ties it to the session it was created in; firing it after the
    session was replaced or the continuation cancelled is a no-op.
    """

    kind: Feedback
    delay: float
    generation: int
    _run: Callable[["PendingFeedback"], bool] = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    def fire(self) -> bool:
        if self.cancelled or self.fired:
            return False
        return self._run(self)

    def cancel(self) -> None:
        self.cancelled = True


class StudyController:
    """
    Single owner of progress and session state.

    All mutators return a success flag instead of raising; unknown ids and
    out-of-phase calls are no-ops.
    """

    def __init__(
        self,
        state: ProgressState,
        clock: Callable[[], datetime] = utc_now,
        correct_delay: float = CORRECT_FEEDBACK_SECONDS,
        wrong_delay: float = WRONG_FEEDBACK_SECONDS,
    ):
        self.state = state
        self.session = StudySession()
        self.correct_delay = correct_delay
        self.wrong_delay = wrong_delay
        self._clock = clock
        self._pending: PendingFeedback | None = None
        self._generation = 0
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)

    # ------------------------------------------------------------------
    # Due set
    # ------------------------------------------------------------------

    def _roll_counters(self, today: datetime) -> None:
        previous = self.state.studied_today
        rolled = roll_daily_counters(previous, today)
        if rolled is not previous:
            self.state.statistics.total_cards_studied += previous.new_cards
            self.state.studied_today = rolled

    def due_cards(self, deck_id: str) -> list[Card]:
        """
        Today's eligible cards for a deck. Rolls the daily counters first.
        """
        deck = self.state.find_deck(deck_id)
        if deck is None:
            return []
        today = self._clock()
        self._roll_counters(today)
        return select_due_cards(deck, self.state.settings, self.state.studied_today, today)

    # ------------------------------------------------------------------
    # Session transitions
    # ------------------------------------------------------------------

    def select_deck(self, deck_id: str) -> bool:
        """
        Start a fresh session on a deck, abandoning any session in progress.
        """
        deck = self.state.find_deck(deck_id)
        if deck is None:
            logger.warning(f"Unknown deck: {deck_id}")
            return False

        self._abandon()
        due = self.due_cards(deck_id)

        for persisted in due:
            persisted.session_encounter_count = 0
        cards = [self._session_copy(c) for c in due]

        session = StudySession(deck_id=deck_id, new_card_ids={c.id for c in due if c.seen_count == 0})
        if cards:
            session.snapshot = cards
            session.original_size = len(cards)
            session.learning_batch = list(cards)
            session.phase = Phase.LEARN
        else:
            session.phase = Phase.COMPLETE

        self.session = session
        logger.info(f"Session started on {deck_id}: {len(cards)} cards ({len(session.new_card_ids)} new)")
        self._notify()
        return True

    def restart_session(self) -> bool:
        if self.session.deck_id is None:
            return False
        return self.select_deck(self.session.deck_id)

    def close(self) -> None:
        """Abandon the current session without committing pending feedback."""
        self._abandon()
        self.session = StudySession()
        self._notify()

    def advance_learning(self) -> bool:
        """Mark the card being learned as seen and move on."""
        s = self.session
        if s.phase is not Phase.LEARN:
            logger.debug(f"advance_learning ignored in phase {s.phase.value}")
            return False

        card = s.active_card()
        if card is not None:
            self._mark_seen(card)
            s.cursor += 1
            s.clear_transient()

        if s.cursor >= len(s.learning_batch):
            self._start_testing()

        self._notify()
        return True

    def submit_answer(self, selected: OptionSlot | str) -> PendingFeedback | None:
        """
        Begin answer feedback for the active quiz card.

        Returns the continuation to fire after the feedback window, or None
        when the answer was ignored (no active card, feedback still showing,
        or an unknown slot).
        """
        s = self.session
        card = s.active_card() if s.phase is Phase.DRAG else None
        if card is None:
            logger.debug("submit_answer ignored: no active card")
            return None
        if s.feedback is not None or self._pending is not None:
            logger.debug("submit_answer ignored: feedback pending")
            return None

        try:
            slot = OptionSlot(selected)
        except ValueError:
            logger.warning(f"Unknown option slot: {selected!r}")
            return None

        if slot == card.correct_option:
            s.feedback = Feedback.CORRECT
            pending = self._defer(Feedback.CORRECT, self.correct_delay)
        else:
            if slot not in s.eliminated:
                s.eliminated.append(slot)
            s.attempts += 1
            s.feedback = Feedback.WRONG
            pending = self._defer(Feedback.WRONG, self.wrong_delay)

        self._notify()
        return pending

    def resolve_pending(self) -> bool:
        """Fire the pending continuation now, if any."""
        if self._pending is None:
            return False
        return self._pending.fire()

    def cancel_pending(self) -> bool:
        """Drop the pending continuation without committing it."""
        if self._pending is None:
            return False
        self._pending.cancel()
        self._pending = None
        self.session.feedback = None
        self._notify()
        return True

    @property
    def pending(self) -> PendingFeedback | None:
        return self._pending

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _abandon(self) -> None:
        if self._pending is not None:
            logger.debug(f"Discarding pending {self._pending.kind.value} feedback")
            self._pending.cancel()
            self._pending = None
        self._generation += 1

    def _defer(self, kind: Feedback, delay: float) -> PendingFeedback:
        pending = PendingFeedback(kind=kind, delay=delay, generation=self._generation, _run=self._run_pending)
        self._pending = pending
        return pending

    def _run_pending(self, pending: PendingFeedback) -> bool:
        if pending is not self._pending or pending.generation != self._generation:
            return False

        pending.fired = True
        self._pending = None
        if pending.kind is Feedback.CORRECT:
            self._commit_correct()
        else:
            self.session.feedback = None
        self._notify()
        return True

    @staticmethod
    def _session_copy(card: Card) -> Card:
        return replace(card, options=list(card.options), session_encounter_count=0)

    def _persisted(self, card_id: str) -> Card | None:
        deck = self.state.find_deck(self.session.deck_id) if self.session.deck_id else None
        return deck.find_card(card_id) if deck else None

    def _mark_seen(self, card: Card) -> None:
        # Learning is a one-time exposure: seen is set, not incremented
        for target in (card, self._persisted(card.id)):
            if target is None:
                continue
            target.seen_count = 1
            if target.state is CardState.NEW:
                target.state = CardState.LEARNING

    def _start_testing(self) -> None:
        s = self.session
        s.testing_batch = list(s.learning_batch)
        s.cursor = 0
        s.phase = Phase.DRAG
        s.clear_transient()
        logger.debug(f"Quiz pass started with {len(s.testing_batch)} cards")

    def _commit_correct(self) -> None:
        s = self.session
        card = s.testing_batch[s.cursor]
        attempts = s.attempts
        encounter = card.session_encounter_count + 1
        card.session_encounter_count = encounter

        if should_graduate(encounter, attempts):
            self._graduate(card, grade_for(encounter, attempts))
        else:
            self._requeue(card, attempts)

        self.state.score += 1
        s.clear_transient()

        if s.cursor >= len(s.testing_batch):
            if not s.snapshot:
                self._complete()
            else:
                # Another pass over whatever is still owed; no re-learn needed
                s.learning_batch = list(s.snapshot)
                s.testing_batch = list(s.snapshot)
                s.cursor = 0
                s.phase = Phase.DRAG

    def _requeue(self, card: Card, attempts: int) -> None:
        s = self.session
        s.testing_batch.pop(s.cursor)
        s.testing_batch.insert(requeue_position(len(s.testing_batch), attempts), card)

        s.snapshot = [c for c in s.snapshot if c.id != card.id]
        s.snapshot.insert(requeue_position(len(s.snapshot), attempts), card)
        logger.debug(f"Re-queued {card.id} after {attempts} misses (encounter {card.session_encounter_count})")

    def _graduate(self, card: Card, grade: Grade) -> None:
        s = self.session
        persisted = self._persisted(card.id)
        today = self._clock()
        # Scheduled before the card leaves the batches
        update = None
        if persisted is not None:
            update = schedule_card(persisted, grade, today, self.state.settings.deadline)

        s.testing_batch.pop(s.cursor)
        s.snapshot = [c for c in s.snapshot if c.id != card.id]

        if persisted is None:
            logger.warning(f"Graduated card {card.id} is no longer in deck {s.deck_id}")
            return

        for name, value in update.items():
            setattr(persisted, name, value)
        persisted.last_reviewed = today
        persisted.seen_count += 1
        persisted.session_encounter_count = card.session_encounter_count

        is_new = card.id in s.new_card_ids
        self._roll_counters(today)
        if is_new:
            self.state.studied_today.new_cards += 1
        else:
            self.state.studied_today.reviews += 1

        perfect = grade is Grade.PERFECT
        reward = PERFECT_REWARD_GOLD if perfect else 0
        self.state.gold += reward
        record_graduation(self.state.statistics, today, is_new=is_new, perfect=perfect, reward=reward)

        logger.info(
            f"Graduated {card.id} as {grade.value}: interval={update['interval_days']:.2f}d "
            f"ease={update['ease']:.2f} reward={reward}"
        )

    def _complete(self) -> None:
        s = self.session
        s.phase = Phase.COMPLETE
        s.snapshot = []
        s.learning_batch = []
        s.testing_batch = []
        s.cursor = 0
        s.clear_transient()
        logger.info(f"Session on {s.deck_id} complete ({s.original_size} cards)")

    # ------------------------------------------------------------------
    # Direct mutators
    # ------------------------------------------------------------------

    def toggle_suspend(self, deck_id: str, card_id: str) -> bool:
        deck = self.state.find_deck(deck_id)
        card = deck.find_card(card_id) if deck else None
        if card is None:
            logger.warning(f"Cannot suspend unknown card {deck_id}/{card_id}")
            return False

        card.suspended = not card.suspended
        self._notify()
        return True

    def reset_card_progress(
        self, deck_id: str, card_id: str, fields: dict[str, Any] | None = None
    ) -> bool:
        """
        Overwrite a card's scheduling fields.

        Without `fields` the card goes back to its never-studied state.
        """
        deck = self.state.find_deck(deck_id)
        card = deck.find_card(card_id) if deck else None
        if card is None:
            logger.warning(f"Cannot reset unknown card {deck_id}/{card_id}")
            return False

        if fields is None:
            fields = {
                "ease": DEFAULT_EASE,
                "interval_days": 0.0,
                "reps": 0,
                "lapses": 0,
                "due_date": self._clock(),
                "last_reviewed": None,
                "seen_count": 0,
                "state": CardState.NEW,
            }

        unknown = set(fields) - RESETTABLE_FIELDS
        if unknown:
            logger.warning(f"Cannot reset fields {sorted(unknown)} on {card_id}")
            return False

        updates = dict(fields)
        try:
            if "state" in updates:
                updates["state"] = CardState(updates["state"])
        except ValueError:
            logger.warning(f"Invalid card state {updates['state']!r}")
            return False
        if "ease" in updates:
            updates["ease"] = clamp_ease(float(updates["ease"]))
        if "interval_days" in updates:
            updates["interval_days"] = max(0.0, float(updates["interval_days"]))

        for name, value in updates.items():
            setattr(card, name, value)
        self._notify()
        return True

    def update_settings(self, **changes: Any) -> bool:
        unknown = set(changes) - SETTINGS_FIELDS
        if unknown:
            logger.warning(f"Unknown settings: {sorted(unknown)}")
            return False
        changes = dict(changes)
        for quota in ("new_cards_per_day", "reviews_per_day"):
            if quota not in changes:
                continue
            try:
                changes[quota] = int(changes[quota])
            except (TypeError, ValueError):
                logger.warning(f"Rejected non-numeric {quota}: {changes[quota]!r}")
                return False
            if changes[quota] < 0:
                logger.warning(f"Rejected negative {quota}: {changes[quota]}")
                return False

        if "deadline" in changes:
            deadline = _as_utc(changes["deadline"])
            if deadline is None:
                logger.warning(f"Rejected deadline: {changes['deadline']!r}")
                return False
            changes["deadline"] = deadline

        for name, value in changes.items():
            setattr(self.state.settings, name, value)
        self._notify()
        return True

    def buy_cosmetic(self, cosmetic_id: str) -> bool:
        ok = shop.buy_cosmetic(self.state, cosmetic_id)
        if ok:
            self._notify()
        return ok

    def equip_cosmetic(self, cosmetic_id: str) -> bool:
        ok = shop.equip_cosmetic(self.state, cosmetic_id)
        if ok:
            self._notify()
        return ok

    def add_gold(self, amount: int) -> bool:
        ok = shop.add_gold(self.state, amount)
        if ok:
            self._notify()
        return ok

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def view(self) -> SessionView:
        s = self.session
        if s.phase is Phase.LEARN:
            learning_remaining = max(0, len(s.learning_batch) - s.cursor)
        else:
            learning_remaining = 0
        return SessionView(
            phase=s.phase,
            deck_id=s.deck_id,
            active_card=s.active_card(),
            learning_remaining=learning_remaining,
            testing_remaining=len(s.testing_batch) if s.phase is Phase.DRAG else 0,
            session_remaining=len(s.snapshot),
            original_size=s.original_size,
            eliminated=list(s.eliminated),
            attempts=s.attempts,
            feedback=s.feedback,
            score=self.state.score,
            gold=self.state.gold,
            statistics=self.state.statistics,
        )
