"""Tests for the study session sequencer: learn pass, quiz passes, feedback and mutators."""

from datetime import datetime, timedelta, timezone

import pytest

from cramdeck.application.session import (
    StudyController,
    grade_for,
    requeue_position,
    should_graduate,
)
from cramdeck.domain.constants import CORRECT_FEEDBACK_SECONDS, MAX_EASE, WRONG_FEEDBACK_SECONDS
from cramdeck.domain.models import CardState, Deck, Feedback, Grade, Phase, StudyCounters


def learn_all(controller):
    while controller.view().phase is Phase.LEARN:
        assert controller.advance_learning()


def answer(controller, slot):
    pending = controller.submit_answer(slot)
    assert pending is not None
    assert pending.fire()
    return pending


def persisted(controller, deck_id, card_id):
    return controller.state.find_deck(deck_id).find_card(card_id)


def batch_ids(controller):
    return [c.id for c in controller.session.testing_batch]


# --- Pure rules ---


@pytest.mark.parametrize(
    "encounter, attempts, grade",
    [
        (1, 0, Grade.PERFECT),
        (2, 0, Grade.ONE_MISS),
        (2, 3, Grade.ONE_MISS),
        (3, 0, Grade.TWO_MISS),
        (4, 0, Grade.THREE_PLUS_MISS),
        (1, 2, Grade.THREE_PLUS_MISS),
    ],
)
def test_grade_for(encounter, attempts, grade):
    assert grade_for(encounter, attempts) is grade


def test_should_graduate():
    assert should_graduate(1, 0)
    assert should_graduate(2, 0)
    assert not should_graduate(2, 1)
    assert should_graduate(3, 5)


@pytest.mark.parametrize("attempts, expected", [(1, 3), (2, 1), (3, 1), (7, 1)])
def test_requeue_position(attempts, expected):
    assert requeue_position(3, attempts) == expected


def test_requeue_position_in_empty_queue():
    assert requeue_position(0, 3) == 0


# --- End to end ---


def test_two_card_session_end_to_end(card_factory, state_factory, clock, now):
    deck = Deck(id="d", name="Two", cards=[card_factory("c1", "A"), card_factory("c2", "C")])
    state = state_factory([deck], new_cards_per_day=10, reviews_per_day=50)
    controller = StudyController(state, clock=clock, correct_delay=0, wrong_delay=0)

    assert controller.select_deck("d")
    view = controller.view()
    assert view.phase is Phase.LEARN
    assert [c.id for c in controller.session.learning_batch] == ["c1", "c2"]

    controller.advance_learning()
    controller.advance_learning()
    assert controller.view().phase is Phase.DRAG
    assert batch_ids(controller) == ["c1", "c2"]
    assert controller.session.cursor == 0

    # Card 1: right first time
    answer(controller, "A")
    c1 = persisted(controller, "d", "c1")
    assert c1.interval_days == pytest.approx(2.0)
    assert c1.due_date == now + timedelta(days=2)
    assert c1.state is CardState.REVIEW
    assert state.gold == 10

    # Card 2: one miss, then right; comes back once more before graduating
    wrong = answer(controller, "B")
    assert wrong.kind is Feedback.WRONG
    answer(controller, "C")
    assert controller.view().phase is Phase.DRAG
    assert controller.view().active_card.id == "c2"
    assert persisted(controller, "d", "c2").reps == 0

    answer(controller, "C")
    c2 = persisted(controller, "d", "c2")
    assert c2.interval_days == pytest.approx(1.0)
    assert c2.state is CardState.REVIEW
    assert state.gold == 10

    view = controller.view()
    assert view.phase is Phase.COMPLETE
    assert controller.session.snapshot == []
    assert controller.session.testing_batch == []
    assert state.studied_today.new_cards == 2
    assert state.statistics.perfect_answers == 1
    assert state.statistics.total_reviews == 2
    assert state.score == 3


# --- Learn phase ---


def test_learning_marks_cards_seen(controller):
    controller.select_deck("pharm")
    assert controller.view().learning_remaining == 4

    controller.advance_learning()

    card = persisted(controller, "pharm", "A")
    assert card.seen_count == 1
    assert card.state is CardState.LEARNING
    assert controller.view().learning_remaining == 3


def test_advance_outside_learn_phase_is_ignored(controller):
    assert not controller.advance_learning()

    controller.select_deck("pharm")
    learn_all(controller)
    assert not controller.advance_learning()


# --- Re-queue ---


@pytest.mark.parametrize(
    "misses, expected",
    [
        (["B"], ["B", "C", "D", "A"]),
        (["B", "C"], ["B", "A", "C", "D"]),
        (["B", "C", "D"], ["B", "A", "C", "D"]),
    ],
)
def test_missed_card_requeue_order(controller, misses, expected):
    controller.select_deck("pharm")
    learn_all(controller)

    for slot in misses:
        answer(controller, slot)
    answer(controller, "A")

    assert batch_ids(controller) == expected
    assert [c.id for c in controller.session.snapshot] == expected
    assert controller.session.cursor == 0


def test_two_misses_land_in_the_middle(card_factory, state_factory, clock):
    deck = Deck(id="five", name="Five", cards=[card_factory(c) for c in "ABCDE"])
    controller = StudyController(state_factory([deck]), clock=clock, correct_delay=0, wrong_delay=0)
    controller.select_deck("five")
    learn_all(controller)

    answer(controller, "B")
    answer(controller, "C")
    answer(controller, "A")

    assert batch_ids(controller) == ["B", "C", "A", "D", "E"]


def test_wrong_answers_eliminate_options(controller):
    controller.select_deck("pharm")
    learn_all(controller)

    answer(controller, "B")
    answer(controller, "D")
    view = controller.view()

    assert [s.value for s in view.eliminated] == ["B", "D"]
    assert view.attempts == 2
    assert view.feedback is None


def test_card_always_graduates_by_third_encounter(card_factory, state_factory, clock):
    deck = Deck(id="solo", name="Solo", cards=[card_factory("x", "A", ease=2.5)])
    state = state_factory([deck])
    controller = StudyController(state, clock=clock, correct_delay=0, wrong_delay=0)
    controller.select_deck("solo")
    learn_all(controller)

    encounters = 0
    while controller.view().phase is Phase.DRAG:
        for slot in "BCD":
            answer(controller, slot)
        answer(controller, "A")
        encounters += 1

    assert encounters == 3
    # Third encounter graduates as two_miss, not as a lapse
    card = persisted(controller, "solo", "x")
    assert card.state is CardState.REVIEW
    assert card.lapses == 0
    assert card.reps == 1
    assert card.interval_days == 0.5
    assert card.ease == pytest.approx(2.35)
    assert state.gold == 0


# --- Completion and quotas ---


def test_empty_session_completes_immediately(card_factory, state_factory, clock):
    deck = Deck(id="d", name="Done", cards=[card_factory("x", suspended=True)])
    controller = StudyController(state_factory([deck]), clock=clock)

    assert controller.select_deck("d")
    view = controller.view()

    assert view.phase is Phase.COMPLETE
    assert view.active_card is None
    assert view.original_size == 0
    assert controller.session.learning_batch == []
    assert controller.session.testing_batch == []
    assert controller.submit_answer("A") is None


def test_new_card_quota_is_consumed(controller, state):
    state.settings.new_cards_per_day = 2
    controller.select_deck("pharm")
    assert controller.view().original_size == 2
    learn_all(controller)
    answer(controller, "A")
    answer(controller, "A")
    assert controller.view().phase is Phase.COMPLETE

    controller.select_deck("pharm")

    assert controller.view().phase is Phase.COMPLETE
    assert state.studied_today.new_cards == 2


def test_review_cards_count_as_reviews(card_factory, state_factory, clock, now):
    review = card_factory(
        "r", seen_count=3, reps=2, interval_days=3.0, due_date=now - timedelta(days=1), state=CardState.REVIEW
    )
    state = state_factory([Deck(id="d", name="D", cards=[review])])
    controller = StudyController(state, clock=clock, correct_delay=0, wrong_delay=0)

    controller.select_deck("d")
    learn_all(controller)
    answer(controller, "A")

    assert state.studied_today.reviews == 1
    assert state.studied_today.new_cards == 0
    assert state.gold == 10
    assert state.statistics.study_history[-1].reviews == 1


def test_day_rollover_folds_new_cards_into_lifetime_total(controller, state, now):
    state.studied_today = StudyCounters(
        date=(now - timedelta(days=1)).date().isoformat(), new_cards=3, reviews=4
    )

    controller.select_deck("pharm")

    assert state.statistics.total_cards_studied == 3
    assert state.studied_today == StudyCounters(date=now.date().isoformat())


def test_streak_grows_on_consecutive_days(controller, state, clock):
    controller.select_deck("pharm")
    learn_all(controller)
    answer(controller, "A")
    assert state.statistics.streak == 1

    clock.advance(days=1)
    answer(controller, "A")

    assert state.statistics.streak == 2
    assert state.statistics.longest_streak == 2
    assert len(state.statistics.study_history) == 2


# --- Feedback window ---


def test_feedback_delays_default_to_constants(state, clock):
    controller = StudyController(state, clock=clock)
    controller.select_deck("pharm")
    learn_all(controller)

    wrong = controller.submit_answer("B")
    assert wrong.delay == WRONG_FEEDBACK_SECONDS
    wrong.fire()

    right = controller.submit_answer("A")
    assert right.delay == CORRECT_FEEDBACK_SECONDS


def test_input_is_ignored_while_feedback_is_showing(controller):
    controller.select_deck("pharm")
    learn_all(controller)

    pending = controller.submit_answer("B")
    assert controller.view().feedback is Feedback.WRONG
    assert controller.submit_answer("A") is None
    assert controller.view().attempts == 1

    pending.fire()
    assert controller.submit_answer("A") is not None


def test_cancelled_feedback_commits_nothing(controller, state):
    controller.select_deck("pharm")
    learn_all(controller)

    pending = controller.submit_answer("A")
    assert controller.cancel_pending()

    assert not pending.fire()
    assert controller.view().feedback is None
    assert controller.view().active_card.id == "A"
    assert persisted(controller, "pharm", "A").reps == 0
    assert state.gold == 0
    assert state.score == 0


@pytest.mark.parametrize("abandon", ["select", "restart", "close"])
def test_abandoned_session_drops_pending_commit(controller, state, abandon):
    controller.select_deck("pharm")
    learn_all(controller)
    pending = controller.submit_answer("A")

    if abandon == "select":
        controller.select_deck("pharm")
    elif abandon == "restart":
        assert controller.restart_session()
    else:
        controller.close()
        assert controller.view().phase is Phase.IDLE

    assert not pending.fire()
    assert controller.pending is None
    assert persisted(controller, "pharm", "A").reps == 0
    assert state.gold == 0


def test_resolve_pending_fires_once(controller):
    controller.select_deck("pharm")
    learn_all(controller)
    controller.submit_answer("A")

    assert controller.resolve_pending()
    assert not controller.resolve_pending()


def test_unknown_slot_is_ignored(controller):
    controller.select_deck("pharm")
    learn_all(controller)

    assert controller.submit_answer("E") is None
    assert controller.view().attempts == 0


# --- Deck selection ---


def test_unknown_deck_changes_nothing(controller):
    assert not controller.select_deck("nope")
    assert controller.view().phase is Phase.IDLE


def test_restart_without_session(controller):
    assert not controller.restart_session()


# --- Direct mutators ---


def test_toggle_suspend(controller):
    assert controller.toggle_suspend("pharm", "B")
    assert persisted(controller, "pharm", "B").suspended
    assert controller.toggle_suspend("pharm", "B")
    assert not persisted(controller, "pharm", "B").suspended

    assert not controller.toggle_suspend("pharm", "nope")
    assert not controller.toggle_suspend("nope", "B")


def test_reset_card_progress_defaults(controller, now):
    controller.select_deck("pharm")
    learn_all(controller)
    answer(controller, "A")
    controller.toggle_suspend("pharm", "A")

    assert controller.reset_card_progress("pharm", "A")

    card = persisted(controller, "pharm", "A")
    assert (card.reps, card.seen_count, card.interval_days) == (0, 0, 0.0)
    assert card.state is CardState.NEW
    assert card.due_date == now
    assert card.suspended


def test_reset_card_progress_fields(controller):
    assert controller.reset_card_progress("pharm", "A", {"ease": 9.0, "state": "review", "interval_days": -2})

    card = persisted(controller, "pharm", "A")
    assert card.ease == MAX_EASE
    assert card.state is CardState.REVIEW
    assert card.interval_days == 0.0


def test_reset_card_progress_rejects_bad_input(controller):
    assert not controller.reset_card_progress("pharm", "A", {"prompt": "changed"})
    assert not controller.reset_card_progress("pharm", "A", {"state": "mastered"})
    assert not controller.reset_card_progress("pharm", "zzz")
    assert persisted(controller, "pharm", "A").prompt == "Question A?"


def test_update_settings(controller, state, now):
    assert controller.update_settings(new_cards_per_day=3, deadline=now + timedelta(days=5))
    assert state.settings.new_cards_per_day == 3

    assert not controller.update_settings(colour="blue")
    assert not controller.update_settings(reviews_per_day=-1)
    assert state.settings.reviews_per_day == 50


def test_update_settings_rejects_non_numeric_quota(controller, state):
    assert not controller.update_settings(new_cards_per_day="lots")
    assert not controller.update_settings(reviews_per_day=None)
    assert state.settings.new_cards_per_day == 10


def test_update_settings_treats_naive_deadline_as_utc(controller, state):
    assert controller.update_settings(deadline=datetime(2026, 4, 1))
    assert state.settings.deadline == datetime(2026, 4, 1, tzinfo=timezone.utc)

    assert controller.update_settings(deadline="2026-05-01T12:00:00")
    assert state.settings.deadline == datetime(2026, 5, 1, 12, tzinfo=timezone.utc)

    assert not controller.update_settings(deadline="next friday")
    assert not controller.update_settings(deadline=42)


def test_naive_deadline_still_schedules_graduations(controller, state):
    controller.update_settings(deadline=datetime(2026, 4, 1))
    controller.select_deck("pharm")
    learn_all(controller)

    answer(controller, "A")

    card = persisted(controller, "pharm", "A")
    assert card.state is CardState.REVIEW
    assert card.reps == 1
    assert batch_ids(controller) == ["B", "C", "D"]
    assert [c.id for c in controller.session.snapshot] == ["B", "C", "D"]


# --- Observers ---


def test_listeners_see_every_change(controller):
    seen = []
    unsubscribe = controller.subscribe(lambda s: seen.append(s.score))

    controller.select_deck("pharm")
    learn_all(controller)
    answer(controller, "A")
    count = len(seen)
    assert count >= 6
    assert seen[-1] == 1

    unsubscribe()
    controller.close()
    assert len(seen) == count
