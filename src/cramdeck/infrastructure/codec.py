"""
Conversion between ProgressState and its JSON-friendly dict form.

Decoding is tolerant: every missing or malformed field falls back to its
documented default, and camelCase keys from older saves are accepted.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from cramdeck.domain.constants import DEFAULT_COLOR, DEFAULT_EASE
from cramdeck.domain.models import (
    Card,
    CardState,
    Deck,
    OptionSlot,
    ProgressState,
    Settings,
    Statistics,
    StudyCounters,
    StudyDay,
    default_deadline,
    utc_now,
)

logger = logging.getLogger(__name__)

# Epoch values above this are milliseconds
_EPOCH_MS_THRESHOLD = 10**11


def _get(d: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in d and d[key] is not None:
            return d[key]
    return default


def encode_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def decode_datetime(value: Any) -> datetime | None:
    """Accept ISO strings and epoch seconds or milliseconds. Naive means UTC."""
    if value is None or value == "":
        return None
    try:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        if isinstance(value, str):
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
    except (ValueError, OverflowError, OSError) as e:
        logger.warning(f"Unreadable date {value!r}: {e}")
    return None


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ---------- Encode ----------


def card_to_dict(card: Card) -> dict[str, Any]:
    return {
        "id": card.id,
        "prompt": card.prompt,
        "answer": card.answer,
        "options": list(card.options),
        "correct_option": card.correct_option.value,
        "ease": card.ease,
        "interval_days": card.interval_days,
        "reps": card.reps,
        "lapses": card.lapses,
        "due_date": encode_datetime(card.due_date),
        "next_review": encode_datetime(card.next_review),
        "last_reviewed": encode_datetime(card.last_reviewed),
        "seen_count": card.seen_count,
        "suspended": card.suspended,
        "state": card.state.value,
        "session_encounter_count": card.session_encounter_count,
    }


def state_to_dict(state: ProgressState) -> dict[str, Any]:
    stats = state.statistics
    return {
        "decks": [
            {
                "id": deck.id,
                "name": deck.name,
                "icon": deck.icon,
                "cards": [card_to_dict(c) for c in deck.cards],
            }
            for deck in state.decks
        ],
        "settings": {
            "new_cards_per_day": state.settings.new_cards_per_day,
            "reviews_per_day": state.settings.reviews_per_day,
            "deadline": encode_datetime(state.settings.deadline),
        },
        "studied_today": {
            "date": state.studied_today.date,
            "new_cards": state.studied_today.new_cards,
            "reviews": state.studied_today.reviews,
        },
        "score": state.score,
        "gold": state.gold,
        "owned_cosmetics": list(state.owned_cosmetics),
        "equipped_cosmetics": dict(state.equipped_cosmetics),
        "statistics": {
            "total_cards_studied": stats.total_cards_studied,
            "total_reviews": stats.total_reviews,
            "perfect_answers": stats.perfect_answers,
            "streak": stats.streak,
            "longest_streak": stats.longest_streak,
            "total_gold_earned": stats.total_gold_earned,
            "study_history": [
                {"date": d.date, "cards_studied": d.cards_studied, "reviews": d.reviews}
                for d in stats.study_history
            ],
        },
    }


# ---------- Decode ----------


def card_from_dict(raw: dict[str, Any]) -> Card | None:
    """Decode one card. Returns None when identity or content is unusable."""
    card_id = raw.get("id")
    options = _get(raw, "options", default=[])
    if not card_id or not isinstance(options, list) or len(options) != 4:
        return None
    try:
        slot = OptionSlot(str(_get(raw, "correct_option", "correctOption", "correct", default="")).upper())
    except ValueError:
        return None

    try:
        state = CardState(_get(raw, "state", default=CardState.NEW.value))
    except ValueError:
        state = CardState.NEW

    return Card(
        id=str(card_id),
        prompt=str(raw.get("prompt", "")),
        answer=str(raw.get("answer", "")),
        options=[str(o) for o in options],
        correct_option=slot,
        ease=_float(_get(raw, "ease"), DEFAULT_EASE),
        interval_days=max(0.0, _float(_get(raw, "interval_days", "intervalDays"), 0.0)),
        reps=_int(_get(raw, "reps"), 0),
        lapses=_int(_get(raw, "lapses"), 0),
        due_date=decode_datetime(_get(raw, "due_date", "dueDate")),
        next_review=decode_datetime(_get(raw, "next_review", "nextReview")),
        last_reviewed=decode_datetime(_get(raw, "last_reviewed", "lastReviewed")),
        seen_count=_int(_get(raw, "seen_count", "seenCount"), 0),
        suspended=bool(_get(raw, "suspended", default=False)),
        state=state,
        session_encounter_count=_int(_get(raw, "session_encounter_count", "sessionEncounterCount"), 0),
    )


def deck_from_dict(raw: dict[str, Any]) -> Deck | None:
    if not isinstance(raw, dict) or not raw.get("id"):
        return None
    cards = []
    for raw_card in raw.get("cards") or []:
        card = card_from_dict(raw_card) if isinstance(raw_card, dict) else None
        if card is None:
            logger.warning(f"Skipping unreadable saved card in deck {raw.get('id')}")
            continue
        cards.append(card)
    return Deck(id=str(raw["id"]), name=str(raw.get("name", raw["id"])), cards=cards, icon=raw.get("icon"))


def _settings_from_dict(raw: Any) -> Settings:
    if not isinstance(raw, dict):
        return Settings()
    return Settings(
        new_cards_per_day=max(0, _int(_get(raw, "new_cards_per_day", "newCardsPerDay"), Settings().new_cards_per_day)),
        reviews_per_day=max(0, _int(_get(raw, "reviews_per_day", "reviewsPerDay"), Settings().reviews_per_day)),
        deadline=decode_datetime(_get(raw, "deadline", "examDate")) or default_deadline(),
    )


def _counters_from_dict(raw: Any) -> StudyCounters:
    today = utc_now().date().isoformat()
    if not isinstance(raw, dict):
        return StudyCounters(date=today)

    date_value = raw.get("date")
    parsed = decode_datetime(date_value) if isinstance(date_value, str) and "-" in date_value else None
    if parsed is not None:
        date_key = parsed.date().isoformat()
    elif isinstance(date_value, str) and date_value:
        # Unparseable stamps (e.g. "Mon Oct 19 2026") only ever compare unequal
        date_key = date_value
    else:
        date_key = today

    return StudyCounters(
        date=date_key,
        new_cards=_int(_get(raw, "new_cards", "newCards"), 0),
        reviews=_int(raw.get("reviews"), 0),
    )


def _statistics_from_dict(raw: Any) -> Statistics:
    if not isinstance(raw, dict):
        return Statistics()
    history = []
    for entry in _get(raw, "study_history", "studyHistory", default=[]):
        if isinstance(entry, dict) and entry.get("date"):
            history.append(
                StudyDay(
                    date=str(entry["date"]),
                    cards_studied=_int(_get(entry, "cards_studied", "cardsStudied"), 0),
                    reviews=_int(entry.get("reviews"), 0),
                )
            )
    return Statistics(
        total_cards_studied=_int(_get(raw, "total_cards_studied", "totalCardsStudied"), 0),
        total_reviews=_int(_get(raw, "total_reviews", "totalReviews"), 0),
        perfect_answers=_int(_get(raw, "perfect_answers", "perfectAnswers"), 0),
        streak=_int(raw.get("streak"), 0),
        longest_streak=_int(_get(raw, "longest_streak", "longestStreak"), 0),
        total_gold_earned=_int(_get(raw, "total_gold_earned", "totalGoldEarned"), 0),
        study_history=history,
    )


def state_from_dict(raw: Any) -> ProgressState:
    """
    Decode a saved blob. Anything missing or corrupt gets its default.
    """
    if not isinstance(raw, dict):
        logger.warning("Saved state is not an object; using defaults")
        return ProgressState()

    decks = []
    for raw_deck in raw.get("decks") or []:
        deck = deck_from_dict(raw_deck)
        if deck is not None:
            decks.append(deck)

    owned = _get(raw, "owned_cosmetics", "ownedCosmetics", default=None)
    if not isinstance(owned, list):
        owned = None
    equipped = _get(raw, "equipped_cosmetics", "equippedCosmetics", default=None)
    if not isinstance(equipped, dict):
        equipped = {"color": DEFAULT_COLOR}

    state = ProgressState(
        decks=decks,
        settings=_settings_from_dict(raw.get("settings")),
        studied_today=_counters_from_dict(_get(raw, "studied_today", "studiedToday")),
        score=_int(raw.get("score"), 0),
        gold=_int(raw.get("gold"), 0),
        equipped_cosmetics={str(k): str(v) for k, v in equipped.items() if v},
        statistics=_statistics_from_dict(raw.get("statistics")),
    )
    if owned is not None:
        state.owned_cosmetics = [str(c) for c in owned]
    return state
