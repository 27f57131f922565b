from datetime import datetime, timedelta, timezone

import pytest

from cramdeck.application.session import StudyController
from cramdeck.domain.models import (
    Card,
    Deck,
    OptionSlot,
    ProgressState,
    Settings,
    StudyCounters,
)

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, hours: float = 0) -> None:
        self.now = self.now + timedelta(days=days, hours=hours)


def make_card(card_id: str, correct: str = "A", **fields) -> Card:
    return Card(
        id=card_id,
        prompt=f"Question {card_id}?",
        answer=f"Answer {card_id}",
        options=[f"{card_id}-a", f"{card_id}-b", f"{card_id}-c", f"{card_id}-d"],
        correct_option=OptionSlot(correct),
        **fields,
    )


def make_state(decks: list[Deck], now: datetime = NOW, **settings) -> ProgressState:
    settings.setdefault("deadline", now + timedelta(days=21))
    return ProgressState(
        decks=decks,
        settings=Settings(**settings),
        studied_today=StudyCounters(date=now.date().isoformat()),
    )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def deck():
    return Deck(id="pharm", name="Pharmacology", cards=[make_card(c) for c in "ABCD"])


@pytest.fixture
def state(deck):
    return make_state([deck])


@pytest.fixture
def controller(state, clock):
    return StudyController(state, clock=clock, correct_delay=0, wrong_delay=0)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and saved progress
    monkeypatch.setenv("HOME", str(home))
    for var in ("CRAMDECK_DATA_DIR", "CRAMDECK_STATE_FILE", "CRAMDECK_CATALOG_PATH"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def card_factory():
    return make_card


@pytest.fixture
def state_factory():
    return make_state


@pytest.fixture
def now():
    return NOW
