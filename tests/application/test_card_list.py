import pytest

from cramdeck.application.card_list import CardFilter, card_status, list_cards, mastered_percent
from cramdeck.domain.models import Deck


@pytest.fixture
def mixed_deck(card_factory):
    return Deck(
        id="mix",
        name="Mixed",
        cards=[
            card_factory("fresh"),
            card_factory("started", seen_count=2, reps=1),
            card_factory("solid", seen_count=5, reps=3),
            card_factory("parked", seen_count=1, reps=0, suspended=True),
        ],
    )


def ids(cards):
    return [c.id for c in cards]


@pytest.mark.parametrize(
    "card_filter, expected",
    [
        (CardFilter.ALL, ["fresh", "started", "solid", "parked"]),
        (CardFilter.NEW, ["fresh"]),
        (CardFilter.LEARNING, ["started", "parked"]),
        (CardFilter.REVIEW, ["solid"]),
        (CardFilter.SUSPENDED, ["parked"]),
    ],
)
def test_filters(mixed_deck, card_filter, expected):
    assert ids(list_cards(mixed_deck, card_filter)) == expected


def test_search_matches_prompt_or_answer(mixed_deck):
    assert ids(list_cards(mixed_deck, search="question SOLID")) == ["solid"]
    assert ids(list_cards(mixed_deck, search="answer fresh")) == ["fresh"]
    assert list_cards(mixed_deck, search="nothing like this") == []


def test_search_combines_with_filter(mixed_deck):
    assert ids(list_cards(mixed_deck, CardFilter.NEW, search="solid")) == []


def test_card_status(mixed_deck):
    assert [card_status(c) for c in mixed_deck.cards] == ["new", "learning", "review", "suspended"]


def test_mastered_percent(mixed_deck, card_factory):
    assert mastered_percent(mixed_deck) == 25
    assert mastered_percent(Deck(id="e", name="Empty")) == 0

    thirds = Deck(id="t", name="Thirds", cards=[card_factory(c, reps=r) for c, r in zip("abc", (3, 3, 0))])
    assert mastered_percent(thirds) == 67
