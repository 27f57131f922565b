import pytest

from cramdeck.application.shop import add_gold, buy_cosmetic, equip_cosmetic
from cramdeck.domain.cosmetics import find_cosmetic
from cramdeck.domain.models import ProgressState


@pytest.fixture
def wallet():
    return ProgressState(gold=120)


def test_buy_deducts_cost(wallet):
    assert buy_cosmetic(wallet, "color-blue")
    assert wallet.gold == 120 - find_cosmetic("color-blue").cost
    assert "color-blue" in wallet.owned_cosmetics


def test_buy_rejects_owned_unknown_and_unaffordable(wallet):
    assert not buy_cosmetic(wallet, "color-orange")
    assert not buy_cosmetic(wallet, "color-plaid")
    assert not buy_cosmetic(wallet, "color-yellow")
    assert wallet.gold == 120


def test_equip_requires_ownership(wallet):
    assert not equip_cosmetic(wallet, "color-blue")

    buy_cosmetic(wallet, "color-blue")
    assert equip_cosmetic(wallet, "color-blue")
    assert wallet.equipped_cosmetics["color"] == "color-blue"


def test_equip_uses_the_cosmetic_type_slot(wallet):
    assert equip_cosmetic(wallet, "pet-none")
    assert wallet.equipped_cosmetics["pet"] == "pet-none"


def test_add_gold(wallet):
    assert add_gold(wallet, 30)
    assert wallet.gold == 150
    assert not add_gold(wallet, 0)
    assert not add_gold(wallet, -5)


def test_controller_persists_purchases(controller, state):
    saves = []
    controller.subscribe(lambda s: saves.append(s.gold))
    state.gold = 200

    assert controller.buy_cosmetic("color-pink")
    assert not controller.buy_cosmetic("color-pink")

    assert saves == [50]
