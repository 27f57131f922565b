"""Cosmetics shop: spend gold earned from perfect answers."""

import logging

from cramdeck.domain.cosmetics import find_cosmetic
from cramdeck.domain.models import ProgressState

logger = logging.getLogger(__name__)


def buy_cosmetic(state: ProgressState, cosmetic_id: str) -> bool:
    """
    Buy a cosmetic, deducting its cost.

    Returns False (and changes nothing) for unknown ids, items already owned,
    or when gold is insufficient.
    """
    cosmetic = find_cosmetic(cosmetic_id)
    if cosmetic is None:
        logger.warning(f"Unknown cosmetic: {cosmetic_id}")
        return False
    if cosmetic_id in state.owned_cosmetics:
        logger.info(f"Cosmetic {cosmetic_id} already owned")
        return False
    if state.gold < cosmetic.cost:
        logger.info(f"Not enough gold for {cosmetic_id}: have {state.gold}, need {cosmetic.cost}")
        return False

    state.gold -= cosmetic.cost
    state.owned_cosmetics.append(cosmetic_id)
    logger.info(f"Bought {cosmetic_id} for {cosmetic.cost} gold")
    return True


def equip_cosmetic(state: ProgressState, cosmetic_id: str) -> bool:
    """Equip an owned cosmetic in the slot for its type."""
    cosmetic = find_cosmetic(cosmetic_id)
    if cosmetic is None or cosmetic_id not in state.owned_cosmetics:
        logger.warning(f"Cannot equip {cosmetic_id}: unknown or not owned")
        return False

    state.equipped_cosmetics[cosmetic.type.value] = cosmetic_id
    return True


def add_gold(state: ProgressState, amount: int) -> bool:
    # Admin helper
    if amount <= 0:
        return False
    state.gold += amount
    return True
