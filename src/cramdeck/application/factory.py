"""
Controller Factory
Centralizes wiring of the catalog, the progress store and the study controller.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from cramdeck.application.config import AppConfig
from cramdeck.application.merge import reconcile
from cramdeck.application.session import StudyController
from cramdeck.domain.models import Settings, utc_now
from cramdeck.domain.ports import ProgressStore
from cramdeck.infrastructure.catalog import load_catalog
from cramdeck.infrastructure.codec import state_from_dict
from cramdeck.infrastructure.store import JsonProgressStore

logger = logging.getLogger(__name__)


def get_progress_store(config: AppConfig) -> ProgressStore:
    """
    Returns the file-backed store for the configured state file.
    """
    state_file = config.state_file or config.data_dir / "progress.json"
    return JsonProgressStore(state_file)


def build_controller(
    config: AppConfig,
    store: ProgressStore | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> StudyController:
    """
    Load the catalog, merge saved progress into it and return a controller that
    writes every change through to the store.
    """
    store = store or get_progress_store(config)
    catalog = load_catalog(config.catalog_path)
    now = clock()

    raw = store.load()
    saved = state_from_dict(raw) if raw is not None else None
    state = reconcile(saved, catalog, now)

    if saved is None or "settings" not in raw:
        # First run: seed the study settings from config
        state.settings = Settings(
            new_cards_per_day=config.new_cards_per_day,
            reviews_per_day=config.reviews_per_day,
            deadline=now + timedelta(days=config.deadline_days),
        )

    controller = StudyController(
        state,
        clock=clock,
        correct_delay=config.correct_feedback_seconds,
        wrong_delay=config.wrong_feedback_seconds,
    )
    controller.subscribe(store.save)
    store.save(state)
    return controller
