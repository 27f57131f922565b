# Domain Package
from .models import (
    Card,
    CardState,
    Deck,
    Feedback,
    Grade,
    OptionSlot,
    Phase,
    ProgressState,
    Settings,
    Statistics,
    StudyCounters,
    StudyDay,
    StudySession,
)
from .ports import ProgressStore

__all__ = [
    "Card",
    "CardState",
    "Deck",
    "Feedback",
    "Grade",
    "OptionSlot",
    "Phase",
    "ProgressState",
    "ProgressStore",
    "Settings",
    "Statistics",
    "StudyCounters",
    "StudyDay",
    "StudySession",
]
