"""Centralized constants for the cramdeck engine.

All magic numbers and defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Ease ----------
DEFAULT_EASE = 2.4
MIN_EASE = 1.80
MAX_EASE = 2.80
LAPSE_EASE_PENALTY = 0.30

# ---------- Intervals (days) ----------
LAPSE_INTERVAL_DAYS = 0.5
MIN_REVIEW_INTERVAL_DAYS = 0.33  # 8 hours
MIN_DEADLINE_CEILING_DAYS = 1.0
CRAM_WINDOW_DAYS = 5
CRAM_MAX_INTERVAL_DAYS = 3.0

# ---------- Session ----------
AUTO_GRADUATE_ENCOUNTERS = 3
PERFECT_REWARD_GOLD = 10
MASTERED_REPS = 3
CORRECT_FEEDBACK_SECONDS = 0.8
WRONG_FEEDBACK_SECONDS = 0.6

# ---------- Settings defaults ----------
DEFAULT_NEW_CARDS_PER_DAY = 10
DEFAULT_REVIEWS_PER_DAY = 50
DEFAULT_DEADLINE_DAYS = 21

# ---------- Cosmetics ----------
DEFAULT_COLOR = "color-orange"
BASELINE_COSMETICS = ["color-orange", "accessory-none", "pet-none"]

SECONDS_PER_DAY = 24 * 60 * 60
