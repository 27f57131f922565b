"""cramdeck: deadline-aware spaced-repetition flashcard trainer."""

from cramdeck.consts import VERSION

__version__ = VERSION
