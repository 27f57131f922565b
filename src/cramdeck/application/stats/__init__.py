# Application Stats Package
from .metrics_calculator import MetricsCalculator, StatsSummary, record_graduation
from .service import DeckOverview, StatsService

__all__ = ["MetricsCalculator", "StatsSummary", "StatsService", "DeckOverview", "record_graduation"]
