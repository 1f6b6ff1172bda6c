"""Core module for the screener."""

from .models import (
    TickerSnapshot, Candle, IndicatorSet, Technicals, Recommendation, Candidate
)
from .enums import Scenario, Interval, Trend
from .cache import (
    TTLCache, CandidateCache, EXPLOSION_KEY, PRE_EXPLOSION_KEY, NEW_LISTINGS_KEY
)

__all__ = [
    "TickerSnapshot",
    "Candle",
    "IndicatorSet",
    "Technicals",
    "Recommendation",
    "Candidate",
    "Scenario",
    "Interval",
    "Trend",
    "TTLCache",
    "CandidateCache",
    "EXPLOSION_KEY",
    "PRE_EXPLOSION_KEY",
    "NEW_LISTINGS_KEY",
]
