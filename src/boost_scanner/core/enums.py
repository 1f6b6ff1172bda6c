"""Core enumerations for the screener."""

from enum import Enum


class Scenario(str, Enum):
    """Named scoring scenarios."""
    EXPLOSION = "explosion"
    PRE_EXPLOSION = "pre_explosion"
    ANALYSIS = "analysis"


class Interval(str, Enum):
    """Kline intervals requested from the exchange."""
    MIN_5 = "5m"
    HOUR_1 = "1h"
    DAY_1 = "1d"


class Trend(str, Enum):
    """Trend labels reported in technicals."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"
