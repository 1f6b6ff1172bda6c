"""
Explosive-token screener

Scans an exchange's ticker universe for tokens with short-term momentum and
volume expansion, scores them with a fixed heuristic and serves ranked
candidate lists.
"""

__version__ = "0.1.0"
__author__ = "Boost Scanner Team"

from .core.models import TickerSnapshot, Candle, IndicatorSet, Candidate
from .core.enums import Scenario
from .scanner.market_scanner import MarketScanner
from .scoring.policy import ScoringPolicy

__all__ = [
    "TickerSnapshot",
    "Candle",
    "IndicatorSet",
    "Candidate",
    "Scenario",
    "MarketScanner",
    "ScoringPolicy",
]
