"""Market scanner for explosive-token screening."""

from .market_scanner import MarketScanner, rank_candidates
from .universe import POPULAR_TOKENS

__all__ = ["MarketScanner", "rank_candidates", "POPULAR_TOKENS"]
