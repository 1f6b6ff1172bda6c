"""Technical indicators computed from candle series.

The functions in this module are pure and never raise on short or
degenerate input: each one falls back to a neutral value so a single
symbol with thin history cannot abort a batch.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Optional, Sequence, Tuple
import asyncio
import logging
import math
import time

import numpy as np
import pandas as pd

from ..core.enums import Interval
from ..core.models import Candle, IndicatorSet
from .connector import DataConnector

logger = logging.getLogger(__name__)

NEUTRAL_CHANGE = 0.0
NEUTRAL_RSI = 50
NEUTRAL_VOLUME_RATIO = 1.0
FALLBACK_VOLATILITY = 10.0

DAY_MS = 24 * 60 * 60 * 1000


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +inf."""
    return int(math.floor(value + 0.5))


def round_fixed(value: float, places: int = 2) -> float:
    """Round to *places* decimals with halves away from zero.

    Works on the exact binary value, so ``0.125`` gives ``0.13`` while
    ``2.675`` (stored as 2.67499...) gives ``2.67``.
    """
    if not math.isfinite(value):
        return value
    exponent = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(exponent, rounding=ROUND_HALF_UP))


def _closes(candles: Sequence[Candle]) -> pd.Series:
    return pd.Series([c.close for c in candles], dtype=float)


def percent_change(candles: Sequence[Candle], n: int = 2) -> float:
    """Percent change from the first to the last close of the last *n* candles."""
    if len(candles) < 2:
        return NEUTRAL_CHANGE
    window = candles[-max(n, 2):]
    first, last = window[0].close, window[-1].close
    if first == 0:
        return NEUTRAL_CHANGE
    return round_fixed((last - first) / first * 100)


def rsi(candles: Sequence[Candle], period: int = 14) -> int:
    """Simple-average RSI over the last *period* close-to-close deltas."""
    closes = _closes(candles)
    if period <= 0 or len(closes) < period + 1:
        return NEUTRAL_RSI

    deltas = closes.diff().dropna().iloc[-period:]
    avg_gain = deltas.clip(lower=0).sum() / period
    avg_loss = (-deltas.clip(upper=0)).sum() / period

    if avg_loss == 0:
        return 100 if avg_gain > 0 else NEUTRAL_RSI

    rs = avg_gain / avg_loss
    return min(100, max(0, round_half_up(100 - 100 / (1 + rs))))


def volume_ratio(current_volume: float, candles: Sequence[Candle]) -> float:
    """Current volume over the mean daily volume of *candles*."""
    volumes = np.array([c.volume for c in candles], dtype=float)
    average = float(volumes.mean()) if volumes.size else 0.0
    if not average or math.isnan(average):
        average = 1.0
    return round_fixed(current_volume / average)


def compression_std(candles: Sequence[Candle], window: int = 20) -> Optional[float]:
    """
    Population std-dev of consecutive close-to-close percent changes over the
    last *window* candles, or ``None`` when fewer than two changes exist.
    """
    closes = _closes(candles[-window:])
    changes = closes.pct_change().mul(100).replace([np.inf, -np.inf], np.nan).dropna()
    if len(changes) < 2:
        return None
    return float(changes.std(ddof=0))


def is_compressed(
    candles: Sequence[Candle],
    threshold: float = 0.5,
    window: int = 20,
) -> bool:
    """True iff the windowed std-dev is strictly below *threshold*."""
    std = compression_std(candles, window)
    if std is None:
        return False
    return std < threshold


def volatility(candles: Sequence[Candle], window: int = 20) -> float:
    """Windowed std-dev of percent changes, in percent."""
    std = compression_std(candles, window)
    if std is None:
        return FALLBACK_VOLATILITY
    return round_fixed(std)


class IndicatorEngine:
    """Fetches candle series for a symbol and derives its ``IndicatorSet``.

    Each indicator is fetched independently and concurrently; a failed or
    short series degrades that one indicator to its neutral value.
    """

    def __init__(
        self,
        connector: DataConnector,
        config: Optional[Dict] = None,
        now_ms: Optional[Callable[[], int]] = None,
    ):
        defaults = self._default_config()
        if config:
            defaults.update(config)
        self.config = defaults
        self.connector = connector
        self._now_ms = now_ms or (lambda: int(time.time() * 1000))

    @staticmethod
    def _default_config() -> Dict:
        return {
            'rsi_period': 14,
            'volume_lookback_days': 7,
            'compression_threshold': 0.5,
            'compression_window': 20,
        }

    async def compute(self, symbol: str, current_volume: float) -> IndicatorSet:
        """Derive all indicators for *symbol*."""
        change_5m, change_1h, rsi_value, ratio, (compressed, vol) = await asyncio.gather(
            self._change(symbol, Interval.MIN_5),
            self._change(symbol, Interval.HOUR_1),
            self._rsi(symbol),
            self._volume_ratio(symbol, current_volume),
            self._range(symbol),
        )
        return IndicatorSet(
            change_5m=change_5m,
            change_1h=change_1h,
            rsi=rsi_value,
            volume_ratio=ratio,
            is_compressed=compressed,
            volatility_pct=vol,
        )

    async def _change(self, symbol: str, interval: Interval) -> float:
        try:
            candles = await self.connector.fetch_klines(symbol, interval.value, limit=2)
        except Exception as e:
            logger.error(f"Error calculating change for {symbol} ({interval.value}): {e}")
            return NEUTRAL_CHANGE
        if len(candles) < 2:
            logger.warning(f"Insufficient data for {symbol} ({interval.value})")
        return percent_change(candles)

    async def _rsi(self, symbol: str) -> int:
        period = self.config['rsi_period']
        try:
            candles = await self.connector.fetch_klines(
                symbol, Interval.MIN_5.value, limit=period + 1
            )
        except Exception as e:
            logger.error(f"Error calculating RSI for {symbol}: {e}")
            return NEUTRAL_RSI
        if len(candles) < period + 1:
            logger.warning(f"Insufficient data for RSI {symbol}")
        return rsi(candles, period)

    async def _volume_ratio(self, symbol: str, current_volume: float) -> float:
        since = self._now_ms() - self.config['volume_lookback_days'] * DAY_MS
        try:
            candles = await self.connector.fetch_klines(
                symbol, Interval.DAY_1.value, start_time=since
            )
        except Exception as e:
            logger.error(f"Error calculating volume ratio for {symbol}: {e}")
            return NEUTRAL_VOLUME_RATIO
        if not candles:
            logger.warning(f"No daily history for {symbol}, volume ratio uses unit baseline")
        return volume_ratio(current_volume, candles)

    async def _range(self, symbol: str) -> Tuple[bool, float]:
        """Compression flag and volatility, sharing one 5m fetch."""
        window = self.config['compression_window']
        try:
            candles = await self.connector.fetch_klines(
                symbol, Interval.MIN_5.value, limit=window
            )
        except Exception as e:
            logger.error(f"Error calculating compression/volatility for {symbol}: {e}")
            return False, FALLBACK_VOLATILITY
        if len(candles) < 3:
            logger.warning(f"Insufficient data for volatility {symbol}")
        compressed = is_compressed(candles, self.config['compression_threshold'], window)
        return compressed, volatility(candles, window)
