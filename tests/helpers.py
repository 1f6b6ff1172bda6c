"""Shared builders and in-memory fakes for the test suite."""

import asyncio
from typing import Dict, List, Optional, Sequence

from boost_scanner.core.models import Candle, IndicatorSet, TickerSnapshot
from boost_scanner.data.connector import UpstreamUnavailable


def make_candles(closes: Sequence[float], volumes: Optional[Sequence[float]] = None,
                 start: int = 1_700_000_000_000, step: int = 300_000) -> List[Candle]:
    """Candles with the given closes, oldest first."""
    volumes = volumes or [1000.0] * len(closes)
    return [
        Candle(
            open_time=start + i * step,
            open=close,
            high=close * 1.01,
            low=close * 0.99,
            close=close,
            volume=vol,
        )
        for i, (close, vol) in enumerate(zip(closes, volumes))
    ]


def make_ticker(symbol: str, price: float = 1.0, volume: float = 50_000, pct: float = 5.0):
    return TickerSnapshot(
        symbol=symbol,
        last_price=price,
        price_change_percent_24h=pct,
        base_volume_24h=volume,
    )


def strong_indicators(**overrides) -> IndicatorSet:
    """Indicators that pass every admission gate of both ranked scenarios."""
    values = dict(
        change_5m=4.0,
        change_1h=5.0,
        rsi=55,
        volume_ratio=2.0,
        is_compressed=True,
        volatility_pct=0.3,
    )
    values.update(overrides)
    return IndicatorSet(**values)


class FakeConnector:
    """In-memory connector that records every call."""

    def __init__(self, tickers=None, listings=None, klines=None):
        self.tickers: List[TickerSnapshot] = list(tickers or [])
        self.listings = list(listings or [])
        # (symbol, interval) -> candles or an exception to raise
        self.klines: Dict = dict(klines or {})
        self.fail_tickers = False
        self.fail_listings = False
        self.calls: List[tuple] = []
        self.closed = False

    async def fetch_klines(self, symbol, interval, limit=None, start_time=None):
        self.calls.append(('klines', symbol, interval, limit, start_time))
        data = self.klines.get((symbol, interval), [])
        if isinstance(data, Exception):
            raise data
        return list(data[-limit:]) if limit else list(data)

    async def fetch_all_tickers(self):
        self.calls.append(('tickers',))
        if self.fail_tickers:
            raise UpstreamUnavailable("/ticker/24hr", "connection reset")
        return list(self.tickers)

    async def fetch_ticker(self, symbol):
        self.calls.append(('ticker', symbol))
        for t in self.tickers:
            if t.symbol == symbol:
                return t
        raise UpstreamUnavailable(f"/ticker/24hr?symbol={symbol}", "400 Bad Request")

    async def fetch_listings(self):
        self.calls.append(('listings',))
        if self.fail_listings:
            raise UpstreamUnavailable("/exchangeInfo", "timeout")
        return list(self.listings)

    async def close(self):
        self.closed = True

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


class StubIndicatorEngine:
    """Returns preset indicators per symbol and tracks concurrency."""

    def __init__(self, indicators: Optional[Dict[str, IndicatorSet]] = None,
                 default: Optional[IndicatorSet] = None, delay: float = 0.0):
        self.indicators = indicators or {}
        self.default = default or IndicatorSet()
        self.delay = delay
        self.computed: List[str] = []
        self.active = 0
        self.peak = 0

    async def compute(self, symbol, current_volume):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            self.computed.append(symbol)
            return self.indicators.get(symbol, self.default)
        finally:
            self.active -= 1


