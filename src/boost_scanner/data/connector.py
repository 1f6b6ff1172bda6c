"""Market data connector interface and implementations."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type
import asyncio
import logging

import aiohttp
import ccxt.async_support as ccxt

from ..core.models import Candle, TickerSnapshot

logger = logging.getLogger(__name__)


class TransientFetchError(Exception):
    """Raised when an upstream call still fails after its retry budget."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class UpstreamUnavailable(TransientFetchError):
    """Raised when data a whole pipeline run depends on cannot be fetched."""
    pass


async def fetch_with_retries(
    call: Callable[[], Awaitable[Any]],
    url: str,
    max_retries: int = 2,
    retry_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> Any:
    """
    Run *call* until it succeeds or *max_retries* extra attempts are spent.

    Every retry is logged at WARNING and the final failure at ERROR, both
    with the URL and the failure reason. The last error is surfaced as a
    ``TransientFetchError``.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except retry_on as e:
            reason = str(e) or type(e).__name__
            if attempt >= max_retries:
                logger.error(f"Failed fetch from {url} after {max_retries} retries: {reason}")
                raise TransientFetchError(url, reason) from e
            attempt += 1
            logger.warning(f"Retry {attempt}/{max_retries} for {url}: {reason}")
            await asyncio.sleep(retry_delay)


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class DataConnector(ABC):
    """Abstract base class for market data connectors."""

    @abstractmethod
    async def fetch_klines(
        self,
        symbol: str,
        interval: str,
        limit: Optional[int] = None,
        start_time: Optional[int] = None,
    ) -> List[Candle]:
        """Get candles for a symbol, oldest first."""
        pass

    @abstractmethod
    async def fetch_all_tickers(self) -> List[TickerSnapshot]:
        """Get the 24h ticker of every pair, in exchange order."""
        pass

    @abstractmethod
    async def fetch_ticker(self, symbol: str) -> TickerSnapshot:
        """Get the 24h ticker of one pair."""
        pass

    @abstractmethod
    async def fetch_listings(self) -> List[Tuple[str, int]]:
        """Get ``(symbol, onboard time in ms)`` for every listed pair."""
        pass

    @abstractmethod
    async def close(self):
        """Close connection."""
        pass


class BinanceConnector(DataConnector):
    """Connector for the public Binance REST API over aiohttp."""

    RETRYABLE = (aiohttp.ClientError, asyncio.TimeoutError, ValueError)

    def __init__(self, config: Optional[Dict] = None):
        defaults = self._default_config()
        if config:
            defaults.update({k: v for k, v in config.items() if v is not None})
        self.config = defaults
        self.base_url = self.config['base_url'].rstrip('/')
        self.timeout = float(self.config['request_timeout'])
        self.max_retries = int(self.config['max_retries'])
        self.retry_delay = float(self.config['retry_delay'])
        self._session: Optional[aiohttp.ClientSession] = None
        logger.info(f"Initialized Binance connector ({self.base_url})")

    @staticmethod
    def _default_config() -> Dict:
        return {
            'base_url': 'https://api.binance.com/api/v3',
            'api_key': None,
            'api_secret': None,
            'request_timeout': 8,
            'max_retries': 2,
            'retry_delay': 1,
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            headers = {}
            # Public endpoints ignore the key; it is sent when configured
            if self.config.get('api_key'):
                headers['X-MBX-APIKEY'] = self.config['api_key']
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=headers,
            )
        return self._session

    async def fetch_json(self, path: str, params: Optional[Dict] = None) -> Any:
        """GET ``base_url + path`` and decode JSON, retrying on failure."""
        url = f"{self.base_url}{path}"
        label = f"{url} {params}" if params else url

        async def _get():
            session = await self._get_session()
            async with session.get(url, params=params) as response:
                response.raise_for_status()
                return await response.json()

        return await fetch_with_retries(
            _get, label, self.max_retries, self.retry_delay, self.RETRYABLE
        )

    async def fetch_klines(
        self,
        symbol: str,
        interval: str,
        limit: Optional[int] = None,
        start_time: Optional[int] = None,
    ) -> List[Candle]:
        params: Dict[str, Any] = {'symbol': symbol, 'interval': interval}
        if limit is not None:
            params['limit'] = limit
        if start_time is not None:
            params['startTime'] = start_time

        rows = await self.fetch_json('/klines', params)
        candles = [
            Candle(
                open_time=int(row[0]),
                open=_to_float(row[1]),
                high=_to_float(row[2]),
                low=_to_float(row[3]),
                close=_to_float(row[4]),
                volume=_to_float(row[5]),
            )
            for row in rows
        ]
        logger.debug(f"Retrieved {len(candles)} {interval} klines for {symbol}")
        return candles

    @staticmethod
    def _parse_ticker(data: Dict) -> TickerSnapshot:
        # /ticker/24hr reports base volume as "volume"
        volume = data.get('volume', data.get('baseVolume'))
        return TickerSnapshot(
            symbol=data['symbol'],
            last_price=_to_float(data.get('lastPrice')),
            price_change_percent_24h=_to_float(data.get('priceChangePercent')),
            base_volume_24h=_to_float(volume),
        )

    async def fetch_all_tickers(self) -> List[TickerSnapshot]:
        try:
            data = await self.fetch_json('/ticker/24hr')
        except TransientFetchError as e:
            raise UpstreamUnavailable(e.url, e.reason) from e
        tickers = [self._parse_ticker(item) for item in data]
        logger.debug(f"Fetched {len(tickers)} tickers")
        return tickers

    async def fetch_ticker(self, symbol: str) -> TickerSnapshot:
        try:
            data = await self.fetch_json('/ticker/24hr', {'symbol': symbol})
        except TransientFetchError as e:
            raise UpstreamUnavailable(e.url, e.reason) from e
        return self._parse_ticker(data)

    async def fetch_listings(self) -> List[Tuple[str, int]]:
        try:
            info = await self.fetch_json('/exchangeInfo')
        except TransientFetchError as e:
            raise UpstreamUnavailable(e.url, e.reason) from e
        return [
            (s['symbol'], int(_to_float(s.get('onboardDate'))))
            for s in info.get('symbols', [])
        ]

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("Closed Binance connector session")


class CCXTConnector(DataConnector):
    """CCXT-based connector for exchanges other than Binance.

    Symbols are exchange market ids (``PEPEUSDT``), so results are
    interchangeable with ``BinanceConnector``.
    """

    def __init__(self, exchange_name: str, config: Optional[Dict] = None):
        self.exchange_name = exchange_name
        self.config = config or {}
        self.max_retries = int(self.config.get('max_retries', 2))
        self.retry_delay = float(self.config.get('retry_delay', 1))
        timeout_ms = int(float(self.config.get('request_timeout', 8)) * 1000)

        ccxt_keys = {
            k: v for k, v in self.config.items()
            if k in ('apiKey', 'secret', 'password', 'uid') and v
        }
        exchange_class = getattr(ccxt, exchange_name)
        self.exchange = exchange_class({
            'enableRateLimit': True,
            'timeout': timeout_ms,
            'options': {'defaultType': 'spot'},
            **ccxt_keys
        })
        self._ids: Dict[str, str] = {}
        logger.info(f"Initialized CCXT connector for {exchange_name}")

    async def _call(self, label: str, func, *args, **kwargs):
        return await fetch_with_retries(
            lambda: func(*args, **kwargs),
            f"ccxt:{self.exchange_name}/{label}",
            self.max_retries,
            self.retry_delay,
            (ccxt.BaseError, asyncio.TimeoutError),
        )

    async def _ensure_markets(self) -> Dict[str, str]:
        """Map market id -> unified symbol for spot markets."""
        if not self._ids:
            markets = await self._call('load_markets', self.exchange.load_markets)
            self._ids = {
                m['id']: m['symbol'] for m in markets.values()
                if m.get('type', 'spot') == 'spot'
            }
            logger.debug(f"Loaded {len(self._ids)} spot markets")
        return self._ids

    async def _unified(self, symbol: str) -> str:
        ids = await self._ensure_markets()
        if symbol not in ids:
            raise UpstreamUnavailable(f"ccxt:{self.exchange_name}", f"unknown symbol {symbol}")
        return ids[symbol]

    async def fetch_klines(
        self,
        symbol: str,
        interval: str,
        limit: Optional[int] = None,
        start_time: Optional[int] = None,
    ) -> List[Candle]:
        unified = await self._unified(symbol)
        rows = await self._call(
            'fetch_ohlcv', self.exchange.fetch_ohlcv,
            unified, interval, since=start_time, limit=limit,
        )
        return [
            Candle(
                open_time=int(row[0]),
                open=_to_float(row[1]),
                high=_to_float(row[2]),
                low=_to_float(row[3]),
                close=_to_float(row[4]),
                volume=_to_float(row[5]),
            )
            for row in rows
        ]

    @staticmethod
    def _parse_ticker(market_id: str, ticker: Dict) -> TickerSnapshot:
        return TickerSnapshot(
            symbol=market_id,
            last_price=_to_float(ticker.get('last')),
            price_change_percent_24h=_to_float(ticker.get('percentage')),
            base_volume_24h=_to_float(ticker.get('baseVolume')),
        )

    async def fetch_all_tickers(self) -> List[TickerSnapshot]:
        try:
            ids = await self._ensure_markets()
            tickers = await self._call('fetch_tickers', self.exchange.fetch_tickers)
        except UpstreamUnavailable:
            raise
        except TransientFetchError as e:
            raise UpstreamUnavailable(e.url, e.reason) from e

        by_symbol = {unified: market_id for market_id, unified in ids.items()}
        result = [
            self._parse_ticker(by_symbol[unified], ticker)
            for unified, ticker in tickers.items()
            if unified in by_symbol
        ]
        logger.debug(f"Fetched {len(result)} tickers")
        return result

    async def fetch_ticker(self, symbol: str) -> TickerSnapshot:
        try:
            unified = await self._unified(symbol)
            ticker = await self._call('fetch_ticker', self.exchange.fetch_ticker, unified)
        except UpstreamUnavailable:
            raise
        except TransientFetchError as e:
            raise UpstreamUnavailable(e.url, e.reason) from e
        return self._parse_ticker(symbol, ticker)

    async def fetch_listings(self) -> List[Tuple[str, int]]:
        try:
            await self._ensure_markets()
        except UpstreamUnavailable:
            raise
        except TransientFetchError as e:
            raise UpstreamUnavailable(e.url, e.reason) from e
        return [
            (m['id'], int(_to_float(m.get('created'))))
            for m in self.exchange.markets.values()
            if m['id'] in self._ids
        ]

    async def close(self):
        """Close exchange connection."""
        await self.exchange.close()
        logger.info(f"Closed connection to {self.exchange_name}")


def create_connector(config: Optional[Dict] = None) -> DataConnector:
    """Build the connector named by ``config['name']`` (default Binance REST)."""
    config = dict(config or {})
    name = (config.pop('name', None) or 'binance').lower()
    if name == 'binance':
        return BinanceConnector(config)
    ccxt_config = dict(config)
    if ccxt_config.get('api_key'):
        ccxt_config['apiKey'] = ccxt_config.pop('api_key')
    if ccxt_config.get('api_secret'):
        ccxt_config['secret'] = ccxt_config.pop('api_secret')
    return CCXTConnector(name, ccxt_config)
