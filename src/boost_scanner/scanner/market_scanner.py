"""Market scanner: screens the ticker universe and ranks explosive tokens."""

import asyncio
import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Set

from ..core.cache import CandidateCache, NEW_LISTINGS_KEY
from ..core.enums import Scenario
from ..core.models import Candidate, IndicatorSet, TickerSnapshot
from ..data.connector import DataConnector, TransientFetchError
from ..data.indicators import IndicatorEngine
from ..scoring.policy import ScenarioConfig, ScoringPolicy, build_scenarios
from ..scoring.recommendation import RecommendationBuilder
from .universe import POPULAR_TOKENS, is_eligible

logger = logging.getLogger(__name__)


def rank_candidates(candidates: Sequence[Candidate], top_n: int) -> List[Candidate]:
    """Score descending, ties broken by symbol ascending, at most *top_n*."""
    ordered = sorted(candidates, key=lambda c: (-c.score, c.symbol))
    return ordered[:max(top_n, 0)]


class MarketScanner:
    """
    Scans the exchange's tickers, computes indicators for eligible symbols,
    scores them per scenario and returns the top N candidates.

    Ranked results and the new-listing set are memoised in a
    ``CandidateCache`` so repeated requests do not hit the exchange.
    """

    def __init__(
        self,
        connector: DataConnector,
        config: Optional[Dict] = None,
        cache: Optional[CandidateCache] = None,
        popular_tokens: FrozenSet[str] = POPULAR_TOKENS,
        indicator_engine: Optional[IndicatorEngine] = None,
    ):
        defaults = self._default_config()
        if config:
            defaults.update(config)
        self.config = defaults
        self.connector = connector
        self.popular_tokens = frozenset(popular_tokens)
        self.cache = cache or CandidateCache(
            self.config['cache_short_ttl'], self.config['cache_long_ttl']
        )
        self.indicators = indicator_engine or IndicatorEngine(connector, self.config)

        scenarios = build_scenarios(self.config)
        self.policies: Dict[Scenario, ScoringPolicy] = {
            name: ScoringPolicy(cfg) for name, cfg in scenarios.items()
        }
        self.builders: Dict[Scenario, RecommendationBuilder] = {
            name: RecommendationBuilder(name, cfg.min_volume_ratio)
            for name, cfg in scenarios.items()
        }
        logger.info(
            f"Market scanner initialized (quote={self.config['quote_currency']}, "
            f"pool={self.config['max_candidates']}, top={self.config['top_results']})"
        )

    @staticmethod
    def _default_config() -> Dict:
        return {
            "quote_currency": "USDT",
            "max_candidates": 50,
            "top_results": 10,
            "max_concurrency": 8,
            "cache_short_ttl": 120,
            "cache_long_ttl": 1800,
            "min_volume_regular": 20000,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def explosion_candidates(self) -> List[Candidate]:
        return await self.scan(Scenario.EXPLOSION)

    async def pre_explosion_signals(self) -> List[Candidate]:
        return await self.scan(Scenario.PRE_EXPLOSION)

    async def scan(self, scenario: Scenario) -> List[Candidate]:
        """
        Full universe scan for a ranked scenario.

        A cached result for the scenario short-circuits the run. Failure to
        fetch the ticker snapshot raises ``UpstreamUnavailable``.
        """
        policy = self.policies[scenario]
        cfg = policy.config
        if cfg.cache_key is None:
            raise ValueError(f"Scenario {scenario.value} is not a ranked scan")

        cached = self.cache.short.get(cfg.cache_key)
        if cached is not None:
            logger.debug(f"Cache hit for {cfg.cache_key}")
            return list(cached)

        tickers, new_listings = await asyncio.gather(
            self.connector.fetch_all_tickers(),
            self.get_new_listings(),
            return_exceptions=True,
        )
        # both fetches have settled; the ticker failure takes precedence
        for outcome in (tickers, new_listings):
            if isinstance(outcome, BaseException):
                raise outcome

        pool = [t for t in self._candidate_pool(tickers) if self._above_volume_floor(t, cfg)]
        listed: Set[str] = set(new_listings)
        semaphore = asyncio.Semaphore(max(int(self.config['max_concurrency']), 1))

        async def _bounded(ticker: TickerSnapshot) -> Optional[Candidate]:
            async with semaphore:
                return await self._evaluate(ticker, policy, ticker.symbol in listed)

        results = await asyncio.gather(*(_bounded(t) for t in pool))
        candidates = [c for c in results if c is not None]

        ranked = rank_candidates(candidates, self.config['top_results'])
        self.cache.short.set(cfg.cache_key, tuple(ranked))

        logger.info(
            f"Found {len(ranked)} {scenario.value} candidates: "
            f"{', '.join(c.symbol for c in ranked)} with scores: "
            f"{', '.join(str(c.score) for c in ranked)}"
        )
        return ranked

    async def get_new_listings(self) -> List[str]:
        """Most recently onboarded eligible symbols, newest first.

        A failed exchange-info fetch yields an empty list and is not cached.
        """
        cached = self.cache.long.get(NEW_LISTINGS_KEY)
        if cached is not None:
            return list(cached)

        try:
            listings = await self.connector.fetch_listings()
        except TransientFetchError as e:
            logger.error(f"Error fetching new listings: {e}")
            return []

        quote = self.config['quote_currency']
        eligible = [
            (symbol, onboarded) for symbol, onboarded in listings
            if is_eligible(symbol, quote, self.popular_tokens)
        ]
        eligible.sort(key=lambda item: item[1], reverse=True)
        symbols = [symbol for symbol, _ in eligible[:self.config['max_candidates']]]

        self.cache.long.set(NEW_LISTINGS_KEY, tuple(symbols))
        logger.info(f"Cached {len(symbols)} new listings")
        return symbols

    async def top_gainers(self) -> List[Dict]:
        """Eligible symbols ranked by 24h change; uncached, no indicators."""
        tickers = await self.connector.fetch_all_tickers()
        quote = self.config['quote_currency']
        floor = self.config['min_volume_regular']

        filtered = [
            t for t in tickers
            if is_eligible(t.symbol, quote, self.popular_tokens) and t.base_volume_24h >= floor
        ]
        filtered.sort(key=lambda t: t.price_change_percent_24h, reverse=True)

        return [
            {
                'symbol': t.symbol,
                'price': t.last_price,
                'priceChangePercent': t.price_change_percent_24h,
            }
            for t in filtered[:self.config['top_results']]
        ]

    async def analyze(self, symbol: str) -> Candidate:
        """Score exactly one symbol with no admission filter; uncached."""
        symbol = symbol.strip().upper()
        ticker = await self.connector.fetch_ticker(symbol)
        policy = self.policies[Scenario.ANALYSIS]
        indicators = await self.indicators.compute(symbol, ticker.base_volume_24h)
        score = policy.score(indicators)
        return self._build_candidate(ticker, indicators, score, policy.config, False)

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def _candidate_pool(self, tickers: Sequence[TickerSnapshot]) -> List[TickerSnapshot]:
        """Eligible tickers among the first ``max_candidates`` in exchange order."""
        quote = self.config['quote_currency']
        head = tickers[:self.config['max_candidates']]
        result = [t for t in head if is_eligible(t.symbol, quote, self.popular_tokens)]
        logger.debug(f"Candidate pool: {len(result)} of {len(tickers)} tickers")
        return result

    @staticmethod
    def _above_volume_floor(ticker: TickerSnapshot, cfg: ScenarioConfig) -> bool:
        if ticker.base_volume_24h < cfg.min_volume:
            logger.debug(
                f"{ticker.symbol} excluded: volume {ticker.base_volume_24h} < {cfg.min_volume}"
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def _evaluate(
        self, ticker: TickerSnapshot, policy: ScoringPolicy, is_new: bool
    ) -> Optional[Candidate]:
        indicators = await self.indicators.compute(ticker.symbol, ticker.base_volume_24h)
        score = policy.score(indicators, is_new)
        if not policy.admits(indicators, score):
            logger.debug(f"{ticker.symbol} not admitted ({policy.scenario.value}, score={score})")
            return None
        return self._build_candidate(ticker, indicators, score, policy.config, is_new)

    def _build_candidate(
        self,
        ticker: TickerSnapshot,
        indicators: IndicatorSet,
        score: int,
        cfg: ScenarioConfig,
        is_new: bool,
    ) -> Candidate:
        builder = self.builders[cfg.scenario]
        price = ticker.last_price
        return Candidate(
            symbol=ticker.symbol,
            price=price,
            change_5m=indicators.change_5m,
            change_1h=indicators.change_1h,
            volume=ticker.base_volume_24h,
            volume_ratio=indicators.volume_ratio,
            rsi=indicators.rsi,
            volatility=indicators.volatility_pct,
            score=score,
            scenario=cfg.scenario,
            is_new_listing=is_new,
            compression=indicators.is_compressed,
            volume_spike=indicators.volume_ratio >= cfg.min_volume_ratio,
            technicals=builder.technicals(price, indicators),
            recommendation=builder.recommend(price, score),
        )
