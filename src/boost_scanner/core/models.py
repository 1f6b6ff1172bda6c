"""Core data models for the screener."""

from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import Scenario, Trend


class TickerSnapshot(BaseModel):
    """24h ticker for one tradable pair."""

    symbol: str = Field(description="Exchange symbol, e.g. PEPEUSDT")
    last_price: float = Field(description="Last traded price")
    price_change_percent_24h: float = Field(default=0.0, description="24h price change %")
    base_volume_24h: float = Field(default=0.0, description="24h volume in base asset")

    model_config = ConfigDict(frozen=True)


class Candle(BaseModel):
    """OHLCV bar."""

    open_time: int = Field(description="Bar open time (ms since epoch)")
    open: float
    high: float
    low: float
    close: float
    volume: float

    model_config = ConfigDict(frozen=True)


class IndicatorSet(BaseModel):
    """Indicators derived for one symbol during one pipeline run."""

    change_5m: float = Field(default=0.0, description="Close-to-close % change over the last 5m bar")
    change_1h: float = Field(default=0.0, description="Close-to-close % change over the last 1h bar")
    rsi: int = Field(default=50, ge=0, le=100, description="Relative strength index")
    volume_ratio: float = Field(default=1.0, description="24h volume over trailing daily mean")
    is_compressed: bool = Field(default=False, description="Recent volatility below threshold")
    volatility_pct: float = Field(default=10.0, description="Std-dev of recent % changes")

    model_config = ConfigDict(frozen=True)


class Technicals(BaseModel):
    """Fixed-offset technical levels attached to explosion candidates."""

    rsi: int
    volatility: float
    volume_spike: str
    trend: Trend = Trend.BULLISH
    support: str
    resistance: str

    model_config = ConfigDict(frozen=True)


class Recommendation(BaseModel):
    """Human-facing action and price levels."""

    action: str
    buy_price: float
    sell_target: str
    stop_loss: str
    confidence: str

    model_config = ConfigDict(frozen=True)


class Candidate(BaseModel):
    """A symbol that passed (or, for analysis, skipped) admission."""

    symbol: str
    price: float
    change_5m: float
    change_1h: float
    volume: float
    volume_ratio: float
    rsi: int
    volatility: float
    score: int
    scenario: Scenario
    is_new_listing: bool = False
    compression: bool = False
    volume_spike: bool = False
    technicals: Optional[Technicals] = None
    recommendation: Recommendation

    model_config = ConfigDict(frozen=True)

    @field_validator('rsi')
    @classmethod
    def validate_rsi(cls, v):
        if not 0 <= v <= 100:
            raise ValueError("RSI must be within [0, 100]")
        return v

    def to_payload(self) -> Dict[str, Any]:
        """Render the JSON body served to clients."""
        payload: Dict[str, Any] = {
            'symbol': self.symbol,
            'price': self.price,
            'change_5m': self.change_5m,
            'change_1h': self.change_1h,
            'volume': self.volume,
            'volumeRatio': self.volume_ratio,
            'rsi': self.rsi,
        }

        if self.scenario == Scenario.PRE_EXPLOSION:
            payload['alertScore'] = self.score
            payload['compression'] = self.compression
            payload['volumeSpike'] = self.volume_spike
        else:
            payload['volatility'] = self.volatility
            payload['explosionScore'] = self.score
            if self.scenario == Scenario.EXPLOSION:
                payload['isNew'] = self.is_new_listing

        if self.technicals is not None:
            payload['technicals'] = {
                'rsi': self.technicals.rsi,
                'volatility': self.technicals.volatility,
                'volumeSpike': self.technicals.volume_spike,
                'trend': self.technicals.trend.value,
                'support': self.technicals.support,
                'resistance': self.technicals.resistance,
            }

        payload['recommendation'] = {
            'action': self.recommendation.action,
            'buyPrice': self.recommendation.buy_price,
            'sellTarget': self.recommendation.sell_target,
            'stopLoss': self.recommendation.stop_loss,
            'confidence': self.recommendation.confidence,
        }
        return payload
