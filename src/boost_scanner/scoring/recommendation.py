"""Action labels and fixed-offset price levels."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..core.enums import Scenario, Trend
from ..core.models import IndicatorSet, Recommendation, Technicals


@dataclass(frozen=True)
class RecommendationTiers:
    # (min score, label) pairs, highest first
    actions: Tuple[Tuple[int, str], ...]
    fallback_action: str
    confidences: Tuple[Tuple[int, str], ...]
    fallback_confidence: str
    sell_multiplier: float
    stop_multiplier: float


EXPLOSION_TIERS = RecommendationTiers(
    actions=((80, "🔥 COMPRA FUERTE"),),
    fallback_action="👀 MONITOREAR",
    confidences=((80, "MUY ALTA"),),
    fallback_confidence="MEDIA",
    sell_multiplier=1.25,
    stop_multiplier=0.95,
)

ALERT_TIERS = RecommendationTiers(
    actions=((80, "🔥 POSIBLE EXPLOSIÓN"), (60, "👀 MONITOREAR")),
    fallback_action="❌ EVITAR",
    confidences=((80, "ALTA"),),
    fallback_confidence="MEDIA",
    sell_multiplier=1.12,
    stop_multiplier=0.92,
)

TIERS: Dict[Scenario, RecommendationTiers] = {
    Scenario.EXPLOSION: EXPLOSION_TIERS,
    Scenario.ANALYSIS: EXPLOSION_TIERS,
    Scenario.PRE_EXPLOSION: ALERT_TIERS,
}

SUPPORT_MULTIPLIER = 0.97
RESISTANCE_MULTIPLIER = 1.05


def format_price(value: float) -> str:
    return f"{value:.8f}"


def _pick(score: int, tiers: Tuple[Tuple[int, str], ...], fallback: str) -> str:
    for threshold, label in tiers:
        if score >= threshold:
            return label
    return fallback


class RecommendationBuilder:
    """Derives action, targets and confidence from price and score."""

    def __init__(self, scenario: Scenario, min_volume_ratio: float = 1.5):
        self.scenario = scenario
        self.tiers = TIERS[scenario]
        self.min_volume_ratio = min_volume_ratio

    def recommend(self, price: float, score: int) -> Recommendation:
        t = self.tiers
        return Recommendation(
            action=_pick(score, t.actions, t.fallback_action),
            buy_price=price,
            sell_target=format_price(price * t.sell_multiplier),
            stop_loss=format_price(price * t.stop_multiplier),
            confidence=_pick(score, t.confidences, t.fallback_confidence),
        )

    def technicals(self, price: float, indicators: IndicatorSet) -> Optional[Technicals]:
        """Support/resistance block; only explosion candidates carry one."""
        if self.scenario != Scenario.EXPLOSION:
            return None
        ratio = indicators.volume_ratio
        return Technicals(
            rsi=indicators.rsi,
            volatility=indicators.volatility_pct,
            volume_spike=f"{ratio:.2f}" if ratio >= self.min_volume_ratio else "0",
            trend=Trend.BULLISH,
            support=format_price(price * SUPPORT_MULTIPLIER),
            resistance=format_price(price * RESISTANCE_MULTIPLIER),
        )
