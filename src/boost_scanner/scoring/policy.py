"""Composite scoring and admission per scenario."""

from dataclasses import dataclass, replace
from typing import Dict, Optional
import logging

from ..core.cache import EXPLOSION_KEY, PRE_EXPLOSION_KEY
from ..core.enums import Scenario
from ..core.models import IndicatorSet
from ..data.indicators import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioConfig:
    """Weights, bonuses and admission thresholds of one scenario.

    The reference values scale each component towards a 100-point target;
    components are not capped, so scores above 100 are possible.
    """

    scenario: Scenario
    cache_key: Optional[str]
    min_volume: float
    min_score: int
    compression_bonus: float
    rsi_gate: bool
    apply_admission: bool = True
    new_listing_bonus: float = 20
    time_bonus: float = 20
    # component references and weights
    ref_5m: float = 25
    ref_1h: float = 35
    ref_volume: float = 10
    weight_5m: float = 0.4
    weight_1h: float = 0.2
    weight_volume: float = 0.3
    weight_rsi: float = 0.1
    # momentum/volume minimums
    min_gain_5m: float = 3
    min_gain_1h: float = 4
    min_volume_ratio: float = 1.5
    rsi_min: float = 40
    rsi_max: float = 70


def build_scenarios(config: Optional[Dict] = None) -> Dict[Scenario, ScenarioConfig]:
    """Build the three named scenarios from flat screener settings."""
    cfg = {
        'min_volume_explosion': 30000,
        'min_volume_regular': 20000,
        'min_gain_5m': 3,
        'min_gain_1h': 4,
        'min_volume_ratio': 1.5,
        'rsi_min': 40,
        'rsi_max': 70,
        'min_explosion_score': 40,
        'min_alert_score': 40,
    }
    if config:
        cfg.update({k: v for k, v in config.items() if k in cfg})

    shared = dict(
        min_gain_5m=cfg['min_gain_5m'],
        min_gain_1h=cfg['min_gain_1h'],
        min_volume_ratio=cfg['min_volume_ratio'],
        rsi_min=cfg['rsi_min'],
        rsi_max=cfg['rsi_max'],
    )
    explosion = ScenarioConfig(
        scenario=Scenario.EXPLOSION,
        cache_key=EXPLOSION_KEY,
        min_volume=cfg['min_volume_explosion'],
        min_score=cfg['min_explosion_score'],
        compression_bonus=10,
        rsi_gate=True,
        **shared,
    )
    pre_explosion = ScenarioConfig(
        scenario=Scenario.PRE_EXPLOSION,
        cache_key=PRE_EXPLOSION_KEY,
        min_volume=cfg['min_volume_regular'],
        min_score=cfg['min_alert_score'],
        compression_bonus=25,
        rsi_gate=False,
        **shared,
    )
    # Single-symbol analysis has no listing context and no admission
    analysis = replace(
        explosion,
        scenario=Scenario.ANALYSIS,
        cache_key=None,
        min_volume=0,
        apply_admission=False,
        new_listing_bonus=0,
        time_bonus=0,
    )
    return {
        Scenario.EXPLOSION: explosion,
        Scenario.PRE_EXPLOSION: pre_explosion,
        Scenario.ANALYSIS: analysis,
    }


class ScoringPolicy:
    """Scores an ``IndicatorSet`` and decides admission for one scenario."""

    def __init__(self, config: ScenarioConfig):
        self.config = config

    @property
    def scenario(self) -> Scenario:
        return self.config.scenario

    def rsi_in_band(self, rsi: float) -> bool:
        return self.config.rsi_min <= rsi <= self.config.rsi_max

    def score(self, indicators: IndicatorSet, is_new_listing: bool = False) -> int:
        c = self.config
        raw = (
            indicators.change_5m / c.ref_5m * 100 * c.weight_5m
            + indicators.change_1h / c.ref_1h * 100 * c.weight_1h
            + indicators.volume_ratio / c.ref_volume * 100 * c.weight_volume
            + (100 if self.rsi_in_band(indicators.rsi) else 50) * c.weight_rsi
            + (c.new_listing_bonus if is_new_listing else 0)
            + (c.compression_bonus if indicators.is_compressed else 0)
            + c.time_bonus
        )
        return round_half_up(raw)

    def admits(self, indicators: IndicatorSet, score: int) -> bool:
        """Admission predicate; always true when the scenario has none."""
        c = self.config
        if not c.apply_admission:
            return True
        if indicators.change_5m < c.min_gain_5m:
            return False
        if indicators.change_1h < c.min_gain_1h:
            return False
        if indicators.volume_ratio < c.min_volume_ratio:
            return False
        if c.rsi_gate and not self.rsi_in_band(indicators.rsi):
            return False
        return score >= c.min_score
