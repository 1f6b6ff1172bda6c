"""Unit tests for core models."""

import pytest
from pydantic import ValidationError

from boost_scanner.core.enums import Scenario
from boost_scanner.core.models import Candidate, IndicatorSet, Recommendation, TickerSnapshot


def candidate(**overrides):
    values = dict(
        symbol="PEPEUSDT",
        price=1.0,
        change_5m=4.0,
        change_1h=5.0,
        volume=50_000.0,
        volume_ratio=2.0,
        rsi=55,
        volatility=0.3,
        score=55,
        scenario=Scenario.EXPLOSION,
        recommendation=Recommendation(
            action="👀 MONITOREAR",
            buy_price=1.0,
            sell_target="1.25000000",
            stop_loss="0.95000000",
            confidence="MEDIA",
        ),
    )
    values.update(overrides)
    return Candidate(**values)


class TestModels:
    def test_frozen(self):
        ticker = TickerSnapshot(symbol="PEPEUSDT", last_price=1.0)
        with pytest.raises(ValidationError):
            ticker.last_price = 2.0

    def test_indicator_defaults_are_neutral(self):
        indicators = IndicatorSet()
        assert indicators.change_5m == 0.0
        assert indicators.rsi == 50
        assert indicators.volume_ratio == 1.0
        assert indicators.is_compressed is False
        assert indicators.volatility_pct == 10.0

    def test_rsi_range(self):
        with pytest.raises(ValidationError):
            IndicatorSet(rsi=101)
        with pytest.raises(ValidationError):
            candidate(rsi=-1)


class TestPayload:
    def test_explosion_keys(self):
        payload = candidate(is_new_listing=True).to_payload()
        assert payload['explosionScore'] == 55
        assert payload['isNew'] is True
        assert payload['volumeRatio'] == 2.0
        assert 'alertScore' not in payload
        assert payload['recommendation']['sellTarget'] == "1.25000000"

    def test_pre_explosion_keys(self):
        payload = candidate(scenario=Scenario.PRE_EXPLOSION, compression=True).to_payload()
        assert payload['alertScore'] == 55
        assert payload['compression'] is True
        assert 'explosionScore' not in payload
        assert 'volatility' not in payload

    def test_analysis_has_no_listing_flag(self):
        payload = candidate(scenario=Scenario.ANALYSIS).to_payload()
        assert payload['explosionScore'] == 55
        assert 'isNew' not in payload
        assert 'technicals' not in payload
