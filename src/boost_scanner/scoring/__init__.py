"""Scoring policy and recommendations."""

from .policy import ScenarioConfig, ScoringPolicy, build_scenarios
from .recommendation import RecommendationBuilder

__all__ = [
    "ScenarioConfig",
    "ScoringPolicy",
    "build_scenarios",
    "RecommendationBuilder",
]
