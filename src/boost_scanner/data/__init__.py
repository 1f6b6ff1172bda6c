"""Market data module."""

from .connector import (
    DataConnector,
    BinanceConnector,
    CCXTConnector,
    TransientFetchError,
    UpstreamUnavailable,
    create_connector,
)
from .indicators import IndicatorEngine

__all__ = [
    "DataConnector",
    "BinanceConnector",
    "CCXTConnector",
    "TransientFetchError",
    "UpstreamUnavailable",
    "create_connector",
    "IndicatorEngine",
]
