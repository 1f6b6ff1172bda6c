"""Symbol universe filters."""

from typing import FrozenSet

# Liquid majors; never treated as new or explosive.
POPULAR_TOKENS: FrozenSet[str] = frozenset({
    'BTCUSDT', 'ETHUSDT', 'BNBUSDT', 'XRPUSDT', 'ADAUSDT', 'SOLUSDT', 'DOGEUSDT',
    'MATICUSDT', 'DOTUSDT', 'TRXUSDT', 'LTCUSDT', 'LINKUSDT', 'SHIBUSDT', 'AVAXUSDT',
    'ATOMUSDT', 'NEARUSDT', 'XLMUSDT', 'ETCUSDT', 'BCHUSDT', 'HBARUSDT',
    'FILUSDT', 'SUIUSDT', 'APTUSDT', 'INJUSDT', 'IMXUSDT', 'ARBUSDT', 'RNDRUSDT',
    'TONUSDT', 'ICPUSDT', 'CROUSDT', 'NEOUSDT', 'IOTAUSDT', 'QTUMUSDT',
})


def is_eligible(symbol: str, quote_currency: str, excluded: FrozenSet[str]) -> bool:
    """Quoted in *quote_currency* and not in *excluded*."""
    return symbol.endswith(quote_currency) and symbol not in excluded
