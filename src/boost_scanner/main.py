"""Screener application entry points."""

import asyncio
import logging
import sys
from typing import Dict, Optional
import os

from aiohttp import web
from dotenv import load_dotenv

load_dotenv()

from .api.server import create_app
from .data.connector import create_connector
from .notify.forwarder import AlertForwarder
from .scanner.market_scanner import MarketScanner

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = 'boost_scanner.log', level: int = logging.INFO):
    """Configure root logging once per process."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )


class ScreenerService:
    """Wires connector, scanner and HTTP app together."""

    def __init__(self, config: Optional[Dict] = None):
        defaults = self._default_config()
        if config:
            for key, val in config.items():
                if isinstance(val, dict) and key in defaults and isinstance(defaults[key], dict):
                    defaults[key].update(val)
                else:
                    defaults[key] = val
        self.config = defaults

        self.connector = create_connector(self.config['exchange'])
        self.scanner = MarketScanner(self.connector, self.config['scanner'])
        logger.info("Screener service initialized")

    def _default_config(self) -> Dict:
        """Default configuration."""
        return {
            'exchange': {
                'name': 'binance',
                'base_url': 'https://api.binance.com/api/v3',
                'api_key': os.getenv('BINANCE_API_KEY'),
                'api_secret': os.getenv('BINANCE_API_SECRET'),
                'request_timeout': 8,
                'max_retries': 2,
                'retry_delay': 1,
            },
            'scanner': {
                'quote_currency': 'USDT',
                'cache_short_ttl': 120,
                'cache_long_ttl': 1800,
                'min_volume_explosion': 30000,
                'min_volume_regular': 20000,
                'min_gain_5m': 3,
                'min_gain_1h': 4,
                'min_volume_ratio': 1.5,
                'rsi_min': 40,
                'rsi_max': 70,
                'min_explosion_score': 40,
                'min_alert_score': 40,
                'max_candidates': 50,
                'top_results': 10,
                'rsi_period': 14,
                'volume_lookback_days': 7,
                'compression_threshold': 0.5,
                'compression_window': 20,
                'max_concurrency': 8,
            },
            'server': {
                'host': '0.0.0.0',
                'port': 8080,
            },
        }

    def build_app(self) -> web.Application:
        return create_app(self.scanner, self.connector)

    def run(self):
        server = self.config['server']
        logger.info(f"🚀 Screener API running on port {server['port']}")
        web.run_app(self.build_app(), host=server['host'], port=int(server['port']), print=None)


_EXCHANGE_ENV = {
    'base_url': ('BINANCE_BASE_URL', str),
    'request_timeout': ('REQUEST_TIMEOUT', float),
    'max_retries': ('MAX_RETRIES', int),
    'retry_delay': ('RETRY_DELAY', float),
}

_SCANNER_ENV = {
    'quote_currency': ('QUOTE_CURRENCY', str),
    'cache_short_ttl': ('CACHE_SHORT_TTL', float),
    'cache_long_ttl': ('CACHE_LONG_TTL', float),
    'min_volume_explosion': ('MIN_VOLUME_EXPLOSION', float),
    'min_volume_regular': ('MIN_VOLUME_REGULAR', float),
    'min_gain_5m': ('MIN_GAIN_5M', float),
    'min_gain_1h': ('MIN_GAIN_1H', float),
    'min_volume_ratio': ('MIN_VOLUME_RATIO', float),
    'rsi_min': ('RSI_MIN', float),
    'rsi_max': ('RSI_MAX', float),
    'min_explosion_score': ('MIN_EXPLOSION_SCORE', int),
    'min_alert_score': ('MIN_ALERT_SCORE', int),
    'max_candidates': ('MAX_CANDIDATES', int),
    'top_results': ('TOP_RESULTS', int),
    'rsi_period': ('RSI_PERIOD', int),
    'volume_lookback_days': ('VOLUME_LOOKBACK_DAYS', float),
    'compression_threshold': ('COMPRESSION_THRESHOLD', float),
    'compression_window': ('COMPRESSION_WINDOW', int),
    'max_concurrency': ('MAX_CONCURRENCY', int),
}


def _section_from_env(mapping: Dict) -> Dict:
    section: Dict = {}
    for key, (env_name, cast) in mapping.items():
        raw = os.getenv(env_name, '').strip()
        if raw:
            section[key] = cast(raw)
    return section


def _config_from_env() -> Dict:
    """Build config dict from environment variables."""
    config: Dict = {}

    exchange = _section_from_env(_EXCHANGE_ENV)
    exchange_name = os.getenv('EXCHANGE_NAME', '').strip()
    if exchange_name:
        exchange['name'] = exchange_name
    if exchange:
        config['exchange'] = exchange

    scanner = _section_from_env(_SCANNER_ENV)
    if scanner:
        config['scanner'] = scanner

    port = os.getenv('PORT', '').strip()
    if port:
        config['server'] = {'port': int(port)}

    return config


def _forwarder_config_from_env() -> Dict:
    return {
        'endpoint': os.getenv('EARLY_EXPLOSIONS_ENDPOINT') or None,
        'telegram_token': os.getenv('TELEGRAM_TOKEN') or None,
        'telegram_chat_id': os.getenv('TELEGRAM_CHAT_ID') or None,
        'poll_interval': float(os.getenv('ALERT_POLL_SECONDS', '60')),
    }


def main():
    """Run the screener HTTP API."""
    setup_logging()
    config = _config_from_env()
    ScreenerService(config if config else None).run()


async def _run_forwarder(forwarder: AlertForwarder):
    try:
        await forwarder.run_forever()
    finally:
        await forwarder.close()


def forwarder_main():
    """Run the Telegram alert forwarder."""
    setup_logging('alert_forwarder.log')
    config = _forwarder_config_from_env()
    if not config['telegram_token'] or not config['telegram_chat_id']:
        logger.critical("TELEGRAM_TOKEN and TELEGRAM_CHAT_ID are required")
        sys.exit(1)

    forwarder = AlertForwarder(config)
    try:
        asyncio.run(_run_forwarder(forwarder))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")


if __name__ == "__main__":
    main()
