"""HTTP routes exposing the screener as JSON."""

import logging
from typing import Optional

from aiohttp import web

from ..data.connector import DataConnector
from ..scanner.market_scanner import MarketScanner

logger = logging.getLogger(__name__)

SCANNER_KEY = web.AppKey("scanner", MarketScanner)
CONNECTOR_KEY = web.AppKey("connector", DataConnector)


def _error(message: str) -> web.Response:
    return web.json_response({'error': message}, status=500)


async def top_gainers(request: web.Request) -> web.Response:
    try:
        gainers = await request.app[SCANNER_KEY].top_gainers()
    except Exception as e:
        logger.error(f"Error in /top-gainers: {e}")
        return _error('Error fetching top gainers')
    return web.json_response(gainers)


async def explosion_candidates(request: web.Request) -> web.Response:
    try:
        candidates = await request.app[SCANNER_KEY].explosion_candidates()
    except Exception as e:
        logger.error(f"Error in /explosion-candidates: {e}")
        return _error('Internal server error')
    return web.json_response([c.to_payload() for c in candidates])


async def pre_explosion_signals(request: web.Request) -> web.Response:
    try:
        alerts = await request.app[SCANNER_KEY].pre_explosion_signals()
    except Exception as e:
        logger.error(f"Error in /pre-explosion-signals: {e}")
        return _error('Internal server error')
    return web.json_response([c.to_payload() for c in alerts])


async def new_listings(request: web.Request) -> web.Response:
    try:
        listings = await request.app[SCANNER_KEY].get_new_listings()
    except Exception as e:
        logger.error(f"Error in /new-listings: {e}")
        return _error('Error fetching new listings')
    return web.json_response([{'symbol': symbol} for symbol in listings])


async def analysis(request: web.Request) -> web.Response:
    symbol = request.match_info['symbol']
    try:
        candidate = await request.app[SCANNER_KEY].analyze(symbol)
    except Exception as e:
        logger.error(f"Error in /analysis/{symbol}: {e}")
        return _error('Error in individual analysis')
    return web.json_response(candidate.to_payload())


async def _close_connector(app: web.Application):
    connector = app.get(CONNECTOR_KEY)
    if connector is not None:
        await connector.close()


def create_app(
    scanner: MarketScanner,
    connector: Optional[DataConnector] = None,
) -> web.Application:
    """Build the application; *connector* is closed on shutdown when given."""
    app = web.Application()
    app[SCANNER_KEY] = scanner
    if connector is not None:
        app[CONNECTOR_KEY] = connector
        app.on_cleanup.append(_close_connector)

    app.router.add_get('/api/top-gainers', top_gainers)
    app.router.add_get('/api/explosion-candidates', explosion_candidates)
    app.router.add_get('/api/pre-explosion-signals', pre_explosion_signals)
    app.router.add_get('/api/new-listings', new_listings)
    app.router.add_get('/api/analysis/{symbol}', analysis)
    return app
