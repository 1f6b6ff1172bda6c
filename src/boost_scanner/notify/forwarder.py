"""Polls the ranked candidate endpoint and pushes alerts to Telegram."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..data.connector import TransientFetchError, fetch_with_retries

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


def format_token_message(token: Dict[str, Any]) -> str:
    """Markdown alert body for one candidate payload."""
    rec = token.get('recommendation', {})
    volume = token.get('volume', 0)
    return (
        "🚨 *Posible Explosión de Token*\n\n"
        f"*Símbolo:* {token['symbol']}\n"
        f"*Precio:* ${float(token['price']):.8f}\n"
        f"*Cambio 5m:* {token.get('change_5m')}%\n"
        f"*Cambio 1h:* {token.get('change_1h')}%\n"
        f"*Volumen:* {volume:,}\n"
        f"*Ratio de Volumen:* {token.get('volumeRatio')}\n"
        f"*RSI:* {token.get('rsi')}\n"
        f"*Volatilidad:* {token.get('volatility')}%\n"
        f"*Score de Explosión:* {token.get('explosionScore')}\n"
        f"*Nuevo Listado:* {'🆕 SÍ' if token.get('isNew') else 'No'}\n\n"
        "📊 *Recomendación:*\n"
        f"Acción: {rec.get('action')}\n"
        f"Comprar: ${float(rec.get('buyPrice', 0)):.8f}\n"
        f"Vender: ${rec.get('sellTarget')}\n"
        f"Stop Loss: ${rec.get('stopLoss')}\n"
        f"Confianza: {rec.get('confidence')}"
    )


class AlertForwarder:
    """Forwards high-score candidates from the screener to a Telegram chat.

    Scores >= ``strong_score`` are sent as-is; scores >= ``moderate_score``
    are sent with a warning marker and a moderate-confidence note.
    """

    def __init__(self, config: Optional[Dict] = None):
        defaults = self._default_config()
        if config:
            defaults.update({k: v for k, v in config.items() if v is not None})
        self.config = defaults
        self._session: Optional[aiohttp.ClientSession] = None
        self._running = False
        logger.info(f"Alert forwarder initialized (endpoint={self.config['endpoint']})")

    @staticmethod
    def _default_config() -> Dict:
        return {
            'endpoint': 'http://localhost:8080/api/explosion-candidates',
            'telegram_token': None,
            'telegram_chat_id': None,
            'poll_interval': 60,
            'request_timeout': 8,
            'max_retries': 2,
            'retry_delay': 1,
            'max_alerts': 10,
            'strong_score': 80,
            'moderate_score': 60,
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=float(self.config['request_timeout']))
            )
        return self._session

    async def close(self):
        self._running = False
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch_candidates(self) -> List[Dict[str, Any]]:
        url = self.config['endpoint']

        async def _get():
            session = await self._get_session()
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.json()

        return await fetch_with_retries(
            _get,
            url,
            int(self.config['max_retries']),
            float(self.config['retry_delay']),
            (aiohttp.ClientError, asyncio.TimeoutError, ValueError),
        )

    async def send_message(self, text: str) -> bool:
        """POST one message to Telegram, retrying on network errors.

        Returns False when Telegram rejects the message; raises
        ``TransientFetchError`` when the retries are exhausted.
        """
        url = f"{TELEGRAM_API}/bot{self.config['telegram_token']}/sendMessage"
        payload = {
            'chat_id': self.config['telegram_chat_id'],
            'text': text,
            'parse_mode': 'Markdown',
        }

        async def _post():
            session = await self._get_session()
            async with session.post(url, json=payload) as response:
                if response.status != 200:
                    logger.error(f"Telegram send failed: {await response.text()}")
                    return False
            return True

        return await fetch_with_retries(
            _post,
            f"{TELEGRAM_API}/sendMessage",
            int(self.config['max_retries']),
            float(self.config['retry_delay']),
            (aiohttp.ClientError, asyncio.TimeoutError),
        )

    def build_alerts(self, tokens: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Pick the tokens worth alerting on and render their messages."""
        alerts = []
        for token in tokens[:self.config['max_alerts']]:
            score = token.get('explosionScore', token.get('alertScore', 0)) or 0
            if score >= self.config['strong_score']:
                text = format_token_message(token)
                level = 'strong'
            elif score >= self.config['moderate_score']:
                text = format_token_message(token).replace('🚨', '⚠️') + "\n*Nota:* Confianza moderada"
                level = 'moderate'
            else:
                continue
            alerts.append({'symbol': token['symbol'], 'score': score, 'level': level, 'text': text})
        return alerts

    async def run_once(self) -> int:
        """One poll cycle; returns the number of messages sent."""
        try:
            tokens = await self.fetch_candidates()
        except TransientFetchError as e:
            logger.error(f"Failed to fetch alerts after retries: {e}")
            return 0

        if not isinstance(tokens, list) or not tokens:
            logger.warning("No tokens received from API")
            return 0

        sent = 0
        for alert in self.build_alerts(tokens):
            try:
                delivered = await self.send_message(alert['text'])
            except TransientFetchError as e:
                logger.error(f"Failed to send alert for {alert['symbol']}: {e.reason}")
                continue
            if delivered:
                sent += 1
                logger.info(
                    f"{alert['level'].capitalize()} alert sent for {alert['symbol']} "
                    f"with score {alert['score']}"
                )
        return sent

    async def run_forever(self) -> None:
        self._running = True
        interval = max(float(self.config['poll_interval']), 1.0)
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Alert loop error: {e}")
            await asyncio.sleep(interval)
