"""Unit tests for the Telegram alert forwarder."""

import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock

from boost_scanner.data.connector import TransientFetchError
from boost_scanner.notify.forwarder import AlertForwarder, format_token_message


def token(symbol="PEPEUSDT", score=85, **extra):
    payload = {
        "symbol": symbol,
        "price": 0.0000123,
        "change_5m": 4.5,
        "change_1h": 7.25,
        "volume": 1250000,
        "volumeRatio": 2.4,
        "rsi": 58,
        "volatility": 1.3,
        "explosionScore": score,
        "isNew": False,
        "recommendation": {
            "action": "🔥 COMPRA FUERTE",
            "buyPrice": 0.0000123,
            "sellTarget": "0.00001538",
            "stopLoss": "0.00001169",
            "confidence": "MUY ALTA",
        },
    }
    payload.update(extra)
    return payload


class TestFormatMessage:
    def test_contains_fields(self):
        text = format_token_message(token(isNew=True))
        assert text.startswith("🚨 *Posible Explosión de Token*")
        assert "*Símbolo:* PEPEUSDT" in text
        assert "*Precio:* $0.00001230" in text
        assert "*Volumen:* 1,250,000" in text
        assert "*Score de Explosión:* 85" in text
        assert "🆕 SÍ" in text
        assert "Stop Loss: $0.00001169" in text
        assert "Confianza: MUY ALTA" in text


class TestBuildAlerts:
    def setup_method(self):
        self.forwarder = AlertForwarder({'telegram_token': 't', 'telegram_chat_id': 'c'})

    def test_tiers(self):
        alerts = self.forwarder.build_alerts([
            token("AAAUSDT", 92),
            token("BBBUSDT", 65),
            token("CCCUSDT", 59),
        ])

        assert [a['symbol'] for a in alerts] == ["AAAUSDT", "BBBUSDT"]
        strong, moderate = alerts
        assert strong['level'] == 'strong'
        assert strong['text'].startswith("🚨")
        assert moderate['level'] == 'moderate'
        assert moderate['text'].startswith("⚠️")
        assert moderate['text'].endswith("*Nota:* Confianza moderada")

    def test_alert_score_payloads(self):
        payload = token("SIGUSDT", score=None, alertScore=81)
        del payload["explosionScore"]
        alerts = self.forwarder.build_alerts([payload])
        assert alerts[0]['score'] == 81

    def test_caps_number_of_alerts(self):
        forwarder = AlertForwarder({'max_alerts': 2})
        alerts = forwarder.build_alerts([token(f"T{i}USDT", 90) for i in range(5)])
        assert len(alerts) == 2


class TestRunOnce:
    def setup_method(self):
        self.forwarder = AlertForwarder({'telegram_token': 't', 'telegram_chat_id': 'c'})
        self.forwarder.send_message = AsyncMock(return_value=True)

    @pytest.mark.asyncio
    async def test_sends_qualifying_alerts(self):
        self.forwarder.fetch_candidates = AsyncMock(return_value=[token("A", 90), token("B", 10)])

        sent = await self.forwarder.run_once()

        assert sent == 1
        self.forwarder.send_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_send_not_counted(self):
        self.forwarder.fetch_candidates = AsyncMock(return_value=[token("A", 90), token("B", 90)])
        self.forwarder.send_message = AsyncMock(side_effect=[False, True])

        assert await self.forwarder.run_once() == 1

    @pytest.mark.asyncio
    async def test_fetch_failure(self):
        self.forwarder.fetch_candidates = AsyncMock(side_effect=TransientFetchError("u", "down"))
        assert await self.forwarder.run_once() == 0
        self.forwarder.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_or_error_payload(self):
        self.forwarder.fetch_candidates = AsyncMock(return_value={"error": "boom"})
        assert await self.forwarder.run_once() == 0
        self.forwarder.fetch_candidates = AsyncMock(return_value=[])
        assert await self.forwarder.run_once() == 0


def _post_context(status=200, text=""):
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


class TestSendFailures:
    def setup_method(self):
        self.forwarder = AlertForwarder({
            'telegram_token': 't',
            'telegram_chat_id': 'c',
            'retry_delay': 0,
        })
        self.session = MagicMock()
        self.session.closed = False
        self.forwarder._session = self.session

    @pytest.mark.asyncio
    async def test_send_retries_network_errors(self):
        self.session.post = MagicMock(side_effect=[
            aiohttp.ClientConnectionError("reset"),
            _post_context(),
        ])

        assert await self.forwarder.send_message("hola") is True
        assert self.session.post.call_count == 2
        url = self.session.post.call_args.args[0]
        assert url == "https://api.telegram.org/bott/sendMessage"
        assert self.session.post.call_args.kwargs['json']['parse_mode'] == 'Markdown'

    @pytest.mark.asyncio
    async def test_rejected_message_is_not_retried(self):
        self.session.post = MagicMock(return_value=_post_context(400, "Bad Request"))

        assert await self.forwarder.send_message("hola") is False
        assert self.session.post.call_count == 1

    @pytest.mark.asyncio
    async def test_failed_alert_does_not_stop_the_cycle(self):
        self.forwarder.fetch_candidates = AsyncMock(return_value=[token("A", 85), token("B", 90)])
        # first alert exhausts its three attempts, the second goes through
        self.session.post = MagicMock(side_effect=[
            aiohttp.ClientConnectionError("reset"),
            aiohttp.ClientConnectionError("reset"),
            asyncio.TimeoutError(),
            _post_context(),
        ])

        assert await self.forwarder.run_once() == 1
        assert self.session.post.call_count == 4

    @pytest.mark.asyncio
    async def test_exhausted_send_is_skipped(self):
        self.forwarder.fetch_candidates = AsyncMock(return_value=[token("A", 85), token("B", 90)])
        self.forwarder.send_message = AsyncMock(side_effect=[
            TransientFetchError("https://api.telegram.org/sendMessage", "reset"),
            True,
        ])

        assert await self.forwarder.run_once() == 1
        assert self.forwarder.send_message.await_count == 2
