"""Pytest configuration and fixtures."""

import pytest

from helpers import FakeConnector, StubIndicatorEngine


@pytest.fixture
def fake_connector():
    """Empty in-memory exchange."""
    return FakeConnector()


@pytest.fixture
def stub_engine():
    """Indicator engine that returns neutral indicators for every symbol."""
    return StubIndicatorEngine()
