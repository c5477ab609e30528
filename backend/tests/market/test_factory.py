"""Tests for the market data factories."""

import os
from unittest.mock import patch

from app.market.config import MarketDataConfig
from app.market.factory import create_market_data_manager, create_quote_provider
from app.market.manager import AggregationManager, ManagerState
from app.market.massive_client import MassiveQuoteProvider
from app.market.simulator import SimulatedQuoteProvider


class TestCreateQuoteProvider:
    """Tests for create_quote_provider."""

    def test_creates_simulator_when_no_api_key(self):
        """Test that the simulator is used when no API key is configured."""
        assert isinstance(create_quote_provider(MarketDataConfig()), SimulatedQuoteProvider)

    def test_creates_simulator_when_api_key_whitespace(self):
        """Test that a whitespace API key counts as missing."""
        provider = create_quote_provider(MarketDataConfig(massive_api_key="   "))
        assert isinstance(provider, SimulatedQuoteProvider)

    def test_creates_massive_when_api_key_set(self):
        """Test that the Massive provider is used when an API key is set."""
        provider = create_quote_provider(MarketDataConfig(massive_api_key="test-key-123"))
        assert isinstance(provider, MassiveQuoteProvider)
        assert provider._api_key == "test-key-123"


class TestCreateMarketDataManager:
    """Tests for create_market_data_manager."""

    def test_wires_config_into_components(self):
        """Test that config values reach the limiter, fetcher, cache and poller."""
        config = MarketDataConfig(
            poll_interval=30.0,
            cache_ttl=45.0,
            max_requests_per_minute=7,
            max_requests_per_hour=70,
            fetch_timeout=2.0,
            max_retries=1,
            retry_delay=0.5,
            default_symbols=("NVDA",),
        )
        manager = create_market_data_manager(config)

        assert isinstance(manager, AggregationManager)
        assert manager.state is ManagerState.UNINITIALIZED
        assert manager.get_rate_limit_status()["max_per_minute"] == 7
        assert manager.get_rate_limit_status()["max_per_hour"] == 70
        assert manager._cache.ttl == 45.0
        assert manager._poller._interval == 30.0
        assert manager._fetcher._timeout == 2.0
        assert manager._fetcher._max_retries == 1
        assert manager._default_symbols == ["NVDA"]

    def test_uses_given_provider(self, provider):
        """Test that an explicit provider overrides the config-based choice."""
        manager = create_market_data_manager(MarketDataConfig(), provider=provider)
        assert manager._fetcher.provider is provider

    def test_reads_env_when_no_config(self):
        """Test that the environment is consulted when no config is passed."""
        env = {"MARKET_DATA_MAX_REQUESTS_PER_HOUR": "123"}
        with patch.dict(os.environ, env, clear=True):
            manager = create_market_data_manager()

        assert manager.get_rate_limit_status()["max_per_hour"] == 123
        assert isinstance(manager._fetcher.provider, SimulatedQuoteProvider)

    def test_each_call_builds_a_new_manager(self):
        """Test that there is no hidden singleton."""
        config = MarketDataConfig()
        assert create_market_data_manager(config) is not create_market_data_manager(config)
