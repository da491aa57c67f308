"""Tests for RelaySettings."""

import pytest

from feedrelay.config import DEFAULT_SNAPSHOT_URL, DEFAULT_STREAM_URL, RelaySettings


class TestRelaySettings:
    """Tests for RelaySettings.from_env."""

    def test_defaults_when_unset(self):
        """Test that an empty environment yields the upstream defaults."""
        settings = RelaySettings.from_env({})

        assert settings.stream_url == DEFAULT_STREAM_URL
        assert settings.snapshot_url == DEFAULT_SNAPSHOT_URL
        assert settings.symbol == "SOLUSDT"
        assert settings.interval == "15"
        assert settings.reconnect_delay == 5.0
        assert settings.heartbeat_interval == 20.0
        assert settings.allowed_origin == "http://localhost:4200"
        assert settings.port == 5000

    def test_topic_follows_symbol(self):
        """Test the derived ticker topic."""
        assert RelaySettings.from_env({"FEEDRELAY_SYMBOL": "btcusdt"}).topic == "tickers.BTCUSDT"

    def test_blank_values_fall_back(self):
        """Test that whitespace-only values are treated as unset."""
        settings = RelaySettings.from_env({"FEEDRELAY_SYMBOL": "   ", "FEEDRELAY_RECONNECT_DELAY": ""})
        assert settings.symbol == "SOLUSDT"
        assert settings.reconnect_delay == 5.0

    def test_overrides(self):
        """Test reading every override."""
        settings = RelaySettings.from_env(
            {
                "FEEDRELAY_STREAM_URL": "wss://example.test/ws",
                "FEEDRELAY_SNAPSHOT_URL": "https://example.test/kline",
                "FEEDRELAY_INTERVAL": "60",
                "FEEDRELAY_RECONNECT_DELAY": "0.5",
                "FEEDRELAY_SUBSCRIBER_QUEUE_SIZE": "32",
                "FEEDRELAY_ALLOWED_ORIGIN": "https://app.example.test",
                "FEEDRELAY_HOST": "127.0.0.1",
                "FEEDRELAY_PORT": "8080",
                "FEEDRELAY_LOG_LEVEL": "debug",
            }
        )

        assert settings.stream_url == "wss://example.test/ws"
        assert settings.snapshot_url == "https://example.test/kline"
        assert settings.interval == "60"
        assert settings.reconnect_delay == 0.5
        assert settings.subscriber_queue_size == 32
        assert settings.allowed_origin == "https://app.example.test"
        assert settings.host == "127.0.0.1"
        assert settings.port == 8080
        assert settings.log_level == "DEBUG"

    def test_zero_heartbeat_disables(self):
        """Test that a zero heartbeat interval turns the heartbeat off."""
        assert RelaySettings.from_env({"FEEDRELAY_HEARTBEAT_INTERVAL": "0"}).heartbeat_interval is None

    def test_malformed_number_names_variable(self):
        """Test that a bad numeric value fails with the variable name."""
        with pytest.raises(ValueError, match="FEEDRELAY_RECONNECT_DELAY"):
            RelaySettings.from_env({"FEEDRELAY_RECONNECT_DELAY": "soon"})

    def test_negative_delay_rejected(self):
        """Test that a negative delay is refused."""
        with pytest.raises(ValueError, match="must not be negative"):
            RelaySettings.from_env({"FEEDRELAY_RECONNECT_DELAY": "-1"})

    @pytest.mark.parametrize("raw", ["inf", "-inf", "nan"])
    def test_non_finite_delay_rejected(self, raw):
        """Test that infinite or NaN delays are refused."""
        with pytest.raises(ValueError, match="FEEDRELAY_RECONNECT_DELAY must be a finite number"):
            RelaySettings.from_env({"FEEDRELAY_RECONNECT_DELAY": raw})

    def test_non_positive_port_rejected(self):
        """Test that port 0 is refused."""
        with pytest.raises(ValueError, match="FEEDRELAY_PORT"):
            RelaySettings.from_env({"FEEDRELAY_PORT": "0"})
