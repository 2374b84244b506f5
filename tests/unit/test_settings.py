"""Unit tests for application settings."""

import pytest
from loguru import logger
from pydantic import ValidationError

from walletsync.config.settings import Settings
from walletsync.models.wallet import Currency, WalletIdentity


class TestSettings:
    """Tests for Settings validation and derived values."""

    def test_defaults(self, monkeypatch):
        """Defaults should point at local hosts."""
        monkeypatch.delenv("WALLET_NAME", raising=False)

        settings = Settings(_env_file=None)

        assert settings.wallet_name == "eigenix"
        assert settings.bitcoin_rpc_url == "http://127.0.0.1:8332"
        assert settings.monero_wallet_rpc_url == "http://127.0.0.1:18082/json_rpc"
        assert settings.seed_authority_rpc_url == "http://127.0.0.1:9944"
        assert settings.bitcoin_rescan is False
        assert settings.rpc_max_retries == 3

    def test_wallet_identities(self):
        """Per-currency names should override the shared name."""
        settings = Settings(_env_file=None, wallet_name="swap", bitcoin_wallet_name="swap-btc")

        assert settings.wallet_identities() == {
            WalletIdentity(Currency.BITCOIN, "swap-btc"),
            WalletIdentity(Currency.MONERO, "swap"),
        }

    def test_env_override(self, monkeypatch):
        """Environment variables should configure settings."""
        monkeypatch.setenv("MONERO_WALLET_RPC_URL", "http://monero:18083/json_rpc/")
        monkeypatch.setenv("RPC_TIMEOUT", "5")

        settings = Settings(_env_file=None)

        assert settings.monero_wallet_rpc_url == "http://monero:18083/json_rpc"
        assert settings.rpc_timeout == 5.0

    def test_log_level_normalized(self):
        """Log level should be upper-cased."""
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("bitcoin_rpc_url", "127.0.0.1:8332"),
            ("seed_authority_rpc_url", "ws://127.0.0.1:9944"),
            ("log_level", "verbose"),
            ("rpc_timeout", 0),
            ("rpc_max_retries", 0),
            ("wallet_name", ""),
        ],
    )
    def test_invalid_values(self, field, value):
        """Invalid values should be rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_secrets_are_not_rendered(self):
        """Cookie and password should not appear in repr."""
        settings = Settings(
            _env_file=None,
            bitcoin_rpc_cookie="__cookie__:hunter2",
            monero_wallet_password="hunter3",
        )

        assert "hunter2" not in repr(settings)
        assert "hunter3" not in repr(settings)

    def test_rescan_logs_warning(self):
        """Enabling a full rescan should log a warning."""
        messages = []
        sink_id = logger.add(messages.append, level="WARNING")
        try:
            Settings(_env_file=None, bitcoin_rescan=True)
        finally:
            logger.remove(sink_id)

        assert any("BITCOIN_RESCAN" in message for message in messages)
