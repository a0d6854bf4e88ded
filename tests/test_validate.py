"""
Unit tests for request validation module.
"""
from typing import Any, Dict

from validate import (
    validate_balance_request,
    validate_deposit_request,
    validate_exchange_id,
)


class TestValidateExchangeId:
    """Test exchange identifier validation."""

    def test_supported_exchanges(self):
        for exchange_id in ("bybit", "huobi", "htx"):
            assert validate_exchange_id(exchange_id) == (True, None)

    def test_case_insensitive(self):
        assert validate_exchange_id("HTX") == (True, None)

    def test_missing(self):
        valid, error = validate_exchange_id(None)

        assert valid is False
        assert error == "Missing required parameter: exchange"

    def test_unsupported(self):
        valid, error = validate_exchange_id("binance")

        assert valid is False
        assert error is not None
        assert "Unsupported exchange 'binance'" in error
        assert "bybit" in error

    def test_restricted_set(self):
        valid, error = validate_exchange_id("bybit", {"huobi", "htx"})

        assert valid is False
        assert error is not None
        assert "huobi" in error


class TestValidateBalanceRequest:
    """Test balance request validation."""

    def test_valid(self):
        assert validate_balance_request({"exchange": "bybit"}) == (True, None)

    def test_missing_exchange(self):
        params: Dict[str, Any] = {}
        valid, error = validate_balance_request(params)

        assert valid is False
        assert error is not None


class TestValidateDepositRequest:
    """Test deposit address request validation."""

    def test_valid(self):
        assert validate_deposit_request({"exchange": "htx", "currency": "usdt"}) == (True, None)

    def test_bybit_rejected(self):
        valid, error = validate_deposit_request({"exchange": "bybit", "currency": "usdt"})

        assert valid is False
        assert error is not None
        assert "Unsupported exchange" in error

    def test_missing_currency(self):
        valid, error = validate_deposit_request({"exchange": "huobi"})

        assert valid is False
        assert error == "Missing required parameter: currency"

    def test_invalid_currency(self):
        for currency in ("us dt", "usdt&x=1", "a" * 21, "../etc"):
            valid, error = validate_deposit_request({"exchange": "huobi", "currency": currency})

            assert valid is False
            assert error is not None
            assert "alphanumeric" in error
