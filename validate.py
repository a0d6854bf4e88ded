from typing import Any, Mapping, Optional, Set
import re

from exchanges import SUPPORTED_EXCHANGES
from exchanges.huobi import HUOBI_EXCHANGE_IDS

# Exchanges that expose deposit addresses
DEPOSIT_ADDRESS_EXCHANGES: Set[str] = set(HUOBI_EXCHANGE_IDS)

CURRENCY_PATTERN = re.compile(r"^[A-Za-z0-9]{1,20}$")


def validate_exchange_id(exchange_id: Any, allowed: Optional[Set[str]] = None) -> tuple[bool, Optional[str]]:
    """
    Validate an exchange identifier.

    Args:
        exchange_id: Value of the "exchange" query parameter
        allowed: Accepted identifiers (defaults to all supported exchanges)

    Returns:
        Tuple of (is_valid, error_message)
    """
    allowed = allowed if allowed is not None else set(SUPPORTED_EXCHANGES)
    if not isinstance(exchange_id, str) or not exchange_id:
        return False, "Missing required parameter: exchange"
    if exchange_id.lower() not in allowed:
        return False, f"Unsupported exchange '{exchange_id}'. Must be one of: {', '.join(sorted(allowed))}"
    return True, None


def validate_balance_request(params: Mapping[str, Any]) -> tuple[bool, Optional[str]]:
    """
    Validate a balance request.

    Args:
        params: Request query parameters

    Returns:
        Tuple of (is_valid, error_message)
    """
    return validate_exchange_id(params.get("exchange"))


def validate_deposit_request(params: Mapping[str, Any]) -> tuple[bool, Optional[str]]:
    """
    Validate a deposit address request.

    Args:
        params: Request query parameters

    Returns:
        Tuple of (is_valid, error_message)
    """
    valid, error = validate_exchange_id(params.get("exchange"), DEPOSIT_ADDRESS_EXCHANGES)
    if not valid:
        return valid, error

    currency = params.get("currency")
    if not isinstance(currency, str) or not currency:
        return False, "Missing required parameter: currency"
    if not CURRENCY_PATTERN.match(currency):
        return False, "Parameter 'currency' must be 1-20 alphanumeric characters"

    return True, None
