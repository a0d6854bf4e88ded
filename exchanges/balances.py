"""
Common balance schema and the multi-source fallback used by exchange clients.
"""
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging
import os


# When every balance source fails, return an empty list instead of raising.
SUPPRESS_BALANCE_ERRORS = os.getenv("BALANCE_FALLBACK_SUPPRESS_ERRORS", "true").lower() == "true"

BalanceSource = Tuple[str, Callable[[], List["NormalizedBalance"]]]


@dataclass(frozen=True)
class NormalizedBalance:
    currency: str
    balance: str
    available: str
    type: str = "spot"

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def balances_response(balances: Sequence[NormalizedBalance]) -> Dict[str, Any]:
    """Wrap balances in the {"status": "ok", "data": [...]} output contract."""
    return {
        "status": "ok",
        "data": [balance.to_dict() for balance in balances]
    }


def fetch_with_fallback(
    sources: Sequence[BalanceSource],
    suppress_errors: Optional[bool] = None
) -> List[NormalizedBalance]:
    """
    Try balance sources in order and return the first non-empty result.

    A source that raises or returns nothing moves on to the next one.

    Args:
        sources: (name, fetch) pairs, primary first
        suppress_errors: Return [] instead of raising when every source raised.
            Defaults to BALANCE_FALLBACK_SUPPRESS_ERRORS.

    Returns:
        Balances from the first source that produced any, otherwise []

    Raises:
        ExchangeClientError: The last source error, if every source raised and
            errors are not suppressed
    """
    if suppress_errors is None:
        suppress_errors = SUPPRESS_BALANCE_ERRORS

    last_error: Optional[Exception] = None
    failures = 0
    for name, fetch in sources:
        try:
            balances = fetch()
        except Exception as e:
            logging.warning(f"Balance source '{name}' failed: {e}")
            last_error = e
            failures += 1
            continue

        if balances:
            logging.info(f"Balance source '{name}' returned {len(balances)} balance(s)")
            return balances
        logging.info(f"Balance source '{name}' returned no balances")

    if last_error is not None and failures == len(sources):
        if not suppress_errors:
            raise last_error
        logging.warning(f"All balance sources failed, returning empty balances (last error: {last_error})")
    return []
