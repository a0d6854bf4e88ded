"""
Exchange authentication package.

Signs requests to cryptocurrency exchange REST APIs with HMAC-SHA256 or Ed25519
credentials and normalizes account balances into a common shape.
"""
from typing import Optional, Union

from .balances import NormalizedBalance, balances_response, fetch_with_fallback
from .client import AuthenticatedClient, ExchangeProtocol
from .credentials import (
    Credential,
    Ed25519Credential,
    HmacCredential,
    credential_from_dict,
    is_valid,
    load_credential_from_env,
)
from .errors import (
    AuthError,
    CredentialError,
    ExchangeClientError,
    RemoteApiError,
    SigningError,
    TransportError,
)
from .signing import encode_signature, sign, sign_and_encode
from .bybit import BybitClient, BybitProtocol, create_bybit_client
from .huobi import HUOBI_EXCHANGE_IDS, HuobiClient, HuobiProtocol, create_huobi_client


SUPPORTED_EXCHANGES = ("bybit",) + HUOBI_EXCHANGE_IDS

ExchangeClient = Union[BybitClient, HuobiClient]


def create_client(exchange_id: str, credential: Optional[Credential] = None) -> ExchangeClient:
    """
    Create a new client for an exchange.

    Args:
        exchange_id: "bybit", "huobi" or "htx"
        credential: Credential to use; loaded from the environment when omitted

    Returns:
        BybitClient or HuobiClient

    Raises:
        ValueError: If the exchange is not supported
        CredentialError: If credentials cannot be loaded
    """
    exchange_id = exchange_id.lower()
    if exchange_id == "bybit":
        return create_bybit_client(credential)
    if exchange_id in HUOBI_EXCHANGE_IDS:
        return create_huobi_client(exchange_id, credential)
    raise ValueError(f"Unsupported exchange: {exchange_id}")


__all__ = [
    'AuthError',
    'AuthenticatedClient',
    'BybitClient',
    'BybitProtocol',
    'Credential',
    'CredentialError',
    'Ed25519Credential',
    'ExchangeClient',
    'ExchangeClientError',
    'ExchangeProtocol',
    'HmacCredential',
    'HuobiClient',
    'HuobiProtocol',
    'NormalizedBalance',
    'RemoteApiError',
    'SUPPORTED_EXCHANGES',
    'SigningError',
    'TransportError',
    'balances_response',
    'create_bybit_client',
    'create_client',
    'create_huobi_client',
    'credential_from_dict',
    'encode_signature',
    'fetch_with_fallback',
    'is_valid',
    'load_credential_from_env',
    'sign',
    'sign_and_encode',
]
