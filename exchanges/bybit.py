"""
Bybit V5 API authentication and balance retrieval.

Signature payload:
    timestamp + api_key + recv_window + sorted_query_string + json_body

The signature is sent as lowercase hex in the X-BAPI-SIGN header, whichever
algorithm produced it.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
import logging
import os
import time

from .balances import NormalizedBalance, balances_response, fetch_with_fallback
from .canonical import CanonicalRequest, compact_json, sorted_params, sorted_query_string
from .client import AuthenticatedClient
from .credentials import Credential, load_credential_from_env
from .errors import RemoteApiError
from .signing import encode_signature
from .transport import Transport


BYBIT_API_BASE_URL = "https://api.bybit.com"
BYBIT_TESTNET_BASE_URL = "https://api-testnet.bybit.com"
BYBIT_USE_TESTNET = os.getenv("BYBIT_USE_TESTNET", "false").lower() == "true"

RECV_WINDOW = "5000"
DEFAULT_ACCOUNT_TYPE = "UNIFIED"


@dataclass(frozen=True)
class BybitProtocol:
    """Bybit V5 canonicalization, header and envelope rules."""

    base_url: str = BYBIT_API_BASE_URL
    recv_window: str = RECV_WINDOW
    name: str = "bybit"

    def new_timestamp(self) -> int:
        return int(time.time() * 1000)

    def build_request(
        self,
        credential: Credential,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]],
        body: Optional[Mapping[str, Any]],
        timestamp: Union[str, int]
    ) -> CanonicalRequest:
        method = method.upper()
        # GET signs the query only, POST signs the body only
        if method == "GET":
            return CanonicalRequest(method, path, timestamp, query_params=sorted_params(params))
        return CanonicalRequest(method, path, timestamp, body_params=dict(body) if body else None)

    def canonicalize(self, credential: Credential, request: CanonicalRequest) -> bytes:
        query_string = sorted_query_string(request.query_params) if request.method == "GET" else ""
        json_body = compact_json(request.body_params) if request.method == "POST" else ""
        payload = f"{request.timestamp}{credential.api_key}{self.recv_window}{query_string}{json_body}"
        return payload.encode("utf-8")

    def encode_signature(self, signature: bytes) -> str:
        return encode_signature(signature, "hex")

    def attach_signature(
        self,
        credential: Credential,
        request: CanonicalRequest,
        signature: str
    ) -> Tuple[Dict[str, str], str]:
        headers = {
            "X-BAPI-API-KEY": credential.api_key,
            "X-BAPI-TIMESTAMP": str(request.timestamp),
            "X-BAPI-SIGN": signature,
            "X-BAPI-RECV-WINDOW": self.recv_window
        }
        if request.method == "POST":
            headers["Content-Type"] = "application/json"
        return headers, sorted_query_string(request.query_params)

    def encode_body(self, request: CanonicalRequest) -> Optional[bytes]:
        json_body = compact_json(request.body_params)
        return json_body.encode("utf-8") if json_body else None

    def unwrap_envelope(self, envelope: Mapping[str, Any]) -> Any:
        """
        Unwrap {"retCode": 0, "retMsg": "OK", "result": {...}}.

        Raises:
            RemoteApiError: If retCode is missing or non-zero
        """
        ret_code = envelope.get("retCode")
        if ret_code == 0:
            return envelope.get("result")
        message = envelope.get("retMsg") or "Unknown error"
        logging.error(f"Bybit API error {ret_code}: {message}")
        raise RemoteApiError(ret_code, message)


def _has_coin_and_balance(item: Any) -> bool:
    """Rows missing the coin name or wallet balance are skipped."""
    return (
        isinstance(item, Mapping)
        and isinstance(item.get("coin"), str) and bool(item["coin"])
        and isinstance(item.get("walletBalance"), str)
    )


def normalize_coins_balance(result: Any) -> List[NormalizedBalance]:
    """
    Map a query-account-coins-balance result to normalized balances.

    Expected format:
    {"memberId": "...", "accountType": "UNIFIED",
     "balance": [{"coin": "BTC", "walletBalance": "1", "transferBalance": "0.9"}]}
    """
    if not isinstance(result, Mapping):
        return []
    items = result.get("balance") or []
    return [
        NormalizedBalance(
            currency=item["coin"],
            balance=item["walletBalance"],
            available=item.get("transferBalance") or item["walletBalance"],
            type="spot"
        )
        for item in items
        if _has_coin_and_balance(item)
    ]


def normalize_wallet_balance(result: Any) -> List[NormalizedBalance]:
    """
    Flatten a wallet-balance result to normalized balances.

    Accepts a bare list of accounts or the V5 {"list": [...]} shape. Each account
    carries a "coin" list. The available amount is availableToWithdraw, else
    free, else the wallet balance itself.
    """
    if isinstance(result, Mapping):
        accounts = result.get("list") or []
    elif isinstance(result, list):
        accounts = result
    else:
        return []

    balances: List[NormalizedBalance] = []
    for account in accounts:
        coins = account.get("coin") if isinstance(account, Mapping) else None
        if not isinstance(coins, list):
            continue
        for coin_info in coins:
            if not _has_coin_and_balance(coin_info):
                continue
            wallet_balance = coin_info["walletBalance"]
            balances.append(NormalizedBalance(
                currency=coin_info["coin"],
                balance=wallet_balance,
                available=coin_info.get("availableToWithdraw") or coin_info.get("free") or wallet_balance,
                type="spot"
            ))
    return balances


@dataclass(frozen=True)
class BybitClient:
    """
    Bybit V5 account client.

    Attributes:
        client: Authenticated dispatcher bound to a BybitProtocol
        suppress_errors: Degrade to empty balances when every source fails
            (None uses BALANCE_FALLBACK_SUPPRESS_ERRORS)
    """

    client: AuthenticatedClient
    suppress_errors: Optional[bool] = field(default=None)

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.client.authenticated_get(path, params)

    def post(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Any:
        return self.client.authenticated_post(path, body)

    def get_wallet_balance(self, account_type: str = DEFAULT_ACCOUNT_TYPE) -> Any:
        logging.debug(f"Getting Bybit wallet balance for {account_type}")
        return self.get("/v5/account/wallet-balance", {"accountType": account_type})

    def get_asset_info(self, coin: Optional[str] = None) -> Any:
        params: Dict[str, str] = {"accountType": DEFAULT_ACCOUNT_TYPE}
        if coin:
            params["coin"] = coin
        return self.get("/v5/asset/transfer/query-asset-info", params)

    def get_account_info(self) -> Any:
        return self.get("/v5/account/info", {})

    def get_all_coins_balance(self, account_type: str = DEFAULT_ACCOUNT_TYPE, coin: Optional[str] = None) -> Any:
        params: Dict[str, str] = {"accountType": account_type}
        if coin:
            params["coin"] = coin
        return self.get("/v5/asset/transfer/query-account-coins-balance", params)

    def get_balances(self) -> Dict[str, Any]:
        """
        Get balances in the common {"status": "ok", "data": [...]} shape.

        Uses the all-coins balance endpoint and falls back to the wallet balance
        endpoint when that fails or comes back empty.

        Returns:
            Dictionary with status "ok" and a list of normalized balances
        """
        balances = fetch_with_fallback(
            [
                ("all-coins-balance", lambda: normalize_coins_balance(self.get_all_coins_balance())),
                ("wallet-balance", lambda: normalize_wallet_balance(self.get_wallet_balance())),
            ],
            suppress_errors=self.suppress_errors
        )
        return balances_response(balances)


def create_bybit_client(
    credential: Optional[Credential] = None,
    use_testnet: Optional[bool] = None,
    transport: Optional[Transport] = None,
    suppress_errors: Optional[bool] = None
) -> BybitClient:
    """
    Create a Bybit client.

    Args:
        credential: Credential to use; loaded from BYBIT_CREDENTIALS when omitted
        use_testnet: Use the testnet endpoint (defaults to BYBIT_USE_TESTNET)
        transport: Override the HTTP transport
        suppress_errors: Override BALANCE_FALLBACK_SUPPRESS_ERRORS

    Returns:
        BybitClient instance

    Raises:
        CredentialError: If credentials cannot be loaded
    """
    if credential is None:
        credential = load_credential_from_env("bybit")
    if use_testnet is None:
        use_testnet = BYBIT_USE_TESTNET

    protocol = BybitProtocol(base_url=BYBIT_TESTNET_BASE_URL if use_testnet else BYBIT_API_BASE_URL)
    if transport is None:
        client = AuthenticatedClient(credential, protocol)
    else:
        client = AuthenticatedClient(credential, protocol, transport=transport)
    logging.info(f"Initialized Bybit client ({protocol.base_url})")
    return BybitClient(client, suppress_errors=suppress_errors)
