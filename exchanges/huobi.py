"""
Huobi/HTX API authentication (signature version 2) and account queries.

Signature base string:
    METHOD\\nhost\\npath\\nsorted_params

sorted_params covers the caller's parameters plus AccessKeyId, SignatureMethod,
SignatureVersion and Timestamp. The signature is sent base64-encoded in the
Signature query parameter, whichever algorithm produced it.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlparse
import logging
import os

from .balances import NormalizedBalance, balances_response, fetch_with_fallback
from .canonical import CanonicalRequest, compact_json, sorted_params, sorted_query_string
from .client import AuthenticatedClient
from .credentials import Credential, Ed25519Credential, load_credential_from_env
from .errors import RemoteApiError
from .signing import encode_signature
from .transport import Transport


HUOBI_API_BASE_URL = "https://api.huobi.pro"
HUOBI_AWS_BASE_URL = "https://api-aws.huobi.pro"
HUOBI_USE_AWS = os.getenv("HUOBI_USE_AWS", "false").lower() == "true"

SIGNATURE_VERSION = "2"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
HUOBI_EXCHANGE_IDS = ("huobi", "htx")


def signature_method(credential: Credential) -> str:
    """SignatureMethod value for a credential variant."""
    return "Ed25519" if isinstance(credential, Ed25519Credential) else "HmacSHA256"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Format a UTC timestamp as YYYY-MM-DDThh:mm:ss.

    Args:
        moment: Time to format (defaults to now)

    Returns:
        ISO-8601 date-time without fractional seconds or offset
    """
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def signature_base_string(method: str, host: str, path: str, params: Mapping[str, Any]) -> str:
    """
    Build the base string for signature version 2.

    Examples:
        >>> signature_base_string("GET", "api.huobi.pro", "/v1/account/accounts", {"Timestamp": "2024-01-01T00:00:00"})
        'GET\\napi.huobi.pro\\n/v1/account/accounts\\nTimestamp=2024-01-01T00%3A00%3A00'
    """
    param_string = sorted_query_string(params, encode_keys=True)
    return f"{method.upper()}\n{host.lower()}\n{path}\n{param_string}"


@dataclass(frozen=True)
class HuobiProtocol:
    """Huobi/HTX canonicalization, query-parameter and envelope rules."""

    base_url: str = HUOBI_API_BASE_URL
    name: str = "huobi"

    @property
    def host(self) -> str:
        return urlparse(self.base_url).netloc

    def new_timestamp(self) -> str:
        return format_timestamp()

    def auth_params(self, credential: Credential, timestamp: Union[str, int]) -> Dict[str, str]:
        return {
            "AccessKeyId": credential.api_key,
            "SignatureMethod": signature_method(credential),
            "SignatureVersion": SIGNATURE_VERSION,
            "Timestamp": str(timestamp)
        }

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
        query: Dict[str, Any] = {}
        # POST bodies are not signed; only the auth parameters go in the query
        if method == "GET" and params:
            query.update(params)
        query.update(self.auth_params(credential, timestamp))
        return CanonicalRequest(
            method,
            path,
            timestamp,
            query_params=sorted_params(query),
            body_params=dict(body) if method == "POST" and body else None
        )

    def canonicalize(self, credential: Credential, request: CanonicalRequest) -> bytes:
        return signature_base_string(request.method, self.host, request.path, request.query_params).encode("utf-8")

    def encode_signature(self, signature: bytes) -> str:
        return encode_signature(signature, "base64")

    def attach_signature(
        self,
        credential: Credential,
        request: CanonicalRequest,
        signature: str
    ) -> Tuple[Dict[str, str], str]:
        params = dict(request.query_params)
        params["Signature"] = signature
        if request.method == "POST":
            headers = {"Content-Type": "application/json"}
        else:
            headers = {"Content-Type": "application/x-www-form-urlencoded"}
        return headers, sorted_query_string(params, encode_keys=True)

    def encode_body(self, request: CanonicalRequest) -> Optional[bytes]:
        if request.method != "POST":
            return None
        return (compact_json(request.body_params) or "{}").encode("utf-8")

    def unwrap_envelope(self, envelope: Mapping[str, Any]) -> Any:
        """
        Unwrap either envelope style.

        - {"status": "ok", "data": ...} or {"status": "error", "err-code": ..., "err-msg": ...}
        - {"code": 200, "message": ..., "data": ...}

        Raises:
            RemoteApiError: On a failure status or code
        """
        if "status" in envelope:
            if envelope["status"] == "ok":
                return envelope.get("data")
            code = envelope.get("err-code", envelope["status"])
            message = envelope.get("err-msg") or "Unknown error"
        elif "code" in envelope:
            if envelope["code"] == 200:
                return envelope.get("data")
            code = envelope["code"]
            message = envelope.get("message") or "Unknown error"
        else:
            code = None
            message = "Unrecognized response envelope"
        logging.error(f"Huobi API error {code}: {message}")
        raise RemoteApiError(code, message)


def normalize_account_balance(data: Any) -> List[NormalizedBalance]:
    """
    Merge per-currency trade and frozen rows into normalized balances.

    Expected format:
    {"id": 100, "type": "spot", "state": "working",
     "list": [{"currency": "usdt", "type": "trade", "balance": "10"},
              {"currency": "usdt", "type": "frozen", "balance": "2"}]}

    balance is trade + frozen and available is trade. Currencies keep the order
    in which they first appear.
    """
    if not isinstance(data, Mapping):
        return []

    totals: Dict[str, Dict[str, Decimal]] = {}
    for row in data.get("list") or []:
        currency = str(row.get("currency", "")).upper()
        if not currency:
            continue
        try:
            amount = Decimal(str(row.get("balance", "0")))
        except InvalidOperation:
            logging.warning(f"Skipping unparseable Huobi balance for {currency}: {row.get('balance')!r}")
            continue
        entry = totals.setdefault(currency, {"trade": Decimal("0"), "frozen": Decimal("0")})
        if row.get("type") == "trade":
            entry["trade"] += amount
        elif row.get("type") == "frozen":
            entry["frozen"] += amount

    return [
        NormalizedBalance(
            currency=currency,
            balance=format(entry["trade"] + entry["frozen"], "f"),
            available=format(entry["trade"], "f"),
            type="spot"
        )
        for currency, entry in totals.items()
    ]


@dataclass(frozen=True)
class HuobiClient:
    """
    Huobi/HTX account client.

    Attributes:
        client: Authenticated dispatcher bound to a HuobiProtocol
        suppress_errors: Degrade to empty balances when fetching fails
            (None uses BALANCE_FALLBACK_SUPPRESS_ERRORS)
    """

    client: AuthenticatedClient
    suppress_errors: Optional[bool] = field(default=None)

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.client.authenticated_get(path, params)

    def post(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Any:
        return self.client.authenticated_post(path, body)

    def get_accounts(self) -> List[Dict[str, Any]]:
        return self.get("/v1/account/accounts") or []

    def get_account_balance(self, account_id: Union[int, str]) -> Any:
        return self.get(f"/v1/account/accounts/{account_id}/balance")

    def get_deposit_addresses(self, currency: str) -> List[Dict[str, Any]]:
        """
        Get deposit addresses for a currency.

        Args:
            currency: Currency code (e.g. "usdt")

        Returns:
            List of {"userId", "currency", "address", "addressTag", "chain"} entries

        Raises:
            RemoteApiError: If the exchange returned a non-200 code
        """
        return self.get("/v2/account/deposit/address", {"currency": currency}) or []

    def _spot_balances(self) -> List[NormalizedBalance]:
        accounts = self.get_accounts()
        spot_account = next((account for account in accounts if account.get("type") == "spot"), None)
        if spot_account is None:
            logging.warning("No Huobi spot account found")
            return []
        logging.debug(f"Fetching balances for Huobi spot account {spot_account.get('id')}")
        return normalize_account_balance(self.get_account_balance(spot_account["id"]))

    def get_balances(self) -> Dict[str, Any]:
        """
        Get spot balances in the common {"status": "ok", "data": [...]} shape.

        Returns:
            Dictionary with status "ok" and a list of normalized balances
        """
        balances = fetch_with_fallback(
            [("spot-account-balance", self._spot_balances)],
            suppress_errors=self.suppress_errors
        )
        return balances_response(balances)


def create_huobi_client(
    exchange_id: str = "htx",
    credential: Optional[Credential] = None,
    use_aws: Optional[bool] = None,
    transport: Optional[Transport] = None,
    suppress_errors: Optional[bool] = None
) -> HuobiClient:
    """
    Create a Huobi/HTX client.

    Args:
        exchange_id: "huobi" or "htx"; selects the credentials environment variable
        credential: Credential to use; loaded from <EXCHANGE_ID>_CREDENTIALS when omitted
        use_aws: Use the AWS endpoint (defaults to HUOBI_USE_AWS)
        transport: Override the HTTP transport
        suppress_errors: Override BALANCE_FALLBACK_SUPPRESS_ERRORS

    Returns:
        HuobiClient instance

    Raises:
        CredentialError: If credentials cannot be loaded
    """
    if credential is None:
        credential = load_credential_from_env(exchange_id)
    if use_aws is None:
        use_aws = HUOBI_USE_AWS

    protocol = HuobiProtocol(base_url=HUOBI_AWS_BASE_URL if use_aws else HUOBI_API_BASE_URL)
    if transport is None:
        client = AuthenticatedClient(credential, protocol)
    else:
        client = AuthenticatedClient(credential, protocol, transport=transport)
    logging.info(f"Initialized Huobi client ({protocol.base_url})")
    return HuobiClient(client, suppress_errors=suppress_errors)
