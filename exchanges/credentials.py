"""
Exchange API credentials.

A credential is exactly one of two variants:

- Ed25519Credential: API key plus a hex-encoded Ed25519 private key seed
- HmacCredential: API key plus a shared HMAC secret

Both are immutable. Reloading credentials means building a new object.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union
import json
import logging
import os

from .errors import CredentialError


AUTH_TYPE_ED25519 = "ed25519"
AUTH_TYPE_HMAC = "hmac"


@dataclass(frozen=True)
class Ed25519Credential:
    """API key with a hex-encoded Ed25519 private key seed."""

    api_key: str
    private_key: str = field(repr=False)

    @property
    def auth_type(self) -> str:
        return AUTH_TYPE_ED25519


@dataclass(frozen=True)
class HmacCredential:
    """API key with an HMAC-SHA256 shared secret."""

    api_key: str
    api_secret: str = field(repr=False)

    @property
    def auth_type(self) -> str:
        return AUTH_TYPE_HMAC


Credential = Union[Ed25519Credential, HmacCredential]


def is_valid(credential: Optional[Credential]) -> bool:
    """
    Check that the populated variant has all of its required fields.

    Args:
        credential: Credential to check, or None

    Returns:
        True if the credential can be used to sign requests
    """
    if isinstance(credential, Ed25519Credential):
        return bool(credential.api_key) and bool(credential.private_key)
    if isinstance(credential, HmacCredential):
        return bool(credential.api_key) and bool(credential.api_secret)
    return False


def _get_field(data: Mapping[str, Any], camel: str, snake: str) -> Any:
    value = data.get(camel)
    if value is None:
        value = data.get(snake)
    return value


def credential_from_dict(data: Mapping[str, Any]) -> Credential:
    """
    Build a credential from untrusted input.

    Expected format:
    {
        "apiKey": "...",
        "authType": "ed25519" | "hmac",
        "privateKey": "<hex seed>"     # ed25519 only
        "apiSecret": "..."             # hmac only
    }

    Snake-case keys (api_key, auth_type, private_key, api_secret) are accepted too.
    A missing authType means hmac.

    Args:
        data: Plaintext credential fields

    Returns:
        Ed25519Credential or HmacCredential

    Raises:
        CredentialError: If the input is not an object, the auth type is unknown,
            or a required field is missing or empty
    """
    if not isinstance(data, Mapping):
        raise CredentialError("Credentials must be a JSON object")

    auth_type = _get_field(data, "authType", "auth_type") or AUTH_TYPE_HMAC
    if not isinstance(auth_type, str) or auth_type.lower() not in (AUTH_TYPE_ED25519, AUTH_TYPE_HMAC):
        raise CredentialError(f"Unsupported auth type: {auth_type!r}")
    auth_type = auth_type.lower()

    if auth_type == AUTH_TYPE_ED25519:
        required = {"apiKey": "api_key", "privateKey": "private_key"}
    else:
        required = {"apiKey": "api_key", "apiSecret": "api_secret"}

    values: Dict[str, str] = {}
    missing = []
    for camel, snake in required.items():
        value = _get_field(data, camel, snake)
        if not isinstance(value, str) or not value.strip():
            missing.append(camel)
        else:
            values[camel] = value.strip()
    if missing:
        raise CredentialError(
            f"Missing required fields for {auth_type} auth: {', '.join(missing)}"
        )

    if auth_type == AUTH_TYPE_ED25519:
        return Ed25519Credential(api_key=values["apiKey"], private_key=values["privateKey"])
    return HmacCredential(api_key=values["apiKey"], api_secret=values["apiSecret"])


def credential_env_var(exchange_id: str) -> str:
    """Environment variable holding the credentials for an exchange, e.g. BYBIT_CREDENTIALS."""
    return f"{exchange_id.upper()}_CREDENTIALS"


def load_credential_from_env(exchange_id: str, env_var: Optional[str] = None) -> Credential:
    """
    Load credentials for an exchange from an environment variable containing JSON.

    Args:
        exchange_id: Exchange identifier (e.g. "bybit", "htx")
        env_var: Override the environment variable name

    Returns:
        Ed25519Credential or HmacCredential

    Raises:
        CredentialError: If the variable is unset, not JSON, or incomplete
    """
    env_var = env_var or credential_env_var(exchange_id)
    creds_json = os.getenv(env_var)
    if not creds_json:
        raise CredentialError(f"Environment variable '{env_var}' is not set")

    try:
        creds_data = json.loads(creds_json)
    except json.JSONDecodeError as e:
        raise CredentialError(f"Invalid JSON in '{env_var}': {e}", cause=e) from e

    credential = credential_from_dict(creds_data)
    logging.info(f"Loaded {credential.auth_type} credentials for {exchange_id}")
    return credential
