"""
Signature engine.

The signing algorithm is chosen by the credential variant. The text encoding of
the signature (hex or base64) is chosen by the exchange, independently.
"""
from typing import Literal
import base64
import hashlib
import hmac
import logging

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from .credentials import Credential, Ed25519Credential, HmacCredential
from .errors import SigningError


SignatureEncoding = Literal["hex", "base64"]

ED25519_SEED_LENGTH = 32


def _load_ed25519_key(private_key_hex: str) -> Ed25519PrivateKey:
    try:
        seed = bytes.fromhex(private_key_hex)
    except ValueError as e:
        raise SigningError("Ed25519 private key is not valid hex", cause=e) from e

    if len(seed) != ED25519_SEED_LENGTH:
        raise SigningError(
            f"Ed25519 private key must be {ED25519_SEED_LENGTH} bytes, got {len(seed)}"
        )

    try:
        return Ed25519PrivateKey.from_private_bytes(seed)
    except ValueError as e:
        raise SigningError("Ed25519 private key was rejected", cause=e) from e


def sign(credential: Credential, payload: bytes) -> bytes:
    """
    Sign a payload with the algorithm matching the credential variant.

    Args:
        credential: Ed25519Credential or HmacCredential
        payload: Canonical message bytes

    Returns:
        Raw signature bytes (64 bytes for Ed25519, 32 bytes for HMAC-SHA256)

    Raises:
        SigningError: If the key material is malformed or the credential type is unknown
    """
    if isinstance(credential, Ed25519Credential):
        key = _load_ed25519_key(credential.private_key)
        return key.sign(payload)
    if isinstance(credential, HmacCredential):
        return hmac.new(credential.api_secret.encode("utf-8"), payload, hashlib.sha256).digest()
    raise SigningError(f"Unsupported credential type: {type(credential).__name__}")


def encode_signature(signature: bytes, encoding: SignatureEncoding) -> str:
    """Encode raw signature bytes as lowercase hex or standard base64."""
    if encoding == "hex":
        return signature.hex()
    if encoding == "base64":
        return base64.b64encode(signature).decode("ascii")
    raise ValueError(f"Unknown signature encoding: {encoding}")


def sign_and_encode(credential: Credential, payload: bytes, encoding: SignatureEncoding) -> str:
    """Sign a payload and return the signature in the requested text encoding."""
    signature = encode_signature(sign(credential, payload), encoding)
    logging.debug(f"Signed {len(payload)} byte payload with {credential.auth_type} ({encoding})")
    return signature
