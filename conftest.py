"""
Configuration file for pytest.
"""
import json
import sys
import os
from typing import Any, Dict, List, Optional

import pytest

# Add the project root to Python path so tests can import modules
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_root)

from exchanges.credentials import Ed25519Credential, HmacCredential  # noqa: E402
from exchanges.transport import HttpResponse  # noqa: E402

HMAC_SECRET = "test-secret"
# RFC 8032 test vector 2 seed
ED25519_SEED_HEX = "4ccd089b28ff96da9db6c346ec114e0f5b8a319f35aba624da8cf6ed4fb8a6fb"


class FakeTransport:
    """Records requests and replays queued responses."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.responses: List[Any] = []

    def queue(self, payload: Any, status_code: int = 200) -> None:
        """Queue a JSON payload, raw bytes, or an exception to raise."""
        self.responses.append((payload, status_code))

    def execute(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        query: str = "",
        body: Optional[bytes] = None
    ) -> HttpResponse:
        self.calls.append({"method": method, "url": url, "headers": headers, "query": query, "body": body})
        payload, status_code = self.responses.pop(0)
        if isinstance(payload, Exception):
            raise payload
        if not isinstance(payload, bytes):
            payload = json.dumps(payload).encode("utf-8")
        return HttpResponse(status_code=status_code, body=payload)


@pytest.fixture
def hmac_credential() -> HmacCredential:
    return HmacCredential(api_key="K1", api_secret=HMAC_SECRET)


@pytest.fixture
def ed25519_credential() -> Ed25519Credential:
    return Ed25519Credential(api_key="K1", private_key=ED25519_SEED_HEX)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()
