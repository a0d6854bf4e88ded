"""
Authenticated request dispatcher.

An AuthenticatedClient holds one credential and one exchange protocol. Each call
runs canonicalize -> sign -> dispatch -> parse, using a single timestamp.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple, Union
import json
import logging
import os

from .canonical import CanonicalRequest
from .credentials import Credential, is_valid
from .errors import AuthError, TransportError
from .signing import sign
from .transport import RequestsTransport, Transport


LOG_SIGNING_PAYLOADS = os.getenv("EXCHANGE_LOG_SIGNING_PAYLOADS", "false").lower() == "true"

DebugHook = Callable[[CanonicalRequest, bytes], None]


class ExchangeProtocol(Protocol):
    """Protocol defining one exchange's canonicalization and envelope rules."""

    name: str
    base_url: str

    def new_timestamp(self) -> Union[str, int]:
        """Current wall-clock timestamp in the exchange's format."""
        ...

    def build_request(
        self,
        credential: Credential,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]],
        body: Optional[Mapping[str, Any]],
        timestamp: Union[str, int]
    ) -> CanonicalRequest:
        """Assemble the request that will be signed and transmitted."""
        ...

    def canonicalize(self, credential: Credential, request: CanonicalRequest) -> bytes:
        """Build the signature payload."""
        ...

    def encode_signature(self, signature: bytes) -> str:
        """Encode raw signature bytes for transport."""
        ...

    def attach_signature(
        self,
        credential: Credential,
        request: CanonicalRequest,
        signature: str
    ) -> Tuple[Dict[str, str], str]:
        """Return the (headers, query string) carrying identity, timestamp and signature."""
        ...

    def encode_body(self, request: CanonicalRequest) -> Optional[bytes]:
        """Raw body bytes to transmit, or None."""
        ...

    def unwrap_envelope(self, envelope: Mapping[str, Any]) -> Any:
        """Return the success payload or raise RemoteApiError."""
        ...


def log_signing_payload(request: CanonicalRequest, payload: bytes) -> None:
    """Debug hook that logs canonical payloads. Never sees secrets or signatures."""
    logging.debug(f"Signature payload for {request.method} {request.path}: {payload.decode('utf-8', 'replace')}")


@dataclass(frozen=True)
class AuthenticatedClient:
    """
    Immutable client for one exchange and one credential.

    Attributes:
        credential: Credential used for every request
        protocol: Exchange canonicalization and envelope rules
        transport: HTTP call primitive
        debug_hook: Optional callback receiving each canonical request and payload
    """

    credential: Optional[Credential]
    protocol: ExchangeProtocol
    transport: Transport = field(default_factory=RequestsTransport)
    debug_hook: Optional[DebugHook] = field(
        default_factory=lambda: log_signing_payload if LOG_SIGNING_PAYLOADS else None
    )

    def has_valid_credentials(self) -> bool:
        return is_valid(self.credential)

    def authenticated_get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Make a signed GET request and return the unwrapped payload.

        Args:
            path: API endpoint path
            params: Query parameters

        Returns:
            The envelope's success payload

        Raises:
            AuthError: If no usable credential is loaded
            SigningError: If the key material is malformed
            TransportError: On connection failure or an unparseable error response
            RemoteApiError: If the exchange returned a failure envelope
        """
        return self._request("GET", path, params=params)

    def authenticated_post(self, path: str, body: Optional[Mapping[str, Any]] = None) -> Any:
        """Make a signed POST request with a JSON body and return the unwrapped payload."""
        return self._request("POST", path, body=body)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Optional[Mapping[str, Any]] = None
    ) -> Any:
        if not is_valid(self.credential):
            logging.error(f"{self.protocol.name}: invalid or missing credentials for {method} {path}")
            raise AuthError("no credentials")
        credential: Credential = self.credential  # type: ignore[assignment]

        timestamp = self.protocol.new_timestamp()
        request = self.protocol.build_request(credential, method, path, params, body, timestamp)
        payload = self.protocol.canonicalize(credential, request)
        signature = self.protocol.encode_signature(sign(credential, payload))
        if self.debug_hook is not None:
            self.debug_hook(request, payload)

        headers, query = self.protocol.attach_signature(credential, request, signature)
        url = f"{self.protocol.base_url}{path}"
        response = self.transport.execute(
            method, url, headers, query, self.protocol.encode_body(request)
        )
        return self._parse_response(method, url, response.status_code, response.body)

    def _parse_response(self, method: str, url: str, status_code: int, body: bytes) -> Any:
        ok = 200 <= status_code < 300
        try:
            envelope = json.loads(body)
        except ValueError as e:
            logging.error(f"{self.protocol.name}: unparseable response from {method} {url} (HTTP {status_code})")
            raise TransportError(
                f"Unparseable response from {method} {url} (HTTP {status_code})",
                status_code=status_code,
                body=body,
                cause=e
            ) from e

        if not isinstance(envelope, dict):
            raise TransportError(
                f"Unexpected response from {method} {url} (HTTP {status_code})",
                status_code=status_code,
                body=body
            )

        result = self.protocol.unwrap_envelope(envelope)
        if not ok:
            raise TransportError(f"HTTP {status_code} from {method} {url}", status_code=status_code, body=body)
        return result
