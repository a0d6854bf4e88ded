"""
Unit tests for the authenticated request dispatcher.
"""
from typing import Any, List
from unittest.mock import Mock, patch

import pytest

from exchanges.bybit import BybitProtocol
from exchanges.canonical import CanonicalRequest
from exchanges.client import AuthenticatedClient, log_signing_payload
from exchanges.credentials import Ed25519Credential, HmacCredential
from exchanges.errors import AuthError, RemoteApiError, SigningError, TransportError


@pytest.fixture
def client(hmac_credential: HmacCredential, fake_transport) -> AuthenticatedClient:
    return AuthenticatedClient(hmac_credential, BybitProtocol(), transport=fake_transport, debug_hook=None)


class TestCredentialChecks:
    """Calls without a usable credential never reach the network."""

    @pytest.mark.parametrize("credential", [
        None,
        HmacCredential(api_key="", api_secret="secret"),
        Ed25519Credential(api_key="key", private_key=""),
    ])
    def test_rejected_before_network(self, credential: Any, fake_transport) -> None:
        client = AuthenticatedClient(credential, BybitProtocol(), transport=fake_transport)

        assert client.has_valid_credentials() is False
        with pytest.raises(AuthError, match="no credentials"):
            client.authenticated_get("/v5/account/info")
        with pytest.raises(AuthError, match="no credentials"):
            client.authenticated_post("/v5/x", {"a": "1"})
        assert fake_transport.calls == []

    def test_signing_error_before_network(self, fake_transport) -> None:
        client = AuthenticatedClient(
            Ed25519Credential(api_key="key", private_key="not-hex"), BybitProtocol(), transport=fake_transport
        )

        with pytest.raises(SigningError):
            client.authenticated_get("/v5/account/info")
        assert fake_transport.calls == []


class TestTimestamp:
    """One timestamp per call, shared by the signature and the transport request."""

    def test_timestamp_read_once(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue({"retCode": 0, "result": {}})

        with patch.object(BybitProtocol, "new_timestamp", side_effect=[1700000000000, 1800000000000]) as mock_timestamp:
            client.authenticated_get("/v5/x", {"a": "1"})

        assert mock_timestamp.call_count == 1
        assert fake_transport.calls[0]["headers"]["X-BAPI-TIMESTAMP"] == "1700000000000"

    def test_debug_hook_sees_transmitted_request(self, hmac_credential: HmacCredential, fake_transport) -> None:
        seen: List[Any] = []
        client = AuthenticatedClient(
            hmac_credential,
            BybitProtocol(),
            transport=fake_transport,
            debug_hook=lambda request, payload: seen.append((request, payload))
        )
        fake_transport.queue({"retCode": 0, "result": {}})

        with patch("exchanges.bybit.time.time", return_value=1700000000.0):
            client.authenticated_get("/v5/x", {"b": "2", "a": "1"})

        request, payload = seen[0]
        assert request == CanonicalRequest("GET", "/v5/x", 1700000000000, query_params={"a": "1", "b": "2"})
        assert payload == b"1700000000000K15000a=1&b=2"
        assert str(request.timestamp) == fake_transport.calls[0]["headers"]["X-BAPI-TIMESTAMP"]


class TestResponseParsing:
    """Envelope unwrapping and transport failures."""

    def test_success(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue({"retCode": 0, "result": {"x": 1}})
        assert client.authenticated_get("/v5/x") == {"x": 1}

    def test_remote_error_message_verbatim(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue({"retCode": 10001, "retMsg": "bad sig"})

        with pytest.raises(RemoteApiError) as exc_info:
            client.authenticated_get("/v5/x")

        assert str(exc_info.value) == "bad sig"
        assert exc_info.value.code == 10001

    def test_transport_error_propagates(self, client: AuthenticatedClient, fake_transport) -> None:
        cause = ConnectionError("connection refused")
        fake_transport.queue(TransportError("GET failed", cause=cause))

        with pytest.raises(TransportError) as exc_info:
            client.authenticated_get("/v5/x")

        assert exc_info.value.cause is cause

    def test_non_2xx_unparseable(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue(b"<html>502 Bad Gateway</html>", status_code=502)

        with pytest.raises(TransportError) as exc_info:
            client.authenticated_get("/v5/x")

        assert exc_info.value.status_code == 502
        assert exc_info.value.body == b"<html>502 Bad Gateway</html>"

    def test_non_2xx_with_error_envelope(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue({"retCode": 10002, "retMsg": "invalid request, please check your server timestamp"}, status_code=403)

        with pytest.raises(RemoteApiError, match="server timestamp"):
            client.authenticated_get("/v5/x")

    def test_non_2xx_with_success_envelope(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue({"retCode": 0, "result": {}}, status_code=500)

        with pytest.raises(TransportError, match="HTTP 500"):
            client.authenticated_get("/v5/x")

    def test_2xx_unparseable(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue(b"not json")

        with pytest.raises(TransportError, match="Unparseable response"):
            client.authenticated_get("/v5/x")

    def test_non_object_json(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue([1, 2, 3])

        with pytest.raises(TransportError, match="Unexpected response"):
            client.authenticated_get("/v5/x")

    def test_single_attempt(self, client: AuthenticatedClient, fake_transport) -> None:
        fake_transport.queue({"retCode": 10006, "retMsg": "Too many visits!"})
        fake_transport.queue({"retCode": 0, "result": {}})

        with pytest.raises(RemoteApiError):
            client.authenticated_get("/v5/x")
        assert len(fake_transport.calls) == 1


class TestClientValue:

    def test_immutable(self, client: AuthenticatedClient) -> None:
        with pytest.raises(AttributeError):
            client.credential = HmacCredential(api_key="other", api_secret="other")  # type: ignore[misc]

    def test_repr_hides_secret(self, client: AuthenticatedClient) -> None:
        assert "test-secret" not in repr(client)

    def test_log_signing_payload_hook(self) -> None:
        request = CanonicalRequest("GET", "/v5/x", 1)
        with patch("exchanges.client.logging.debug") as mock_debug:
            log_signing_payload(request, b"1K15000")

        message = mock_debug.call_args[0][0]
        assert "GET /v5/x" in message
        assert "1K15000" in message

    def test_default_hook_disabled(self, hmac_credential: HmacCredential) -> None:
        with patch("exchanges.client.LOG_SIGNING_PAYLOADS", False):
            client = AuthenticatedClient(hmac_credential, BybitProtocol(), transport=Mock())
        assert client.debug_hook is None
