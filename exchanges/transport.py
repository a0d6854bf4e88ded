"""
HTTP transport used by the authenticated clients.
"""
from typing import Dict, NamedTuple, Optional, Protocol
import logging
import os

import requests

from .errors import TransportError


HTTP_TIMEOUT = float(os.getenv("EXCHANGE_HTTP_TIMEOUT", "30"))


class HttpResponse(NamedTuple):
    status_code: int
    body: bytes


class Transport(Protocol):
    """Protocol for the HTTP call primitive."""

    def execute(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        query: str = "",
        body: Optional[bytes] = None
    ) -> HttpResponse:
        """
        Send one HTTP request.

        Args:
            method: HTTP method
            url: Full URL without query string
            headers: Request headers
            query: Pre-encoded query string, sent byte-for-byte
            body: Raw request body

        Returns:
            HttpResponse with status code and raw body

        Raises:
            TransportError: If the request could not be completed
        """
        ...


class RequestsTransport:
    """Transport backed by requests.

    Without a session each call goes through requests.request, which opens and
    closes its own connection.
    """

    def __init__(self, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.timeout = timeout if timeout is not None else HTTP_TIMEOUT
        self.session = session

    def execute(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        query: str = "",
        body: Optional[bytes] = None
    ) -> HttpResponse:
        # A string query is appended as-is, so requests does not re-encode
        # the parameters that were signed.
        logging.debug(f"{method} {url}")
        try:
            requester = self.session if self.session is not None else requests
            response = requester.request(
                method,
                url,
                headers=headers,
                params=query or None,
                data=body,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logging.error(f"{method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}", cause=e) from e

        return HttpResponse(status_code=response.status_code, body=response.content)
