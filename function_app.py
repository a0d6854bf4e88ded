import azure.functions as func
import json
import logging
import os
from typing import Any, Dict, Optional
from validate import validate_balance_request, validate_deposit_request
from exchanges import CredentialError, ExchangeClientError, create_client, create_huobi_client

app = func.FunctionApp()

# Get password from environment (if empty, no password check needed)
WEBHOOK_PASSWORD = os.getenv("WEBHOOK_PASSWORD", "")


def check_password(req: func.HttpRequest) -> tuple[bool, Optional[str]]:
    """
    Check if the request has the correct password.

    Args:
        req: HTTP request object

    Returns:
        Tuple of (is_valid, error_message)
    """
    # If no password is configured, allow all requests
    if not WEBHOOK_PASSWORD:
        return True, None

    # Check for password in Authorization header (Bearer token style)
    auth_header = req.headers.get('Authorization')
    if auth_header and auth_header.startswith('Bearer '):
        token = auth_header[7:]  # Remove 'Bearer ' prefix
        if token == WEBHOOK_PASSWORD:
            return True, None

    # Check for password in custom X-Webhook-Password header
    password_header = req.headers.get('X-Webhook-Password')
    if password_header == WEBHOOK_PASSWORD:
        return True, None

    # Check for password in query parameter
    password_param = req.params.get('password')
    if password_param == WEBHOOK_PASSWORD:
        return True, None

    return False, "Unauthorized: Invalid or missing password"


def _json_response(body: Dict[str, Any], status_code: int) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body),
        status_code=status_code,
        mimetype="application/json"
    )


def _error_response(error: Exception, exchange_id: str) -> func.HttpResponse:
    """Map exchange client errors to HTTP responses."""
    if isinstance(error, CredentialError):
        logging.error(f"Credential error for {exchange_id}: {error}")
        return _json_response({"status": "error", "message": f"Credentials not configured: {error}"}, 500)
    logging.error(f"Exchange request failed for {exchange_id}: {type(error).__name__}: {error}")
    return _json_response({"status": "error", "message": f"Exchange request failed: {error}"}, 502)


def handle_balances(req: func.HttpRequest) -> func.HttpResponse:
    """
    Return normalized balances for the exchange named in the "exchange" query parameter.

    Args:
        req: HTTP request object

    Returns:
        200 with {"status": "ok", "data": [...]}, or a JSON error response
    """
    logging.info('Exchange balances request received')

    # Check password first
    password_valid, password_error = check_password(req)
    if not password_valid:
        logging.warning(f"Password check failed: {password_error}")
        return _json_response({"error": password_error}, 401)

    params: Dict[str, Any] = dict(req.params)
    request_valid, request_error = validate_balance_request(params)
    if not request_valid:
        logging.error(f"Request validation failed: {request_error}")
        return _json_response({"error": request_error}, 400)

    exchange_id = params["exchange"].lower()
    try:
        client = create_client(exchange_id)
        result = client.get_balances()
    except ExchangeClientError as e:
        return _error_response(e, exchange_id)

    logging.info(f"Returning {len(result['data'])} balance(s) for {exchange_id}")
    return _json_response(result, 200)


def handle_deposit_addresses(req: func.HttpRequest) -> func.HttpResponse:
    """
    Return deposit addresses for a currency on Huobi/HTX.

    Args:
        req: HTTP request object with "exchange" and "currency" query parameters

    Returns:
        200 with {"status": "ok", "data": [...]}, or a JSON error response
    """
    # Check password first
    password_valid, password_error = check_password(req)
    if not password_valid:
        logging.warning(f"Password check failed: {password_error}")
        return _json_response({"error": password_error}, 401)

    params: Dict[str, Any] = dict(req.params)
    request_valid, request_error = validate_deposit_request(params)
    if not request_valid:
        logging.error(f"Request validation failed: {request_error}")
        return _json_response({"error": request_error}, 400)

    exchange_id = params["exchange"].lower()
    currency = params["currency"].lower()
    try:
        client = create_huobi_client(exchange_id)
        addresses = client.get_deposit_addresses(currency)
    except ExchangeClientError as e:
        return _error_response(e, exchange_id)

    logging.info(f"Found {len(addresses)} deposit address(es) for {currency} on {exchange_id}")
    return _json_response({"status": "ok", "data": addresses}, 200)


@app.route(route="exchangeBalances", auth_level=func.AuthLevel.ANONYMOUS)
def exchangeBalances(req: func.HttpRequest) -> func.HttpResponse:
    return handle_balances(req)


@app.route(route="exchangeDepositAddresses", auth_level=func.AuthLevel.ANONYMOUS)
def exchangeDepositAddresses(req: func.HttpRequest) -> func.HttpResponse:
    return handle_deposit_addresses(req)
