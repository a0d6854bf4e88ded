"""
Canonical request shape and the encoding helpers shared by exchange protocols.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import quote
import json


# Characters left unescaped on top of quote()'s letters, digits and "_.-~",
# matching JavaScript's encodeURIComponent.
URI_COMPONENT_SAFE = "!*'()"


@dataclass(frozen=True)
class CanonicalRequest:
    """
    A logical request with everything that is covered by the signature.

    Attributes:
        method: "GET" or "POST"
        path: API endpoint path
        timestamp: Exchange-specific timestamp (int milliseconds or formatted string)
        query_params: Query parameters sorted by key
        body_params: JSON body object, or None when there is no body
    """

    method: str
    path: str
    timestamp: Union[str, int]
    query_params: Dict[str, str] = field(default_factory=dict)
    body_params: Optional[Dict[str, Any]] = None


def param_str(value: Any) -> str:
    """Stringify a parameter value, writing booleans as "true"/"false"."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_uri_component(value: Any) -> str:
    """Percent-encode a value the way JavaScript's encodeURIComponent does."""
    return quote(param_str(value), safe=URI_COMPONENT_SAFE)


def sorted_params(params: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Drop None values, stringify the rest and sort by key."""
    if not params:
        return {}
    return {key: param_str(params[key]) for key in sorted(params) if params[key] is not None}


def sorted_query_string(params: Optional[Mapping[str, Any]], encode_keys: bool = False) -> str:
    """
    Build "key=value" pairs sorted by key and joined by "&".

    Values are always percent-encoded; keys only when encode_keys is set.
    An empty mapping gives an empty string.
    """
    pairs = []
    for key, value in sorted_params(params).items():
        encoded_key = encode_uri_component(key) if encode_keys else key
        pairs.append(f"{encoded_key}={encode_uri_component(value)}")
    return "&".join(pairs)


def compact_json(body: Optional[Mapping[str, Any]]) -> str:
    """Serialize a body the way JSON.stringify does; empty string for no body."""
    if not body:
        return ""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)
