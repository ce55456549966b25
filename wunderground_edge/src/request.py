"""
Encoding of Weather Underground PWS update requests.

Builds the GET URL for the PWS upload protocol::

    <update_url>?ID=<pws_id>&PASSWORD=<password>&dateutc=now[&<field>=<value>]*

Credentials and values are form-encoded as UTF-8 (space becomes ``+``).

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from urllib.parse import quote_plus

import httpx

from wunderground_edge.src.exceptions import FieldEncodingError

DEFAULT_UPDATE_URL = (
    "http://weatherstation.wunderground.com/weatherstation/updateweatherstation.php"
)

SUCCESS_MARKER = "success"
"""Prefix of the response body the server returns for an accepted update."""

_REDACTED = "***"


def _encode(text: str) -> str:
    try:
        return quote_plus(text, encoding="utf-8", errors="strict")
    except UnicodeEncodeError as exc:
        raise FieldEncodingError(f"Cannot encode {text!r} as UTF-8") from exc


def encode_field(field_name: str, value: Any) -> str:
    """Return the ``key=value`` pair for one variable.

    Raises:
        FieldEncodingError: If the value's text is not valid UTF-8 material.
    """
    return f"{field_name}={_encode(str(value))}"


def build_update_url(
    update_url: str,
    pws_id: str,
    pws_password: str,
    fields: Sequence[str],
) -> str:
    """Assemble the full update URL.

    Args:
        update_url: Endpoint without a query string.
        pws_id: Station ID.
        pws_password: Station password.
        fields: Pre-encoded ``key=value`` pairs, appended in order.

    Returns:
        The URL as a string.

    Raises:
        FieldEncodingError: If the credentials cannot be encoded.
        httpx.InvalidURL: If the result is not a valid URL.
    """
    parts = [
        f"ID={_encode(pws_id)}",
        f"PASSWORD={_encode(pws_password)}",
        "dateutc=now",
        *fields,
    ]
    url = f"{update_url}?{'&'.join(parts)}"
    httpx.URL(url)
    return url


def is_success_response(status_code: int, body: str | None) -> bool:
    """Return True when the server accepted the update."""
    return status_code == 200 and body is not None and body.startswith(SUCCESS_MARKER)


def redact_url(url: str) -> str:
    """Return *url* with the PASSWORD query value masked, for logging."""
    base, sep, query = url.partition("?")
    if not sep:
        return url
    params = [
        f"PASSWORD={_REDACTED}" if p.startswith("PASSWORD=") else p
        for p in query.split("&")
    ]
    return f"{base}?{'&'.join(params)}"
