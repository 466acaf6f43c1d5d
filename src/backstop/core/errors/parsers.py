"""Builders for TransportError values from HTTP error responses.

The transport client is otherwise opaque to Backstop; these helpers cover
the three error body shapes the API produces:

- Standard error body: ``{"error": "CODE", "message": "...", "detail": ..., "request_id": "..."}``
- Validation body (422): ``{"detail": [{"loc": [...], "msg": "...", "type": "..."}]}``
- Anything else, reported as a generic ``API_ERROR``

and the adaptation of ``httpx`` exceptions into TransportError.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from backstop.utils.time import utc_now

from .codes import TransportCode
from .models import FieldError, TransportError

REQUEST_ID_HEADERS = ("x-request-id", "x-correlation-id", "x-trace-id")


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a Retry-After header value into seconds.

    Accepts delta-seconds (``"120"``) or an HTTP date. Returns None for
    missing or unparseable values; dates in the past yield 0.0.
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        return None
    return max(0.0, (when - (now or utc_now())).total_seconds())


def parse_field_errors(details: Any) -> tuple[FieldError, ...]:
    """Extract field-shaped entries from validation details.

    Recognizes both the FastAPI spelling (``loc``/``msg``/``type``) and the
    long spelling (``location``/``message``/``type``). Non-matching entries
    are skipped.
    """
    if not isinstance(details, list | tuple):
        return ()
    errors: list[FieldError] = []
    for entry in details:
        if not isinstance(entry, Mapping):
            continue
        location = entry.get("loc", entry.get("location", ()))
        message = entry.get("msg", entry.get("message"))
        if message is None:
            continue
        if isinstance(location, str):
            location = tuple(location.split("."))
        errors.append(
            FieldError(
                location=tuple(location or ()),
                message=str(message),
                type=entry.get("type"),
            )
        )
    return tuple(errors)


def _request_id(headers: Mapping[str, str] | None) -> str | None:
    if not headers:
        return None
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in REQUEST_ID_HEADERS:
        if lowered.get(name):
            return lowered[name]
    return None


def _retry_after(headers: Mapping[str, str] | None) -> float | None:
    if not headers:
        return None
    lowered = {k.lower(): v for k, v in headers.items()}
    return parse_retry_after(lowered.get("retry-after"))


def parse_error_response(
    status: int,
    payload: Any,
    headers: Mapping[str, str] | None = None,
) -> TransportError:
    """Build a TransportError from an HTTP error status and decoded body.

    Args:
        status: HTTP status code of the response.
        payload: Decoded JSON body (or raw text / None when undecodable).
        headers: Response headers, used for request id and Retry-After.

    Returns:
        TransportError describing the response.
    """
    request_id = _request_id(headers)
    retry_after = _retry_after(headers)

    if isinstance(payload, Mapping):
        if payload.get("error") and payload.get("message"):
            return TransportError(
                str(payload["message"]),
                status=status,
                code=str(payload["error"]),
                details=payload.get("detail"),
                request_id=payload.get("request_id") or request_id,
                retry_after=retry_after,
            )

        detail = payload.get("detail")
        if isinstance(detail, list) and detail:
            first = parse_field_errors(detail)
            first_message = first[0].message if first else "invalid input"
            return TransportError(
                f"Validation error: {first_message}",
                status=status,
                code=TransportCode.VALIDATION_ERROR,
                details=detail,
                request_id=request_id,
                retry_after=retry_after,
            )

        message = payload.get("message") or detail
        if message:
            return TransportError(
                str(message),
                status=status,
                code=TransportCode.API_ERROR,
                details=dict(payload),
                request_id=request_id,
                retry_after=retry_after,
            )

    if isinstance(payload, str) and payload.strip():
        message = payload.strip()
    else:
        message = f"Request failed with status {status}"
    return TransportError(
        message,
        status=status,
        code=TransportCode.API_ERROR,
        details=payload,
        request_id=request_id,
        retry_after=retry_after,
    )


def from_httpx_response(response: httpx.Response) -> TransportError:
    """Build a TransportError from an error ``httpx.Response``."""
    try:
        payload: Any = response.json()
    except httpx.StreamError:
        # Streamed and never read; the body is out of reach.
        payload = None
    except ValueError:
        payload = response.text
    return parse_error_response(response.status_code, payload, response.headers)


def coerce_transport_error(raw: object) -> object:
    """Return ``raw`` adapted to TransportError when it is an httpx error."""
    if isinstance(raw, httpx.HTTPError):
        return from_httpx_error(raw)
    return raw


def from_httpx_error(exc: httpx.HTTPError) -> TransportError:
    """Adapt an httpx exception into a TransportError.

    - ``HTTPStatusError``: parsed from its response body and headers
    - ``TimeoutException``: status 0, code TIMEOUT
    - any other ``HTTPError`` (connect, read, protocol...): status 0, NETWORK_ERROR
    """
    if isinstance(exc, httpx.HTTPStatusError):
        return from_httpx_response(exc.response)
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(
            f"Request timeout: {exc}" if str(exc) else "Request timeout",
            status=0,
            code=TransportCode.TIMEOUT,
        )
    return TransportError(
        "Network error - please check your connection",
        status=0,
        code=TransportCode.NETWORK_ERROR,
        details=str(exc) or type(exc).__name__,
    )
