"""HTTP status mapping for connector service responses."""

import json
import logging
import time
from email.utils import parsedate_to_datetime
from typing import Any

from connector.errors.exceptions import (
    AuthError,
    ClientRequestError,
    HttpResponseError,
    MalformedResponseError,
    ServerError,
    ThrottlingError,
)

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY = 500

# (label, exception class) per status code
_STATUS_MAP: dict[int, tuple[str, type[HttpResponseError]]] = {
    400: ("Bad request", ClientRequestError),
    401: ("Unauthorized", AuthError),
    403: ("Forbidden", ClientRequestError),
    404: ("Not found", ClientRequestError),
    429: ("Rate limited", ThrottlingError),
    500: ("Server error", ServerError),
    502: ("Bad gateway", ServerError),
    503: ("Service unavailable", ServerError),
    504: ("Gateway timeout", ServerError),
}


def parse_retry_after(value: str | None) -> float | None:
    """
    Parse a Retry-After header value into seconds.

    Accepts delta-seconds ("5", "1.5") or an HTTP-date. Returns None when the
    header is missing or unparseable; negative values clamp to 0.
    """
    if not value:
        return None

    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        retry_date = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_date is None:
        return None
    return max(0.0, retry_date.timestamp() - time.time())


def _decode_error_payload(body: str) -> dict[str, Any] | None:
    if not body:
        return None
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def classify_api_error(
    status: int,
    url: str,
    body: str = "",
    retry_after: float | None = None,
) -> HttpResponseError:
    """Build the typed error for a non-success status code."""
    payload = _decode_error_payload(body)
    truncated = body[:MAX_LOGGED_BODY] + "..." if len(body) > MAX_LOGGED_BODY else body

    entry = _STATUS_MAP.get(status)
    if entry:
        label, error_cls = entry
    elif 400 <= status < 500:
        label, error_cls = "Client error", ClientRequestError
    elif status >= 500:
        label, error_cls = "Server error", ServerError
    else:
        # 1xx and 3xx are never expected from the service
        label, error_cls = "Unexpected response", MalformedResponseError

    message = f"{label} ({status}): {url}"
    if error_cls is ThrottlingError:
        return ThrottlingError(
            message,
            retry_after=retry_after,
            status_code=status,
            response_body=truncated,
            error_payload=payload,
        )
    return error_cls(
        message,
        status_code=status,
        response_body=truncated,
        error_payload=payload,
    )


def raise_for_status(response: Any) -> None:
    """
    Raise the classified error for a non-2xx response.

    ``response`` is any object exposing ``status``, ``url``, ``retry_after``
    and ``text()`` (see ``connector.pipeline.request.HttpResponse``).
    """
    if 200 <= response.status < 300:
        return

    error = classify_api_error(
        response.status,
        response.url,
        response.text(),
        retry_after=response.retry_after,
    )
    logger.debug(
        "Classified error response",
        extra={
            "http_status": response.status,
            "http_url": response.url,
            "error_category": error.category.value,
            "error_type": type(error).__name__,
        },
    )
    raise error


__all__ = ["classify_api_error", "parse_retry_after", "raise_for_status"]
