"""Utility for logging backend requests when SHARED_TIMER_LOG_REQUESTS is enabled."""

import json
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

_SENSITIVE_PARAMS = {"auth", "access_token"}


def should_log_requests() -> bool:
    """Check if request logging is enabled via SHARED_TIMER_LOG_REQUESTS."""
    return os.getenv("SHARED_TIMER_LOG_REQUESTS", "").lower() == "true"


def _redact_sensitive_params(params: dict[str, Any]) -> dict[str, Any]:
    """Redact credentials passed as query parameters."""
    return {k: "***REDACTED***" if k.lower() in _SENSITIVE_PARAMS else v for k, v in params.items()}


def _build_url_with_params(url: str, params: dict[str, Any] | None) -> str:
    if not params:
        return url
    param_str = "&".join(f"{k}={v}" for k, v in sorted(_redact_sensitive_params(params).items()))
    return f"{url}?{param_str}" if "?" not in url else f"{url}&{param_str}"


def _format_payload(payload: Any) -> str:
    try:
        return json.dumps(payload, indent=2)
    except (TypeError, ValueError):
        return str(payload)


def log_backend_request(
    method: str,
    url: str,
    params: dict[str, Any] | None = None,
    payload: Any = None,
) -> None:
    """Log backend request details if SHARED_TIMER_LOG_REQUESTS is enabled.

    Args:
        method: HTTP method (GET, PUT, ...).
        url: Request URL.
        params: Query parameters; credentials are redacted.
        payload: Request body (optional).
    """
    if not should_log_requests():
        return

    log_parts = [f"{method} {_build_url_with_params(url, params)}"]
    if payload is not None:
        log_parts.append(f"Payload: {_format_payload(payload)}")

    logger.info("Backend Request:\n" + "\n".join(log_parts))
