"""Shared HTTP helpers used to fetch the upstream release feed.

Encapsulates request/timeout/retry handling so callers get a plain
``(status, headers, payload)`` tuple and never see ``requests`` exceptions.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from relbisect.common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from relbisect.constants import Constants

logger = logging.getLogger(__name__)


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries, with DEBUG traces.

    Returns:
        Tuple of (status_code, headers_dict, body_text). A status of 0 means
        every attempt failed; the body then carries the last error.
    """
    safe_target = safe_url(url)
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )

                if response.status_code >= 500:
                    last_exception = f"server error {response.status_code}"
                    continue

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response ok",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            outcome="success",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                return response.status_code, dict(response.headers), response.text

            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response with DEBUG traces.

    Args:
        url: Target URL
        headers: Optional request headers
        **kwargs: Additional requests.get parameters

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)

    if status_code == 200 and text:
        try:
            parsed = json.loads(text)
            if is_debug_enabled(logger):
                logger.debug(
                    "Parsed JSON response",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="success",
                        status_code=status_code,
                        target=safe_url(url)
                    )
                )
            return status_code, response_headers, parsed
        except json.JSONDecodeError:
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON decode error",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="json_decode_error",
                        status_code=status_code,
                        target=safe_url(url)
                    )
                )
            return status_code, response_headers, None

    return status_code, response_headers, None
