"""Request ID helper for endpoints.

Relies on observability middleware binding the request id into the logging
context; falls back to the inbound header when the middleware is disabled.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from linkedup.obs import logging as obs_logging


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    rid = obs_logging.current_request_id()
    if rid:
        return rid
    if request is not None:
        header = request.headers.get("x-request-id")
        if header:
            return header
    return default
