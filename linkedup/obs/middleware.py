"""HTTP instrumentation: request metrics, one access log line per request."""

from __future__ import annotations

import time
from typing import Optional
from uuid import uuid4

from fastapi import Request
from jwt import InvalidTokenError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from linkedup.infra import jwt as jwt_helper
from linkedup.obs import logging as obs_logging
from linkedup.obs import metrics
from linkedup.settings import settings

REQUEST_ID_HEADER = "X-Request-Id"

_access_log = obs_logging.get_logger("linkedup.http")


def route_label(request: Request) -> str:
	"""Metric label for the request: the matched path template, never raw ids."""
	route = request.scope.get("route")
	template = getattr(route, "path", None)
	return template or "unmatched"


def log_user_id(request: Request) -> Optional[str]:
	"""Acting user for log context; an unverifiable token binds nothing."""
	authorization = request.headers.get("Authorization") or ""
	scheme, _, token = authorization.partition(" ")
	if scheme.lower() == "bearer" and token.strip():
		try:
			subject = jwt_helper.decode_access(token.strip()).get("sub")
		except InvalidTokenError:
			return None
		return str(subject) if subject is not None else None
	if settings.is_dev():
		return request.headers.get("X-User-Id") or None
	return None


class ObservabilityMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
		request.state.request_id = request_id
		if not settings.obs_enabled:
			response = await call_next(request)
			response.headers.setdefault(REQUEST_ID_HEADER, request_id)
			return response

		started = time.perf_counter()
		status_code = 500
		with obs_logging.log_context(
			request_id=request_id,
			route=request.url.path,
			user_id=log_user_id(request),
		):
			try:
				response = await call_next(request)
				status_code = response.status_code
			except Exception:
				_access_log.exception("http_request_failed", extra={"method": request.method})
				raise
			finally:
				elapsed = time.perf_counter() - started
				metrics.observe_request(route_label(request), request.method, status_code, elapsed)
				_access_log.info(
					"http_request",
					extra={"method": request.method, "status": status_code, "latency_ms": round(elapsed * 1000, 3)},
				)
		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response


def install(app) -> None:
	app.add_middleware(ObservabilityMiddleware)
