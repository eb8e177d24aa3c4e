"""JSON logging for LinkedUp.

Every record carries the service identity plus whatever request context is
bound (request id, route, acting user). Extra fields are
redacted when they name profile data, coordinates or message bodies, and long
values are clipped before they reach the sink.
"""

from __future__ import annotations

import json
import logging
import random
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from linkedup.settings import settings

_LOGGER_NAME = "linkedup"
_CONTEXT_FIELDS = ("request_id", "route", "user_id")
_context: Dict[str, ContextVar[Optional[str]]] = {
	name: ContextVar(f"linkedup_log_{name}", default=None) for name in _CONTEXT_FIELDS
}

# matched against the underscore-separated words of an extra key
REDACTED_KEYS = (
	"token",
	"secret",
	"authorization",
	"email",
	"phone",
	"photo",
	"bio",
	"text",
	"location",
	"lat",
	"lng",
)
_REDACTED = "[redacted]"
_CLIP = 256
_MAX_ITEMS = 10

_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


@contextmanager
def log_context(**fields: Optional[str]) -> Iterator[None]:
	"""Bind request fields for log records emitted inside the block."""
	unknown = set(fields) - set(_context)
	if unknown:
		raise ValueError(f"unknown log context field(s): {sorted(unknown)}")
	tokens = [(_context[name], _context[name].set(value)) for name, value in fields.items() if value is not None]
	try:
		yield
	finally:
		for var, token in reversed(tokens):
			var.reset(token)


def current_request_id() -> Optional[str]:
	return _context["request_id"].get()


def _sensitive(key: str) -> bool:
	return any(word in REDACTED_KEYS for word in key.lower().split("_"))


def scrub(key: str, value: Any) -> Any:
	if _sensitive(key):
		return _REDACTED
	if isinstance(value, str):
		return value if len(value) <= _CLIP else value[:_CLIP] + "..."
	if isinstance(value, dict):
		items = list(value.items())
		cleaned = {str(k): scrub(str(k), v) for k, v in items[:_MAX_ITEMS]}
		if len(items) > _MAX_ITEMS:
			cleaned["..."] = f"+{len(items) - _MAX_ITEMS} keys"
		return cleaned
	if isinstance(value, (list, tuple, set)):
		items = list(value)
		cleaned_items = [scrub(key, item) for item in items[:_MAX_ITEMS]]
		if len(items) > _MAX_ITEMS:
			cleaned_items.append(f"+{len(items) - _MAX_ITEMS} more")
		return cleaned_items
	return value


class JSONLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:  # noqa: A003
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"event": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
		}
		if settings.git_commit:
			payload["commit"] = settings.git_commit
		for name, var in _context.items():
			value = var.get()
			if value:
				payload[name] = value
		for key, value in record.__dict__.items():
			if key in _STANDARD_ATTRS or key in payload:
				continue
			payload[key] = scrub(key, value)
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Keep a fraction of INFO records; everything else passes."""

	def __init__(self, rate: Optional[float] = None) -> None:
		super().__init__()
		self._rate = rate

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info if self._rate is None else self._rate
		rate = max(0.0, min(1.0, rate))
		return rate >= 1.0 or random.random() < rate


def configure_logging() -> logging.Logger:
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
	return get_logger()


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
