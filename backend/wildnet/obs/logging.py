"""JSON logging with request context and redaction of personal data."""

from __future__ import annotations

import json
import logging
import random
import re
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from wildnet.settings import settings

_REQUEST_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("obs_request_context", default={})

# Context field -> JSON key.
_CONTEXT_KEYS = {"request_id": "request_id", "route": "route", "user_id": "user_id", "client_ip": "ip"}

# Credentials, plus profile addresses and coordinates.
_SENSITIVE_KEY = re.compile(
	r"(?:^|_)(?:token|secret|authorization|password|email|address|location|region|geo|lat|lng|lon|latitude|longitude)(?:_|$)",
	re.I,
)

_MAX_STRING_LENGTH = 256
_MAX_COLLECTION_ITEMS = 10
_ELLIPSIS = "…"

_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "taskName"}


def bind_context(
	*,
	request_id: Optional[str] = None,
	route: Optional[str] = None,
	user_id: Optional[str] = None,
	client_ip: Optional[str] = None,
) -> Token:
	"""Layer the given fields over the current request context; undo with ``reset_context``."""
	fields = {"request_id": request_id, "route": route, "user_id": user_id, "client_ip": client_ip}
	merged = dict(_REQUEST_CONTEXT.get())
	merged.update({key: value for key, value in fields.items() if value is not None})
	return _REQUEST_CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_REQUEST_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _REQUEST_CONTEXT.get().get("request_id")


def _scrub(key: str, value: Any, depth: int = 0) -> Any:
	if _SENSITIVE_KEY.search(key):
		return "[redacted]"
	if isinstance(value, str):
		return value if len(value) <= _MAX_STRING_LENGTH else value[:_MAX_STRING_LENGTH] + _ELLIPSIS
	if value is None or isinstance(value, (bool, int, float)):
		return value
	if depth >= 3:
		return str(value)
	if isinstance(value, Mapping):
		items = list(value.items())
		scrubbed = {str(k): _scrub(str(k), v, depth + 1) for k, v in items[:_MAX_COLLECTION_ITEMS]}
		if len(items) > _MAX_COLLECTION_ITEMS:
			scrubbed[_ELLIPSIS] = f"+{len(items) - _MAX_COLLECTION_ITEMS} keys"
		return scrubbed
	if isinstance(value, (list, tuple, set, frozenset)):
		items = list(value)
		scrubbed_items = [_scrub(key, item, depth + 1) for item in items[:_MAX_COLLECTION_ITEMS]]
		if len(items) > _MAX_COLLECTION_ITEMS:
			scrubbed_items.append(_ELLIPSIS)
		return scrubbed_items
	return str(value)


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per record: base fields, request context, then scrubbed ``extra`` fields."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for field, value in _REQUEST_CONTEXT.get().items():
			payload[_CONTEXT_KEYS[field]] = value
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		for key, value in record.__dict__.items():
			if key not in _RESERVED_ATTRS and not key.startswith("_"):
				payload[key] = _scrub(key, value)
		return json.dumps(payload, separators=(",", ":"))


class InfoSamplingFilter(logging.Filter):
	"""Keep a ``obs_log_sampling_rate_info`` share of info records; other levels always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = min(1.0, max(0.0, settings.obs_log_sampling_rate_info))
		return rate >= 1.0 or random.random() < rate


def configure_logging() -> None:
	"""Route every logger through one JSON handler on the root logger."""
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
