"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"linkedup_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"linkedup_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"linkedup_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"linkedup_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

LINK_REQUESTS = Counter(
	"linkedup_link_requests_total",
	"Link-up requests by outcome",
	["outcome"],
)

UNLINKS = Counter(
	"linkedup_unlinks_total",
	"Relationships removed between two users",
)

CASCADE_DELETES = Counter(
	"linkedup_cascade_deletes_total",
	"Account cascade deletions by result",
	["result"],
)

CASCADE_RECORDS_REMOVED = Counter(
	"linkedup_cascade_records_removed_total",
	"Relationship records removed by cascade deletion",
)

CHAT_MESSAGES_SENT = Counter(
	"linkedup_chat_messages_sent_total",
	"Chat messages appended to rooms",
)

LIVE_SUBSCRIPTIONS = Gauge(
	"linkedup_live_subscriptions",
	"Open live subscriptions per feed",
	["feed"],
)

STORE_ERRORS = Counter(
	"linkedup_store_errors_total",
	"Document store failures surfaced to callers",
	["operation"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_link_request(outcome: str) -> None:
	LINK_REQUESTS.labels(outcome=outcome).inc()


def inc_unlink() -> None:
	UNLINKS.inc()


def inc_cascade_delete(result: str, removed: int = 0) -> None:
	CASCADE_DELETES.labels(result=result).inc()
	if removed:
		CASCADE_RECORDS_REMOVED.inc(removed)


def inc_chat_send() -> None:
	CHAT_MESSAGES_SENT.inc()


def subscription_opened(feed: str) -> None:
	LIVE_SUBSCRIPTIONS.labels(feed=feed).inc()


def subscription_closed(feed: str) -> None:
	LIVE_SUBSCRIPTIONS.labels(feed=feed).dec()


def inc_store_error(operation: str) -> None:
	STORE_ERRORS.labels(operation=operation).inc()
