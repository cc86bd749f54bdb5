"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


REQUEST_COUNTER = Counter(
	"wildnet_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"wildnet_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

RECOMMENDATION_REQUESTS = Counter(
	"wildnet_friend_recommendations_total",
	"Friend recommendation computations by outcome",
	["outcome"],
)

RECOMMENDATION_LATENCY = Histogram(
	"wildnet_friend_recommendations_latency_seconds",
	"Friend recommendation latency in seconds",
	buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)

RECOMMENDATION_CANDIDATES = Histogram(
	"wildnet_friend_recommendation_candidates",
	"Friend-of-friend candidates scored per computation",
	buckets=(0, 1, 5, 10, 25, 50, 100, 250, 1000),
)

GEOCODE_LOOKUPS = Counter(
	"wildnet_geocode_lookups_total",
	"Address lookups made through the per-request geocode cache",
	["result"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_recommendations(outcome: str) -> None:
	RECOMMENDATION_REQUESTS.labels(outcome=outcome).inc()


def observe_recommendation_latency(latency_seconds: float) -> None:
	RECOMMENDATION_LATENCY.observe(latency_seconds)


def observe_recommendation_candidates(count: int) -> None:
	RECOMMENDATION_CANDIDATES.observe(count)


def inc_geocode_lookup(result: str) -> None:
	GEOCODE_LOOKUPS.labels(result=result).inc()
