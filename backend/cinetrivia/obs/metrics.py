"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


REQUEST_COUNTER = Counter(
	"cinetrivia_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"cinetrivia_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

CATALOG_REQUESTS = Counter(
	"cinetrivia_catalog_requests_total",
	"Outbound catalog page requests by outcome",
	["outcome"],
)

TRIVIA_PAYLOADS = Counter(
	"cinetrivia_trivia_payloads_total",
	"Weekly trivia payload requests by result",
	["language", "result"],
)

TRIVIA_POOL_TIER = Counter(
	"cinetrivia_trivia_pool_tier_total",
	"Relaxation tier that produced the candidate pool",
	["tier"],
)

TRIVIA_GENERATION_SECONDS = Histogram(
	"cinetrivia_trivia_generation_seconds",
	"Time spent computing a weekly trivia payload on a cache miss",
	buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0),
)

TRIVIA_ATTEMPTS = Counter(
	"cinetrivia_trivia_attempts_total",
	"Trivia attempt submissions by result",
	["result"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_catalog_request(outcome: str) -> None:
	CATALOG_REQUESTS.labels(outcome=outcome).inc()


def inc_trivia_payload(language: str, result: str) -> None:
	TRIVIA_PAYLOADS.labels(language=language, result=result).inc()


def inc_trivia_pool_tier(tier: int) -> None:
	TRIVIA_POOL_TIER.labels(tier=str(tier)).inc()


def observe_trivia_generation(elapsed_seconds: float) -> None:
	TRIVIA_GENERATION_SECONDS.observe(elapsed_seconds)


def inc_trivia_attempt(result: str) -> None:
	TRIVIA_ATTEMPTS.labels(result=result).inc()
