"""Метрики Prometheus (локальный registry)."""

from prometheus_client import CollectorRegistry, Counter, Histogram

registry = CollectorRegistry()

completions_total = Counter(
    "completions_total",
    "Total number of completion calls",
    ["provider", "outcome"],
    registry=registry,
)

completion_latency_seconds = Histogram(
    "completion_latency_seconds",
    "Completion call latency in seconds",
    ["provider"],
    registry=registry,
)

tokens_total = Counter(
    "tokens_total",
    "Total tokens reported by the provider",
    ["provider", "model"],
    registry=registry,
)
