"""Prometheus metrics for the secrets cache."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# Counters for fetch tracking
secrets_cache_fetch_attempts_total = Counter(
    "secrets_cache_fetch_attempts_total",
    "Total secret source calls",
    ["outcome"],
)

secrets_cache_updates_total = Counter(
    "secrets_cache_updates_total",
    "Cache writes caused by a new or changed secret value",
)

secrets_cache_fetch_failures_total = Counter(
    "secrets_cache_fetch_failures_total",
    "Aliases that exhausted their retries",
)

# Gauges for current state
secrets_cache_entries = Gauge(
    "secrets_cache_entries",
    "Entries currently cached (last written instance)",
)

# Histograms for latency tracking
secrets_cache_refresh_duration_seconds = Histogram(
    "secrets_cache_refresh_duration_seconds",
    "Duration of a full refresh cycle",
    buckets=[0.1, 0.5, 1, 5, 10, 30, 60],
)


__all__ = [
    "secrets_cache_fetch_attempts_total",
    "secrets_cache_updates_total",
    "secrets_cache_fetch_failures_total",
    "secrets_cache_entries",
    "secrets_cache_refresh_duration_seconds",
]
