"""
Fetch engine: fan-out fetches with per-alias retry and change detection.

One refresh cycle (fetch_all_secrets) snapshots the alias registry and runs
fetch_with_retry for every alias concurrently on a thread pool sized to the
number of aliases, then waits for all of them. A failing alias never
short-circuits the others.

Per alias:
    1. Call the secret source, decode the payload
    2. Failure -> back off per RetryPolicy and try again (explicit loop)
    3. Success -> compare with the cached value (same_value: structural and
       type-aware); on change write a new entry and emit ``update``
    4. Retries exhausted -> emit ``error`` with a SecretFetchError; the cache
       keeps whatever stale value it had

Fetch failures are never raised to callers of fetch_all_secrets().
"""

import copy
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from tenacity import RetryCallState, RetryError

from aws_secrets_cache import metrics
from aws_secrets_cache.events import NotificationHub, SecretErrorEvent, SecretUpdatedEvent
from aws_secrets_cache.exceptions import SecretFetchError
from aws_secrets_cache.registry import AliasRegistry
from aws_secrets_cache.retry import RetryPolicy
from aws_secrets_cache.source import SecretSource, decode_payload
from aws_secrets_cache.store import CacheEntry, CacheStore, SecretValue, same_value, utc_now

logger = logging.getLogger(__name__)


class FetchEngine:
    """
    Orchestrates fetch-with-retry for each alias and applies results to the store.

    Thread Safety:
        fetch_all_secrets() and fetch_with_retry() may run concurrently (scheduled
        cycles, on-demand adds). Compare-and-write of a cache entry is atomic.
    """

    def __init__(
        self,
        source: SecretSource,
        store: CacheStore,
        registry: AliasRegistry,
        hub: NotificationHub,
        retry_policy: RetryPolicy,
        logger: logging.Logger = logger,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._source = source
        self._store = store
        self._registry = registry
        self._hub = hub
        self._retry_policy = retry_policy
        self._logger = logger
        self._sleep = sleep
        self._clock = clock
        self._write_lock = threading.Lock()

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def fetch_all_secrets(self) -> None:
        """
        Run one refresh cycle over every registered alias.

        Returns once every alias has either succeeded or exhausted its retries.
        """
        pairs = self._registry.items()
        if not pairs:
            self._logger.info("No aliases registered, skipping refresh")
            return

        started = time.monotonic()
        self._logger.info("Fetching all secrets", extra={"count": len(pairs)})

        with ThreadPoolExecutor(max_workers=len(pairs), thread_name_prefix="secret-fetch") as pool:
            futures = [
                pool.submit(self.fetch_with_retry, alias, secret_id) for alias, secret_id in pairs
            ]

        changed = sum(1 for future in futures if future.result())
        duration = time.monotonic() - started
        metrics.secrets_cache_refresh_duration_seconds.observe(duration)
        self._logger.info(
            "Finished fetching all secrets",
            extra={"count": len(pairs), "changed": changed, "duration_seconds": duration},
        )

    def fetch_with_retry(self, alias: str, secret_id: str) -> bool:
        """
        Fetch one alias, retrying per the retry policy.

        Args:
            alias: Caller-chosen alias
            secret_id: Provider identifier the alias maps to

        Returns:
            True if the cache entry was created or replaced, False otherwise
            (unchanged value, exhausted retries, or alias remapped meanwhile).
        """
        retrying = self._retry_policy.retrying(
            sleep=self._sleep,
            before_sleep=lambda retry_state: self._log_retry(alias, retry_state),
        )

        try:
            value = retrying(self._fetch_once, secret_id)
        except RetryError as e:
            last_attempt = e.last_attempt
            self._report_failure(
                alias, secret_id, last_attempt.attempt_number, last_attempt.exception()
            )
            return False

        return self._apply(alias, secret_id, value)

    def forget(self, alias: str) -> str | None:
        """
        Unregister an alias and drop its cached value atomically.

        Holds the write lock, so a fetch for the alias that is in flight either
        lands before the removal or is discarded as stale.

        Returns:
            The secret id the alias mapped to, or None if it was not registered
        """
        with self._write_lock:
            secret_id = self._registry.remove(alias)
            self._store.delete(alias)
        metrics.secrets_cache_entries.set(len(self._store))
        return secret_id

    def _fetch_once(self, secret_id: str) -> SecretValue:
        try:
            payload = self._source.get_secret_value(secret_id)
            value = decode_payload(secret_id, payload)
        except Exception:
            metrics.secrets_cache_fetch_attempts_total.labels(outcome="failure").inc()
            raise
        metrics.secrets_cache_fetch_attempts_total.labels(outcome="success").inc()
        return value

    def _apply(self, alias: str, secret_id: str, value: SecretValue) -> bool:
        with self._write_lock:
            # Alias removed or remapped while the fetch was in flight
            if self._registry.get(alias) != secret_id:
                self._logger.debug(
                    "Discarding fetch result for stale alias mapping",
                    extra={"alias": alias, "secret_id": secret_id},
                )
                return False

            current = self._store.get(alias)
            if current is not None and same_value(current.value, value):
                return False

            entry = CacheEntry(value=value, fetched_at=self._clock())
            self._store.set(alias, entry)

        metrics.secrets_cache_updates_total.inc()
        metrics.secrets_cache_entries.set(len(self._store))
        self._hub.emit(
            SecretUpdatedEvent(
                alias=alias, value=copy.deepcopy(value), timestamp=entry.fetched_at
            )
        )
        self._logger.info(
            "Updated cached secret",
            extra={"alias": alias, "fetched_at": entry.fetched_at.isoformat()},
        )
        return True

    def _log_retry(self, alias: str, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        self._logger.warning(
            "Retry %d/%d for %s after %.3fs: %s",
            retry_state.attempt_number,
            self._retry_policy.max_retries,
            alias,
            delay,
            error,
            extra={"alias": alias, "attempt": retry_state.attempt_number, "delay_seconds": delay},
        )

    def _report_failure(
        self,
        alias: str,
        secret_id: str,
        attempts: int,
        cause: BaseException | None,
    ) -> None:
        error = SecretFetchError(alias=alias, secret_id=secret_id, attempts=attempts, cause=cause)
        metrics.secrets_cache_fetch_failures_total.inc()
        self._hub.emit(SecretErrorEvent(alias=alias, error=error, timestamp=self._clock()))
        self._logger.error(
            "Failed to fetch %s after %d retries: %s",
            alias,
            self._retry_policy.max_retries,
            cause,
            extra={"alias": alias, "secret_id": secret_id, "attempts": attempts},
        )
