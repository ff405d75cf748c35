"""
SecretsCache: alias-keyed cache of remote secrets with scheduled refresh.

Secrets are addressed by short caller-chosen aliases instead of full provider
identifiers. initialize() fetches every alias in parallel, then arms a
recurring refresh. Transient failures are retried with exponential backoff;
observers are notified when a value changes or a fetch ultimately fails.

Usage Example:
    >>> cache = SecretsCache(
    ...     secret_mappings={
    ...         "db": "prod/database/credentials",
    ...         "alpaca": "arn:aws:secretsmanager:us-east-1:123456789012:secret:alpaca",
    ...     },
    ...     refresh_interval_seconds=300,
    ... )
    >>> cache.on("update", lambda event: logger.info("rotated %s", event.alias))
    >>> cache.initialize()
    >>> cache.get_secret("db")["password"]
    >>> cache.stop_scheduled_refresh()

Behavior Notes:
    - get_secret() returning None is the only signal of "never fetched";
      stale values are kept when later fetches fail
    - Reads and ``update`` notifications hand out copies; mutating them never
      changes the cached entry
    - Nothing is persisted; each process holds its own cache
    - clear_cache() drops values and stops the scheduler but keeps aliases
"""

import copy
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Literal

from aws_secrets_cache.config import SecretsCacheConfig
from aws_secrets_cache.engine import FetchEngine
from aws_secrets_cache.events import (
    CacheClearedEvent,
    EventHandler,
    EventType,
    NotificationHub,
    SecretRemovedEvent,
)
from aws_secrets_cache.registry import AliasRegistry
from aws_secrets_cache.retry import RetryPolicy
from aws_secrets_cache.scheduler import RefreshScheduler
from aws_secrets_cache.source import AWSSecretSource, SecretSource
from aws_secrets_cache.store import CacheStore, SecretValue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    size: int
    aliases: int


def _disabled_logger() -> logging.Logger:
    null_logger = logging.getLogger(f"{__name__}.disabled")
    if not null_logger.handlers:
        null_logger.addHandler(logging.NullHandler())
    null_logger.propagate = False
    null_logger.setLevel(logging.CRITICAL + 1)
    return null_logger


def _resolve_logger(value: logging.Logger | Literal[False] | None) -> logging.Logger:
    if value is False:
        return _disabled_logger()
    if value is None:
        return logger
    return value


def _build_config(
    config: SecretsCacheConfig | Mapping[str, Any] | None,
    options: dict[str, Any],
) -> SecretsCacheConfig:
    if isinstance(config, SecretsCacheConfig):
        if not options:
            return config
        return SecretsCacheConfig.model_validate({**config.model_dump(), **options})
    return SecretsCacheConfig.model_validate({**(config or {}), **options})


class SecretsCache:
    """
    Client-side cache for secrets fetched from a SecretSource.

    Args:
        config: SecretsCacheConfig or mapping of its fields
        client: Secret source; defaults to AWSSecretSource(config.region)
        logger: Logger to use; False disables logging entirely
        sleep: Suspension used between retry attempts
        **options: SecretsCacheConfig fields, overriding ``config``

    Raises:
        pydantic.ValidationError: Invalid configuration (before any fetch)

    Thread Safety:
        All public methods may be called from any thread, including from
        notification handlers running on fetch worker threads.
    """

    def __init__(
        self,
        config: SecretsCacheConfig | Mapping[str, Any] | None = None,
        *,
        client: SecretSource | None = None,
        logger: logging.Logger | Literal[False] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        **options: Any,
    ) -> None:
        self._config = _build_config(config, options)
        self._logger = _resolve_logger(logger)

        self._hub = NotificationHub(enabled=not self._config.disable_events, logger=self._logger)
        self._store = CacheStore()
        self._registry = AliasRegistry(self._config.secret_mappings)
        self._source = (
            client if client is not None else AWSSecretSource(region_name=self._config.region)
        )
        self._engine = FetchEngine(
            source=self._source,
            store=self._store,
            registry=self._registry,
            hub=self._hub,
            retry_policy=RetryPolicy(
                max_retries=self._config.max_retries,
                retry_delay_seconds=self._config.retry_delay_seconds,
            ),
            logger=self._logger,
            sleep=sleep,
        )
        self._scheduler = RefreshScheduler(
            interval_seconds=self._config.refresh_interval_seconds,
            refresh=self._engine.fetch_all_secrets,
            hub=self._hub,
            logger=self._logger,
        )

    @property
    def config(self) -> SecretsCacheConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._scheduler.is_running

    @property
    def aliases(self) -> dict[str, str]:
        """Snapshot of the current alias -> secret id mapping."""
        return self._registry.as_dict()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> None:
        """
        Fetch every alias once, then start the scheduled refresh.

        Never raises for fetch failures: aliases that exhaust their retries are
        reported through ``error`` notifications and stay absent.
        """
        self._engine.fetch_all_secrets()
        self.start_scheduled_refresh()

    def start_scheduled_refresh(self) -> bool:
        return self._scheduler.start()

    def stop_scheduled_refresh(self) -> bool:
        """Stop future scheduled cycles (an in-flight cycle still completes)."""
        return self._scheduler.stop()

    def refresh_now(self) -> None:
        """Run one full refresh cycle on the calling thread."""
        self._engine.fetch_all_secrets()

    def close(self) -> None:
        """Stop the scheduler and drop cached values."""
        self._scheduler.stop()
        self._store.clear()
        self._logger.info("Secrets cache closed, cache cleared")

    def __enter__(self) -> "SecretsCache":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # =========================================================================
    # Reads
    # =========================================================================

    def get_secret(self, alias: str) -> SecretValue | None:
        """
        Return a copy of the cached value for an alias.

        Returns:
            The decoded value (JSON document, text, or bytes), or None if the
            alias has never been fetched successfully.
        """
        entry = self._store.get(alias)
        return copy.deepcopy(entry.value) if entry is not None else None

    def get_all_secrets(self) -> dict[str, SecretValue]:
        entries = self._store.entries()
        return {alias: copy.deepcopy(entry.value) for alias, entry in entries.items()}

    def get_cache_stats(self) -> CacheStats:
        return CacheStats(size=len(self._store), aliases=len(self._registry))

    # =========================================================================
    # Alias mappings
    # =========================================================================

    def add_alias_mapping(self, alias: str, secret_id: str) -> bool:
        """
        Add or replace an alias, then fetch it before returning.

        Returns:
            True if the fetch created or changed the cached value.

        Raises:
            ValueError: Empty alias or secret id
        """
        if not alias or not alias.strip():
            raise ValueError("alias must be a non-empty string")
        if not secret_id or not secret_id.strip():
            raise ValueError("secret_id must be a non-empty string")

        self._registry.upsert(alias, secret_id)
        self._logger.info("Alias mapping added", extra={"alias": alias, "secret_id": secret_id})
        return self._engine.fetch_with_retry(alias, secret_id)

    def remove_alias_mapping(self, alias: str) -> None:
        """Forget an alias and its cached value. The remote secret is untouched."""
        self._engine.forget(alias)
        self._hub.emit(SecretRemovedEvent(alias=alias))
        self._logger.info("Alias mapping removed", extra={"alias": alias})

    def clear_cache(self) -> None:
        """Drop every cached value and stop the scheduler; aliases stay registered."""
        removed = self._store.clear()
        self._scheduler.stop()
        self._hub.emit(CacheClearedEvent())
        self._logger.info("Cache cleared", extra={"count": removed})

    # =========================================================================
    # Notifications
    # =========================================================================

    def on(self, event_type: EventType | str, handler: EventHandler) -> Callable[[], None]:
        """
        Subscribe to a notification type.

        Returns:
            A callable that removes the subscription.
        """
        return self._hub.subscribe(event_type, handler)

    def off(self, event_type: EventType | str, handler: EventHandler) -> bool:
        return self._hub.unsubscribe(event_type, handler)
