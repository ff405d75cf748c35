"""
Alias-keyed client-side cache for AWS Secrets Manager secrets.

This package keeps an in-memory copy of a set of secrets, addressed by short
caller-chosen aliases, and refreshes all of them in the background.

Architecture:
    - SecretsCache: Public facade (cache.py)
    - FetchEngine: Parallel per-alias fetch with retry and change detection (engine.py)
    - RetryPolicy: Bounded exponential backoff via tenacity (retry.py)
    - CacheStore / AliasRegistry: Thread-safe shared state (store.py, registry.py)
    - RefreshScheduler: Idempotent start/stop recurring timer (scheduler.py)
    - SecretSource / AWSSecretSource: Remote source boundary via boto3 (source.py)
    - NotificationHub: update/error/start/stop/remove/clear events (events.py)

Quick Start:
    >>> from aws_secrets_cache import SecretsCache
    >>> cache = SecretsCache(secret_mappings={"db": "prod/database/credentials"})
    >>> cache.initialize()
    >>> cache.get_secret("db")

Security Requirements:
    - Secret values NEVER logged (only aliases and secret ids)
    - Memory-only cache (nothing written to disk)
"""

from aws_secrets_cache.cache import CacheStats, SecretsCache
from aws_secrets_cache.config import SecretsCacheConfig, SecretsCacheSettings
from aws_secrets_cache.engine import FetchEngine
from aws_secrets_cache.events import (
    CacheClearedEvent,
    CacheEvent,
    EventType,
    NotificationHub,
    RefreshStartedEvent,
    RefreshStoppedEvent,
    SecretErrorEvent,
    SecretRemovedEvent,
    SecretUpdatedEvent,
)
from aws_secrets_cache.exceptions import (
    SecretAccessError,
    SecretDecodeError,
    SecretFetchError,
    SecretManagerError,
    SecretNotFoundError,
)
from aws_secrets_cache.factory import create_secrets_cache
from aws_secrets_cache.registry import AliasRegistry
from aws_secrets_cache.retry import RetryPolicy
from aws_secrets_cache.scheduler import RefreshScheduler
from aws_secrets_cache.source import AWSSecretSource, SecretPayload, SecretSource, decode_payload
from aws_secrets_cache.store import CacheEntry, CacheStore

__all__ = [
    # Facade
    "SecretsCache",
    "CacheStats",
    "create_secrets_cache",
    # Configuration
    "SecretsCacheConfig",
    "SecretsCacheSettings",
    # Core components
    "FetchEngine",
    "RetryPolicy",
    "RefreshScheduler",
    "CacheStore",
    "CacheEntry",
    "AliasRegistry",
    # Secret sources
    "SecretSource",
    "SecretPayload",
    "AWSSecretSource",
    "decode_payload",
    # Notifications
    "EventType",
    "NotificationHub",
    "CacheEvent",
    "SecretUpdatedEvent",
    "SecretErrorEvent",
    "RefreshStartedEvent",
    "RefreshStoppedEvent",
    "SecretRemovedEvent",
    "CacheClearedEvent",
    # Exceptions
    "SecretManagerError",
    "SecretNotFoundError",
    "SecretAccessError",
    "SecretDecodeError",
    "SecretFetchError",
]
