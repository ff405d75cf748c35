"""
Factory for creating a SecretsCache from environment configuration.

Example Usage:
    >>> import os
    >>> os.environ["SECRETS_CACHE_SECRET_MAPPINGS"] = '{"db": "prod/database/credentials"}'
    >>> os.environ["AWS_REGION"] = "eu-west-1"
    >>> cache = create_secrets_cache()
    >>> cache.config.region
    'eu-west-1'

See Also:
    - aws_secrets_cache/config.py - Environment variable reference
"""

import logging
from typing import Any, Literal

from aws_secrets_cache.cache import SecretsCache
from aws_secrets_cache.config import SecretsCacheSettings
from aws_secrets_cache.source import SecretSource

_factory_logger = logging.getLogger(__name__)


def create_secrets_cache(
    settings: SecretsCacheSettings | None = None,
    *,
    client: SecretSource | None = None,
    logger: logging.Logger | Literal[False] | None = None,
    **overrides: Any,
) -> SecretsCache:
    """
    Create a SecretsCache configured from SECRETS_CACHE_* environment variables.

    Args:
        settings: Pre-loaded settings; read from the environment (and .env) if None
        client: Secret source override (defaults to AWS Secrets Manager)
        logger: Logger override; False disables logging
        **overrides: SecretsCacheConfig fields taking precedence over the environment

    Returns:
        SecretsCache: Configured but not yet initialized cache

    Raises:
        pydantic.ValidationError: No secret mappings configured or invalid values
    """
    loaded = settings if settings is not None else SecretsCacheSettings()
    config = loaded.to_config(**overrides)
    _factory_logger.info(
        "Creating secrets cache from settings",
        extra={"aliases": len(config.secret_mappings), "region": config.region},
    )
    return SecretsCache(config, client=client, logger=logger)
