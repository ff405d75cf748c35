"""
Secret sources: the remote capability the cache fetches from.

A secret source resolves an opaque provider identifier (name or ARN) to a
payload carrying either text or binary data, or fails. The cache only depends
on the SecretSource interface; AWSSecretSource is the default implementation
backed by AWS Secrets Manager via boto3.

Decoding (decode_payload):
    - Text payload (SecretString) -> parsed as JSON. Invalid JSON (including
      NaN and Infinity) is a SecretDecodeError, which the fetch engine
      retries like any failure.
    - Binary payload (SecretBinary) -> UTF-8 text. botocore already strips the
      base64 transport encoding, so the cached value is the decoded text, never
      the encoded form. Bytes that are not valid UTF-8 are cached as raw bytes.
    - Neither present -> SecretDecodeError.

Security Considerations:
    - Secret values NEVER logged (only names/ids)
    - IAM permission required: secretsmanager:GetSecretValue
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from aws_secrets_cache.exceptions import (
    SecretAccessError,
    SecretDecodeError,
    SecretNotFoundError,
)
from aws_secrets_cache.store import SecretValue

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"


@dataclass(frozen=True)
class SecretPayload:
    """Raw result of a secret source lookup (at most one field is normally set)."""

    secret_string: str | None = None
    secret_binary: bytes | None = None


class SecretSource(ABC):
    """
    Abstract remote secret source.

    Implementations MUST be thread-safe: the fetch engine calls
    get_secret_value() concurrently from its worker threads.
    """

    @abstractmethod
    def get_secret_value(self, secret_id: str) -> SecretPayload:
        """
        Fetch the current payload of a secret.

        Args:
            secret_id: Provider identifier (secret name or ARN)

        Returns:
            SecretPayload with the text or binary payload

        Raises:
            SecretNotFoundError: Secret doesn't exist
            SecretAccessError: Authentication, permission, or transport failure
        """


def _reject_constant(name: str) -> None:
    raise ValueError(f"non-standard JSON constant {name}")


def decode_payload(secret_id: str, payload: SecretPayload) -> SecretValue:
    """
    Decode a payload into the value stored in the cache.

    Raises:
        SecretDecodeError: Text payload is not valid JSON, or the payload is empty
    """
    if payload.secret_string is not None:
        try:
            return json.loads(payload.secret_string, parse_constant=_reject_constant)
        except ValueError as e:
            raise SecretDecodeError(secret_id, f"SecretString is not valid JSON: {e}") from e

    if payload.secret_binary is not None:
        raw = bytes(payload.secret_binary)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return raw

    raise SecretDecodeError(secret_id, "response contained neither SecretString nor SecretBinary")


class AWSSecretSource(SecretSource):
    """
    AWS Secrets Manager source.

    Uses boto3's default credential chain (environment, shared credentials
    file, IAM role) unless a pre-configured client is injected.

    Example:
        >>> source = AWSSecretSource(region_name="us-east-1")
        >>> payload = source.get_secret_value("prod/database/password")
        >>>
        >>> # Injected client (custom endpoint, session, retries...)
        >>> session = boto3.session.Session(profile_name="staging")
        >>> source = AWSSecretSource(client=session.client("secretsmanager"))
    """

    backend = "aws"

    def __init__(self, region_name: str = DEFAULT_REGION, client: Any | None = None) -> None:
        self._region_name = region_name

        if client is not None:
            self._client = client
            return

        try:
            self._client = boto3.client("secretsmanager", region_name=region_name)
        except BotoCoreError as e:
            raise SecretAccessError(
                secret_name="aws_initialization",
                backend=self.backend,
                reason=f"AWS SDK error during initialization: {e}",
            ) from e

        logger.info(
            "AWS Secrets Manager source initialized",
            extra={"region": region_name, "backend": self.backend},
        )

    @property
    def region_name(self) -> str:
        return self._region_name

    def get_secret_value(self, secret_id: str) -> SecretPayload:
        try:
            response = self._client.get_secret_value(SecretId=secret_id)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")

            if error_code == "ResourceNotFoundException":
                raise SecretNotFoundError(
                    secret_name=secret_id,
                    backend=self.backend,
                    additional_context=f"Region: {self._region_name}",
                ) from e
            elif error_code == "AccessDeniedException":
                raise SecretAccessError(
                    secret_name=secret_id,
                    backend=self.backend,
                    reason=(
                        f"Access denied for secret '{secret_id}'. "
                        f"Verify IAM role has secretsmanager:GetSecretValue permission."
                    ),
                ) from e
            elif error_code == "InvalidRequestException":
                raise SecretAccessError(
                    secret_name=secret_id,
                    backend=self.backend,
                    reason=f"Invalid request for secret '{secret_id}': Secret marked for deletion",
                ) from e
            else:
                raise SecretAccessError(
                    secret_name=secret_id,
                    backend=self.backend,
                    reason=f"AWS API error: {error_code}",
                ) from e
        except BotoCoreError as e:
            raise SecretAccessError(
                secret_name=secret_id,
                backend=self.backend,
                reason=f"AWS SDK error retrieving secret: {e}",
            ) from e

        if not response:
            raise SecretAccessError(
                secret_name=secret_id,
                backend=self.backend,
                reason="No response received",
            )

        return SecretPayload(
            secret_string=response.get("SecretString"),
            secret_binary=response.get("SecretBinary"),
        )
