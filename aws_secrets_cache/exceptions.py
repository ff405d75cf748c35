"""
Secrets Cache Exception Hierarchy.

This module defines the exceptions used by the secrets cache, providing clear
error semantics for secret retrieval, decoding, and exhausted-retry failures.

Exception hierarchy:
    SecretManagerError (base)
    ├── SecretNotFoundError - Secret doesn't exist in the secret source
    ├── SecretAccessError - Permission/authentication/transport failure
    ├── SecretDecodeError - Payload could not be decoded into a secret value
    └── SecretFetchError - Every attempt for an alias failed (retries exhausted)

All exceptions include structured context (secret name, backend type) without
exposing secret values. Only configuration errors cross the public cache API;
fetch failures are delivered as ``error`` notifications carrying one of these.
"""


class SecretManagerError(Exception):
    """
    Base exception for all secrets cache errors.

    Subclasses MUST NOT include secret values in error messages.

    Attributes:
        secret_name: Alias or provider identifier of the secret
        backend: Backend type (e.g. "aws")
        message: Human-readable error message (never includes the secret value)

    Example:
        >>> try:
        ...     source.get_secret_value("prod/database/password")
        ... except SecretManagerError as e:
        ...     logger.error("Secret error", extra={"secret": e.secret_name})
    """

    def __init__(
        self,
        message: str,
        secret_name: str | None = None,
        backend: str | None = None,
    ) -> None:
        super().__init__(message)
        self.secret_name = secret_name
        self.backend = backend
        self.message = message

    def __str__(self) -> str:
        """
        Format error message with context (secret name + backend).

        Example:
            >>> str(SecretManagerError("Timeout", "db/password", "aws"))
            'Timeout (secret: db/password, backend: aws)'
        """
        context_parts = []
        if self.secret_name:
            context_parts.append(f"secret: {self.secret_name}")
        if self.backend:
            context_parts.append(f"backend: {self.backend}")

        if context_parts:
            context = ", ".join(context_parts)
            return f"{self.message} ({context})"
        return self.message


class SecretNotFoundError(SecretManagerError):
    """
    Raised when a requested secret doesn't exist in the secret source.

    Common causes:
    - Alias mapped to a misspelled secret id or ARN
    - Secret deleted while an alias still points at it
    - Wrong region for the configured client
    """

    def __init__(
        self,
        secret_name: str,
        backend: str,
        additional_context: str | None = None,
    ) -> None:
        if not isinstance(secret_name, str) or not secret_name:
            raise TypeError("secret_name must be a non-empty string")
        if not isinstance(backend, str) or not backend:
            raise TypeError("backend must be a non-empty string")

        base_message = f"Secret '{secret_name}' not found in {backend.upper()}"
        if additional_context:
            base_message += f". {additional_context}"

        super().__init__(
            message=base_message,
            secret_name=secret_name,
            backend=backend,
        )


class SecretAccessError(SecretManagerError):
    """
    Raised when the secret source cannot be read.

    Covers invalid credentials, missing IAM permissions, secrets marked for
    deletion, and network/SDK failures talking to the backend.

    Example:
        >>> raise SecretAccessError("prod/database/password", "aws", "Permission denied")
    """

    def __init__(
        self,
        secret_name: str,
        backend: str,
        reason: str,
    ) -> None:
        if not isinstance(secret_name, str) or not secret_name:
            raise TypeError("secret_name must be a non-empty string")
        if not isinstance(backend, str) or not backend:
            raise TypeError("backend must be a non-empty string")
        if not isinstance(reason, str) or not reason:
            raise TypeError("reason must be a non-empty string")

        message = f"Access denied: {reason}"
        super().__init__(
            message=message,
            secret_name=secret_name,
            backend=backend,
        )


class SecretDecodeError(SecretManagerError):
    """
    Raised when a payload returned by the secret source cannot be decoded.

    A text payload that is not valid JSON, or a response carrying neither a
    text nor a binary payload, is a fetch failure and is retried like any
    other failure. It is never degraded to an empty value.
    """

    def __init__(self, secret_name: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to decode secret payload: {reason}",
            secret_name=secret_name,
        )


class SecretFetchError(SecretManagerError):
    """
    Raised (and delivered via the ``error`` notification) once every attempt
    to fetch an alias has failed.

    Attributes:
        alias: Caller-chosen alias of the secret
        secret_id: Provider identifier the alias maps to
        attempts: Total number of attempts made (max_retries + 1)
        cause: Exception raised by the last attempt
    """

    def __init__(
        self,
        alias: str,
        secret_id: str,
        attempts: int,
        cause: BaseException | None,
    ) -> None:
        super().__init__(
            message=f"Failed to fetch '{alias}' after {attempts} attempt(s): {cause}",
            secret_name=secret_id,
        )
        self.alias = alias
        self.secret_id = secret_id
        self.attempts = attempts
        self.cause = cause
