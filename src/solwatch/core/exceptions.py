"""Solwatch exception hierarchy.

This module defines the base exception class and specialized exceptions
for different error categories across the application.
"""


class SolwatchError(Exception):
    """Base exception for all Solwatch errors.

    All custom exceptions in Solwatch inherit from this class
    to enable consistent error handling and logging.
    """

    pass


class DatabaseConnectionError(SolwatchError):
    """Raised when database connection fails.

    Use this for Supabase or Redis connection issues.
    Include the backend name in the error message for context.

    Example:
        raise DatabaseConnectionError("Supabase: Connection refused")
    """

    pass


class ConfigurationError(SolwatchError):
    """Raised when configuration is invalid or missing.

    Example:
        raise ConfigurationError("Missing required env var: SUPABASE_URL")
    """

    pass


class ValidationError(SolwatchError):
    """Raised when data validation fails.

    Validation errors are rejected synchronously at the API boundary
    and never enter the ingestion queue.

    Example:
        raise ValidationError("hours must be positive")
    """

    pass


class InvalidAddressError(ValidationError):
    """Raised when a wallet or mint address is not a valid public key.

    Attributes:
        address: The rejected address.
    """

    def __init__(self, address: str | None, message: str | None = None) -> None:
        self.address = address
        super().__init__(message or f"Invalid Solana address: {address!r}")


class NotFoundError(SolwatchError):
    """Raised when a requested resource does not exist.

    Attributes:
        resource: Kind of resource (e.g. "wallet").
        key: Lookup key that was not found.
    """

    def __init__(self, resource: str, key: str) -> None:
        self.resource = resource
        self.key = key
        super().__init__(f"{resource} not found: {key}")


class ExternalServiceError(SolwatchError):
    """Raised when an external service call fails.

    Use this for API errors from Solana RPC, Helius, Jupiter, DexScreener, etc.

    Attributes:
        service: Name of the external service that failed.
        status_code: HTTP status code if available, None otherwise.

    Example:
        raise ExternalServiceError(service="helius", message="Rate limited", status_code=429)
    """

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class CircuitBreakerOpenError(SolwatchError):
    """Raised when an API client's circuit breaker is open.

    Example:
        raise CircuitBreakerOpenError("Circuit is open for Solana RPC")
    """

    pass


class FetchFailedError(ExternalServiceError):
    """Raised when a transaction cannot be fetched or its meta is incomplete.

    Retryable: the ingestion worker re-enqueues the event with backoff.

    Attributes:
        signature: Transaction signature that failed.
    """

    def __init__(self, signature: str, message: str) -> None:
        self.signature = signature
        super().__init__(service="solana-rpc", message=f"{signature[:16]}: {message}")


class TransactionNotFoundError(FetchFailedError):
    """Raised when the RPC node returns no transaction for a signature.

    Retryable for a bounded number of attempts, then treated as permanent.
    """

    def __init__(self, signature: str) -> None:
        super().__init__(signature, "transaction not found")


class MalformedTransactionError(SolwatchError):
    """Raised when transaction data is present but unusable.

    Permanent data error: logged and never retried.
    """

    def __init__(self, signature: str, reason: str) -> None:
        self.signature = signature
        self.reason = reason
        super().__init__(f"Malformed transaction {signature[:16]}: {reason}")


class PriceUnavailableError(SolwatchError):
    """Raised when no price source produced a price for a mint."""

    def __init__(self, mint: str) -> None:
        self.mint = mint
        super().__init__(f"No price available for {mint}")


class PersistenceError(SolwatchError):
    """Raised when the durable store rejects or cannot complete a write.

    The failing queue item is not marked processed so that it can be
    retried on the next delivery.
    """

    pass
