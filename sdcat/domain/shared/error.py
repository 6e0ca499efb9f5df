"""Error hierarchy for the self-description catalogue.

Error layers:
- CatalogueError: Base class for all catalogue errors
- DomainError: Business rule violations, validation failures (4xx responses)
- InfrastructureError: System-level failures like storage/graph issues (5xx responses)

Callers at the transport boundary map these onto their own response codes.
"""


class CatalogueError(Exception):
    """Base class for all catalogue errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (business logic violations - typically 4xx)
# =============================================================================


class DomainError(CatalogueError):
    """Base class for domain/business errors."""


class NotFoundError(DomainError):
    """Resource not found."""


class ValidationError(DomainError):
    """Input validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class InvalidClaimError(ValidationError):
    """An RDF claim failed lexical validation.

    `position` is one of "subject", "predicate" or "object".
    """

    def __init__(self, message: str, position: str) -> None:
        super().__init__(message, field=position)
        self.code = "QUERY_EXCEPTION"
        self.position = position


class ConflictError(DomainError):
    """Resource already exists or lifecycle state conflict."""


# =============================================================================
# Infrastructure Errors (system-level failures - typically 5xx)
# =============================================================================


class InfrastructureError(CatalogueError):
    """Base class for infrastructure/system errors."""


class StorageUnavailableError(InfrastructureError):
    """Storage backend (database, graph store, blob store) is unavailable."""


class StorageInconsistencyError(InfrastructureError):
    """The stores disagree, e.g. a metadata row exists without its document."""


class ExternalServiceError(InfrastructureError):
    """External service (graph store plugin) failed."""


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""


class QueryRejectedError(InfrastructureError):
    """A graph query was refused because it would modify data."""


class OperationTimeoutError(InfrastructureError):
    """An operation exceeded its time bound. Distinct from an empty result."""


class LockTimeoutError(OperationTimeoutError):
    """A write lock could not be acquired in time. Safe to retry."""


class QueryTimeoutError(OperationTimeoutError):
    """A graph query ran past the configured timeout."""
