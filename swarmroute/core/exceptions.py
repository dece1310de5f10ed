"""Custom exceptions for the SwarmRoute decision engine.

This module defines the exception hierarchy used by SwarmRoute. All
exceptions inherit from SwarmRouteError, enabling catch-all exception
handling while still allowing specific exception types.

The decision pipeline itself never lets these escape its public entry
points: collaborator failures are caught at each call site and converted
into "no additional signal". The hierarchy exists so that backends can
report failures precisely and so that degraded calls can be logged with
structured context.

Exception Hierarchy:
    SwarmRouteError (base)
    ├── ConfigurationError: Invalid configuration or settings
    ├── CollaboratorError: An external collaborator failed
    │   ├── TicketStoreError: Ticket store lookup failed
    │   └── MemoryServiceError: Memory service search/store failed
    │       └── StorageError: Backing storage for the memory service failed
    └── PatternParseError: Learned-pattern payload could not be parsed
"""

from typing import Any, Optional


class SwarmRouteError(Exception):
    """Base exception for all SwarmRoute errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        context: Additional context information about the error
        recoverable: Whether the error is potentially recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "SWARMROUTE_ERROR"
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_log_dict(self) -> dict[str, Any]:
        """Return structured dict for logging.

        Returns:
            Dictionary with error details suitable for structured logging
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ConfigurationError(SwarmRouteError):
    """Raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that caused the error
        validation_details: Details about why validation failed
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        validation_details: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if config_key:
            context["config_key"] = config_key
        if validation_details:
            context["validation_details"] = validation_details
        super().__init__(message, code="CONFIG_ERROR", context=context, **kwargs)
        self.config_key = config_key
        self.validation_details = validation_details


class CollaboratorError(SwarmRouteError):
    """Base exception for failures of external collaborators.

    Collaborator errors are always recoverable from the pipeline's point of
    view: the failed lookup is treated as absent data.

    Attributes:
        collaborator: Name of the collaborator (e.g. 'ticket_store')
        operation: The operation that failed (e.g. 'find_many')
    """

    def __init__(
        self,
        message: str,
        collaborator: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        code = kwargs.pop("code", None) or "COLLABORATOR_ERROR"
        if collaborator:
            context["collaborator"] = collaborator
        if operation:
            context["operation"] = operation
        kwargs.setdefault("recoverable", True)
        super().__init__(message, code=code, context=context, **kwargs)
        self.collaborator = collaborator
        self.operation = operation


class TicketStoreError(CollaboratorError):
    """Raised when the ticket store cannot answer a query."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(
            message,
            collaborator="ticket_store",
            operation=operation,
            code="TICKET_STORE_ERROR",
            **kwargs,
        )


class MemoryServiceError(CollaboratorError):
    """Raised when the memory service search or store fails.

    Attributes:
        namespace: The memory namespace involved, if known
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        namespace: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if namespace:
            context["namespace"] = namespace
        super().__init__(
            message,
            collaborator="memory_service",
            operation=operation,
            code="MEMORY_SERVICE_ERROR",
            context=context,
            **kwargs,
        )
        self.namespace = namespace


class StorageError(MemoryServiceError):
    """Raised when the storage behind a memory service fails.

    Attributes:
        key: The storage key involved, if any
    """

    def __init__(
        self,
        message: str,
        operation: str,
        key: Optional[str] = None,
        namespace: Optional[str] = None,
    ) -> None:
        context = {"key": key} if key else {}
        super().__init__(message, operation=operation, namespace=namespace, context=context)
        self.key = key


class PatternParseError(SwarmRouteError):
    """Raised when a learned-pattern payload has no parseable shape.

    Raised by strict parsing when every parser strategy declines a
    non-empty payload. Lenient parsing catches it and returns no patterns.

    Attributes:
        payload_preview: First characters of the offending payload
    """

    def __init__(self, message: str, payload: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        preview = payload[:120] if payload else None
        if preview:
            context["payload_preview"] = preview
        super().__init__(message, code="PATTERN_PARSE_ERROR", context=context, **kwargs)
        self.payload_preview = preview


def failure_details(error: BaseException) -> dict[str, Any]:
    """Describe any exception in the shape of ``SwarmRouteError.to_log_dict``.

    Collaborators may raise arbitrary exceptions; degraded call sites use
    this to log them uniformly.
    """
    if isinstance(error, SwarmRouteError):
        return error.to_log_dict()
    return {
        "error_type": error.__class__.__name__,
        "message": str(error),
        "recoverable": True,
    }


__all__ = [
    "SwarmRouteError",
    "ConfigurationError",
    "CollaboratorError",
    "TicketStoreError",
    "MemoryServiceError",
    "StorageError",
    "PatternParseError",
    "failure_details",
]
