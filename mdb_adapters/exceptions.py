"""
Custom exceptions for MDB_ADAPTERS.

Every error raised by an adapter is an ``AdapterError`` so callers can
match the whole family with one ``except`` clause, or pick the variant
they care about:

- ``GuardViolation``: the request would have targeted every document
  (empty predicate) or written nothing (empty document). Raised before
  any I/O.
- ``StoreError``: MongoDB rejected the command.
- ``UnexpectedError``: anything else that went wrong while issuing it.
"""

from typing import Any, Dict, Optional


class AdapterError(RuntimeError):
    """
    Base exception for MDB_ADAPTERS errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (operation,
                 collection, request data, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class OperationError(AdapterError):
    """
    Base for errors raised while running an adapter operation.

    Attributes:
        operation: Adapter or driver operation name (e.g. "update_one")
        collection: Target collection name
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if operation:
            context["operation"] = operation
        if collection:
            context["collection"] = collection
        super().__init__(message, context=context)
        self.operation = operation
        self.collection = collection


class GuardViolation(OperationError):
    """
    Raised when a predicate or request document resolves to empty.

    On MongoDB an empty filter matches every document, so an update or
    delete built from an empty form would touch the whole collection.
    This is a programming error on the caller's side and is never retried.
    """


class StoreError(OperationError):
    """
    Raised when MongoDB rejects a command (duplicate key, bad operator,
    network failure, ...). The driver exception is chained as ``__cause__``.
    """


class UnexpectedError(OperationError):
    """
    Raised for non-driver failures while issuing a command, outside of
    debug mode. The original exception is chained as ``__cause__``.
    """


class InitializationError(AdapterError):
    """
    Raised when the connection pool cannot open a database handle.

    Attributes:
        config_key: Pool configuration key being connected
        db_name: Database name (if available)
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.config_key = config_key
        self.db_name = db_name


class ConfigurationError(AdapterError):
    """
    Raised when connection configuration is invalid or missing.

    Attributes:
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value
