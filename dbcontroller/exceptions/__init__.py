"""
Custom exceptions for the database controller.

This module defines all custom exceptions used throughout the controller
for consistent error handling and reporting. Adapters translate client
library errors into these types at their boundary.
"""
from typing import Any, Dict, Optional


class ControllerError(Exception):
    """
    Base exception for all controller errors.

    All custom exceptions should inherit from this base class.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class KubernetesConfigError(ControllerError):
    """Raised when no usable Kubernetes client configuration can be loaded."""


class InvalidKeyError(ControllerError):
    """Raised when a reconciliation key is not a valid namespace/name pair."""

    def __init__(self, key: str):
        super().__init__(
            message=f"invalid resource key: {key}",
            details={"key": key},
        )


class StoreError(ControllerError):
    """
    Raised when the object store fails to read or write a resource.

    Used for Kubernetes API errors, connection issues, etc.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        super().__init__(message=message, details=details)


class StoreConflictError(StoreError):
    """Raised when an update loses an optimistic-concurrency check."""

    def __init__(self, kind: str, namespace: str, name: str):
        super().__init__(
            message=f"conflict updating {kind} '{namespace}/{name}': object has been modified",
            status=409,
            details={"kind": kind, "namespace": namespace, "name": name},
        )


class ValueSourceError(ControllerError):
    """Raised when a value source exists but cannot yield a value."""

    def __init__(self, kind: str, name: str, key: str):
        super().__init__(
            message=f"key '{key}' not found in {kind} '{name}'",
            details={"kind": kind, "name": name, "key": key},
        )


class DsnParseError(ControllerError, ValueError):
    """Raised when host and port cannot be extracted from a DSN."""

    def __init__(self, reason: str):
        super().__init__(message=f"malformed DSN: {reason}", details={"reason": reason})


class PluginError(ControllerError):
    """Base class for database plugin failures."""


class PluginNotFoundError(PluginError):
    """Raised when no plugin is registered for a backend identifier."""

    def __init__(self, backend: str):
        super().__init__(
            message=f"no database plugin registered for '{backend}'",
            details={"backend": backend},
        )


class DatabaseSyncError(PluginError):
    """
    Raised when a plugin fails to bring a database to its desired state.

    Presumed transient (for example an unreachable backend).
    """

    def __init__(self, database: str, reason: str):
        super().__init__(
            message=f"failed to sync database '{database}': {reason}",
            details={"database": database, "reason": reason},
        )


class SecretSyncError(ControllerError):
    """Raised when the credential secret cannot be read or created."""


class OwnershipConflictError(SecretSyncError):
    """
    Raised when a secret with the target name exists but is not controlled
    by the reconciling Database.
    """

    def __init__(self, secret_name: str):
        super().__init__(
            message=f"secret '{secret_name}' already exists and is not managed by Database",
            details={"secret": secret_name},
        )


class StatusUpdateError(ControllerError):
    """
    Raised when persisting a status update fails.

    Carries the pre-update object so callers can keep operating on it.
    """

    def __init__(self, key: str, state: str, database: Any, cause: Exception):
        self.database = database
        self.cause = cause
        super().__init__(
            message=f"error updating status to '{state}' for database '{key}': {cause}",
            details={"key": key, "state": state},
        )


# Export all exceptions
__all__ = [
    "ControllerError",
    "KubernetesConfigError",
    "InvalidKeyError",
    "StoreError",
    "StoreConflictError",
    "ValueSourceError",
    "DsnParseError",
    "PluginError",
    "PluginNotFoundError",
    "DatabaseSyncError",
    "SecretSyncError",
    "OwnershipConflictError",
    "StatusUpdateError",
]
