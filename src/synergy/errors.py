"""Custom exception types for synergy."""

from __future__ import annotations


class SynergyError(Exception):
    """Base class for all synergy errors."""


class ValidationError(ValueError, SynergyError):
    """Empty or invalid input; the operation was rejected with no state change."""


class NotFoundError(LookupError, SynergyError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} {entity_id} not found.")
        self.kind = kind
        self.entity_id = entity_id


class DuplicateEmailError(SynergyError):
    def __init__(self, email: str) -> None:
        super().__init__(f"Email '{email}' is already registered.")
        self.email = email


class BadCredentialError(SynergyError):
    def __init__(self) -> None:
        super().__init__("Invalid credentials.")


class PersistenceCorruptError(SynergyError):
    """Stored snapshot could not be parsed."""


class StorageError(SynergyError):
    """Snapshot blob could not be read or written."""


class AuthServiceError(SynergyError):
    """The remote auth service failed or answered unexpectedly."""


class ConfigError(ValueError, SynergyError):
    """Profile/configuration validation errors."""


class SessionRequiredError(SynergyError):
    """The operation needs a signed-in user."""
