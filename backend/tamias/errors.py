# Overview: Error taxonomy shared by services and routes.

"""
Typed errors for the transaction and inventory core.

Every error carries a human-readable message, a structured ``details`` dict,
and the HTTP status the API layer answers with:

    TamiasError (base)
    |
    +-- ValidationError        400  missing/invalid required field
    |   +-- InvalidTransitionError  409  status change the state machine refuses
    |
    +-- NotFoundError          404  transaction/product absent in the store
    |
    +-- StorageError           500  underlying database failure
"""

from __future__ import annotations


class TamiasError(Exception):
    """Base class for domain errors."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(TamiasError, ValueError):
    """400-level input problem."""

    status_code = 400


class InvalidTransitionError(ValidationError):
    """409-level status change refused by the transaction state machine."""

    status_code = 409


class NotFoundError(TamiasError, LookupError):
    """Referenced transaction or product does not exist in the given store."""

    status_code = 404


class StorageError(TamiasError):
    """Database failure surfaced after retries are exhausted."""

    status_code = 500
