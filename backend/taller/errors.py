# Overview: Domain error taxonomy shared by services and routes.

from __future__ import annotations


class DomainError(Exception):
    """Base class for errors surfaced synchronously to the caller."""

    status_code = 400

    def to_dict(self) -> dict:
        return {"error": str(self)}


class ValidationError(DomainError, ValueError):
    """400-level input problem. Nothing was mutated."""

    status_code = 400


class AuthorizationError(DomainError):
    """Actor lacks the required area or role."""

    status_code = 403


class NotFoundError(DomainError, LookupError):
    """Referenced order, reposition, transfer or notification is absent."""

    status_code = 404


class InsufficientBalance(DomainError):
    """
    A transfer asks for more pieces than the source area holds right now.

    Carries both numbers so the caller can show them.
    """

    status_code = 409

    def __init__(self, area: str, requested: int, available: int):
        self.area = area
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient pieces in {area}: requested {requested}, available {available}"
        )

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "area": self.area,
            "requested": self.requested,
            "available": self.available,
        }


class AlreadyProcessed(DomainError):
    """
    Transfer or reposition was already resolved.

    Not an idempotent no-op: callers must not retry blindly.
    """

    status_code = 409


class InvariantViolation(DomainError):
    """Hard failure: the transaction is aborted and never silently corrected."""

    status_code = 500


class DuplicateFolio(InvariantViolation):
    status_code = 409

    def __init__(self, folio: str):
        self.folio = folio
        super().__init__(f"Folio {folio!r} already exists")
