"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Errors that callers react to programmatically carry structured attributes
alongside the message.
"""

from __future__ import annotations

from dataclasses import dataclass


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """Malformed input or a violated business rule."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InvalidTransitionError(DomainException):
    """A status change was requested that the transfer lifecycle forbids."""

    def __init__(self, transfer_id: int | None, status: str, event: str) -> None:
        self.transfer_id = transfer_id
        self.status = status
        self.event = event
        label = f"Transfer #{transfer_id}" if transfer_id is not None else "Transfer"
        super().__init__(f"{label}: cannot {event} while {status}")


@dataclass(frozen=True)
class Shortage:
    """One line that cannot be served from the origin's available stock."""

    line_id: int | None
    product_id: str
    lot_id: str | None
    requested: int
    available: int

    def __str__(self) -> str:
        lot = f" lot {self.lot_id}" if self.lot_id else ""
        line = f"line #{self.line_id} " if self.line_id is not None else ""
        return (
            f"{line}product {self.product_id}{lot} "
            f"(need {self.requested}, have {self.available} available)"
        )


class InsufficientStockError(DomainException):
    """Available stock at the origin does not cover one or more lines."""

    def __init__(self, shortages: list[Shortage], transfer_id: int | None = None) -> None:
        self.shortages = list(shortages)
        self.transfer_id = transfer_id
        details = "; ".join(str(s) for s in self.shortages)
        super().__init__(f"Insufficient stock: {details}")

    @property
    def line_ids(self) -> list[int]:
        return [s.line_id for s in self.shortages if s.line_id is not None]


class ConcurrencyConflictError(DomainException):
    """A concurrent writer changed data this unit of work depended on."""


class PersistenceError(DomainException):
    """The underlying store failed for reasons unrelated to business rules."""
