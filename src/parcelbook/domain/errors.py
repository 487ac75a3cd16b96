"""Error taxonomy for parcel reconciliation.

Single-item operations raise these directly; the batch coordinator captures them
per row and reports them by kind instead of propagating.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from parcelbook.domain.model import PropertyRecord


class ParcelbookError(Exception):
    """Base class for domain errors."""


class ProviderError(ParcelbookError):
    """Raised when the parcel provider answers with a non-2xx status or cannot be reached."""

    def __init__(self, message: str, *, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ProviderUnavailableError(ParcelbookError):
    """Raised when a strict operation needs provider data and the provider failed."""


class NotFoundError(ParcelbookError):
    """Raised when a property does not exist for the requesting owner."""

    def __init__(self, property_id: UUID) -> None:
        super().__init__(f"Property {property_id} not found")
        self.property_id = property_id


class DuplicateError(ParcelbookError):
    """Raised when the owner already tracks a property with the same parcel number."""

    def __init__(self, parcel_number: str, *, existing: PropertyRecord | None = None) -> None:
        super().__init__(f"APN {parcel_number} already exists in your portfolio")
        self.parcel_number = parcel_number
        self.existing = existing


class RefreshIneligibleError(ParcelbookError):
    """Raised when a refresh is requested for a property without a parcel number."""

    def __init__(self, property_id: UUID) -> None:
        super().__init__(f"Cannot refresh property {property_id}: no APN available")
        self.property_id = property_id


class PersistenceIntegrityError(ParcelbookError):
    """Raised when persistence reports success but hands back no record."""


class ValidationError(ParcelbookError):
    """Raised for malformed caller input, before any I/O happens."""
