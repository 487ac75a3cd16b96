"""Domain port definitions for adapters."""

from __future__ import annotations

from .lookup import ParcelLookup
from .persistence import PropertyFilter, PropertyRepository
from .unit_of_work import PropertyRepositories, PropertyUnitOfWork, UnitOfWorkFactory

__all__ = [
    "ParcelLookup",
    "PropertyFilter",
    "PropertyRepositories",
    "PropertyRepository",
    "PropertyUnitOfWork",
    "UnitOfWorkFactory",
]
