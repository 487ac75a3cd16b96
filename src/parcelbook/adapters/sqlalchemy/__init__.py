"""SQLAlchemy adapter package for parcelbook."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, property_table, start_mappers
from .repositories import SqlAlchemyPropertyRepository
from .unit_of_work import (
    SqlAlchemyPropertyUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyPropertyRepository",
    "SqlAlchemyPropertyUnitOfWork",
    "StartupError",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "property_table",
    "shutdown",
    "start_mappers",
    "startup",
]
