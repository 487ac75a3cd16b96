"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from parcelbook.domain.ports.persistence import PropertyRepository


@dataclass(slots=True)
class PropertyRepositories:
    """Repositories required to manage a user's properties."""

    properties: PropertyRepository


@runtime_checkable
class PropertyUnitOfWork(Protocol):
    """Async transaction boundary around the property repositories."""

    @property
    def repositories(self) -> PropertyRepositories: ...

    async def __aenter__(self) -> PropertyUnitOfWork: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


type UnitOfWorkFactory = Callable[[], PropertyUnitOfWork]
