from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from parcelbook.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyPropertyUnitOfWork,
    shutdown,
    startup,
)
from parcelbook.config.http_resilience import NO_RETRY, ResilienceConfig
from parcelbook.config.provider import ParcelProviderConfig
from tests.helpers.properties import FakeUnitOfWorkFactory

os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

TEST_BASE_URL = "https://regrid.test/api/v2"


@pytest.fixture
def provider_config() -> ParcelProviderConfig:
    resilience = ResilienceConfig(name="regrid-test", base_url=TEST_BASE_URL, retry=NO_RETRY)
    return ParcelProviderConfig(
        token="test-token",
        resilience=resilience,
        search_resilience=resilience,
    )


@pytest.fixture
def fake_uow_factory() -> FakeUnitOfWorkFactory:
    return FakeUnitOfWorkFactory()


@pytest.fixture
def sqlite_unit_of_work(tmp_path: Path) -> Iterator[Callable[[], SqlAlchemyPropertyUnitOfWork]]:
    # Tests run several event loops; NullPool keeps connections from crossing them.
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'parcelbook.db'}",
        poolclass=NullPool,
    )
    asyncio.run(startup(engine=engine, force=True))
    try:
        yield SqlAlchemyPropertyUnitOfWork
    finally:
        asyncio.run(shutdown())
