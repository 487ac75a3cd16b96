from __future__ import annotations

import asyncio
from uuid import uuid4

from parcelbook.domain.reconciliation import DuplicateResolver
from tests.helpers.properties import FakeUnitOfWorkFactory, make_property


def test_exact_case_insensitive_match_after_fuzzy_search(
    fake_uow_factory: FakeUnitOfWorkFactory,
) -> None:
    owner = uuid4()
    target = make_property(owner, apn="AB-123")
    fake_uow_factory.repository.records[target.id] = target
    resolver = DuplicateResolver(fake_uow_factory)

    match = asyncio.run(resolver.exists("ab-123", owner))

    assert match.found
    assert match.record is target


def test_fuzzy_candidates_are_not_matches(fake_uow_factory: FakeUnitOfWorkFactory) -> None:
    owner = uuid4()
    for record in (
        make_property(owner, apn="1234567"),
        make_property(owner, apn="999", address="123456 Main St"),
        make_property(owner, apn="555", zip_code="123456"),
    ):
        fake_uow_factory.repository.records[record.id] = record
    resolver = DuplicateResolver(fake_uow_factory)

    match = asyncio.run(resolver.exists("123456", owner))

    assert not match.found
    assert match.record is None
    # The substring search did return candidates; only the exact filter rejected them.
    owner_id, filters, limit = fake_uow_factory.repository.list_calls[0]
    assert owner_id == owner
    assert filters is not None
    assert filters.search == "123456"
    assert limit is None


def test_resolver_does_not_strip_separators(fake_uow_factory: FakeUnitOfWorkFactory) -> None:
    owner = uuid4()
    record = make_property(owner, apn="123-456")
    fake_uow_factory.repository.records[record.id] = record
    resolver = DuplicateResolver(fake_uow_factory)

    assert asyncio.run(resolver.exists("123-456", owner)).found
    assert not asyncio.run(resolver.exists("123456", owner)).found


def test_other_owners_records_are_invisible(fake_uow_factory: FakeUnitOfWorkFactory) -> None:
    alice, bob = uuid4(), uuid4()
    record = make_property(alice, apn="777")
    fake_uow_factory.repository.records[record.id] = record
    resolver = DuplicateResolver(fake_uow_factory)

    assert not asyncio.run(resolver.exists("777", bob)).found


def test_match_found_beyond_ten_candidates(fake_uow_factory: FakeUnitOfWorkFactory) -> None:
    owner = uuid4()
    for index in range(15):
        record = make_property(owner, apn=f"42{index:03d}", address=f"{index} 42nd St")
        fake_uow_factory.repository.records[record.id] = record
    target = make_property(owner, apn="42")
    fake_uow_factory.repository.records[target.id] = target

    match = asyncio.run(DuplicateResolver(fake_uow_factory).exists("42", owner))

    assert match.record is target


def test_blank_candidate_is_never_found(fake_uow_factory: FakeUnitOfWorkFactory) -> None:
    match = asyncio.run(DuplicateResolver(fake_uow_factory).exists("   ", uuid4()))

    assert not match.found
    assert fake_uow_factory.repository.list_calls == []
