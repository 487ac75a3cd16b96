from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, cast
from uuid import UUID

from dotenv import load_dotenv

from parcelbook.app import (
    bulk_create,
    check_duplicate,
    create_property,
    refresh_property,
    search_addresses,
)
from parcelbook.config import ConfigurationError, configure_logging
from parcelbook.domain.errors import (
    DuplicateError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
    RefreshIneligibleError,
    ValidationError,
)
from parcelbook.domain.model import ImportSource, PropertyInput

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_INVALID_INPUT = 2
EXIT_NOT_FOUND = 3
EXIT_DUPLICATE = 4
EXIT_PROVIDER_UNAVAILABLE = 5

_EXIT_CODES: tuple[tuple[type[Exception], int, str], ...] = (
    (ValidationError, EXIT_INVALID_INPUT, "Invalid input"),
    (RefreshIneligibleError, EXIT_INVALID_INPUT, "Invalid input"),
    (NotFoundError, EXIT_NOT_FOUND, "Not found"),
    (DuplicateError, EXIT_DUPLICATE, "Already exists"),
    (ProviderUnavailableError, EXIT_PROVIDER_UNAVAILABLE, "Provider unavailable"),
    (ProviderError, EXIT_PROVIDER_UNAVAILABLE, "Provider unavailable"),
    (ConfigurationError, EXIT_ERROR, "Configuration error"),
)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track real-estate parcels")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a property from an address or APN")
    create.add_argument("--user-id", type=str, required=True, help="Owning user id")
    create.add_argument("--address", type=str, required=True, help="Street address")
    create.add_argument("--apn", type=str, help="Assessor parcel number")
    create.add_argument("--external-id", type=str, help="Provider parcel id from a search")
    create.add_argument("--city", type=str)
    create.add_argument("--state", type=str, help="Two-letter state code")
    create.add_argument("--zip", dest="zip_code", type=str)
    create.add_argument("--notes", type=str, help="Free-text notes")
    create.add_argument("--tag", dest="tags", action="append", default=[], help="Repeatable")
    create.add_argument("--insurance-provider", type=str)

    refresh = subparsers.add_parser("refresh", help="Re-fetch provider data for a property")
    refresh.add_argument("--user-id", type=str, required=True)
    refresh.add_argument("--property-id", type=str, required=True)

    check = subparsers.add_parser("check", help="Check whether an APN is already tracked")
    check.add_argument("--user-id", type=str, required=True)
    check.add_argument("--apn", type=str, required=True)

    bulk = subparsers.add_parser("bulk", help="Create many properties at once")
    bulk.add_argument("--user-id", type=str, required=True)
    bulk.add_argument("--apn", dest="apns", action="append", default=[], help="Repeatable")
    bulk.add_argument("--rows", type=Path, help="JSON file holding a list of row objects")
    bulk.add_argument(
        "--source",
        type=ImportSource,
        choices=list(ImportSource),
        default=ImportSource.MANUAL,
    )
    bulk.add_argument("--chunk-size", type=int, help="Rows created concurrently per chunk")

    search = subparsers.add_parser("search", help="Search the provider by address")
    search.add_argument("--address", type=str, required=True)
    search.add_argument("--city", type=str)
    search.add_argument("--state", type=str)
    search.add_argument("--limit", type=int, default=10)

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid UUID: {value}") from exc


def _load_rows(args: argparse.Namespace) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = [{"apn": apn} for apn in args.apns]
    if args.rows is not None:
        try:
            payload = json.loads(Path(args.rows).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ValidationError(f"Cannot read rows from {args.rows}: {exc}") from exc
        if not isinstance(payload, list):
            raise ValidationError("Rows file must contain a JSON list")
        for item in cast("list[object]", payload):
            if not isinstance(item, dict):
                raise ValidationError("Every row must be a JSON object")
            rows.append(cast("dict[str, object]", item))
    if not rows:
        raise ValidationError("Provide at least one --apn or a --rows file")
    return rows


def _json_default(value: object) -> object:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: getattr(value, field.name) for field in dataclasses.fields(value)}
    if isinstance(value, set | frozenset):
        return sorted(cast("set[str]", value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID | Enum):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _emit(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, default=_json_default, indent=2) + "\n")


def _run_command(args: argparse.Namespace) -> int:
    if args.command == "create":
        data = PropertyInput.from_mapping(
            {
                "address": args.address,
                "apn": args.apn,
                "external_id": args.external_id,
                "city": args.city,
                "state": args.state,
                "zip_code": args.zip_code,
                "user_notes": args.notes,
                "tags": list(args.tags),
                "insurance_provider": args.insurance_provider,
            }
        )
        _emit(create_property(data, owner_id=_parse_uuid(args.user_id)))
    elif args.command == "refresh":
        _emit(
            refresh_property(
                _parse_uuid(args.property_id),
                owner_id=_parse_uuid(args.user_id),
            )
        )
    elif args.command == "check":
        match = check_duplicate(args.apn, owner_id=_parse_uuid(args.user_id))
        _emit({"exists": match.found, "property": match.record})
    elif args.command == "bulk":
        result = bulk_create(
            _load_rows(args),
            owner_id=_parse_uuid(args.user_id),
            source=args.source,
            chunk_size=args.chunk_size,
        )
        _emit(result)
    elif args.command == "search":
        _emit(search_addresses(args.address, city=args.city, region=args.state, limit=args.limit))
    else:
        raise ValidationError(f"Unsupported command: {args.command}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        exit_code = _run_command(parsed_args)
    except Exception as exc:
        for error_type, code, label in _EXIT_CODES:
            if isinstance(exc, error_type):
                log.error("%s: %s", label, exc)  # noqa: TRY400
                sys.exit(code)
        log.exception("Fatal error")
        sys.exit(EXIT_ERROR)
    sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    main()
