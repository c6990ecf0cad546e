# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from crewbase.app import grant_role, run_find_duplicates, run_history, run_merge, run_preview
from crewbase.config import configure_logging
from crewbase.domain.merge import (
    InvalidArgument,
    MergeError,
    MergeRequest,
    parse_entity_id,
    parse_entity_type,
)
from crewbase.domain.model import Actor, EntityType, Role
from crewbase.ui.api import audit_payload, create_app

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _add_actor_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--actor-id",
        type=str,
        required=True,
        help="User id performing the operation (must hold the admin role)",
    )
    parser.add_argument("--actor-email", type=str, help="Contact email recorded in the audit")


def _add_pair_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--entity-type",
        type=str,
        required=True,
        choices=[entity_type.value for entity_type in EntityType],
        help="Kind of record to merge",
    )
    parser.add_argument("--source", type=str, required=True, help="Id of the duplicate to retire")
    parser.add_argument("--target", type=str, required=True, help="Id of the record to keep")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Merge duplicate Crewbase records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    merge = subparsers.add_parser("merge", help="Merge a source record into a target")
    _add_pair_arguments(merge)
    merge.add_argument(
        "--field",
        action="append",
        default=[],
        metavar="NAME=source|target",
        help="Field choice; repeat per field. Without any, the preview defaults are used",
    )
    merge.add_argument("--reason", type=str, help="Free-text merge reason")
    merge.add_argument(
        "--keep-source-qb",
        action="store_true",
        help="Record that the source's QuickBooks vendor should be kept",
    )
    merge.add_argument(
        "--confirm-sensitive",
        action="store_true",
        help="Allow overwriting sensitive fields (tax id, SSN) with source values",
    )
    _add_actor_arguments(merge)

    preview = subparsers.add_parser("preview", help="Show what a merge would change")
    _add_pair_arguments(preview)
    _add_actor_arguments(preview)

    history = subparsers.add_parser("history", help="List merge audits for a record")
    history.add_argument(
        "--entity-type",
        type=str,
        required=True,
        choices=[entity_type.value for entity_type in EntityType],
    )
    history.add_argument("--entity-id", type=str, required=True)
    _add_actor_arguments(history)

    duplicates = subparsers.add_parser("duplicates", help="List likely duplicates of a record")
    duplicates.add_argument(
        "--entity-type",
        type=str,
        required=True,
        choices=[entity_type.value for entity_type in EntityType],
    )
    duplicates.add_argument("--entity-id", type=str, required=True)
    _add_actor_arguments(duplicates)

    grant = subparsers.add_parser("grant-role", help="Grant a role to a user")
    grant.add_argument("--user-id", type=str, required=True)
    grant.add_argument(
        "--role",
        type=str,
        default=Role.ADMIN.value,
        choices=[role.value for role in Role],
    )

    serve = subparsers.add_parser("serve", help="Serve the HTTP API with uvicorn")
    serve.add_argument("--host", type=str, default=DEFAULT_HOST)
    serve.add_argument("--port", type=int, default=DEFAULT_PORT)

    return parser.parse_args(list(argv))


def _parse_field_choices(values: Sequence[str]) -> dict[str, str]:
    choices: dict[str, str] = {}
    for raw in values:
        name, separator, choice = raw.partition("=")
        if not separator or not name.strip() or not choice.strip():
            raise ValueError(f"Invalid --field value (expected NAME=source|target): {raw}")
        choices[name.strip()] = choice.strip()
    return choices


def _actor(args: argparse.Namespace) -> Actor:
    return Actor(user_id=args.actor_id, email=args.actor_email)


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _run_merge(args: argparse.Namespace) -> None:
    entity_type = parse_entity_type(args.entity_type)
    source_id = parse_entity_id(args.source, role="source")
    target_id = parse_entity_id(args.target, role="target")
    actor = _actor(args)

    field_resolutions = _parse_field_choices(args.field)
    if not field_resolutions:
        preview = run_preview(entity_type, source_id, target_id, actor=actor)
        field_resolutions = preview.default_resolutions()
        log.info("Using default field choices: %s", field_resolutions)

    request = MergeRequest(
        entity_type=entity_type,
        source_id=source_id,
        target_id=target_id,
        field_resolutions=field_resolutions,
        quickbooks_resolution={"keepSourceQB": True} if args.keep_source_qb else None,
        merge_reason=args.reason,
        confirm_sensitive=args.confirm_sensitive,
    )
    result = run_merge(request, actor=actor)
    _emit(result.to_payload())


def _validate(args: argparse.Namespace) -> None:
    if args.command in {"merge", "preview"}:
        parse_entity_id(args.source, role="source")
        parse_entity_id(args.target, role="target")
    if args.command == "merge":
        _parse_field_choices(args.field)
    if args.command in {"history", "duplicates"}:
        parse_entity_id(args.entity_id, role="entity")


def _serve(args: argparse.Namespace) -> None:
    import uvicorn  # noqa: PLC0415

    uvicorn.run(create_app(), host=args.host, port=args.port)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except (ValueError, InvalidArgument):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "merge":
            _run_merge(parsed_args)
        elif parsed_args.command == "preview":
            preview = run_preview(
                parse_entity_type(parsed_args.entity_type),
                parse_entity_id(parsed_args.source, role="source"),
                parse_entity_id(parsed_args.target, role="target"),
                actor=_actor(parsed_args),
            )
            _emit(preview.to_payload())
        elif parsed_args.command == "history":
            audits = run_history(
                parse_entity_type(parsed_args.entity_type),
                parse_entity_id(parsed_args.entity_id, role="entity"),
                actor=_actor(parsed_args),
            )
            _emit([audit_payload(audit) for audit in audits])
        elif parsed_args.command == "duplicates":
            matches = run_find_duplicates(
                parse_entity_type(parsed_args.entity_type),
                parse_entity_id(parsed_args.entity_id, role="entity"),
                actor=_actor(parsed_args),
            )
            _emit([match.to_payload() for match in matches])
        elif parsed_args.command == "grant-role":
            grant_role(parsed_args.user_id, Role(parsed_args.role))
        elif parsed_args.command == "serve":
            _serve(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except MergeError as exc:
        log.error("Merge command failed: %s", exc)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
