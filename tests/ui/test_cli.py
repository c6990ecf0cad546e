from __future__ import annotations

import json
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from crewbase.domain.merge import (
    DuplicateMatch,
    FieldComparison,
    MergePreview,
    MergeRequest,
    MergeResult,
    PermissionDenied,
)
from crewbase.domain.model import Actor, EntityType, FieldChoice, Role
from crewbase.ui import cli as cli_module

SOURCE = UUID("11111111-1111-4111-8111-111111111111")
TARGET = UUID("22222222-2222-4222-8222-222222222222")


def _merge_args(*extra: str) -> list[str]:
    return [
        "merge",
        "--entity-type",
        "customer",
        "--source",
        str(SOURCE),
        "--target",
        str(TARGET),
        "--actor-id",
        "admin-user",
        *extra,
    ]


def _preview() -> MergePreview:
    return MergePreview(
        entity_type=EntityType.CUSTOMER,
        source_id=SOURCE,
        target_id=TARGET,
        fields=(
            FieldComparison("name", "Acme Inc", "Acme", FieldChoice.TARGET),
            FieldComparison("phone", "555-0100", None, FieldChoice.SOURCE),
        ),
        related_records={"projects": 2},
        totals={"invoices": Decimal("10.00")},
    )


class _MergeRecorder:
    def __init__(self) -> None:
        self.requests: list[MergeRequest] = []
        self.actors: list[Actor | None] = []

    def __call__(self, request: MergeRequest, *, actor: Actor | None) -> MergeResult:
        self.requests.append(request)
        self.actors.append(actor)
        return MergeResult(audit_id=uuid4(), records_updated={"projects": 2})


def test_merge_cli_passes_explicit_field_choices(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    recorder = _MergeRecorder()
    monkeypatch.setattr(cli_module, "run_merge", recorder)

    cli_module.main(
        _merge_args(
            "--field",
            "email=source",
            "--field",
            "phone = target",
            "--reason",
            "duplicate",
            "--keep-source-qb",
            "--actor-email",
            "admin@example.com",
        )
    )

    (request,) = recorder.requests
    assert request.entity_type is EntityType.CUSTOMER
    assert request.source_id == SOURCE
    assert request.target_id == TARGET
    assert request.field_resolutions == {"email": "source", "phone": "target"}
    assert request.quickbooks_resolution == {"keepSourceQB": True}
    assert request.merge_reason == "duplicate"
    assert request.confirm_sensitive is False
    assert recorder.actors == [Actor(user_id="admin-user", email="admin@example.com")]
    assert json.loads(capsys.readouterr().out)["recordsUpdated"] == {"projects": 2}


def test_merge_cli_defaults_to_preview_choices(monkeypatch: pytest.MonkeyPatch) -> None:
    recorder = _MergeRecorder()
    monkeypatch.setattr(cli_module, "run_merge", recorder)
    monkeypatch.setattr(cli_module, "run_preview", lambda *_, **__: _preview())

    cli_module.main(_merge_args("--confirm-sensitive"))

    (request,) = recorder.requests
    assert request.field_resolutions == {"name": "target", "phone": "source"}
    assert request.confirm_sensitive is True


@pytest.mark.parametrize(
    "argv",
    [
        _merge_args("--field", "email"),
        _merge_args("--field", "=source"),
        [
            "merge",
            "--entity-type",
            "customer",
            "--source",
            "nope",
            "--target",
            str(TARGET),
            "--actor-id",
            "admin-user",
        ],
        ["history", "--entity-type", "vendor", "--entity-id", "nope", "--actor-id", "a"],
        ["duplicates", "--entity-type", "vendor", "--entity-id", "nope", "--actor-id", "a"],
    ],
)
def test_cli_rejects_malformed_arguments(
    monkeypatch: pytest.MonkeyPatch, argv: list[str]
) -> None:
    monkeypatch.setattr(cli_module, "run_merge", _MergeRecorder())

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(argv)

    assert excinfo.value.code == 2


def test_cli_merge_error_exits_with_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def denied(request: MergeRequest, *, actor: Actor | None) -> MergeResult:
        _ = (request, actor)
        raise PermissionDenied("Admin access required")

    monkeypatch.setattr(cli_module, "run_merge", denied)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(_merge_args("--field", "email=source"))

    assert excinfo.value.code == 1


def test_preview_cli_prints_payload(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(cli_module, "run_preview", lambda *_, **__: _preview())

    cli_module.main(
        [
            "preview",
            "--entity-type",
            "customer",
            "--source",
            str(SOURCE),
            "--target",
            str(TARGET),
            "--actor-id",
            "admin-user",
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert payload["relatedRecords"] == {"projects": 2}
    assert payload["totals"] == {"invoices": "10.00"}


def test_history_cli_lists_audits(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_history(
        entity_type: EntityType, entity_id: UUID, *, actor: Actor | None
    ) -> list[object]:
        captured.update(entity_type=entity_type, entity_id=entity_id, actor=actor)
        return []

    monkeypatch.setattr(cli_module, "run_history", fake_history)

    cli_module.main(
        ["history", "--entity-type", "vendor", "--entity-id", str(SOURCE), "--actor-id", "a"]
    )

    assert captured == {
        "entity_type": EntityType.VENDOR,
        "entity_id": SOURCE,
        "actor": Actor(user_id="a"),
    }
    assert json.loads(capsys.readouterr().out) == []


def test_grant_role_cli(monkeypatch: pytest.MonkeyPatch) -> None:
    granted: list[tuple[str, Role]] = []

    def fake_grant(user_id: str, role: Role) -> None:
        granted.append((user_id, role))

    monkeypatch.setattr(cli_module, "grant_role", fake_grant)

    cli_module.main(["grant-role", "--user-id", "first-admin"])

    assert granted == [("first-admin", Role.ADMIN)]


def test_duplicates_cli_prints_candidates(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    def fake_duplicates(
        entity_type: EntityType, entity_id: UUID, *, actor: Actor | None
    ) -> tuple[DuplicateMatch, ...]:
        captured.update(entity_type=entity_type, entity_id=entity_id, actor=actor)
        return (DuplicateMatch(TARGET, "Acme", "email", 90, {"email": "office@acme.com"}),)

    monkeypatch.setattr(cli_module, "run_find_duplicates", fake_duplicates)

    cli_module.main(
        ["duplicates", "--entity-type", "customer", "--entity-id", str(SOURCE), "--actor-id", "a"]
    )

    assert captured == {
        "entity_type": EntityType.CUSTOMER,
        "entity_id": SOURCE,
        "actor": Actor(user_id="a"),
    }
    assert json.loads(capsys.readouterr().out) == [
        {
            "duplicate_id": str(TARGET),
            "duplicate_name": "Acme",
            "duplicate_email": "office@acme.com",
            "match_type": "email",
            "match_score": 90,
        }
    ]
