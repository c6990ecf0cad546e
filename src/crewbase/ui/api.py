"""HTTP surface for the merge workflow (FastAPI)."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Annotated, Final

from fastapi import FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from crewbase.app import run_find_duplicates, run_history, run_merge, run_preview
from crewbase.domain.merge import (
    MergeError,
    MergeRequest,
    parse_entity_id,
    parse_entity_type,
)
from crewbase.domain.model import Actor

if TYPE_CHECKING:
    from crewbase.app import UnitOfWorkFactory
    from crewbase.domain.model import MergeAudit
    from crewbase.domain.ports.sync import VendorSyncTrigger

log = getLogger(__name__)

MAX_IDENTITY_LENGTH: Final[int] = 256


class ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class QuickBooksResolutionBody(ApiModel):
    keep_source_qb: bool = Field(default=False, alias="keepSourceQB")


class MergeBody(ApiModel):
    entity_type: str = Field(alias="entityType")
    source_id: str = Field(alias="sourceId")
    target_id: str = Field(alias="targetId")
    field_resolutions: dict[str, str] = Field(default_factory=dict, alias="fieldResolutions")
    quickbooks_resolution: QuickBooksResolutionBody | None = Field(
        default=None, alias="quickbooksResolution"
    )
    merge_reason: str | None = Field(default=None, alias="mergeReason")
    confirm_sensitive: bool = Field(default=False, alias="confirmSensitive")

    def to_request(self) -> MergeRequest:
        return MergeRequest(
            entity_type=parse_entity_type(self.entity_type),
            source_id=parse_entity_id(self.source_id, role="source"),
            target_id=parse_entity_id(self.target_id, role="target"),
            field_resolutions=dict(self.field_resolutions),
            quickbooks_resolution=(
                self.quickbooks_resolution.model_dump(by_alias=True)
                if self.quickbooks_resolution is not None
                else None
            ),
            merge_reason=(self.merge_reason or "").strip() or None,
            confirm_sensitive=self.confirm_sensitive,
        )


def _sanitize_identity(value: str | None) -> str | None:
    """Accept a forwarded identity header only if it is short and printable."""

    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned or len(cleaned) > MAX_IDENTITY_LENGTH or not cleaned.isprintable():
        return None
    return cleaned


def actor_from_headers(user_id: str | None, email: str | None) -> Actor | None:
    cleaned_id = _sanitize_identity(user_id)
    if cleaned_id is None:
        return None
    return Actor(user_id=cleaned_id, email=_sanitize_identity(email))


def audit_payload(audit: MergeAudit) -> dict[str, object]:
    return {
        "id": str(audit.id),
        "entityType": audit.entity_type.value,
        "sourceEntityId": str(audit.source_entity_id),
        "targetEntityId": str(audit.target_entity_id),
        "sourceEntitySnapshot": audit.source_entity_snapshot,
        "targetEntitySnapshot": audit.target_entity_snapshot,
        "mergedEntitySnapshot": audit.merged_entity_snapshot,
        "fieldOverrides": audit.field_overrides,
        "relatedRecordsUpdated": audit.related_records_updated,
        "quickbooksResolution": audit.quickbooks_resolution,
        "mergedBy": audit.merged_by,
        "mergedByEmail": audit.merged_by_email,
        "notes": audit.notes,
        "isReversed": audit.is_reversed,
        "mergedAt": audit.merged_at.isoformat(),
    }


def _error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _validation_message(exc: RequestValidationError) -> str:
    problems: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg', 'invalid')}" if location else error["msg"])
    return "Invalid request: " + "; ".join(problems) if problems else "Invalid request"


def create_app(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    sync_trigger: VendorSyncTrigger | None = None,
) -> FastAPI:
    """Build the merge API; collaborators default to the configured adapters."""

    app = FastAPI(title="Crewbase entity merge")

    @app.exception_handler(MergeError)
    async def _merge_error_handler(request: Request, exc: MergeError) -> JSONResponse:
        log.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_response(str(exc), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        _ = request
        return _error_response(_validation_message(exc), 400)

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log.exception("Unexpected error on %s %s", request.method, request.url.path)
        return _error_response(str(exc) or exc.__class__.__name__, 500)

    @app.post("/merge")
    def merge(
        body: MergeBody,
        x_user_id: Annotated[str | None, Header()] = None,
        x_user_email: Annotated[str | None, Header()] = None,
    ) -> JSONResponse:
        actor = actor_from_headers(x_user_id, x_user_email)
        result = run_merge(
            body.to_request(),
            actor=actor,
            unit_of_work_factory=unit_of_work_factory,
            sync_trigger=sync_trigger,
        )
        return JSONResponse(result.to_payload())

    @app.get("/merge/preview")
    def preview(
        entity_type: Annotated[str, Query(alias="entityType")],
        source_id: Annotated[str, Query(alias="sourceId")],
        target_id: Annotated[str, Query(alias="targetId")],
        x_user_id: Annotated[str | None, Header()] = None,
        x_user_email: Annotated[str | None, Header()] = None,
    ) -> JSONResponse:
        result = run_preview(
            parse_entity_type(entity_type),
            parse_entity_id(source_id, role="source"),
            parse_entity_id(target_id, role="target"),
            actor=actor_from_headers(x_user_id, x_user_email),
            unit_of_work_factory=unit_of_work_factory,
        )
        return JSONResponse({"success": True, **result.to_payload()})

    @app.get("/merge/audit")
    def audit_history(
        entity_type: Annotated[str, Query(alias="entityType")],
        entity_id: Annotated[str, Query(alias="entityId")],
        x_user_id: Annotated[str | None, Header()] = None,
        x_user_email: Annotated[str | None, Header()] = None,
    ) -> JSONResponse:
        audits = run_history(
            parse_entity_type(entity_type),
            parse_entity_id(entity_id, role="entity"),
            actor=actor_from_headers(x_user_id, x_user_email),
            unit_of_work_factory=unit_of_work_factory,
        )
        return JSONResponse({"success": True, "items": [audit_payload(a) for a in audits]})

    @app.get("/merge/duplicates")
    def duplicates(
        entity_type: Annotated[str, Query(alias="entityType")],
        entity_id: Annotated[str, Query(alias="entityId")],
        x_user_id: Annotated[str | None, Header()] = None,
        x_user_email: Annotated[str | None, Header()] = None,
    ) -> JSONResponse:
        matches = run_find_duplicates(
            parse_entity_type(entity_type),
            parse_entity_id(entity_id, role="entity"),
            actor=actor_from_headers(x_user_id, x_user_email),
            unit_of_work_factory=unit_of_work_factory,
        )
        return JSONResponse(
            {"success": True, "duplicates": [match.to_payload() for match in matches]}
        )

    return app
