"""Domain model for record consolidation."""

from __future__ import annotations

from .actor import Actor
from .audit import JsonObject, JsonValue, MergeAudit
from .enums import EntityType, FieldChoice, Role

__all__ = [
    "Actor",
    "EntityType",
    "FieldChoice",
    "JsonObject",
    "JsonValue",
    "MergeAudit",
    "Role",
]
