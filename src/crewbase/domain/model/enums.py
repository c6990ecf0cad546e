"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    """Record kinds that can be consolidated by a merge."""

    CUSTOMER = "customer"
    VENDOR = "vendor"
    PERSONNEL = "personnel"


class FieldChoice(StrEnum):
    """Which side of a merge supplies a field value."""

    SOURCE = "source"
    TARGET = "target"


class Role(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"
