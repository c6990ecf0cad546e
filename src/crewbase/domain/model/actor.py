"""The user on whose behalf an operation runs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Actor:
    user_id: str
    email: str | None = None

    @property
    def contact(self) -> str:
        return self.email or self.user_id
