"""Merge policy defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool


@dataclass(frozen=True, slots=True)
class MergeConfig:
    # When set, a failed audit insert rolls back the whole merge.
    strict_audit: bool = False


def get_merge_config() -> MergeConfig:
    return MergeConfig(strict_audit=env_bool("CREWBASE_STRICT_AUDIT", default=False))
