"""Shared logging helpers for Crewbase."""

from __future__ import annotations

import logging

from .env import optional_env_var


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract. The level
    falls back to ``CREWBASE_LOG_LEVEL`` and then INFO. Pass ``force=True`` to
    reconfigure during tests or specialised entry points.
    """

    if level is None:
        level_name = (optional_env_var("CREWBASE_LOG_LEVEL") or "INFO").upper()
        level = logging.getLevelNamesMapping().get(level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
