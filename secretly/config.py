"""Server configuration read from the process environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_PORT = "8080"
DEFAULT_DB_PATH = "secretly.db"


@dataclass(frozen=True)
class Config:
    """Settings the server starts with."""

    port: str = DEFAULT_PORT
    db_path: str = DEFAULT_DB_PATH


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from ``PORT`` and ``DB_PATH``, falling back to defaults.

    A variable that is set, even to an empty string, overrides the default.
    """
    source = os.environ if environ is None else environ
    return Config(
        port=source.get("PORT", DEFAULT_PORT),
        db_path=source.get("DB_PATH", DEFAULT_DB_PATH),
    )