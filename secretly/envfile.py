"""Reading and writing ``KEY=value`` environment files."""

from __future__ import annotations

from collections.abc import Mapping
from os import PathLike
from pathlib import Path


class EnvFile:
    """A dotenv-style file of ``KEY=value`` lines."""

    def __init__(self, path: str | PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, str]:
        """Parse the file into a mapping.

        Empty lines, lines starting with ``#`` and lines without ``=`` are
        skipped; keys and values are stripped of surrounding whitespace.
        """
        variables: dict[str, str] = {}
        with self.path.open(encoding="utf-8") as handle:
            for raw in handle:
                line = raw.rstrip("\n")
                if not line or line.startswith("#"):
                    continue
                key, separator, value = line.partition("=")
                if separator:
                    variables[key.strip()] = value.strip()
        return variables

    def save(self, variables: Mapping[str, str]) -> None:
        """Overwrite the file with one ``KEY=value`` line per entry."""
        with self.path.open("w", encoding="utf-8") as handle:
            handle.writelines(f"{key}={value}\n" for key, value in variables.items())