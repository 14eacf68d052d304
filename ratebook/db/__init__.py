"""Persistence gateways and their shared defaults."""

from __future__ import annotations

from pathlib import Path
from typing import Final

__all__ = ["DEFAULT_JSON_FILENAME", "default_json_path"]

DEFAULT_JSON_FILENAME: Final[str] = "rates.json"


def default_json_path(directory: str | Path | None = None) -> Path:
    """Return the absolute path of ``rates.json`` inside ``directory``.

    ``directory`` defaults to the current working directory.
    """

    base = Path(directory) if directory is not None else Path.cwd()
    return (base / DEFAULT_JSON_FILENAME).expanduser().resolve()
