"""Read-only compendium source — loads the pre-built resume data JSON."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError

from curator.config import get_settings
from curator.exceptions import ServiceUnavailableError
from curator.schemas.compendium import Compendium

logger = logging.getLogger(__name__)


def load_compendium(path: str | Path) -> Compendium:
    """Load and validate a compendium file.

    Raises:
        ServiceUnavailableError: if the file is missing, unreadable, or invalid.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return Compendium.model_validate(raw)
    except FileNotFoundError as exc:
        logger.error("Compendium file not found: %s", path)
        raise ServiceUnavailableError() from exc
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.error("Compendium file %s is invalid: %s", path, exc)
        raise ServiceUnavailableError() from exc


@lru_cache
def get_compendium() -> Compendium:
    """Return the compendium at ``COMPENDIUM_PATH``, loaded once per process.

    The data is immutable once loaded, so sharing it across requests is safe.
    """
    return load_compendium(get_settings().compendium_path)
