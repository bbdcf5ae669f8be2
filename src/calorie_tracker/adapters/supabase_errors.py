"""Translation of PostgREST failures into application errors."""

import logging
from typing import Any

from supabase import PostgrestAPIError

from calorie_tracker.errors import (
    NotFoundError,
    StorageContentionError,
    StorageError,
    ValidationError,
)

_logger = logging.getLogger(__name__)

CONTENTION_CODES = {"40001", "40P01", "55P03"}
UNIQUE_VIOLATION_CODE = "23505"
NO_DATA_FOUND_CODE = "P0002"


def execute(query: Any, integrity_message: str = "Data integrity violation") -> Any:
    """Run a PostgREST query, mapping database error codes to app errors."""
    try:
        return query.execute()
    except PostgrestAPIError as exc:
        code = str(exc.code or "")
        if code in CONTENTION_CODES:
            _logger.info("Storage contention", extra={"code": code})
            raise StorageContentionError() from exc
        if code == UNIQUE_VIOLATION_CODE:
            raise ValidationError(integrity_message) from exc
        if code == NO_DATA_FOUND_CODE:
            raise NotFoundError(exc.message or "Resource not found") from exc
        _logger.exception("Supabase request failed", extra={"code": code})
        raise StorageError() from exc
