from __future__ import annotations

from collections.abc import Mapping

from fastapi import HTTPException

# Wrong-phase and lost-race writes are conflicts, not bad input.
CYCLE_PHRASE_STATUSES: Mapping[str, int] = {
    "not found": 404,
    "not accepting": 409,
    "only move forward": 409,
}
LIBRARY_PHRASE_STATUSES: Mapping[str, int] = {
    "not found": 404,
    "already in your library": 409,
}


def permission_error(exc: PermissionError) -> HTTPException:
    return HTTPException(status_code=403, detail=str(exc))


def upstream_error(exc: Exception) -> HTTPException:
    return HTTPException(status_code=502, detail=str(exc))


def value_error(
    exc: ValueError,
    *,
    phrase_statuses: Mapping[str, int] | None = None,
    default_status: int = 400,
) -> HTTPException:
    raw_detail = str(exc)
    lowered = raw_detail.lower()
    if phrase_statuses:
        # first matching phrase wins
        for phrase, status in phrase_statuses.items():
            if phrase in lowered:
                return HTTPException(status_code=status, detail=raw_detail)

    return HTTPException(status_code=default_status, detail=raw_detail)


def store_error(action: str) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Could not save your {action}. Please try again.")
