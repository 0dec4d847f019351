from __future__ import annotations

import json
from typing import Any


def format_sse(payload: Any, *, event: str | None = None) -> str:
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {json.dumps(payload)}\n\n"
