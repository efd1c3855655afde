from __future__ import annotations

import hashlib
from typing import Any


def make_idempotency_key(operation: str, order_id: str, *parts: Any) -> str:
    """Stable, reproducible key derived from business identifiers (no timestamp).

    The same logical operation always yields the same key, so a processor that
    honours idempotency keys collapses a repeated call into the first one.
    """
    base = "|".join([operation, str(order_id), *("" if p is None else str(p) for p in parts)])
    return hashlib.sha256(base.encode("utf-8")).hexdigest()
