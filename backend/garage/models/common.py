from __future__ import annotations

import uuid


def new_id() -> str:
    """Opaque string identity for generated entities."""
    return str(uuid.uuid4())


def cents_to_display(cents: int | None) -> str:
    """Human readable amount used in generated descriptions ("$12.50")."""
    cents = cents or 0
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}${cents // 100:,}.{cents % 100:02d}"
