from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Timezone-aware now.  Domain code takes `now` as a parameter and
    falls back to this, so tests can pin time without patching."""
    return datetime.now(UTC)
