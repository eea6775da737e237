"""Daily activity streaks.

The day difference is elapsed time floored to whole days, not a calendar
comparison: activity at 23:00 and again at 01:00 the next morning is a
0-day gap, and 01:00 Monday to 23:00 Tuesday is a 1-day gap.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from progress_service.core.clock import utcnow
from progress_service.models.learner import Learner

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86_400


def elapsed_days(earlier: datetime, later: datetime) -> int:
    return int(abs((later - earlier).total_seconds()) // _SECONDS_PER_DAY)


def next_streak(streak_days: int, last_active: datetime | None, now: datetime) -> int:
    if last_active is None:
        return streak_days
    diff = elapsed_days(last_active, now)
    if diff == 1:
        return streak_days + 1
    if diff > 1:
        return 1
    return streak_days


def update_streak(learner: Learner, *, now: datetime | None = None) -> Learner:
    """Apply one qualifying activity event and stamp last_active_date."""
    now = now or utcnow()
    streak = next_streak(learner.streak_days, learner.last_active_date, now)
    if streak != learner.streak_days:
        logger.info(
            "Streak %d -> %d",
            learner.streak_days,
            streak,
            extra={"user_id": str(learner.id)},
        )
    return replace(learner, streak_days=streak, last_active_date=now)
