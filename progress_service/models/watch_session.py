from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime

from progress_service.core.errors import InvalidInputError, InvalidStateError
from progress_service.core.rounding import round_half_up


@dataclass(frozen=True, slots=True)
class WatchSession:
    """One contiguous play interval.  Open until `end_time` is set."""

    start_time: datetime
    start_position: float
    end_position: float
    end_time: datetime | None = None
    duration: int | None = None  # whole seconds, set at close
    completed: bool = False

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def close(self, *, end_position: float, completed: bool, now: datetime) -> WatchSession:
        elapsed = (now - self.start_time).total_seconds()
        return replace(
            self,
            end_time=now,
            end_position=end_position,
            duration=max(0, round_half_up(elapsed)),
            completed=completed,
        )


def _check_position(position: float) -> None:
    if not math.isfinite(position) or position < 0:
        raise InvalidInputError(
            f"playback position must be a finite number >= 0 (got {position})"
        )


class WatchSessionTracker:
    """Open/close bookkeeping for one record's append-only session list.

    At most one session is open, and it is always the last one.  Closed
    sessions are never modified again; `compact` may drop the oldest of
    them once their durations have been folded into the record's
    time_spent.
    """

    def __init__(
        self, sessions: tuple[WatchSession, ...] = (), compacted: int = 0
    ) -> None:
        self._sessions = list(sessions)
        self._compacted = compacted

    @property
    def sessions(self) -> tuple[WatchSession, ...]:
        return tuple(self._sessions)

    @property
    def compacted(self) -> int:
        return self._compacted

    @property
    def current(self) -> WatchSession | None:
        if self._sessions and self._sessions[-1].is_open:
            return self._sessions[-1]
        return None

    def start(self, start_position: float, *, now: datetime) -> WatchSession:
        _check_position(start_position)
        if self.current is not None:
            raise InvalidStateError("a watch session is already open")
        session = WatchSession(
            start_time=now,
            start_position=start_position,
            end_position=start_position,
        )
        self._sessions.append(session)
        return session

    def end(
        self, end_position: float, completed: bool, *, now: datetime
    ) -> WatchSession | None:
        """Close the open session.  Returns None when nothing is open."""
        _check_position(end_position)
        current = self.current
        if current is None:
            return None
        closed = current.close(end_position=end_position, completed=completed, now=now)
        self._sessions[-1] = closed
        return closed

    def compact(self, keep: int) -> int:
        """Drop closed sessions beyond the newest `keep`.  Returns how many."""
        if keep < 1:
            raise InvalidInputError("session retention must keep at least 1")
        open_tail = [s for s in self._sessions[-1:] if s.is_open]
        closed = self._sessions[: len(self._sessions) - len(open_tail)]
        dropped = max(0, len(closed) - keep)
        if dropped:
            self._sessions = closed[dropped:] + open_tail
            self._compacted += dropped
        return dropped
