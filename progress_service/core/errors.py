"""Error taxonomy for the progress and gamification core.

Every failure the core reports is one of four kinds, chosen where the
failure is detected.  The HTTP layer maps `kind` to a status code; nothing
downstream inspects message text to decide what went wrong.

Adding an achievement that already exists is NOT an error: it is a no-op
that reports False.
"""

from __future__ import annotations

from typing import ClassVar, Literal

ErrorKind = Literal["invalid_input", "not_found", "conflict", "invalid_state"]


class ProgressError(Exception):
    kind: ClassVar[ErrorKind]


class InvalidInputError(ProgressError, ValueError):
    """Negative watch time, non-positive duration, out-of-range rating..."""

    kind = "invalid_input"


class NotFoundError(ProgressError, LookupError):
    kind = "not_found"


class ConflictError(ProgressError):
    """A progress record already exists for this (user, lesson) pair."""

    kind = "conflict"


class InvalidStateError(ProgressError):
    """The aggregate is not in a state that allows the operation."""

    kind = "invalid_state"
