"""Translate domain errors into HTTP responses.

Routes wrap service calls in ``with domain_errors():``.  The mapping is
by error kind, set where the error is raised; messages are never parsed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status

from progress_service.core.errors import ProgressError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[str, int] = {
    "invalid_input": 422,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "invalid_state": status.HTTP_409_CONFLICT,
}


def to_http(exc: ProgressError) -> HTTPException:
    return HTTPException(
        status_code=STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST),
        detail={"error": exc.kind, "message": str(exc)},
    )


@contextmanager
def domain_errors() -> Iterator[None]:
    try:
        yield
    except ProgressError as exc:
        logger.warning("Request rejected (%s): %s", exc.kind, exc)
        raise to_http(exc) from None
