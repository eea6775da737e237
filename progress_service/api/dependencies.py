"""Request dependencies: authentication, ownership, service wiring."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.core.config import SETTINGS
from progress_service.db.engine import async_session_factory, get_async_session
from progress_service.models.principal import Principal
from progress_service.repos.learner_repo import InMemoryLearnerRepo
from progress_service.repos.lesson_repo import InMemoryLessonRepo
from progress_service.repos.pg_learner_repo import PgLearnerRepo
from progress_service.repos.pg_lesson_repo import PgLessonRepo
from progress_service.repos.pg_progress_repo import PgProgressRepo
from progress_service.repos.progress_repo import InMemoryProgressRepo
from progress_service.services import token_service
from progress_service.services.cache import cache_service
from progress_service.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

# Tokens are issued by the identity service; this URL is documentation only.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# In-memory stores, used when DATABASE_URL is unset.
progress_repo = InMemoryProgressRepo()
lesson_repo = InMemoryLessonRepo()
learner_repo = InMemoryLearnerRepo()


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return Principal(user_id=claims["sub"], roles=frozenset(claims.get("roles", [])))


def principal_user_id(principal: Principal) -> UUID:
    try:
        return UUID(principal.user_id)
    except ValueError:
        logger.warning("Token subject is not a user id: %r", principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


def current_user_id(
    principal: Annotated[Principal, Depends(require_user)],
) -> UUID:
    return principal_user_id(principal)


def resolve_learner(
    user_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> UUID:
    """Resolve the ``{user_id}`` path segment (``me`` allowed) and apply
    the ownership rule: the caller's own records, or anyone's for admins.
    """
    if user_id == "me":
        return principal_user_id(principal)
    try:
        target = UUID(user_id)
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail={"error": "invalid_input", "message": f"bad user id {user_id!r}"},
        ) from None

    if not principal.can_act_for(str(target)):
        logger.warning(
            "Access denied: user=%s on learner=%s", principal.user_id, target
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return target


def _service(progress, lessons, learners) -> ProgressService:
    return ProgressService(
        progress,
        lessons,
        learners,
        session_retention=SETTINGS.session_retention,
        cache=cache_service,
        stats_cache_ttl=SETTINGS.stats_cache_ttl,
    )


if async_session_factory is None:

    async def get_progress_service() -> ProgressService:
        return _service(progress_repo, lesson_repo, learner_repo)

else:

    async def get_progress_service(
        session: Annotated[AsyncSession, Depends(get_async_session)],
    ) -> ProgressService:
        return _service(
            PgProgressRepo(session), PgLessonRepo(session), PgLearnerRepo(session)
        )
