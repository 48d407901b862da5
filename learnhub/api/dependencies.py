from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from learnhub.core.config import SETTINGS
from learnhub.db.engine import async_session_factory
from learnhub.models.principal import Principal
from learnhub.repos.bundle import Repos, in_memory_repos, pg_repos
from learnhub.services import token_service
from learnhub.services.access_guard import AccessGuard
from learnhub.services.assessment_log import AssessmentLog
from learnhub.services.certificates import CertificateRegistry
from learnhub.services.completion_gate import CompletionGate
from learnhub.services.enrollment_store import EnrollmentStore
from learnhub.services.gateway import payment_gateway
from learnhub.services.locks import keyed_lock
from learnhub.services.payment_ledger import GatewayCredentials, PaymentLedger
from learnhub.services.reviews_service import ReviewService

logger = logging.getLogger(__name__)

# Tokens come from the platform auth service; tokenUrl only feeds the docs UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# Process-wide state used when DATABASE_URL is not set (dev, tests).
memory_repos = in_memory_repos()


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer JWT and return the caller's Principal."""
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

    return Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )


def require_role(role: str):
    """Dependency factory: demand a specific role, else 403.

    Usage: Depends(require_role("admin"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


async def get_repos() -> AsyncGenerator[Repos, None]:
    """One unit of work per request: commit on success, roll back on error."""
    if async_session_factory is None:
        yield memory_repos
        return
    async with async_session_factory() as session:
        try:
            yield pg_repos(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


RequestRepos = Annotated[Repos, Depends(get_repos)]


def get_access_guard(repos: RequestRepos) -> AccessGuard:
    return AccessGuard(repos)


def get_payment_ledger(repos: RequestRepos) -> PaymentLedger:
    return PaymentLedger(
        repos,
        gateway=payment_gateway,
        locks=keyed_lock,
        credentials=GatewayCredentials(
            key_id=SETTINGS.gateway_key_id,
            key_secret=SETTINGS.gateway_key_secret,
            webhook_secret=SETTINGS.gateway_webhook_secret,
        ),
    )


def get_enrollment_store(repos: RequestRepos) -> EnrollmentStore:
    return EnrollmentStore(repos, locks=keyed_lock)


def get_assessment_log(repos: RequestRepos) -> AssessmentLog:
    return AssessmentLog(repos)


def get_completion_gate(repos: RequestRepos) -> CompletionGate:
    return CompletionGate(repos)


def get_certificate_registry(repos: RequestRepos) -> CertificateRegistry:
    return CertificateRegistry(repos)


def get_review_service(repos: RequestRepos) -> ReviewService:
    return ReviewService(repos, locks=keyed_lock)
