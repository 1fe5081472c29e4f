"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from pulse_scoring.core.errors import NotFoundError, PulseError, StoreWriteError, ValidationError
from pulse_scoring.core.security import Actor, InvalidTokenError, decode_access_token
from pulse_scoring.db.session import get_db
from pulse_scoring.repositories import SqlVoteStore
from pulse_scoring.services.audit import AuditService
from pulse_scoring.services.registry import ScoringRegistry
from pulse_scoring.services.vote_service import VoteService

# HTTP Bearer scheme for identity-service tokens
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> Actor:
    """Resolve the caller from the bearer token.

    Raises:
        HTTPException: If the token is invalid or expired.
    """
    try:
        return decode_access_token(credentials.credentials)
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err


CurrentActorDep = Annotated[Actor, Depends(get_current_actor)]


def require_admin(actor: CurrentActorDep) -> Actor:
    """Allow only admins and conference chairs through."""
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return actor


AdminDep = Annotated[Actor, Depends(require_admin)]


def get_store(db: SessionDep) -> SqlVoteStore:
    return SqlVoteStore(db)


StoreDep = Annotated[SqlVoteStore, Depends(get_store)]


def get_registry(db: SessionDep) -> ScoringRegistry:
    return ScoringRegistry(db)


RegistryDep = Annotated[ScoringRegistry, Depends(get_registry)]


def get_vote_service(store: StoreDep, registry: RegistryDep) -> VoteService:
    return VoteService(store, registry)


VoteServiceDep = Annotated[VoteService, Depends(get_vote_service)]


def get_audit_service(store: StoreDep, registry: RegistryDep) -> AuditService:
    return AuditService(store, registry.snapshot())


AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]


def http_error(exc: PulseError) -> HTTPException:
    """Translate a domain error into the matching HTTP error."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, StoreWriteError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vote could not be saved, please retry",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
