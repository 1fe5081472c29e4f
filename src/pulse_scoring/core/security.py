"""Bearer-token helpers for the identity service contract.

The identity service issues JWTs whose ``sub`` claim is the stable user id
and whose ``role`` claim is the actor's role. The engine trusts the role it
finds in a valid token.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from pulse_scoring.core.settings import settings

ROLE_ADMIN = "admin"
ROLE_CONFERENCE_CHAIR = "conference-chair"
KNOWN_ROLES = frozenset({"judge", "spectator", ROLE_ADMIN, ROLE_CONFERENCE_CHAIR})


class InvalidTokenError(ValueError):
    """The bearer token could not be decoded or lacks required claims."""


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as vouched for by the identity service."""

    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in (ROLE_ADMIN, ROLE_CONFERENCE_CHAIR)


def create_access_token(user_id: str, role: str, expires_minutes: int | None = None) -> str:
    """Create a signed access token for ``user_id`` acting as ``role``."""
    minutes = expires_minutes or settings.access_token_expire_minutes
    to_encode: dict[str, object] = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(UTC) + timedelta(minutes=minutes),
    }
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> Actor:
    """Return the actor encoded in ``token``.

    Raises:
        InvalidTokenError: If the signature, expiry or claims are invalid.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise InvalidTokenError("Could not validate credentials") from err

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or role not in KNOWN_ROLES:
        raise InvalidTokenError("Token is missing a subject or a known role")
    return Actor(user_id=str(subject), role=str(role))
