import logging
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
from database import get_session
from models import UserRole
from auth import decode_token
from errors import Forbidden, Unauthorized
from services.credentials import Identity, get_user

logger = logging.getLogger(__name__)

# Missing headers are reported by get_current_user, not by HTTPBearer
security = HTTPBearer(auto_error=False)

def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_session)
) -> Identity:
    """Resolve the bearer token to a live identity"""
    if not credentials or not credentials.credentials:
        raise Unauthorized("No token provided")

    payload = decode_token(credentials.credentials)
    role = payload["role"]

    user = get_user(session, role, payload["sub"])
    if not user:
        logger.warning(f"Token presented for missing {role.value} {payload['sub']}")
        raise Unauthorized("User not found")

    if user.token_version != payload["token_version"]:
        raise Unauthorized("Token has been revoked")

    identity = Identity(id=user.id, role=role, user=user)

    # Downstream handlers and middleware read the identity from request state
    request.state.user = identity

    return identity

def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_session)
) -> Optional[Identity]:
    """Identity for public endpoints that adapt to a signed-in caller

    A stale, revoked or malformed token is treated as anonymous.
    """
    if not credentials or not credentials.credentials:
        return None
    try:
        return get_current_user(request, credentials, session)
    except Unauthorized as e:
        logger.info(f"Ignoring unusable token on public endpoint: {e.message}")
        return None

def require_role(expected: UserRole):
    """Dependency factory for single role access control"""
    def role_checker(current_user: Identity = Depends(get_current_user)) -> Identity:
        if current_user.role != expected:
            raise Forbidden(f"Not authorized as a {expected.value}")
        return current_user
    return role_checker

# Convenience dependencies for common role checks
require_doctor = require_role(UserRole.DOCTOR)
require_patient = require_role(UserRole.PATIENT)
