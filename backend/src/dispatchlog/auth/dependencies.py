"""FastAPI dependencies resolving the caller into an ActorContext.

Only identity is established here: a valid bearer token naming an ACTIVE
user. Whether that user may create, act on or edit a particular task depends
on the task's state and is decided by the task services.
"""

from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from .jwt import decode_token
from .roles import ActorContext

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Load the user named by the token's ``sub`` claim.

    Raises:
        HTTPException 401: token missing, expired, malformed, or unknown user
        HTTPException 403: user is not ACTIVE
    """
    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {e}")

    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Invalid token: missing user ID claim")
    try:
        user_id = UUID(subject)
    except ValueError:
        raise _unauthorized("Invalid token: user ID is not a UUID")

    # Role and capabilities are read from the row, not the token, so a
    # demotion takes effect on the next request
    user = db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")

    if user.status != "ACTIVE":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


def get_current_actor(current_user: User = Depends(get_current_user)) -> ActorContext:
    return ActorContext.from_user(current_user)


CurrentActor = Annotated[ActorContext, Depends(get_current_actor)]
