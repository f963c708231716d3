"""JWT token generation and validation

Tokens are issued by the session layer (outside this service) and carry the
user id, role and email. This module only signs and validates them.

JWT Token Claims Structure:
- sub: User ID as UUID string
- role: User's role ("SUPERADMIN" | "DIRECTOR" | ... | "EMPLOYEE")
- email: User's email address
- iat / exp: Issued-at and expiry Unix timestamps

Security Properties:
- Algorithm: HS256 (HMAC-SHA256 symmetric signing)
- Secret: JWT_SECRET setting
- Stateless validation; the user row is loaded afterwards to pick up
  role and capability changes immediately
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any
from uuid import UUID

import jwt

from ..config import get_settings


def create_access_token(user_id: UUID, role: str, email: str) -> str:
    """Create a JWT access token for an authenticated user.

    Args:
        user_id: User's UUID
        role: User's role
        email: User's email address

    Returns:
        str: Signed JWT token
    """
    settings = get_settings()

    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)

    payload = {
        'sub': str(user_id),
        'role': role,
        'email': email,
        'iat': int(now.timestamp()),
        'exp': int(expiration.timestamp()),
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm='HS256')


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    return jwt.decode(token, get_settings().JWT_SECRET, algorithms=['HS256'])
