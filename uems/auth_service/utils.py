"""
Shared authentication helpers.
Provides token creation, verification, and role enforcement.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

import jwt
from flask import request
from dotenv import load_dotenv

from uems.core.actor import Actor
from uems.core.errors import AuthenticationError, AuthorizationError
from uems.database.db_connection import get_db

# Load .env only once here
load_dotenv()

# Load secrets & configs
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is missing. Set it in .env")

TOKEN_EXPIRATION_MINUTES = int(os.getenv("TOKEN_EXPIRATION_MINUTES", 43200))  # Default 30 days


# --- JWT CREATION ---
def create_token(user_id: int, role: str) -> str:
    """
    Generates a new JWT for a given user.

    Args:
        user_id (int): The unique ID of the user.
        role (str): The role of the user (student, organizer, admin).

    Returns:
        str: Encoded JWT string.
    """
    now = datetime.now(timezone.utc)

    payload = {
        # PyJWT requires a string subject
        "sub": str(user_id),
        "role": role,
        "exp": now + timedelta(minutes=TOKEN_EXPIRATION_MINUTES),
        "iat": now
    }

    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT.

    Raises:
        AuthenticationError: If the token is expired or invalid.
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("invalid token")


def _bearer_token() -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1]


def _user_id_from_payload(payload: Dict[str, Any]) -> int:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("invalid token")


def load_account(user_id: int):
    """Fetch the live role and active flag for a token subject, or None."""
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT role, is_active FROM users WHERE user_id = %s;", (user_id,))
            return cur.fetchone()


def _authenticate(token: str) -> Actor:
    # Role comes from the users row, so demotions and deactivations apply immediately
    user_id = _user_id_from_payload(decode_token(token))
    account = load_account(user_id)
    if account is None or not account["is_active"]:
        raise AuthenticationError("account not found or inactive")
    return Actor(user_id=user_id, role=account["role"])


# --- JWT VALIDATION ---
def require_auth(required_roles: Optional[Iterable[str]] = None) -> Actor:
    """
    Verify the JWT in the Authorization header against the users table.

    Args:
        required_roles (iterable, optional): Roles allowed to continue.

    Returns:
        Actor: The authenticated caller, carrying their current role.

    Raises:
        AuthenticationError: Missing, expired, or invalid token, or the
            account no longer exists or was deactivated (401).
        AuthorizationError: Valid token but role not allowed (403).
    """
    token = _bearer_token()
    if not token:
        raise AuthenticationError("missing token")

    actor = _authenticate(token)

    if required_roles and actor.role not in required_roles:
        raise AuthorizationError("permission denied")

    return actor


def optional_auth() -> Optional[Actor]:
    """
    Identify the caller when a valid token is present.

    Public routes use this so anonymous visitors still get a response;
    a bad token or an inactive account is treated the same as no token.
    """
    token = _bearer_token()
    if not token:
        return None
    try:
        return _authenticate(token)
    except AuthenticationError:
        return None
