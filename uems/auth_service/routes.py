"""
Authentication service route handlers.

Provides routes for:
- Student registration
- Login by student id
- Profile retrieval (/me)
- Profile update (/me PUT)
- Admin user listing
- Admin role assignment
- Admin account activation toggle

All JWT logic is delegated to `auth_service.utils`.
"""

import logging
from typing import Tuple, Dict, Any

import psycopg2.errors
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from flask import Blueprint, request, Response

from uems.database.db_connection import get_db
from uems.auth_service.utils import create_token, require_auth
from uems.auth_service.email_rules import is_allowed_email
from uems.auth_service.directory import (
    DEFAULT_GENDER,
    PUBLIC_USER_COLUMNS,
    VALID_GENDERS,
)
from uems.core.actor import ROLE_ADMIN, VALID_ROLES
from uems.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from uems.core.responses import success

auth_bp = Blueprint("auth", __name__)
ph = PasswordHasher()

PASSWORD_MIN_LENGTH = 6
INVALID_LOGIN = "Invalid Student ID or Password"

# Column widths from schema.sql
STUDENT_ID_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 255
NAME_MAX_LENGTH = 100


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log every incoming request method and path to the authentication service.
    Authorization headers are never logged.
    """
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.

    Args:
        response (Response): The Flask response object.

    Returns:
        Response: The passed-through response object.
    """
    logging.info(f"[Auth] Response {response.status}")
    return response


def _text(data: Dict[str, Any], name: str, max_length: int) -> str:
    """Read an optional string field, stripped, rejecting wrong types and oversized values."""
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return value


def _password(data: Dict[str, Any]) -> str:
    value = data.get("password") or ""
    if not isinstance(value, str):
        raise ValidationError("password must be a string")
    return value


def _user_payload(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "user_id": user["user_id"],
        "student_id": user["student_id"],
        "email": user["email"],
        "first_name": user["first_name"],
        "last_name": user["last_name"],
        "role": user["role"],
        "gender": user["gender"],
        "profile_picture": user.get("profile_picture"),
    }


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new student account.

    Expects a JSON body with:
    - student_id (str): Unique student identifier.
    - email (str): Unique address on the allow-list.
    - password (str): Minimum 6 characters.
    - first_name (str)
    - last_name (str)
    - gender (str, optional)

    Returns:
        201: User object and a new JWT token.
        400: Missing fields or invalid input.
        409: Student ID or email already exists.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    student_id: str = _text(data, "student_id", STUDENT_ID_MAX_LENGTH).upper()
    email: str = _text(data, "email", EMAIL_MAX_LENGTH).lower()
    password: str = _password(data)
    first_name: str = _text(data, "first_name", NAME_MAX_LENGTH)
    last_name: str = _text(data, "last_name", NAME_MAX_LENGTH)
    gender: str = data.get("gender") or DEFAULT_GENDER

    # Validate input
    if not student_id or not email or not password:
        raise ValidationError("Student ID, email and password required")
    if not first_name or not last_name:
        raise ValidationError("First and last name required")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not is_allowed_email(email):
        raise ValidationError(
            "Please enter a valid email (e.g., name@gmail.com or name@bicol-u.edu.ph)"
        )
    if gender not in VALID_GENDERS:
        raise ValidationError(f"gender must be one of: {', '.join(VALID_GENDERS)}")

    # Hash password using Argon2
    pw_hash = ph.hash(password)

    sql = f"""
        INSERT INTO users (student_id, email, password_hash, first_name, last_name, gender)
        VALUES (%s, %s, %s, %s, %s, %s)
        RETURNING {PUBLIC_USER_COLUMNS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM users WHERE student_id = %s OR email = %s;",
                    (student_id, email),
                )
                if cur.fetchone():
                    raise ConflictError("User with this Student ID or Email already exists")

                cur.execute(sql, (student_id, email, pw_hash, first_name, last_name, gender))
                user = cur.fetchone()
    except psycopg2.errors.UniqueViolation:
        # Lost a race with a concurrent registration
        raise ConflictError("User with this Student ID or Email already exists")

    logging.info(f"[Auth] Registered user {user['user_id']} ({student_id})")

    # Generate initial token for immediate login
    token = create_token(user["user_id"], user["role"])

    return success(
        {"user": _user_payload(user), "token": token},
        message="User registered successfully",
        status=201,
    )


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user by student id and return a JWT.

    Expects a JSON body with:
    - student_id (str)
    - password (str)

    Returns:
        200: User object and JWT token.
        400: Missing credentials.
        401: Invalid credentials or deactivated account.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    student_id: str = _text(data, "student_id", STUDENT_ID_MAX_LENGTH).upper()
    password: str = _password(data)

    if not student_id or not password:
        raise ValidationError("Student ID and password required")

    sql = f"SELECT {PUBLIC_USER_COLUMNS}, password_hash FROM users WHERE student_id = %s;"

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (student_id,))
            user = cur.fetchone()

    if not user:
        raise AuthenticationError(INVALID_LOGIN)

    # Verify password against hash
    try:
        ph.verify(user["password_hash"], password)
    except (VerificationError, InvalidHashError):
        raise AuthenticationError(INVALID_LOGIN)

    if not user["is_active"]:
        raise AuthenticationError("Account has been deactivated")

    token = create_token(user["user_id"], user["role"])

    return success(
        {"user": _user_payload(user), "token": token},
        message="Login successful",
    )


# --- GET CURRENT USER ---
@auth_bp.route("/me", methods=["GET"])
def get_current_user() -> Tuple[Response, int]:
    """
    Retrieve the current user's profile, including the live role.

    Returns:
        200: User profile object.
        401: Authentication failure.
        404: User not found in DB (edge case).
    """
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(f"SELECT {PUBLIC_USER_COLUMNS} FROM users WHERE user_id = %s;", (actor.user_id,))
            user = cur.fetchone()

    if not user:
        raise NotFoundError("User not found")

    return success({"user": dict(user)})


# --- UPDATE CURRENT USER ---
@auth_bp.route("/me", methods=["PUT"])
def update_current_user() -> Tuple[Response, int]:
    """
    Update specific fields of the current user's profile.

    Allowed fields:
    - first_name, last_name
    - gender
    - profile_picture

    Returns:
        200: Updated user object.
        400: No valid fields provided.
        401: Authentication failure.
    """
    actor = require_auth()

    data: Dict[str, Any] = request.get_json(silent=True) or {}

    allowed = ["first_name", "last_name", "gender", "profile_picture"]
    fields = {k: v for k, v in data.items() if k in allowed}

    if not fields:
        raise ValidationError("No valid fields provided")
    if "gender" in fields and fields["gender"] not in VALID_GENDERS:
        raise ValidationError(f"gender must be one of: {', '.join(VALID_GENDERS)}")
    for name in ("first_name", "last_name"):
        if name in fields:
            fields[name] = _text(fields, name, NAME_MAX_LENGTH)
            if not fields[name]:
                raise ValidationError(f"{name} cannot be empty")
    if fields.get("profile_picture") is not None and not isinstance(fields["profile_picture"], str):
        raise ValidationError("profile_picture must be a string")

    set_clause = ", ".join(f"{k} = %s" for k in fields)
    set_clause += ", updated_at = CURRENT_TIMESTAMP"

    values = list(fields.values()) + [actor.user_id]

    sql = f"UPDATE users SET {set_clause} WHERE user_id = %s RETURNING {PUBLIC_USER_COLUMNS};"

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, values)
            updated_user = cur.fetchone()

    if not updated_user:
        raise NotFoundError("User not found")

    return success({"user": dict(updated_user)}, message="Profile updated")


# --- LIST USERS (ADMIN ONLY) ---
@auth_bp.route("/users", methods=["GET"])
def list_users() -> Tuple[Response, int]:
    """
    Admin-only endpoint to list all users in the system.

    Returns:
        200: List of user objects.
        401/403: Unauthorized (not an admin).
    """
    require_auth(required_roles=[ROLE_ADMIN])

    sql = f"SELECT {PUBLIC_USER_COLUMNS} FROM users ORDER BY user_id ASC;"

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql)
            users = [dict(row) for row in cur.fetchall()]

    return success({"users": users})


# --- SET ROLE (ADMIN ONLY) ---
@auth_bp.route("/set-role", methods=["POST"])
def set_role() -> Tuple[Response, int]:
    """
    Admin-only endpoint to promote or demote a user's role.

    Expects JSON:
        { "user_id": int, "role": "student" | "organizer" | "admin" }

    Returns:
        200: Success status.
        400: Invalid role or user_id.
        401/403: Unauthorized.
        404: No such user.
    """
    require_auth(required_roles=[ROLE_ADMIN])

    data: Dict[str, Any] = request.get_json(silent=True) or {}
    target_id = data.get("user_id")
    new_role = data.get("role")

    if not target_id or new_role not in VALID_ROLES:
        raise ValidationError("Invalid input")

    sql = "UPDATE users SET role = %s, updated_at = CURRENT_TIMESTAMP WHERE user_id = %s;"

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (new_role, target_id))
            if cur.rowcount == 0:
                raise NotFoundError("User not found")

    logging.info(f"[Auth] User {target_id} role set to {new_role}")
    return success({"user_id": target_id, "role": new_role}, message="Role updated")


# --- ACTIVATE / DEACTIVATE (ADMIN ONLY) ---
@auth_bp.route("/users/<int:user_id>/active", methods=["PUT"])
def set_active(user_id: int) -> Tuple[Response, int]:
    """
    Admin-only endpoint to enable or disable an account.

    Expects JSON:
        { "is_active": bool }

    Deactivated users can no longer log in; nothing is deleted.
    """
    require_auth(required_roles=[ROLE_ADMIN])

    data: Dict[str, Any] = request.get_json(silent=True) or {}
    is_active = data.get("is_active")
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be true or false")

    sql = "UPDATE users SET is_active = %s, updated_at = CURRENT_TIMESTAMP WHERE user_id = %s;"

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (is_active, user_id))
            if cur.rowcount == 0:
                raise NotFoundError("User not found")

    return success({"user_id": user_id, "is_active": is_active})
