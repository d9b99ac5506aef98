"""
Seed (or reset) an administrator account.

    python -m uems.database.create_admin ADMIN001 admin@bicol-u.edu.ph 'S3cret!' Admin User

Existing accounts with the same student id are promoted to admin and their
password is replaced.
"""

import argparse
import sys

from argon2 import PasswordHasher

from uems.database.db_connection import get_db

ph = PasswordHasher()

UPSERT_ADMIN_SQL = """
    INSERT INTO users (student_id, email, password_hash, first_name, last_name, role, is_active)
    VALUES (%s, %s, %s, %s, %s, 'admin', TRUE)
    ON CONFLICT (student_id)
    DO UPDATE SET role = 'admin',
                  is_active = TRUE,
                  password_hash = EXCLUDED.password_hash,
                  updated_at = CURRENT_TIMESTAMP
    RETURNING user_id;
"""


def create_admin(student_id: str, email: str, password: str, first_name: str, last_name: str) -> int:
    """Insert or promote the admin and return its user_id."""
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(UPSERT_ADMIN_SQL, (
                student_id.strip().upper(),
                email.strip().lower(),
                ph.hash(password),
                first_name,
                last_name,
            ))
            return cur.fetchone()["user_id"]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create or reset a UEMS admin account.")
    parser.add_argument("student_id")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("first_name", nargs="?", default="System")
    parser.add_argument("last_name", nargs="?", default="Administrator")
    args = parser.parse_args(argv)

    user_id = create_admin(args.student_id, args.email, args.password, args.first_name, args.last_name)
    print(f"Admin ready: user_id={user_id}, student_id={args.student_id.upper()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
