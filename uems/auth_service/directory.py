"""
User directory queries and the organizer auto-promotion receiver.
"""

import logging

from uems.core.actor import ROLE_ORGANIZER, ROLE_STUDENT
from uems.core.signals import event_approved

VALID_GENDERS = ("male", "female", "other", "prefer-not-to-say")
DEFAULT_GENDER = "prefer-not-to-say"

PUBLIC_USER_COLUMNS = """
    user_id, student_id, email, first_name, last_name, role,
    gender, profile_picture, is_active, created_at
"""

# Only students are promoted; organizers stay put and admins are never downgraded.
PROMOTE_SQL = """
    UPDATE users
    SET role = %s, updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s AND role = %s;
"""


def promote_to_organizer(cur, user_id: int) -> bool:
    """
    Give a student the organizer role.

    Returns:
        bool: True if the role changed, False if the user was already
              an organizer/admin (or does not exist).
    """
    cur.execute(PROMOTE_SQL, (ROLE_ORGANIZER, user_id, ROLE_STUDENT))
    promoted = cur.rowcount == 1
    if promoted:
        logging.info(f"[Auth] User {user_id} promoted to organizer")
    return promoted


@event_approved.connect
def promote_creator_on_approval(sender, conn=None, event_id=None, creator_id=None, **kwargs) -> bool:
    """
    Runs inside the approval transaction so both writes commit together.
    Returns whether the creator was promoted.
    """
    with conn.cursor() as cur:
        return promote_to_organizer(cur, creator_id)
