"""
The authenticated caller of a request.
"""

from dataclasses import dataclass

ROLE_STUDENT = "student"
ROLE_ORGANIZER = "organizer"
ROLE_ADMIN = "admin"
VALID_ROLES = (ROLE_STUDENT, ROLE_ORGANIZER, ROLE_ADMIN)


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
