"""
Registration email allow-list.

Accepted addresses:
- the university's own domain (bicol-u.edu.ph)
- common consumer providers (gmail, yahoo, outlook, hotmail, icloud, protonmail)
- academic domains: *.edu, *.edu.<cc>, *.ac.<cc>
"""

import re

INSTITUTION_DOMAIN = "bicol-u.edu.ph"

_LOCAL = r"[a-zA-Z0-9._%+-]+"

BASIC_EMAIL = re.compile(rf"^{_LOCAL}@[a-zA-Z0-9.-]+\.[a-zA-Z]{{2,}}$")

ALLOWED_PATTERNS = (
    re.compile(rf"^{_LOCAL}@{re.escape(INSTITUTION_DOMAIN)}$", re.IGNORECASE),
    re.compile(
        rf"^{_LOCAL}@(gmail|yahoo|outlook|hotmail|icloud|protonmail)\.(com|net|org|edu)$",
        re.IGNORECASE,
    ),
    re.compile(rf"^{_LOCAL}@[a-zA-Z0-9.-]+\.(edu|ac)\.[a-zA-Z]{{2,}}$", re.IGNORECASE),
    re.compile(rf"^{_LOCAL}@[a-zA-Z0-9.-]+\.edu$", re.IGNORECASE),
)


def is_allowed_email(email: str) -> bool:
    if not email or not BASIC_EMAIL.match(email):
        return False
    return any(pattern.match(email) for pattern in ALLOWED_PATTERNS)
