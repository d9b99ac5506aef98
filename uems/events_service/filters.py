"""
Browse filter for the public event listing.

Each optional criterion becomes its own SQL predicate; nothing from the
query string is merged into the query blindly.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from uems.core.errors import ValidationError
from uems.core.responses import parse_paging
from uems.events_service.validation import VALID_CATEGORIES

SEARCH_MAX_LENGTH = 100


@dataclass(frozen=True)
class EventFilter:
    category: Optional[str] = None
    search: Optional[str] = None
    page: int = 1
    limit: int = 10

    @classmethod
    def from_args(cls, args) -> "EventFilter":
        """Build a filter from request query parameters."""
        category = (args.get("category") or "").strip() or None
        if category is not None and category not in VALID_CATEGORIES:
            raise ValidationError(f"category must be one of: {', '.join(VALID_CATEGORIES)}")

        search = (args.get("search") or "").strip() or None
        if search is not None and len(search) > SEARCH_MAX_LENGTH:
            raise ValidationError(f"search cannot exceed {SEARCH_MAX_LENGTH} characters")

        page, limit = parse_paging(args)
        return cls(category=category, search=search, page=page, limit=limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def predicates(self) -> Tuple[List[str], List[Any]]:
        """
        Returns:
            tuple: (list of SQL conditions on alias `e`, positional params)
        """
        # Only approved, public events are browsable
        conditions = ["e.status = 'approved'", "e.is_public = TRUE"]
        params: List[Any] = []

        if self.category:
            conditions.append("e.category = %s")
            params.append(self.category)

        if self.search:
            pattern = f"%{_escape_like(self.search)}%"
            conditions.append(
                "(e.title ILIKE %s OR e.description ILIKE %s"
                " OR EXISTS (SELECT 1 FROM unnest(e.tags) AS tag WHERE tag ILIKE %s))"
            )
            params.extend([pattern, pattern, pattern])

        return conditions, params


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
