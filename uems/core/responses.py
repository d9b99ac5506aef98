"""
Helpers for building the `{success, message, data}` response envelope.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from flask import Response, jsonify

from uems.core.errors import ValidationError


def jsonable(row: Any) -> Any:
    """
    Convert a database row (or a list/dict of them) into JSON-friendly values.

    Datetimes become ISO-8601 strings and Decimals become floats, the same
    conversions the route handlers used to do by hand per column.
    """
    if row is None:
        return None
    # DictRow is a list subclass, so mappings must be checked first
    if hasattr(row, "keys"):
        return {key: jsonable(row[key]) for key in row.keys()}
    if isinstance(row, (list, tuple)):
        return [jsonable(item) for item in row]
    if isinstance(row, (datetime, date)):
        return row.isoformat()
    if isinstance(row, Decimal):
        return float(row)
    return row


def success(
    data: Optional[Dict[str, Any]] = None,
    message: Optional[str] = None,
    status: int = 200,
) -> Tuple[Response, int]:
    """
    Build a successful envelope response.

    Args:
        data: Payload placed under "data" (omitted when None).
        message: Human readable message (omitted when None).
        status: HTTP status code.
    """
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = jsonable(data)
    return jsonify(body), status


def parse_paging(args, default_limit: int = 10, max_limit: int = 100) -> Tuple[int, int]:
    """Read `page` and `limit` query parameters, clamped to sane bounds."""
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")

    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")

    return page, min(limit, max_limit)
