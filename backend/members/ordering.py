"""
Members - Listing Order

Resolves ``<field>_<direction>`` strings (e.g. ``joinedAt_DESC``) into
ORDER BY clauses for the member listing.
"""

from typing import Callable, Dict, Tuple

from sqlalchemy import asc, desc
from sqlalchemy.sql.elements import ColumnElement

from .errors import InvalidOrderByError
from .models import MemberDB

_members = MemberDB.__table__

ORDER_BY_FIELDS: Dict[str, Callable[[], ColumnElement]] = {
    "joinedAt": lambda: _members.c.joinedAt,
    "displayName": lambda: _members.c.displayName,
    "reach": lambda: _members.c.reach["total"].as_integer(),
    "score": lambda: _members.c.score,
}

_DIRECTIONS = {"asc": asc, "desc": desc}


def parse_order_by(order_by: str) -> Tuple[str, str]:
    """
    Split an orderBy string into (field, direction).

    Raises:
        InvalidOrderByError: unknown field, unknown direction or malformed value
    """
    if not isinstance(order_by, str) or "_" not in order_by:
        raise InvalidOrderByError(order_by)

    field, direction = order_by.rsplit("_", 1)
    direction = direction.lower()

    if field not in ORDER_BY_FIELDS or direction not in _DIRECTIONS:
        raise InvalidOrderByError(order_by)

    return field, direction


def resolve_order_by(order_by: str) -> ColumnElement:
    """ORDER BY clause for an orderBy string"""
    field, direction = parse_order_by(order_by)
    return _DIRECTIONS[direction](ORDER_BY_FIELDS[field]())
