"""
Identifier and timestamp helpers.
"""

import uuid
from datetime import datetime, timezone


def generate_uuid_v1() -> str:
    """Time-ordered UUID (version 1) as a string."""
    return str(uuid.uuid1())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
