"""
Utils Package

Provides utility modules for:
- ids: Time-ordered identifier generation and UTC timestamps
"""

from .ids import generate_uuid_v1, utc_now

__all__ = [
    'generate_uuid_v1',
    'utc_now',
]
