"""
Members Module

Tenant-scoped persistence for members (people identified across external
platforms) and their identities, segment memberships and outbound sync
records.

Features:
- Identity resolution: (platform, username) -> member, per tenant
- Optimistic, timestamp-guarded member updates
- All-or-nothing batch identity removal
- Idempotent segment and sync-remote registration
- Paginated id/email listing with a fixed set of sort fields
"""

from .models import (
    MemberDB,
    MemberIdentityDB,
    MemberSegmentDB,
    MemberSyncRemoteDB,
    SyncStatus
)
from .schemas import (
    Member,
    MemberIdentity,
    MemberCreateData,
    MemberUpdateData,
    MemberIdAndEmails,
    MemberIdsPage
)
from .errors import (
    MemberStoreError,
    MemberValidationError,
    InvalidOrderByError,
    InvalidPaginationError,
    IdentityRowCountMismatchError
)
from .repository import MemberRepository

__all__ = [
    'MemberDB',
    'MemberIdentityDB',
    'MemberSegmentDB',
    'MemberSyncRemoteDB',
    'SyncStatus',
    'Member',
    'MemberIdentity',
    'MemberCreateData',
    'MemberUpdateData',
    'MemberIdAndEmails',
    'MemberIdsPage',
    'MemberStoreError',
    'MemberValidationError',
    'InvalidOrderByError',
    'InvalidPaginationError',
    'IdentityRowCountMismatchError',
    'MemberRepository'
]
