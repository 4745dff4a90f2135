"""
Members - Repository

Tenant-scoped data access for members, their identities, segment
memberships and sync-remote bookkeeping.

Guarantees:
- Every lookup except find_by_id is filtered by tenant
- update() only applies when the stored updatedAt is strictly older than
  the new stamp; the affected-row count is returned to the caller
- Batch identity statements run as one statement each; remove_identities
  rolls back and raises when fewer rows matched than were requested
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, insert, update, delete, func, tuple_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from database.dialects import array_contains, insert_ignore
from utils.ids import generate_uuid_v1, utc_now

from .columns import (
    get_insert_member_column_set,
    get_update_member_column_set,
    get_insert_member_identity_column_set,
    get_insert_member_segment_column_set,
    get_insert_member_sync_remote_column_set,
)
from .errors import IdentityRowCountMismatchError, InvalidPaginationError
from .models import MemberDB, MemberIdentityDB, MemberSegmentDB, SyncStatus
from .ordering import resolve_order_by
from .schemas import (
    Member,
    MemberIdentity,
    MemberCreateData,
    MemberUpdateData,
    MemberIdAndEmails,
    MemberIdsPage,
    identity_key,
)

logger = logging.getLogger(__name__)


# ==================== CONVERSION HELPERS ====================

def db_to_pydantic_member(db_obj: MemberDB) -> Member:
    """Convert database model to Pydantic model"""
    return Member(
        id=db_obj.id,
        tenant_id=db_obj.tenant_id,
        emails=db_obj.emails or [],
        display_name=db_obj.display_name,
        attributes=db_obj.attributes or {},
        contributions=db_obj.contributions,
        reach=db_obj.reach or {},
        score=db_obj.score,
        weak_identities=db_obj.weak_identities or [],
        joined_at=db_obj.joined_at,
        manually_created=bool(db_obj.manually_created),
        created_at=db_obj.created_at,
        updated_at=db_obj.updated_at,
    )


def serialize_identities(identities: Iterable[MemberIdentity]) -> List[Dict[str, Optional[str]]]:
    return [identity.to_storage() for identity in identities]


# ==================== REPOSITORY ====================

class MemberRepository:
    """
    Repository for member database operations.

    Query shapes (column sets and the base member select) are built once
    per instance. Writes commit on the given session; on failure the
    session is rolled back and the error re-raised unchanged.
    """

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        settings = settings or get_settings()

        self.default_limit = settings.MEMBER_LIST_DEFAULT_LIMIT
        self.default_order_by = settings.MEMBER_LIST_DEFAULT_ORDER_BY
        self.sync_from = settings.SYNC_REMOTE_DEFAULT_SOURCE

        self.insert_member_column_set = get_insert_member_column_set()
        self.update_member_column_set = get_update_member_column_set()
        # populate_existing: reads reflect storage, not the session's identity map
        self.select_member_query = select(MemberDB).execution_options(populate_existing=True)

        self.insert_member_identity_column_set = get_insert_member_identity_column_set()
        self.insert_member_segment_column_set = get_insert_member_segment_column_set()
        self.insert_member_sync_remote_column_set = get_insert_member_sync_remote_column_set()

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    async def _execute_write(self, statement, expected_rowcount: Optional[int] = None) -> int:
        """Execute a DML statement, commit, and return the affected-row count"""
        try:
            result = await self.session.execute(statement)
            rowcount = result.rowcount

            if expected_rowcount is not None and rowcount != expected_rowcount:
                await self.session.rollback()
                raise IdentityRowCountMismatchError(expected_rowcount, rowcount)

            await self.session.commit()
            return rowcount
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    # ==================== LOOKUP ====================

    async def find_member_by_email(self, tenant_id: str, email: str) -> Optional[Member]:
        """
        First member of the tenant whose emails contain ``email``.

        Several members may share an email; only one is returned.
        """
        result = await self.session.execute(
            self.select_member_query
            .where(
                MemberDB.tenant_id == tenant_id,
                array_contains(MemberDB.emails, email)
            )
            .limit(1)
        )
        db_member = result.scalars().first()
        return db_to_pydantic_member(db_member) if db_member else None

    async def find_member(
        self,
        tenant_id: str,
        segment_id: str,
        platform: str,
        username: str
    ) -> Optional[Member]:
        """
        Member owning the identity (platform, username) in the tenant.

        ``segment_id`` is accepted but not used as a filter.
        """
        identity_owner = (
            select(MemberIdentityDB.member_id)
            .where(
                MemberIdentityDB.tenant_id == tenant_id,
                MemberIdentityDB.platform == platform,
                MemberIdentityDB.username == username
            )
        )
        result = await self.session.execute(
            self.select_member_query.where(MemberDB.id.in_(identity_owner))
        )
        db_member = result.scalar_one_or_none()
        return db_to_pydantic_member(db_member) if db_member else None

    async def find_identities(
        self,
        tenant_id: str,
        identities: Sequence[MemberIdentity],
        exclude_member_id: Optional[str] = None
    ) -> Dict[str, str]:
        """
        Resolve identities to their owning members in one round trip.

        Args:
            tenant_id: Tenant to search in
            identities: Candidate (platform, username) pairs
            exclude_member_id: Skip identities owned by this member, to find
                collisions with *other* members

        Returns:
            Mapping of "platform:username" -> memberId for the pairs that
            exist. Pairs without a row are absent.
        """
        if not identities:
            return {}

        pairs = [(identity.platform, identity.username) for identity in identities]

        query = select(
            MemberIdentityDB.member_id,
            MemberIdentityDB.platform,
            MemberIdentityDB.username
        ).where(
            MemberIdentityDB.tenant_id == tenant_id,
            tuple_(MemberIdentityDB.platform, MemberIdentityDB.username).in_(pairs)
        )
        if exclude_member_id:
            query = query.where(MemberIdentityDB.member_id != exclude_member_id)

        result = await self.session.execute(query)

        return {
            identity_key(row.platform, row.username): row.member_id
            for row in result.all()
        }

    async def find_by_id(self, member_id: str) -> Optional[Member]:
        """Get member by ID. Not tenant-filtered."""
        result = await self.session.execute(
            self.select_member_query.where(MemberDB.id == member_id)
        )
        db_member = result.scalar_one_or_none()
        return db_to_pydantic_member(db_member) if db_member else None

    # ==================== CREATE / UPDATE ====================

    async def create(self, tenant_id: str, data: MemberCreateData) -> str:
        """Insert a new member and return its generated id"""
        member_id = generate_uuid_v1()
        ts = utc_now()

        # None fields fall back to column defaults
        values = data.model_dump(exclude_none=True, exclude={"weak_identities"})
        values.update(
            id=member_id,
            tenant_id=tenant_id,
            weak_identities=serialize_identities(data.weak_identities or []),
            created_at=ts,
            updated_at=ts,
        )

        column_set = self.insert_member_column_set
        await self._execute_write(
            insert(column_set.table).values(column_set.prepare(values))
        )

        logger.info("Created member", extra={"member_id": member_id, "tenant_id": tenant_id})
        return member_id

    async def update(
        self,
        member_id: str,
        tenant_id: str,
        data: MemberUpdateData,
        updated_at: Optional[datetime] = None
    ) -> int:
        """
        Sparse, timestamp-guarded update.

        Writes the fields explicitly set on ``data`` plus a new updatedAt,
        but only where the stored updatedAt is strictly older than it.

        Args:
            member_id: Member to update
            tenant_id: Tenant the member must belong to
            data: Fields to write
            updated_at: New updatedAt stamp (defaults to now, UTC)

        Returns:
            Number of rows updated. 0 means the member does not exist in the
            tenant or a concurrent writer already stored an equal or newer
            updatedAt; the caller decides whether to retry.
        """
        updated_at = updated_at or utc_now()

        values = data.model_dump(exclude_unset=True, exclude={"weak_identities"})
        if data.weak_identities:
            values["weak_identities"] = serialize_identities(data.weak_identities)
        values["updated_at"] = updated_at

        column_set = self.update_member_column_set.subset(values)
        members = column_set.table

        rowcount = await self._execute_write(
            update(members)
            .where(
                members.c.id == member_id,
                members.c.tenantId == tenant_id,
                members.c.updatedAt < updated_at
            )
            .values(column_set.prepare(values))
        )

        if rowcount == 0:
            logger.warning(
                "Member update affected no rows; missing or updated concurrently",
                extra={"member_id": member_id, "tenant_id": tenant_id},
            )
        return rowcount

    # ==================== IDENTITIES ====================

    async def get_identities(self, member_id: str, tenant_id: str) -> List[MemberIdentity]:
        """All identities of a member"""
        result = await self.session.execute(
            select(
                MemberIdentityDB.source_id,
                MemberIdentityDB.platform,
                MemberIdentityDB.username
            ).where(
                MemberIdentityDB.member_id == member_id,
                MemberIdentityDB.tenant_id == tenant_id
            )
        )
        return [
            MemberIdentity(platform=row.platform, username=row.username, source_id=row.source_id)
            for row in result.all()
        ]

    async def insert_identities(
        self,
        member_id: str,
        tenant_id: str,
        integration_id: Optional[str],
        identities: Sequence[MemberIdentity]
    ) -> int:
        """
        Insert identities for a member as one multi-row statement.

        Not idempotent: an identity that already exists fails the whole
        batch with the storage engine's IntegrityError.
        """
        if not identities:
            return 0

        column_set = self.insert_member_identity_column_set
        rows = column_set.prepare_batch(
            {
                "member_id": member_id,
                "tenant_id": tenant_id,
                "integration_id": integration_id,
                "platform": identity.platform,
                "source_id": identity.source_id,
                "username": identity.username,
            }
            for identity in identities
        )

        return await self._execute_write(insert(column_set.table).values(rows))

    async def remove_identities(
        self,
        member_id: str,
        tenant_id: str,
        identities: Sequence[MemberIdentity]
    ) -> int:
        """
        Delete identities of a member by exact (platform, username) match.

        Raises:
            IdentityRowCountMismatchError: when the number of deleted rows
                differs from the number of distinct (platform, username)
                pairs requested. Nothing is deleted in that case.
        """
        if not identities:
            return 0

        table = MemberIdentityDB.__table__
        # Repeated pairs match one row
        pairs = list(dict.fromkeys((identity.platform, identity.username) for identity in identities))

        try:
            return await self._execute_write(
                delete(table).where(
                    table.c.memberId == member_id,
                    table.c.tenantId == tenant_id,
                    tuple_(table.c.platform, table.c.username).in_(pairs)
                ),
                expected_rowcount=len(pairs),
            )
        except IdentityRowCountMismatchError as e:
            logger.error(
                f"Identity removal rolled back: expected {e.expected} rows, matched {e.actual}",
                extra={"member_id": member_id, "tenant_id": tenant_id},
            )
            raise

    # ==================== SEGMENTS / SYNC ====================

    async def add_to_segment(self, member_id: str, tenant_id: str, segment_id: str) -> None:
        """Add member to segment. No-op if already a member."""
        column_set = self.insert_member_segment_column_set
        prepared = column_set.prepare({
            "member_id": member_id,
            "tenant_id": tenant_id,
            "segment_id": segment_id,
        })

        await self._execute_write(
            insert_ignore(self.dialect_name, column_set.table).values(prepared)
        )

    async def add_to_sync_remote(self, member_id: str, integration_id: str, source_id: str) -> None:
        """Start tracking outbound sync for a member. No-op if already tracked."""
        column_set = self.insert_member_sync_remote_column_set
        prepared = column_set.prepare({
            "id": generate_uuid_v1(),
            "member_id": member_id,
            "source_id": source_id,
            "integration_id": integration_id,
            "sync_from": self.sync_from,
            "meta_data": None,
            "last_synced_at": None,
            "status": SyncStatus.NEVER.value,
        })

        await self._execute_write(
            insert_ignore(self.dialect_name, column_set.table).values(prepared)
        )

    # ==================== LISTING ====================

    async def get_member_ids_and_emails_and_count(
        self,
        tenant_id: str,
        segment_ids: Sequence[str],
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: Optional[str] = None,
        count_only: bool = False
    ) -> MemberIdsPage:
        """
        Page of (id, emails) for members in any of the given segments.

        Args:
            tenant_id: Tenant to list
            segment_ids: A member matches when it belongs to at least one
            limit: Page size (default MEMBER_LIST_DEFAULT_LIMIT)
            offset: Rows to skip
            order_by: "<field>_<ASC|DESC>", field one of joinedAt,
                displayName, reach, score (default MEMBER_LIST_DEFAULT_ORDER_BY)
            count_only: Only run the count statement

        Returns:
            MemberIdsPage with the total over the whole filter (independent
            of limit/offset) and the requested page

        Raises:
            InvalidOrderByError: unknown order field or direction
            InvalidPaginationError: limit < 1 or offset < 0
        """
        order_clause = resolve_order_by(self.default_order_by if order_by is None else order_by)
        limit = self.default_limit if limit is None else limit

        if limit < 1:
            raise InvalidPaginationError(f"limit must be >= 1, got {limit}", parameter="limit", value=limit)
        if offset < 0:
            raise InvalidPaginationError(f"offset must be >= 0, got {offset}", parameter="offset", value=offset)

        members = MemberDB.__table__
        member_segments = MemberSegmentDB.__table__

        in_segments = (
            select(member_segments.c.memberId)
            .where(
                member_segments.c.memberId == members.c.id,
                member_segments.c.segmentId.in_(list(segment_ids))
            )
            .exists()
        )
        criteria = (members.c.tenantId == tenant_id, in_segments)

        count_result = await self.session.execute(
            select(func.count()).select_from(members).where(*criteria)
        )
        total_count = int(count_result.scalar_one())

        if count_only:
            return MemberIdsPage(total_count=total_count, members=[])

        result = await self.session.execute(
            select(members.c.id, members.c.emails)
            .where(*criteria)
            .order_by(order_clause, members.c.id)
            .limit(limit)
            .offset(offset)
        )

        return MemberIdsPage(
            total_count=total_count,
            members=[
                MemberIdAndEmails(id=row.id, emails=row.emails or [])
                for row in result.all()
            ],
        )
