"""
Members - Database Models

SQLAlchemy models for members, their platform identities, segment
memberships and outbound sync bookkeeping.

Tables keep their storage names (camelCase columns); Python attributes
are snake_case.
"""

from enum import Enum

from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, JSON,
    PrimaryKeyConstraint, UniqueConstraint, Index
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

from database.connection import Base
from utils.ids import utc_now


# JSONB on PostgreSQL, JSON text elsewhere; Python None is stored as SQL NULL
JSONType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")

# text[] on PostgreSQL, JSON list elsewhere
TextArray = ARRAY(Text).with_variant(JSON(), "sqlite")


class SyncStatus(str, Enum):
    """Outbound sync state of a membersSyncRemote row"""
    NEVER = "never"
    ACTIVE = "active"
    STOPPED = "stopped"
    FAILED = "failed"


class MemberDB(Base):
    """
    Member - a person identified across external platforms.

    Never hard-deleted. Every write goes through MemberRepository.update,
    which guards on updatedAt.
    """
    __tablename__ = "members"

    id = Column(String(36), primary_key=True)
    tenant_id = Column("tenantId", String(36), nullable=False, index=True)
    emails = Column(TextArray, nullable=False, default=list)
    display_name = Column("displayName", Text)
    attributes = Column(JSONType, nullable=False, default=dict)
    contributions = Column(JSONType, nullable=True)
    reach = Column(JSONType, nullable=False, default=lambda: {"total": -1})
    score = Column(Integer, default=-1)
    weak_identities = Column("weakIdentities", JSONType, nullable=False, default=list)
    joined_at = Column("joinedAt", DateTime(timezone=True))
    manually_created = Column("manuallyCreated", Boolean, nullable=False, default=False)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column("updatedAt", DateTime(timezone=True), nullable=False, default=utc_now)


class MemberIdentityDB(Base):
    """
    Member identity - a (platform, username) pair owned by one member.

    The tenant-wide unique constraint is what makes identity resolution
    unambiguous.
    """
    __tablename__ = "memberIdentities"

    member_id = Column("memberId", String(36), nullable=False)
    tenant_id = Column("tenantId", String(36), nullable=False)
    platform = Column(Text, nullable=False)
    username = Column(Text, nullable=False)
    source_id = Column("sourceId", Text, nullable=True)
    integration_id = Column("integrationId", String(36), nullable=True)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        PrimaryKeyConstraint("memberId", "platform", "username", name="memberIdentities_pkey"),
        UniqueConstraint(
            "platform", "username", "tenantId",
            name="uix_memberIdentities_platform_username_tenantId"
        ),
        Index("ix_memberIdentities_tenantId_memberId", "tenantId", "memberId"),
    )


class MemberSegmentDB(Base):
    """Segment membership link. Inserted idempotently, never updated."""
    __tablename__ = "memberSegments"

    member_id = Column("memberId", String(36), nullable=False)
    segment_id = Column("segmentId", String(36), nullable=False)
    tenant_id = Column("tenantId", String(36), nullable=False)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        PrimaryKeyConstraint("memberId", "segmentId", name="memberSegments_pkey"),
    )


class MemberSyncRemoteDB(Base):
    """
    Outbound sync record for a member on an integration.

    Created here with status NEVER; the sync subsystem owns it afterwards.
    sourceId is required: it is part of the unique key that makes
    add_to_sync_remote idempotent.
    """
    __tablename__ = "membersSyncRemote"

    id = Column(String(36), primary_key=True)
    member_id = Column("memberId", String(36), nullable=False)
    source_id = Column("sourceId", Text, nullable=False)
    integration_id = Column("integrationId", String(36), nullable=False)
    sync_from = Column("syncFrom", String(50), nullable=False)
    meta_data = Column("metaData", JSONType, nullable=True)
    last_synced_at = Column("lastSyncedAt", DateTime(timezone=True), nullable=True)
    status = Column(String(30), nullable=False, default=SyncStatus.NEVER.value)

    __table_args__ = (
        UniqueConstraint(
            "memberId", "integrationId", "sourceId",
            name="uix_membersSyncRemote_memberId_integrationId_sourceId"
        ),
    )
