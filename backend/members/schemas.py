"""
Members - Domain Models

Pydantic models exchanged with MemberRepository callers:
- MemberIdentity: a (platform, username) reference, optionally with sourceId
- Member: a member row as read from storage
- MemberCreateData / MemberUpdateData: write payloads
- MemberIdsPage: result of the paginated id/email listing
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MemberIdentity(BaseModel):
    """A member's presence on an external platform"""
    model_config = ConfigDict(populate_by_name=True)

    platform: str
    username: str
    source_id: Optional[str] = Field(default=None, alias="sourceId")

    @property
    def key(self) -> str:
        """Lookup key used by MemberRepository.find_identities"""
        return identity_key(self.platform, self.username)

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def identity_key(platform: str, username: str) -> str:
    return f"{platform}:{username}"


class Member(BaseModel):
    id: str
    tenant_id: str
    emails: List[str] = Field(default_factory=list)
    display_name: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    contributions: Optional[Any] = None
    reach: Dict[str, Any] = Field(default_factory=dict)
    score: Optional[int] = None
    weak_identities: List[MemberIdentity] = Field(default_factory=list)
    joined_at: Optional[datetime] = None
    manually_created: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MemberCreateData(BaseModel):
    """Payload for MemberRepository.create"""
    emails: List[str] = Field(default_factory=list)
    display_name: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    contributions: Optional[Any] = None
    reach: Dict[str, Any] = Field(default_factory=lambda: {"total": -1})
    score: Optional[int] = None
    weak_identities: Optional[List[MemberIdentity]] = None
    joined_at: Optional[datetime] = None
    manually_created: bool = False


class MemberUpdateData(BaseModel):
    """
    Sparse update payload for MemberRepository.update.

    Only fields that were explicitly set are written; leave a field out to
    keep the stored value. An empty weak_identities list is ignored rather
    than clearing the column.
    Columns that are NOT NULL in storage (emails, attributes, reach,
    manually_created) reject an explicit None.
    """
    emails: Optional[List[str]] = None
    display_name: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None
    contributions: Optional[Any] = None
    reach: Optional[Dict[str, Any]] = None
    score: Optional[int] = None
    weak_identities: Optional[List[MemberIdentity]] = None
    joined_at: Optional[datetime] = None
    manually_created: Optional[bool] = None

    @field_validator("emails", "attributes", "reach", "manually_created")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null; omit it to keep the stored value")
        return value


class MemberIdAndEmails(BaseModel):
    id: str
    emails: List[str] = Field(default_factory=list)


class MemberIdsPage(BaseModel):
    total_count: int
    members: List[MemberIdAndEmails] = Field(default_factory=list)
