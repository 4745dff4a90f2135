"""
Members - Column Sets

Immutable descriptions of which model attributes map to which storage
columns for a given statement shape. MemberRepository builds these once
per instance and uses them to prepare insert rows and sparse updates.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import Table, inspect as sa_inspect

from .models import MemberDB, MemberIdentityDB, MemberSegmentDB, MemberSyncRemoteDB


@dataclass(frozen=True)
class ColumnSet:
    """Attribute name -> column key mapping bound to one table"""
    table: Table
    keys: Mapping[str, str]

    @classmethod
    def from_model(
        cls,
        model,
        include: Optional[Iterable[str]] = None,
        exclude: Iterable[str] = (),
    ) -> "ColumnSet":
        include = set(include) if include is not None else None
        exclude = set(exclude)
        keys = {}
        for attr in sa_inspect(model).column_attrs:
            if include is not None and attr.key not in include:
                continue
            if attr.key in exclude:
                continue
            keys[attr.key] = attr.columns[0].key
        return cls(table=model.__table__, keys=MappingProxyType(keys))

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self.keys)

    def subset(self, names: Iterable[str]) -> "ColumnSet":
        """Narrow to the given attribute names (unknown names are dropped)"""
        wanted = set(names)
        return ColumnSet(
            table=self.table,
            keys=MappingProxyType({n: k for n, k in self.keys.items() if n in wanted}),
        )

    def prepare(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Keep the attributes this set covers, keyed by column key"""
        return {key: data[name] for name, key in self.keys.items() if name in data}

    def prepare_batch(self, rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Like prepare, but every row gets every column (missing -> None)"""
        return [{key: row.get(name) for name, key in self.keys.items()} for row in rows]


def get_insert_member_column_set() -> ColumnSet:
    return ColumnSet.from_model(MemberDB)


def get_update_member_column_set() -> ColumnSet:
    return ColumnSet.from_model(MemberDB, exclude=("id", "tenant_id", "created_at"))


def get_insert_member_identity_column_set() -> ColumnSet:
    return ColumnSet.from_model(
        MemberIdentityDB,
        include=("member_id", "tenant_id", "integration_id", "platform", "source_id", "username"),
    )


def get_insert_member_segment_column_set() -> ColumnSet:
    return ColumnSet.from_model(MemberSegmentDB, include=("member_id", "tenant_id", "segment_id"))


def get_insert_member_sync_remote_column_set() -> ColumnSet:
    return ColumnSet.from_model(MemberSyncRemoteDB)
