"""
Dialect-specific SQL constructs.

Members are stored in PostgreSQL; tests run against SQLite. The two places
where the SQL differs (array membership and insert-ignore) are rendered
here so repositories stay dialect-agnostic.
"""

from sqlalchemy import Boolean
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import FunctionElement
from sqlalchemy.dialects import postgresql, sqlite


class array_contains(FunctionElement):
    """
    True when ``value`` is an element of the array column.

    Usage: ``array_contains(MemberDB.emails, email)``
    """
    type = Boolean()
    name = "array_contains"
    inherit_cache = True


@compiles(array_contains)
@compiles(array_contains, "postgresql")
def _array_contains_postgresql(element, compiler, **kw):
    column, value = list(element.clauses)
    return f"{compiler.process(value, **kw)} = ANY ({compiler.process(column, **kw)})"


@compiles(array_contains, "sqlite")
def _array_contains_sqlite(element, compiler, **kw):
    # Arrays are stored as JSON lists on SQLite
    column, value = list(element.clauses)
    return (
        f"EXISTS (SELECT 1 FROM json_each({compiler.process(column, **kw)}) "
        f"WHERE json_each.value = {compiler.process(value, **kw)})"
    )


_INSERT_FACTORIES = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_ignore(dialect_name: str, table):
    """
    INSERT ... ON CONFLICT DO NOTHING for the given dialect.

    Raises:
        ValueError: for dialects without ON CONFLICT support
    """
    try:
        factory = _INSERT_FACTORIES[dialect_name]
    except KeyError:
        raise ValueError(f"Insert-ignore is not supported for dialect: {dialect_name}")
    return factory(table).on_conflict_do_nothing()
