from .connection import Base, create_engine, create_session_factory, init_db, create_tables
from .dialects import array_contains, insert_ignore

__all__ = [
    'Base', 'create_engine', 'create_session_factory', 'init_db', 'create_tables',
    'array_contains', 'insert_ignore',
]
