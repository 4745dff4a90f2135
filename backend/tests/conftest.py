"""
Shared fixtures: an in-memory SQLite database with the member tables and
a MemberRepository bound to a fresh session.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from config import Settings
from database import create_session_factory, create_tables
from members import MemberRepository, MemberCreateData, MemberIdentity

TENANT_A = "11111111-1111-1111-1111-111111111111"
TENANT_B = "22222222-2222-2222-2222-222222222222"
SEGMENT_1 = "aaaaaaaa-0000-0000-0000-000000000001"
SEGMENT_2 = "aaaaaaaa-0000-0000-0000-000000000002"
INTEGRATION_ID = "bbbbbbbb-0000-0000-0000-000000000001"


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file"""
    return Settings(_env_file=None, ENVIRONMENT="test")


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(session, settings):
    return MemberRepository(session, settings=settings)


@pytest.fixture
def make_member(repo):
    """Create a member and return its id"""
    async def _make(tenant_id=TENANT_A, **fields):
        return await repo.create(tenant_id, MemberCreateData(**fields))
    return _make


def identity(platform: str, username: str, source_id=None) -> MemberIdentity:
    return MemberIdentity(platform=platform, username=username, source_id=source_id)
