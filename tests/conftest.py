"""
Pytest configuration and fixtures for tests.
Provides reusable test fixtures for database, profiles, and data setup.
"""
import io
from datetime import datetime, timedelta
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from offgrid.main import fastapi_app
from offgrid.core.database import get_db
from offgrid.core.security import create_access_token
from offgrid.core.websocket import connection_manager
from offgrid.models.base import Base
from offgrid.services.storage_service import StorageService, get_storage_service


# In-memory SQLite shared by every connection of the engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    TestSessionLocal = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def ws_invalidate(mocker):
    """Capture change-feed invalidations instead of emitting them."""
    return mocker.patch.object(connection_manager, "invalidate", new_callable=AsyncMock)


# ============================================================================
# Data factories
# ============================================================================

@pytest.fixture
def make_profile(db_session: AsyncSession):
    """Factory creating profiles."""
    from offgrid.models.profile import Profile, PresenceStatus

    async def _make(
        user_id: str,
        display_name: Optional[str] = None,
        username: Optional[str] = None,
        status: PresenceStatus = PresenceStatus.OFFLINE
    ) -> Profile:
        profile = Profile(
            id=user_id,
            display_name=display_name or user_id.capitalize(),
            username=username,
            status=status
        )
        db_session.add(profile)
        await db_session.commit()
        await db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture
async def alice(make_profile):
    return await make_profile("alice", "Alice", "alice")


@pytest.fixture
async def bob(make_profile):
    return await make_profile("bob", "Bob", "bob")


@pytest.fixture
async def carol(make_profile):
    return await make_profile("carol", "Carol", "carol")


@pytest.fixture
def make_friends(db_session: AsyncSession):
    """Factory writing an accepted friendship in both directions."""
    from offgrid.models.friendship import Friendship, FriendshipStatus

    async def _make(user_a: str, user_b: str) -> None:
        db_session.add_all([
            Friendship(user_id=user_a, friend_id=user_b, status=FriendshipStatus.ACCEPTED),
            Friendship(user_id=user_b, friend_id=user_a, status=FriendshipStatus.ACCEPTED),
        ])
        await db_session.commit()

    return _make


@pytest.fixture
async def direct_conversation(db_session: AsyncSession, alice, bob, make_friends):
    """Direct conversation between alice and bob, who are friends."""
    from offgrid.repositories.conversation_repo import ConversationRepository

    await make_friends(alice.id, bob.id)
    conversation, _ = await ConversationRepository(db_session).get_or_create_direct(alice.id, bob.id)
    await db_session.commit()
    return conversation


@pytest.fixture
def make_message(db_session: AsyncSession):
    """Factory creating messages with an explicit created_at."""
    from offgrid.models.message import Message, MessageType

    async def _make(
        conversation_id: str,
        sender_id: str,
        content: Optional[str] = "hello",
        created_at: Optional[datetime] = None,
        message_type: MessageType = MessageType.TEXT,
        **fields
    ) -> Message:
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=message_type,
            **fields
        )
        if created_at is not None:
            message.created_at = created_at
        db_session.add(message)
        await db_session.commit()
        await db_session.refresh(message)
        return message

    return _make


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 10, 10)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def oss_bucket():
    """OSS bucket double that accepts every upload."""
    bucket = MagicMock()
    bucket.put_object.return_value = MagicMock(status=200)
    return bucket


@pytest.fixture
def storage(oss_bucket) -> StorageService:
    return StorageService(bucket=oss_bucket)


# ============================================================================
# HTTP client
# ============================================================================

@pytest.fixture
def token_for():
    """Factory minting auth-provider-shaped tokens."""
    def _token(user_id: str, confirmed: bool = True, expires_delta: Optional[timedelta] = None) -> str:
        claims = {"sub": user_id, "email": f"{user_id}@example.com"}
        if confirmed:
            claims["email_confirmed_at"] = "2026-01-01T00:00:00Z"
        return create_access_token(claims, expires_delta)

    return _token


@pytest.fixture
def auth_headers(alice, token_for):
    """Bearer headers for alice."""
    return {"Authorization": f"Bearer {token_for(alice.id)}"}


@pytest.fixture
def bob_headers(bob, token_for):
    return {"Authorization": f"Bearer {token_for(bob.id)}"}


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, storage) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with dependency overrides."""
    from offgrid.api.v1 import friends, messages

    async def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_storage_service] = lambda: storage
    friends.limiter.enabled = False
    messages.limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()
    friends.limiter.enabled = True
    messages.limiter.enabled = True
