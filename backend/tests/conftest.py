"""Shared test fixtures for backend tests."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from sportsconnect.core.config import settings
from sportsconnect.core.database import get_session, init_db, make_engine
from sportsconnect.core.security import create_access_token
from sportsconnect.models.message import Message
from sportsconnect.models.user import Post, User

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = make_engine(
    "sqlite://",
    poolclass=StaticPool,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def get_test_session():
    with Session(test_engine) as session:
        yield session


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    init_db(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def client(tmp_path):
    """FastAPI TestClient bound to the in-memory database."""
    with (
        patch("sportsconnect.core.database.engine", test_engine),
        patch.object(settings, "data_dir", tmp_path / "data"),
    ):
        from sportsconnect.main import app

        app.dependency_overrides[get_session] = get_test_session

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()


class SwitchableTransport(httpx.AsyncBaseTransport):
    """Routes client requests into the app in-process; `online = False` simulates no network.

    Requests are served one at a time because every session shares the one
    in-memory connection.
    """

    def __init__(self, app):
        self._inner = httpx.ASGITransport(app=app)
        self._locks: dict[asyncio.AbstractEventLoop, asyncio.Lock] = {}
        self.online = True
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.online:
            raise httpx.ConnectError("Network is unreachable", request=request)
        lock = self._locks.setdefault(asyncio.get_running_loop(), asyncio.Lock())
        async with lock:
            return await self._inner.handle_async_request(request)


@pytest.fixture
def transport():
    from sportsconnect.main import app

    app.dependency_overrides[get_session] = get_test_session
    yield SwitchableTransport(app)
    app.dependency_overrides.clear()


# --- Seeding helpers ---


def seed_user(name: str) -> int:
    with Session(test_engine) as session:
        user = User(name=name, email=f"{name.lower().replace(' ', '.')}@example.com")
        session.add(user)
        session.commit()
        session.refresh(user)
        return user.id  # type: ignore


def seed_post(owner_id: int, title: str) -> int:
    with Session(test_engine) as session:
        post = Post(user_id=owner_id, title=title, description=f"{title} - details", sport_type="soccer")
        session.add(post)
        session.commit()
        session.refresh(post)
        return post.id  # type: ignore


def seed_message(
    sender_id: int,
    receiver_id: int,
    post_id: int | None,
    content: str,
    minutes: int = 0,
    is_read: bool = False,
) -> int:
    """Insert a message created `minutes` after T0."""
    with Session(test_engine) as session:
        msg = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            post_id=post_id,
            content=content,
            is_read=is_read,
            created_at=T0 + timedelta(minutes=minutes),
        )
        session.add(msg)
        session.commit()
        session.refresh(msg)
        return msg.id  # type: ignore


def auth(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
