"""SQLite storage for users, posts and messages."""

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from sportsconnect.core.config import settings


def make_engine(url: str | None = None, **kwargs) -> Engine:
    """Engine for the message store, defaulting to the configured database file."""
    return create_engine(
        url or f"sqlite:///{settings.db_path}",
        echo=settings.debug,
        connect_args={"check_same_thread": False},
        **kwargs,
    )


engine = make_engine()


def init_db(bind: Engine | None = None) -> None:
    import sportsconnect.models  # noqa: F401 - register message, user and post tables
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Request-scoped session; the message store commits its own writes."""
    with Session(engine) as session:
        yield session
