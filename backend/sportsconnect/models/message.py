"""Direct messages and the read projections served by the messages API."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from sqlmodel import Field, SQLModel


class Message(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    sender_id: int = Field(foreign_key="user.id", index=True)
    receiver_id: int = Field(foreign_key="user.id", index=True)
    content: str
    # Nullable so rows survive their post being removed
    post_id: Optional[int] = Field(default=None, foreign_key="post.id", index=True)
    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)


class _Projection(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserRef(_Projection):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    profile_image: Optional[str] = None


class PostRef(_Projection):
    """A post as embedded in a message. title is None once the post is gone."""

    id: int
    title: Optional[str] = None
    description: Optional[str] = None


class MessageRead(_Projection):
    id: int
    sender: UserRef
    receiver: UserRef
    content: str
    post: Optional[PostRef] = None
    is_read: bool
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything stored is UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def post_id(self) -> Optional[int]:
        return self.post.id if self.post else None


class ConversationSummary(_Projection):
    user: UserRef
    post: Optional[PostRef] = None
    last_message: MessageRead
    messages: list[MessageRead]
    unread_count: int = 0
