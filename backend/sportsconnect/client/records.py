"""Client-side message and conversation records.

These parse the server's JSON directly (camelCase keys) and are what the
device snapshot stores.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sportsconnect.models.message import PostRef, UserRef

UNKNOWN_POST = "Unknown Post"
UNKNOWN_USER = "Unknown User"

ConversationKey = tuple[int, Optional[int]]


class SendState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClientMessage(_Record):
    # Server ids are ints; optimistic records carry a "temp-..." string
    id: Union[int, str]
    sender: UserRef
    receiver: UserRef
    content: str
    post: Optional[PostRef] = None
    is_read: bool = False
    created_at: datetime
    state: SendState = SendState.CONFIRMED

    @field_validator("created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_temporary(self) -> bool:
        return isinstance(self.id, str) and self.id.startswith("temp-")

    @property
    def post_id(self) -> Optional[int]:
        return self.post.id if self.post else None


def new_temp_id() -> str:
    return f"temp-{uuid.uuid4().hex}"


class ConversationEntry(_Record):
    user: UserRef
    post: Optional[PostRef] = None
    last_message: ClientMessage
    messages: list[ClientMessage] = Field(default_factory=list)
    unread_count: int = 0
    state: SendState = SendState.IDLE

    @property
    def key(self) -> ConversationKey:
        return conversation_key(self.user, self.post)

    @property
    def failed(self) -> bool:
        return any(m.state == SendState.FAILED for m in self.messages)

    @property
    def post_title(self) -> str:
        return (self.post.title if self.post else None) or UNKNOWN_POST

    @property
    def counterpart_name(self) -> str:
        return self.user.name or UNKNOWN_USER


def conversation_key(user: UserRef, post: Optional[PostRef]) -> ConversationKey:
    return (user.id, post.id if post else None)
