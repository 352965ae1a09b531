"""Durable storage for direct messages.

Every write is a single commit. Database failures are rolled back and
re-raised as ServerError so callers never observe a partial write.
"""

import logging
from collections.abc import Sequence
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from sportsconnect.core.errors import AuthorizationError, NotFoundError, ServerError, ValidationError
from sportsconnect.models.message import Message, MessageRead, PostRef, UserRef
from sportsconnect.models.user import Post, User

logger = logging.getLogger(__name__)


def _between(user_a: int, user_b: int):
    return or_(
        and_(Message.sender_id == user_a, Message.receiver_id == user_b),
        and_(Message.sender_id == user_b, Message.receiver_id == user_a),
    )


class MessageStore:
    def __init__(self, session: Session):
        self.session = session

    def create_message(
        self,
        sender_id: int,
        receiver_id: Optional[int],
        content: Optional[str],
        post_id: Optional[int],
    ) -> Message:
        if receiver_id is None:
            raise ValidationError("Recipient is required")
        if not content or not content.strip():
            raise ValidationError("Message content cannot be empty")
        if post_id is None:
            raise ValidationError("A message must reference a post")
        if receiver_id == sender_id:
            raise ValidationError("Cannot send message to yourself")

        message = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content.strip(),
            post_id=post_id,
            is_read=False,
        )
        self.session.add(message)
        self._commit()
        self.session.refresh(message)
        logger.debug(f"Stored message {message.id} {sender_id} -> {receiver_id} (post {post_id})")
        return message

    def find_messages_between(self, user_a: int, user_b: int) -> list[Message]:
        return self._query(
            select(Message)
            .where(_between(user_a, user_b))
            .order_by(Message.created_at.desc(), Message.id.desc())  # type: ignore
        )

    def find_all_messages_for_user(self, user_id: int) -> list[Message]:
        return self._query(
            select(Message)
            .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(Message.created_at.desc(), Message.id.desc())  # type: ignore
        )

    def get(self, message_id: int) -> Message:
        try:
            message = self.session.get(Message, message_id)
        except SQLAlchemyError as e:
            logger.error(f"Message lookup failed: {e}")
            raise ServerError()
        if not message:
            raise NotFoundError()
        return message

    def mark_read(self, message_id: int, acting_user_id: int) -> Message:
        message = self.get(message_id)
        if message.receiver_id != acting_user_id:
            raise AuthorizationError()
        if not message.is_read:
            message.is_read = True
            self.session.add(message)
            self._commit()
            self.session.refresh(message)
        return message

    def delete_between(self, user_a: int, user_b: int) -> int:
        messages = self.find_messages_between(user_a, user_b)
        for message in messages:
            self.session.delete(message)
        self._commit()
        logger.debug(f"Deleted {len(messages)} messages between {user_a} and {user_b}")
        return len(messages)

    def delete_single(self, message_id: int, acting_user_id: int) -> None:
        message = self.get(message_id)
        if message.sender_id != acting_user_id:
            raise AuthorizationError()
        self.session.delete(message)
        self._commit()
        logger.debug(f"Deleted message {message_id}")

    def populate(self, messages: Sequence[Message]) -> list[MessageRead]:
        """Resolve sender, receiver and post references in one lookup per table."""
        user_ids = {m.sender_id for m in messages} | {m.receiver_id for m in messages}
        post_ids = {m.post_id for m in messages if m.post_id is not None}

        users: dict[int, User] = {}
        posts: dict[int, Post] = {}
        if user_ids:
            users = {u.id: u for u in self._query(select(User).where(User.id.in_(user_ids)))}  # type: ignore
        if post_ids:
            posts = {p.id: p for p in self._query(select(Post).where(Post.id.in_(post_ids)))}  # type: ignore

        return [
            MessageRead(
                id=m.id,
                sender=_user_ref(m.sender_id, users.get(m.sender_id)),
                receiver=_user_ref(m.receiver_id, users.get(m.receiver_id)),
                content=m.content,
                post=_post_ref(m.post_id, posts.get(m.post_id)) if m.post_id is not None else None,
                is_read=m.is_read,
                created_at=m.created_at,
            )
            for m in messages
        ]

    def _query(self, statement) -> list:
        try:
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            logger.error(f"Message query failed: {e}")
            raise ServerError()

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Message write rolled back: {e}")
            raise ServerError()


def _user_ref(user_id: int, user: Optional[User]) -> UserRef:
    if user is None:
        return UserRef(id=user_id)
    return UserRef(id=user_id, name=user.name, email=user.email, profile_image=user.profile_image)


def _post_ref(post_id: int, post: Optional[Post]) -> PostRef:
    if post is None:
        return PostRef(id=post_id)
    return PostRef(id=post_id, title=post.title, description=post.description)
