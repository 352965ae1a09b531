"""Conversation aggregation - collapses a user's message log into one conversation per (counterpart, post)."""

import logging
from collections.abc import Iterable
from typing import Optional

from sportsconnect.core.errors import ServerError
from sportsconnect.models.message import ConversationSummary, MessageRead
from sportsconnect.services.message_store import MessageStore

logger = logging.getLogger(__name__)

ConversationKey = tuple[int, Optional[int]]


def counterpart_of(message: MessageRead, user_id: int):
    return message.receiver if message.sender.id == user_id else message.sender


def aggregate_conversations(messages: Iterable[MessageRead], user_id: int) -> list[ConversationSummary]:
    """Group messages by (counterpart id, post id).

    Input order does not matter: the last message of each group is the one
    with the greatest created_at, and each group's messages come back newest
    first. A message whose post is gone still counts, keyed by its raw post id.
    """
    ordered = sorted(messages, key=lambda m: (m.created_at, m.id), reverse=True)
    groups: dict[ConversationKey, ConversationSummary] = {}

    for message in ordered:
        counterpart = counterpart_of(message, user_id)
        key = (counterpart.id, message.post_id)

        conversation = groups.get(key)
        if conversation is None:
            # Newest first, so the first message seen is the last message
            conversation = ConversationSummary(
                user=counterpart,
                post=message.post,
                last_message=message,
                messages=[],
                unread_count=0,
            )
            groups[key] = conversation

        conversation.messages.append(message)
        if message.receiver.id == user_id and not message.is_read:
            conversation.unread_count += 1

    # dicts keep insertion order, which is already last_message.created_at desc
    return list(groups.values())


class ConversationAggregator:
    def __init__(self, store: MessageStore):
        self.store = store

    def conversations_for(self, user_id: int) -> list[ConversationSummary]:
        try:
            messages = self.store.populate(self.store.find_all_messages_for_user(user_id))
        except ServerError:
            logger.error(f"Aggregation for user {user_id} failed: store unavailable")
            raise
        conversations = aggregate_conversations(messages, user_id)
        logger.debug(f"Aggregated {len(messages)} messages into {len(conversations)} conversations for user {user_id}")
        return conversations
