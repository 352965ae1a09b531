"""REST API for direct messages between marketplace users."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from sportsconnect.core.database import get_session
from sportsconnect.core.security import get_current_user_id
from sportsconnect.models.message import ConversationSummary, MessageRead
from sportsconnect.services.aggregator import ConversationAggregator
from sportsconnect.services.message_store import MessageStore

router = APIRouter()
logger = logging.getLogger(__name__)


class MessageCreate(BaseModel):
    # Optional so a missing field reaches the store and comes back as a 400
    recipient: Optional[int] = None
    content: Optional[str] = None
    post: Optional[int] = None


def get_message_store(session: Session = Depends(get_session)) -> MessageStore:
    return MessageStore(session)


# Static paths are registered before the /{user_id} catch-alls


@router.get("/conversations/list", response_model=list[ConversationSummary])
async def list_conversations(
    user_id: int = Depends(get_current_user_id),
    store: MessageStore = Depends(get_message_store),
):
    return ConversationAggregator(store).conversations_for(user_id)


@router.post("", response_model=MessageRead)
async def send_message(
    body: MessageCreate,
    user_id: int = Depends(get_current_user_id),
    store: MessageStore = Depends(get_message_store),
):
    message = store.create_message(user_id, body.recipient, body.content, body.post)
    return store.populate([message])[0]


@router.put("/{message_id}/read", response_model=MessageRead)
async def mark_read(
    message_id: int,
    user_id: int = Depends(get_current_user_id),
    store: MessageStore = Depends(get_message_store),
):
    message = store.mark_read(message_id, user_id)
    return store.populate([message])[0]


@router.delete("/single/{message_id}")
async def delete_message(
    message_id: int,
    user_id: int = Depends(get_current_user_id),
    store: MessageStore = Depends(get_message_store),
):
    store.delete_single(message_id, user_id)
    return {"message": "Message deleted"}


@router.get("/{other_user_id}", response_model=list[MessageRead])
async def get_thread(
    other_user_id: int,
    user_id: int = Depends(get_current_user_id),
    store: MessageStore = Depends(get_message_store),
):
    return store.populate(store.find_messages_between(user_id, other_user_id))


@router.delete("/{other_user_id}")
async def delete_conversation(
    other_user_id: int,
    user_id: int = Depends(get_current_user_id),
    store: MessageStore = Depends(get_message_store),
):
    deleted = store.delete_between(user_id, other_user_id)
    logger.info(f"User {user_id} deleted conversation with {other_user_id} ({deleted} messages)")
    return {"message": "Conversation deleted"}
