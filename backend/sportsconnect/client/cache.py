"""Client conversation cache.

Holds the conversation list the user sees. Server responses replace it; when
the server cannot be reached the last device snapshot is shown instead, with
any unsent local records merged in.
"""

import logging
from collections.abc import Callable
from typing import Optional

from sportsconnect.client import state
from sportsconnect.client.api import MessagesAPI
from sportsconnect.client.records import ConversationEntry, ConversationKey
from sportsconnect.client.storage import ConversationSnapshot
from sportsconnect.core.errors import MessagingError, ServerError
from sportsconnect.models.message import UserRef

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[MessagingError], None]


class ConversationCache:
    def __init__(
        self,
        api: MessagesAPI,
        current_user: UserRef,
        snapshot: ConversationSnapshot | None = None,
        on_error: ErrorCallback | None = None,
    ):
        self.api = api
        self.current_user = current_user
        self.snapshot = snapshot or ConversationSnapshot()
        self.on_error = on_error
        self.offline = False
        self._entries: list[ConversationEntry] = []

    @property
    def entries(self) -> list[ConversationEntry]:
        return list(self._entries)

    def get(self, key: ConversationKey) -> Optional[ConversationEntry]:
        return state.find_entry(self._entries, key)

    def apply(self, transition: Callable[[list[ConversationEntry]], list[ConversationEntry]]) -> None:
        """Run a state transition against the current entries."""
        self._entries = transition(self._entries)

    def report(self, error: MessagingError) -> None:
        if self.on_error:
            self.on_error(error)

    async def refresh(self) -> list[ConversationEntry]:
        try:
            incoming = await self.api.get_conversations()
        except ServerError as e:
            logger.warning(f"Conversation list unavailable, using local snapshot: {e.detail}")
            self._load_fallback()
            self.report(e)
            return self.entries

        user_id = self.current_user.id
        self.apply(lambda entries: state.apply_server_list(entries, incoming, user_id))
        self.offline = False
        self.persist()
        logger.debug(f"Cached {len(self._entries)} conversations from server")
        return self.entries

    def persist(self) -> None:
        """Write the current list to the device snapshot."""
        self.snapshot.save(state.settle_pending(self._entries, self.current_user.id))

    def _load_fallback(self) -> None:
        self.offline = True
        user_id = self.current_user.id
        saved = self.snapshot.load()
        if saved:
            saved = state.settle_pending(saved, user_id)
        else:
            logger.info("No local snapshot, showing placeholder conversation")
            saved = state.placeholder_entries(self.current_user)
        # unsent local records survive the swap
        self.apply(lambda entries: state.apply_server_list(entries, saved, user_id))
        self.persist()

    async def open_conversation(self, key: ConversationKey) -> Optional[ConversationEntry]:
        """Fetch the full thread for one conversation. On failure the entry keeps what it had."""
        if self.get(key) is None:
            return None
        try:
            thread = await self.api.get_thread(key[0])
        except ServerError as e:
            logger.warning(f"Thread with user {key[0]} unavailable: {e.detail}")
            self.report(e)
            return self.get(key)

        user_id = self.current_user.id
        self.apply(lambda entries: state.apply_thread(entries, key, thread, user_id))
        return self.get(key)

    async def mark_read(self, message_id: int) -> None:
        await self.api.mark_read(message_id)
        user_id = self.current_user.id
        self.apply(lambda entries: state.mark_read(entries, message_id, user_id))

    async def delete_conversation(self, counterpart_id: int) -> None:
        await self.api.delete_conversation(counterpart_id)
        self.apply(lambda entries: state.remove_counterpart(entries, counterpart_id))

    async def delete_message(self, message_id: int) -> None:
        await self.api.delete_message(message_id)
        user_id = self.current_user.id
        self.apply(lambda entries: state.remove_message(entries, message_id, user_id))

    def reset_local(self) -> None:
        self.snapshot.clear()
        logger.info("Local conversation snapshot cleared")
