"""Optimistic send: show the message now, confirm or fail it when the server answers."""

import asyncio
import logging

from sportsconnect.client import state
from sportsconnect.client.cache import ConversationCache, ErrorCallback
from sportsconnect.client.records import ClientMessage, SendState
from sportsconnect.core.errors import MessagingError, SendFailedError, ValidationError
from sportsconnect.models.message import PostRef, UserRef

logger = logging.getLogger(__name__)


class SendPipeline:
    def __init__(self, cache: ConversationCache, on_error: ErrorCallback | None = None):
        self.cache = cache
        self.on_error = on_error or cache.report
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def send(self, counterpart: UserRef, post: PostRef, content: str) -> ClientMessage:
        """Add a sending record to the cache and dispatch it in the background.

        Must be called from a running event loop. Returns the temporary record
        without waiting for the server.
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError("Message content cannot be empty")

        temp = state.build_temp_message(self.cache.current_user, counterpart, post, text)
        self.cache.apply(lambda entries: state.begin_send(entries, temp))

        task = asyncio.get_running_loop().create_task(self._dispatch(temp))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return temp

    def retry(self, failed_id: str) -> ClientMessage:
        """Send a failed message's text again as a new record. The failed one stays."""
        for entry in self.cache.entries:
            for message in entry.messages:
                if message.id == failed_id and message.state == SendState.FAILED:
                    return self.send(message.receiver, message.post, message.content)
        raise ValidationError(f"No failed message {failed_id}")

    async def drain(self) -> None:
        """Wait for every in-flight send to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _dispatch(self, temp: ClientMessage) -> None:
        user_id = self.cache.current_user.id
        try:
            confirmed = await self.cache.api.send_message(temp.receiver.id, temp.content, temp.post_id)
        except MessagingError as e:
            logger.warning(f"Send {temp.id} failed: {e.detail}")
            self.cache.apply(lambda entries: state.fail_send(entries, temp.id, user_id))
            self.cache.persist()
            self.on_error(SendFailedError(temp.id, temp.content, cause=e))
            return

        self.cache.apply(lambda entries: state.confirm_send(entries, temp.id, confirmed, user_id))
        self.cache.persist()
        logger.debug(f"Send {temp.id} confirmed as message {confirmed.id}")
