"""Pure transitions over the conversation list.

Every function takes the current list of entries and returns a new one; no
entry is mutated in place. Entries are kept sorted by last message, newest
first, and each entry's messages are newest first.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Optional, Union

from sportsconnect.client.records import (
    ClientMessage,
    ConversationEntry,
    ConversationKey,
    SendState,
    conversation_key,
    new_temp_id,
)
from sportsconnect.models.message import PostRef, UserRef

Entries = list[ConversationEntry]
MessageId = Union[int, str]

PLACEHOLDER_USER = UserRef(id=0, name="SportsConnect")
PLACEHOLDER_POST = PostRef(id=0, title="Welcome to SportsConnect")

_UNCONFIRMED = (SendState.SENDING, SendState.FAILED)


def sort_entries(entries: Iterable[ConversationEntry]) -> Entries:
    return sorted(entries, key=lambda e: e.last_message.created_at, reverse=True)


def find_entry(entries: Sequence[ConversationEntry], key: ConversationKey) -> Optional[ConversationEntry]:
    return next((e for e in entries if e.key == key), None)


def _newest_first(messages: Iterable[ClientMessage]) -> list[ClientMessage]:
    return sorted(messages, key=lambda m: m.created_at, reverse=True)


def _entry_state(messages: Sequence[ClientMessage], settled: SendState) -> SendState:
    if any(m.state == SendState.SENDING for m in messages):
        return SendState.SENDING
    return settled


def _rebuild(entry: ConversationEntry, messages: list[ClientMessage], user_id: int, **update) -> ConversationEntry:
    return entry.model_copy(update={
        "messages": messages,
        "last_message": max(messages, key=lambda m: m.created_at),
        "unread_count": sum(1 for m in messages if m.receiver.id == user_id and not m.is_read),
        **update,
    })


def apply_server_list(current: Sequence[ConversationEntry], incoming: Iterable[ConversationEntry], user_id: int) -> Entries:
    """Replace the cache with a freshly loaded list, from the server or the snapshot.

    Local records that are still sending or have failed are not known to the
    server; they are re-attached to their conversation by merge key. The live
    copy of a record wins over one with the same id in the incoming list.
    """
    entries = {e.key: e for e in incoming}

    for old in current:
        pending = [m for m in old.messages if m.state in _UNCONFIRMED]
        if not pending:
            continue
        target = entries.get(old.key)
        if target is None:
            entries[old.key] = _rebuild(old, _newest_first(pending), user_id)
        else:
            live = {m.id for m in pending}
            rest = [m for m in target.messages if m.id not in live]
            entries[old.key] = _rebuild(
                target,
                _newest_first([*pending, *rest]),
                user_id,
                state=old.state,
            )

    return sort_entries(entries.values())


def settle_pending(entries: Sequence[ConversationEntry], user_id: int) -> Entries:
    """Mark records still sending as failed.

    Used for anything written to or read from the device snapshot: no send
    task survives a restart, so a stored Sending record would never settle.
    """
    result = []
    for entry in entries:
        if not any(m.state == SendState.SENDING for m in entry.messages):
            result.append(entry)
            continue
        messages = [
            m.model_copy(update={"state": SendState.FAILED}) if m.state == SendState.SENDING else m
            for m in entry.messages
        ]
        result.append(_rebuild(entry, messages, user_id, state=SendState.FAILED))
    return result


def apply_thread(entries: Sequence[ConversationEntry], key: ConversationKey, thread: Iterable[ClientMessage], user_id: int) -> Entries:
    """Replace one conversation's messages with a freshly fetched thread.

    The thread endpoint returns every message with the counterpart; only the
    ones about this conversation's post are kept. An empty result leaves the
    entry untouched.
    """
    entry = find_entry(entries, key)
    if entry is None:
        return list(entries)

    scoped = [m for m in thread if m.post_id == key[1]]
    if not scoped:
        return list(entries)

    pending = [m for m in entry.messages if m.state in _UNCONFIRMED]
    updated = _rebuild(entry, _newest_first([*pending, *scoped]), user_id)
    return sort_entries(updated if e.key == key else e for e in entries)


def build_temp_message(sender: UserRef, receiver: UserRef, post: PostRef, content: str) -> ClientMessage:
    return ClientMessage(
        id=new_temp_id(),
        sender=sender,
        receiver=receiver,
        content=content,
        post=post,
        is_read=False,
        created_at=datetime.now(timezone.utc),
        state=SendState.SENDING,
    )


def begin_send(entries: Sequence[ConversationEntry], temp: ClientMessage) -> Entries:
    """Prepend a sending record and move its conversation to the top."""
    key = conversation_key(temp.receiver, temp.post)
    entry = find_entry(entries, key)

    if entry is None:
        entry = ConversationEntry(
            user=temp.receiver,
            post=temp.post,
            last_message=temp,
            messages=[temp],
            unread_count=0,
            state=SendState.SENDING,
        )
    else:
        entry = entry.model_copy(update={
            "messages": [temp, *entry.messages],
            "last_message": temp,
            "state": SendState.SENDING,
        })

    return [entry, *(e for e in entries if e.key != key)]


def _replace_message(entries: Sequence[ConversationEntry], message_id: MessageId, replace, settled: SendState, user_id: int) -> Entries:
    result = []
    for entry in entries:
        if not any(m.id == message_id for m in entry.messages):
            result.append(entry)
            continue
        messages = [replace(m) if m.id == message_id else m for m in entry.messages]
        result.append(_rebuild(entry, messages, user_id, state=_entry_state(messages, settled)))
    return result


def confirm_send(entries: Sequence[ConversationEntry], temp_id: str, confirmed: ClientMessage, user_id: int) -> Entries:
    """Swap the temporary record for the server's record, keeping its position.

    A refresh that lands between the server commit and this call already
    carries the server's record; that copy is dropped first.
    """
    confirmed = confirmed.model_copy(update={"state": SendState.CONFIRMED})
    if any(m.id == confirmed.id for e in entries for m in e.messages):
        entries = remove_message(entries, confirmed.id, user_id)
    return _replace_message(entries, temp_id, lambda m: confirmed, SendState.CONFIRMED, user_id)


def fail_send(entries: Sequence[ConversationEntry], temp_id: str, user_id: int) -> Entries:
    return _replace_message(
        entries,
        temp_id,
        lambda m: m.model_copy(update={"state": SendState.FAILED}),
        SendState.FAILED,
        user_id,
    )


def mark_read(entries: Sequence[ConversationEntry], message_id: MessageId, user_id: int) -> Entries:
    result = []
    for entry in entries:
        if not any(m.id == message_id for m in entry.messages):
            result.append(entry)
            continue
        messages = [m.model_copy(update={"is_read": True}) if m.id == message_id else m for m in entry.messages]
        result.append(_rebuild(entry, messages, user_id))
    return result


def remove_counterpart(entries: Sequence[ConversationEntry], counterpart_id: int) -> Entries:
    return [e for e in entries if e.user.id != counterpart_id]


def remove_message(entries: Sequence[ConversationEntry], message_id: MessageId, user_id: int) -> Entries:
    result = []
    for entry in entries:
        messages = [m for m in entry.messages if m.id != message_id]
        if len(messages) == len(entry.messages):
            result.append(entry)
        elif messages:
            result.append(_rebuild(entry, messages, user_id))
        # a conversation with no messages left disappears
    return sort_entries(result)


def placeholder_entries(current_user: UserRef) -> Entries:
    """A single welcome conversation so a first offline start never shows an empty list."""
    welcome = ClientMessage(
        id="placeholder-welcome",
        sender=PLACEHOLDER_USER,
        receiver=current_user,
        content="Welcome! Conversations about posts will show up here.",
        post=PLACEHOLDER_POST,
        is_read=False,
        created_at=datetime.now(timezone.utc),
    )
    return [
        ConversationEntry(
            user=PLACEHOLDER_USER,
            post=PLACEHOLDER_POST,
            last_message=welcome,
            messages=[welcome],
            unread_count=1,
        )
    ]
