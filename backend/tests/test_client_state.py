"""Tests for the client-side conversation transitions."""

from datetime import timedelta

from tests.conftest import T0
from sportsconnect.client import state
from sportsconnect.client.records import ClientMessage, ConversationEntry, SendState
from sportsconnect.models.message import PostRef, UserRef

ME = UserRef(id=1, name="Me")
BOB = UserRef(id=2, name="Bob")
CAROL = UserRef(id=3, name="Carol")
P1 = PostRef(id=10, title="Pickup basketball")
P2 = PostRef(id=20, title="Volleyball Saturday")


def message(mid, sender, receiver, post, minutes, content="hi", is_read=False):
    return ClientMessage(
        id=mid,
        sender=sender,
        receiver=receiver,
        content=content,
        post=post,
        is_read=is_read,
        created_at=T0 + timedelta(minutes=minutes),
    )


def entry(counterpart, post, *messages, unread=0):
    ordered = sorted(messages, key=lambda m: m.created_at, reverse=True)
    return ConversationEntry(
        user=counterpart,
        post=post,
        last_message=ordered[0],
        messages=ordered,
        unread_count=unread,
    )


def test_apply_server_list_sorts_by_last_message():
    older = entry(BOB, P1, message(1, BOB, ME, P1, 1))
    newer = entry(CAROL, P1, message(2, CAROL, ME, P1, 5))
    result = state.apply_server_list([], [older, newer], ME.id)
    assert [e.user.id for e in result] == [CAROL.id, BOB.id]


def test_apply_server_list_keeps_failed_local_records():
    server_bob = entry(BOB, P1, message(1, BOB, ME, P1, 1))
    failed = message("temp-x", ME, BOB, P1, 2, content="did not go").model_copy(
        update={"state": SendState.FAILED}
    )
    local = [entry(BOB, P1, failed, message(1, BOB, ME, P1, 1))]

    [merged] = state.apply_server_list(local, [server_bob], ME.id)
    assert [m.id for m in merged.messages] == ["temp-x", 1]
    assert merged.failed


def test_begin_send_creates_entry_and_moves_to_top():
    entries = [
        entry(CAROL, P1, message(1, CAROL, ME, P1, 9)),
        entry(BOB, P1, message(2, BOB, ME, P1, 1)),
    ]
    temp = state.build_temp_message(ME, BOB, P1, "on my way")
    result = state.begin_send(entries, temp)
    assert result[0].key == (BOB.id, P1.id)
    assert result[0].messages[0].id == temp.id
    assert result[0].last_message.id == temp.id
    assert result[0].state == SendState.SENDING

    brand_new = state.build_temp_message(ME, BOB, P2, "different post")
    result = state.begin_send(result, brand_new)
    assert [e.key for e in result][:2] == [(BOB.id, P2.id), (BOB.id, P1.id)]
    assert len(result) == 3


def test_confirm_send_replaces_temp_in_place():
    existing = message(5, BOB, ME, P1, 1)
    temp = state.build_temp_message(ME, BOB, P1, "hello")
    entries = state.begin_send([entry(BOB, P1, existing)], temp)

    server_copy = temp.model_copy(update={"id": 99})
    [result] = state.confirm_send(entries, temp.id, server_copy, ME.id)
    assert [m.id for m in result.messages] == [99, 5]
    assert result.messages[0].state == SendState.CONFIRMED
    assert result.state == SendState.CONFIRMED


def test_fail_send_marks_but_keeps_record():
    temp = state.build_temp_message(ME, BOB, P1, "hello")
    entries = state.begin_send([], temp)
    [result] = state.fail_send(entries, temp.id, ME.id)
    assert result.messages[0].content == "hello"
    assert result.messages[0].state == SendState.FAILED
    assert result.state == SendState.FAILED
    assert result.failed


def test_entry_stays_sending_while_another_send_is_pending():
    first = state.build_temp_message(ME, BOB, P1, "one")
    second = state.build_temp_message(ME, BOB, P1, "two")
    entries = state.begin_send(state.begin_send([], first), second)
    [result] = state.fail_send(entries, first.id, ME.id)
    assert result.state == SendState.SENDING


def test_apply_thread_scopes_to_post():
    current = [entry(BOB, P1, message(1, BOB, ME, P1, 1))]
    thread = [
        message(3, BOB, ME, P2, 6, content="other post"),
        message(2, ME, BOB, P1, 4, content="reply"),
        message(1, BOB, ME, P1, 1),
    ]
    [result] = state.apply_thread(current, (BOB.id, P1.id), thread, ME.id)
    assert [m.id for m in result.messages] == [2, 1]
    assert result.last_message.content == "reply"


def test_apply_thread_empty_keeps_entry():
    current = [entry(BOB, P1, message(1, BOB, ME, P1, 1))]
    assert state.apply_thread(current, (BOB.id, P1.id), [], ME.id) == current


def test_mark_read_recounts_one_entry():
    entries = [
        entry(BOB, P1, message(1, BOB, ME, P1, 1), message(2, BOB, ME, P1, 2), unread=2),
        entry(BOB, P2, message(3, BOB, ME, P2, 3), unread=1),
    ]
    result = state.mark_read(entries, 1, ME.id)
    counts = {e.key: e.unread_count for e in result}
    assert counts == {(BOB.id, P1.id): 1, (BOB.id, P2.id): 1}


def test_remove_message_recomputes_last_and_drops_empty():
    entries = [
        entry(BOB, P1, message(1, BOB, ME, P1, 1), message(2, ME, BOB, P1, 2)),
        entry(CAROL, P1, message(3, CAROL, ME, P1, 3)),
    ]
    result = state.remove_message(entries, 2, ME.id)
    bob = state.find_entry(result, (BOB.id, P1.id))
    assert bob.last_message.id == 1

    result = state.remove_message(result, 3, ME.id)
    assert [e.user.id for e in result] == [BOB.id]


def test_remove_counterpart_drops_every_post():
    entries = [
        entry(BOB, P1, message(1, BOB, ME, P1, 1)),
        entry(BOB, P2, message(2, BOB, ME, P2, 2)),
        entry(CAROL, P1, message(3, CAROL, ME, P1, 3)),
    ]
    assert [e.user.id for e in state.remove_counterpart(entries, BOB.id)] == [CAROL.id]


def test_placeholder_presentation_fallbacks():
    [placeholder] = state.placeholder_entries(ME)
    assert placeholder.unread_count == 1
    assert placeholder.messages[0].receiver.id == ME.id

    orphan = entry(UserRef(id=7), PostRef(id=8), message(4, UserRef(id=7), ME, PostRef(id=8), 1))
    assert orphan.post_title == "Unknown Post"
    assert orphan.counterpart_name == "Unknown User"


def test_confirm_send_after_refresh_already_carrying_server_copy():
    temp = state.build_temp_message(ME, BOB, P1, "hello")
    entries = state.begin_send([], temp)
    server_copy = temp.model_copy(update={"id": 99, "state": SendState.CONFIRMED})
    refreshed = state.apply_server_list(entries, [entry(BOB, P1, server_copy)], ME.id)
    assert len(refreshed[0].messages) == 2

    [result] = state.confirm_send(refreshed, temp.id, server_copy, ME.id)
    assert [m.id for m in result.messages] == [99]
    assert result.state == SendState.CONFIRMED


def test_settle_pending_turns_sending_into_failed():
    temp = state.build_temp_message(ME, BOB, P1, "hello")
    other = entry(CAROL, P1, message(3, CAROL, ME, P1, 1))
    entries = state.begin_send([other], temp)

    settled = state.settle_pending(entries, ME.id)
    assert settled[0].messages[0].state == SendState.FAILED
    assert settled[0].state == SendState.FAILED
    assert settled[1] is other


def test_apply_server_list_prefers_live_copy_of_same_record():
    temp = state.build_temp_message(ME, BOB, P1, "hello")
    live = state.begin_send([], temp)
    stored = state.settle_pending(live, ME.id)

    [merged] = state.apply_server_list(live, stored, ME.id)
    assert [(m.id, m.state) for m in merged.messages] == [(temp.id, SendState.SENDING)]
