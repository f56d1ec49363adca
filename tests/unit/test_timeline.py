from __future__ import annotations

import uuid
from datetime import timedelta

from hypothesis import given
from hypothesis import strategies as st

from teamchat.client.timeline import EntryState, MessageTimeline
from teamchat.domain.value_objects.scope import GENERAL_CHANNEL_ID
from teamchat.infrastructure.ws.protocol import AuthorPayload, MessagePayload
from tests.conftest import T0


def _payload(
    content: str = "hi",
    *,
    message_id: uuid.UUID | None = None,
    token: uuid.UUID | None = None,
    at: int = 0,
) -> MessagePayload:
    return MessagePayload(
        id=message_id or uuid.uuid4(),
        content=content,
        author_id=42,
        channel_id=GENERAL_CHANNEL_ID,
        client_msg_id=token,
        created_at=T0 + timedelta(seconds=at),
        author=AuthorPayload(id=42, display_name="Alice"),
    )


def _send(timeline: MessageTimeline, content: str = "hi", at: int = 0):
    token = uuid.uuid4()
    timeline.add_provisional(str(token), _payload(content, message_id=token, token=token, at=at))
    canonical = _payload(content, token=token, at=at)
    return str(token), canonical


def test_confirm_promotes_in_place():
    timeline = MessageTimeline()
    local_id, canonical = _send(timeline)

    assert timeline.visible()[0].state is EntryState.PROVISIONAL
    assert timeline.confirm(local_id, canonical) is True

    [entry] = timeline.visible()
    assert entry.state is EntryState.CONFIRMED
    assert entry.message.id == canonical.id


def test_push_then_response_shows_one_copy():
    timeline = MessageTimeline()
    local_id, canonical = _send(timeline)

    assert timeline.apply_push(canonical) is True
    assert timeline.confirm(local_id, canonical) is False
    assert [e.message.id for e in timeline.visible()] == [canonical.id]


def test_response_then_push_shows_one_copy():
    timeline = MessageTimeline()
    local_id, canonical = _send(timeline)

    timeline.confirm(local_id, canonical)
    assert timeline.apply_push(canonical) is False
    assert len(timeline) == 1


def test_push_without_token_then_response_drops_provisional():
    timeline = MessageTimeline()
    local_id, canonical = _send(timeline)
    anonymous = canonical.model_copy(update={"client_msg_id": None})

    timeline.apply_push(anonymous)
    assert len(timeline) == 2
    timeline.confirm(local_id, canonical)

    assert [e.message.id for e in timeline.visible()] == [canonical.id]


def test_rollback_only_removes_provisional():
    timeline = MessageTimeline()
    local_id, canonical = _send(timeline)
    assert timeline.rollback(local_id) is True
    assert len(timeline) == 0

    local_id, canonical = _send(timeline)
    timeline.confirm(local_id, canonical)
    assert timeline.rollback(local_id) is False
    assert len(timeline) == 1


def test_edit_and_delete():
    timeline = MessageTimeline()
    msg = _payload("before")
    timeline.apply_push(msg)

    assert timeline.apply_edit(msg.model_copy(update={"content": "after"})) is True
    assert timeline.visible()[0].message.content == "after"
    assert timeline.apply_edit(_payload("unknown")) is False

    assert timeline.apply_delete(msg.id) is True
    assert timeline.apply_delete(msg.id) is False
    assert len(timeline) == 0


def test_history_merge_dedups_and_keeps_provisional():
    timeline = MessageTimeline()
    shown = _payload("shown", at=1)
    timeline.apply_push(shown)
    _send(timeline, "pending", at=5)

    added = timeline.load_history([_payload("old", at=0), shown])

    assert added == 1
    assert [e.message.content for e in timeline.visible()] == ["old", "shown", "pending"]


def test_visible_is_ordered_by_timestamp_not_arrival():
    timeline = MessageTimeline()
    late = _payload("late", at=10)
    early = _payload("early", at=1)
    timeline.apply_push(late)
    timeline.apply_push(early)

    assert [e.message.content for e in timeline.visible()] == ["early", "late"]


# Each step is one of the ways the HTTP response and the realtime push for the
# same send can interleave, including duplicates of either.
_deliveries = st.lists(
    st.sampled_from(["response", "push", "push_anonymous", "history"]),
    min_size=1,
    max_size=6,
)


@given(_deliveries)
def test_any_interleaving_shows_exactly_one_copy(steps):
    timeline = MessageTimeline()
    local_id, canonical = _send(timeline)

    for step in steps:
        if step == "response":
            timeline.confirm(local_id, canonical)
        elif step == "push":
            timeline.apply_push(canonical)
        elif step == "push_anonymous":
            timeline.apply_push(canonical.model_copy(update={"client_msg_id": None}))
        else:
            timeline.load_history([canonical])

    # the provisional copy disappears once the response arrives
    if "response" in steps:
        assert [e.message.id for e in timeline.visible()] == [canonical.id]
    else:
        confirmed = [e for e in timeline.visible() if not e.is_provisional]
        assert [e.message.id for e in confirmed] == [canonical.id]


@given(st.lists(st.integers(min_value=0, max_value=10_000), min_size=1, max_size=30))
def test_visible_order_follows_created_at(offsets):
    timeline = MessageTimeline()
    for off in offsets:
        timeline.apply_push(_payload(at=off))

    stamps = [e.message.created_at for e in timeline.visible()]
    assert stamps == sorted(stamps)
    assert len(stamps) == len(offsets)
