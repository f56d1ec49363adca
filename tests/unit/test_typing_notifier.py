from __future__ import annotations

import asyncio

import pytest

from teamchat.client.typing import TypingDisplay, TypingNotifier
from teamchat.infrastructure.ws.protocol import UserStopTypingPush, UserTypingPush
from tests.conftest import FakeClock


class Recorder:
    def __init__(self) -> None:
        self.types: list[str] = []

    async def __call__(self, msg) -> None:
        self.types.append(msg.type)


@pytest.mark.asyncio
async def test_idle_timer_emits_stop():
    sent = Recorder()
    notifier = TypingNotifier(sent, idle_seconds=0.01)

    await notifier.keystroke()
    assert notifier.active
    await asyncio.sleep(0.05)

    assert sent.types == ["typing", "stop_typing"]
    assert not notifier.active


@pytest.mark.asyncio
async def test_keystrokes_restart_the_timer():
    sent = Recorder()
    notifier = TypingNotifier(sent, idle_seconds=0.05)

    for _ in range(3):
        await notifier.keystroke()
        await asyncio.sleep(0.01)
    await asyncio.sleep(0.1)

    assert sent.types == ["typing", "typing", "typing", "stop_typing"]


@pytest.mark.asyncio
async def test_stop_emits_once_and_cancels_timer():
    sent = Recorder()
    notifier = TypingNotifier(sent, idle_seconds=0.01)

    await notifier.keystroke()
    await notifier.stop()
    await notifier.stop()
    await asyncio.sleep(0.03)

    assert sent.types == ["typing", "stop_typing"]


def test_display_ignores_own_and_other_scopes():
    clock = FakeClock()
    display = TypingDisplay(viewer_id=1, clock=clock)

    assert display.on_push(UserTypingPush(user_id=1, scope="channel:a"), "channel:a") is False
    assert display.on_push(UserTypingPush(user_id=2, scope="channel:b"), "channel:a") is False
    assert display.on_push(UserTypingPush(user_id=3, scope="channel:a"), "channel:a") is True

    assert display.typists("channel:a") == [3]
    display.on_push(UserStopTypingPush(user_id=3, scope="channel:a"), "channel:a")
    assert display.typists("channel:a") == []


def test_display_expires_silent_typists():
    clock = FakeClock()
    display = TypingDisplay(viewer_id=1, clock=clock)
    display.on_push(UserTypingPush(user_id=3, scope="dm:1:3"), "dm:1:3")

    clock.advance(5)
    assert display.typists("dm:1:3") == []
