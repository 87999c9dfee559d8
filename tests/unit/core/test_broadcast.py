"""Unit tests for BroadcastChannel."""

import json

import pytest

from tcp_repeat.core.broadcast import BroadcastChannel, encode

from tests.unit.conftest import FakeObserver


ONBOARDING = [("serverVersion", "1.0.0"), ("captures", []), ("playlists", [])]


def test_encode_frame():
    assert json.loads(encode("captures", [1])) == {"event": "captures", "data": [1]}


class TestConnect:

    @pytest.mark.asyncio
    async def test_onboarding_is_sent_in_order(self):
        channel = BroadcastChannel()
        observer = FakeObserver()

        assert await channel.connect(observer, ONBOARDING) is True

        assert observer.events == ["serverVersion", "captures", "playlists"]
        assert observer in channel

    @pytest.mark.asyncio
    async def test_failed_onboarding_does_not_register(self):
        channel = BroadcastChannel()
        observer = FakeObserver(fail=True)

        assert await channel.connect(observer, ONBOARDING) is False
        assert len(channel) == 0


class TestBroadcast:

    @pytest.mark.asyncio
    async def test_every_observer_receives_messages(self):
        channel = BroadcastChannel()
        observers = [FakeObserver(), FakeObserver()]
        for observer in observers:
            await channel.connect(observer, [])

        reached = await channel.broadcast(("captures", []), ("playlists", []))

        assert reached == 2
        for observer in observers:
            assert observer.events == ["captures", "playlists"]

    @pytest.mark.asyncio
    async def test_failing_observers_are_dropped(self):
        channel = BroadcastChannel()
        healthy, broken, closed = FakeObserver(), FakeObserver(), FakeObserver()
        for observer in (healthy, broken, closed):
            await channel.connect(observer, [])
        broken.fail = True
        closed.closed = True

        reached = await channel.broadcast(("playlists", []))

        assert reached == 1
        assert healthy in channel
        assert broken not in channel
        assert closed not in channel

    @pytest.mark.asyncio
    async def test_no_observers(self):
        assert await BroadcastChannel().broadcast(("captures", [])) == 0

    @pytest.mark.asyncio
    async def test_disconnect_and_close_all(self):
        channel = BroadcastChannel()
        first, second = FakeObserver(), FakeObserver()
        await channel.connect(first, [])
        await channel.connect(second, [])

        channel.disconnect(first)
        channel.disconnect(first)
        await channel.close_all()

        assert len(channel) == 0
        assert second.closed is True
        assert first.closed is False

    @pytest.mark.asyncio
    async def test_stalled_observer_is_dropped_after_timeout(self):
        channel = BroadcastChannel(send_timeout=0.05)
        healthy, stalled = FakeObserver(), FakeObserver()
        await channel.connect(healthy, [])
        await channel.connect(stalled, [])
        stalled.delay = 10

        reached = await channel.broadcast(("captures", []))

        assert reached == 1
        assert healthy.events == ["captures"]
        assert stalled not in channel
