"""Tests for api/streaming.py: store events delivered to per-client queues."""

import asyncio

from conftest import make_session

from api.streaming import StoreEventChannel, stream_messages


def _run(coro):
    return asyncio.run(asyncio.wait_for(coro, timeout=5))


class TestStreamMessages:
    def test_snapshot_then_deltas(self, store):
        store.add_session(make_session(id="old"))

        async def scenario():
            channel = StoreEventChannel(store, asyncio.get_running_loop())
            gen = stream_messages(channel)
            snapshot = await gen.__anext__()
            store.add_session(make_session(id="new"))
            store.remove_session("old")
            added = await gen.__anext__()
            deleted = await gen.__anext__()
            await gen.aclose()
            return snapshot, added, deleted, channel

        snapshot, added, deleted, channel = _run(scenario())
        assert snapshot["type"] == "init"
        assert [s["id"] for s in snapshot["payload"]] == ["old"]
        assert added["type"] == "add"
        assert added["payload"]["id"] == "new"
        assert deleted == {"type": "delete", "id": "old"}
        assert channel.subscriber_count == 0
        assert store.listener_count == 0

    def test_events_from_another_thread(self, store):
        async def scenario():
            loop = asyncio.get_running_loop()
            channel = StoreEventChannel(store, loop)
            gen = stream_messages(channel)
            await gen.__anext__()
            await loop.run_in_executor(None, store.add_session, make_session(id="threaded"))
            message = await gen.__anext__()
            await gen.aclose()
            return message

        assert _run(scenario())["payload"]["id"] == "threaded"

    def test_each_client_gets_every_event(self, store):
        async def scenario():
            channel = StoreEventChannel(store, asyncio.get_running_loop())
            clients = [stream_messages(channel) for _ in range(3)]
            for gen in clients:
                await gen.__anext__()
            store.add_session(make_session(id="s"))
            received = [await gen.__anext__() for gen in clients]
            for gen in clients:
                await gen.aclose()
            return received

        received = _run(scenario())
        assert [m["payload"]["id"] for m in received] == ["s", "s", "s"]


class TestChannel:
    def test_slow_client_is_dropped(self, store):
        async def scenario():
            channel = StoreEventChannel(store, asyncio.get_running_loop(), queue_size=1)
            slow, _ = channel.subscribe()
            fast, _ = channel.subscribe()
            store.add_session(make_session(id="a"))
            await asyncio.sleep(0)
            fast.get_nowait()
            store.add_session(make_session(id="b"))
            await asyncio.sleep(0)
            return channel, slow, fast

        channel, slow, fast = _run(scenario())
        # Overflow drains the backlog and leaves only the end marker
        assert slow.qsize() == 1
        assert slow.get_nowait() is None
        assert fast.get_nowait()["payload"]["id"] == "b"
        assert channel.subscriber_count == 1
        assert store.listener_count == 1

    def test_dropped_stream_ends(self, store):
        async def scenario():
            channel = StoreEventChannel(store, asyncio.get_running_loop(), queue_size=1)
            gen = stream_messages(channel)
            await gen.__anext__()
            store.add_session(make_session(id="a"))
            store.add_session(make_session(id="b"))
            await asyncio.sleep(0)
            return [m async for m in gen]

        assert _run(scenario()) == []
        assert store.listener_count == 0

    def test_close_ends_all_streams(self, store):
        async def scenario():
            channel = StoreEventChannel(store, asyncio.get_running_loop())
            gen = stream_messages(channel)
            await gen.__anext__()
            channel.close()
            rest = [m async for m in gen]
            return rest, channel

        rest, channel = _run(scenario())
        assert rest == []
        assert channel.subscriber_count == 0
        assert store.listener_count == 0

    def test_unsubscribe_unknown_queue_is_noop(self, store):
        async def scenario():
            channel = StoreEventChannel(store, asyncio.get_running_loop())
            channel.unsubscribe(asyncio.Queue())
            return channel.subscriber_count

        assert _run(scenario()) == 0
