import pytest

from order_feed import OrderFeed
from realtime_bridge import RealtimeBridge, _event_type
from tests.conftest import completed_row
from tests.fakes import FakeAsyncClient, SequencedOrderSource


@pytest.fixture
def client():
    return FakeAsyncClient()


@pytest.fixture
def make_bridge(client):
    bridges = []

    def factory(on_change, **kwargs):
        async def client_factory():
            return client

        bridge = RealtimeBridge(client_factory, on_change, timeout=5, **kwargs)
        bridges.append(bridge)
        return bridge

    yield factory
    for bridge in bridges:
        bridge.stop()


def test_start_subscribes_to_completed_orders(client, make_bridge):
    bridge = make_bridge(lambda: None)

    assert bridge.start()

    assert bridge.is_subscribed
    channel = client.channels[0]
    assert channel.name == "orders-completed-changes"
    assert channel.subscribed
    binding = channel.bindings[0]
    assert binding["event"] == "*"
    assert binding["schema"] == "public"
    assert binding["table"] == "orders"
    assert binding["filter"] == "status=eq.completed"


def test_start_twice_keeps_a_single_subscription(client, make_bridge):
    bridge = make_bridge(lambda: None)

    bridge.start()
    bridge.start()

    assert len(client.channels) == 2
    assert client.removed == [client.channels[0]]
    assert client.channels[1].subscribed


def test_events_trigger_serialized_reloads():
    source = SequencedOrderSource([[completed_row(1)], [completed_row(1), completed_row(2)]])
    feed = OrderFeed(source)

    async def client_factory():
        return FakeAsyncClient()

    bridge = RealtimeBridge(client_factory, feed.load, timeout=5)
    try:
        assert bridge.start()
        first = bridge.handle_change({"eventType": "UPDATE", "new": {"id": 1}})
        second = bridge.handle_change({"eventType": "INSERT", "new": {"id": 2}})
        first.result(timeout=5)
        second.result(timeout=5)
    finally:
        bridge.stop()

    assert source.calls == 2
    assert [o.id for o in feed.orders] == [1, 2]


def test_reload_errors_are_contained(make_bridge):
    def broken_reload():
        raise RuntimeError("database went away")

    bridge = make_bridge(broken_reload)
    bridge.start()

    future = bridge.handle_change({"type": "DELETE"})

    assert future.result(timeout=5) is None


def test_stop_removes_channel_and_ignores_late_events(client, make_bridge):
    calls = []
    bridge = make_bridge(lambda: calls.append(1))
    bridge.start()

    bridge.stop()

    assert client.removed == [client.channels[0]]
    assert not bridge.is_subscribed
    assert bridge.handle_change({"eventType": "INSERT"}) is None
    assert calls == []


def test_start_reports_failure_when_client_cannot_be_created():
    async def client_factory():
        raise ConnectionError("realtime unreachable")

    bridge = RealtimeBridge(client_factory, lambda: None, timeout=5)
    try:
        assert bridge.start() is False
        assert not bridge.is_subscribed
    finally:
        bridge.stop()


def test_event_type_extraction():
    assert _event_type({"eventType": "insert"}) == "INSERT"
    assert _event_type({"data": {"type": "UPDATE"}}) == "UPDATE"
    assert _event_type({}) == "UNSPECIFIED"
    assert _event_type(None) == "UNSPECIFIED"
