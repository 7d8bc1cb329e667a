"""Unit tests for the synchronous EventBus."""

import logging
from typing import Any

import pytest

from batchkit.core.events import EventBus, Subscription
from tests.fakes import FakeConnection, FakeFile, FakePooledConnection


class Recorder:
    """Callable subscriber remembering its calls and returning a fixed value."""

    def __init__(self, name: str, calls: list, result: Any = True) -> None:
        self.name = name
        self.calls = calls
        self.result = result

    def __call__(self, source: Any, *payload: Any) -> Any:
        self.calls.append((self.name, source, payload))
        return self.result


class TestEventBusSubscribe:
    """Test subscription ordering and insertion."""

    def test_delivery_follows_subscription_order(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(None, "ping", Recorder("first", calls))
        bus.subscribe(None, "ping", Recorder("second", calls))
        bus.subscribe(None, "ping", Recorder("third", calls))

        bus.publish("src", "ping")

        assert [name for name, _, _ in calls] == ["first", "second", "third"]

    def test_subscribe_at_position(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(None, "ping", Recorder("late", calls))
        bus.subscribe(None, "ping", Recorder("early", calls), position=0)

        bus.publish("src", "ping")

        assert [name for name, _, _ in calls] == ["early", "late"]

    def test_negative_position_counts_from_end(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(None, "ping", Recorder("first", calls))
        bus.subscribe(None, "ping", Recorder("second", calls))
        bus.subscribe(None, "ping", Recorder("last", calls), position=-1)
        bus.subscribe(None, "ping", Recorder("penultimate", calls), position=-2)

        bus.publish("src", "ping")

        assert [name for name, _, _ in calls] == ["first", "second", "penultimate", "last"]

    def test_duplicate_subscriptions_all_fire(self, bus: EventBus) -> None:
        calls: list = []
        recorder = Recorder("dup", calls)
        bus.subscribe("src", "ping", recorder)
        bus.subscribe("src", "ping", recorder)

        bus.publish("src", "ping")

        assert len(calls) == 2

    def test_subscribe_returns_subscription(self, bus: EventBus) -> None:
        subscription = bus.subscribe(FakeFile, "opened", Recorder("r", []))

        assert isinstance(subscription, Subscription)
        assert subscription.event == "opened"
        assert subscription.source is FakeFile
        assert bus.subscriptions("opened") == [subscription]

    def test_callback_receives_source_and_payload(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(None, "ping", Recorder("r", calls))

        bus.publish("src", "ping", 1, "two")

        assert calls == [("r", "src", (1, "two"))]


class TestEventBusUnsubscribe:
    """Test exact-source removal semantics."""

    def test_unsubscribe_specific_source(self, bus: EventBus) -> None:
        calls: list = []
        source = FakeFile("a")
        bus.subscribe(source, "ping", Recorder("r", calls))

        removed = bus.unsubscribe(source, "ping")
        bus.publish(source, "ping")

        assert removed == 1
        assert calls == []

    def test_unsubscribe_keeps_wildcard_subscription(self, bus: EventBus) -> None:
        calls: list = []
        source = FakeFile("a")
        bus.subscribe(None, "ping", Recorder("wildcard", calls))

        assert bus.unsubscribe(source, "ping") == 0
        bus.publish(source, "ping")

        assert [name for name, _, _ in calls] == ["wildcard"]

    def test_unsubscribe_keeps_category_subscription(self, bus: EventBus) -> None:
        calls: list = []
        source = FakeFile("a")
        bus.subscribe(FakeFile, "ping", Recorder("category", calls))

        assert bus.unsubscribe(source, "ping") == 0
        bus.publish(source, "ping")

        assert [name for name, _, _ in calls] == ["category"]

    def test_unsubscribe_none_removes_wildcards(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(None, "ping", Recorder("wildcard", calls))
        bus.subscribe("src", "ping", Recorder("specific", calls))

        assert bus.unsubscribe(None, "ping") == 1
        bus.publish("src", "ping")

        assert [name for name, _, _ in calls] == ["specific"]

    def test_unsubscribe_unknown_event(self, bus: EventBus) -> None:
        assert bus.unsubscribe("src", "never-subscribed") == 0

    def test_unsubscribe_only_affects_named_event(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe("src", "ping", Recorder("ping", calls))
        bus.subscribe("src", "pong", Recorder("pong", calls))

        bus.unsubscribe("src", "ping")
        bus.publish("src", "ping")
        bus.publish("src", "pong")

        assert [name for name, _, _ in calls] == ["pong"]

    def test_cancel_removes_single_subscription(self, bus: EventBus) -> None:
        calls: list = []
        first = bus.subscribe("src", "ping", Recorder("first", calls))
        bus.subscribe("src", "ping", Recorder("second", calls))

        assert bus.cancel(first) is True
        assert bus.cancel(first) is False
        bus.publish("src", "ping")

        assert [name for name, _, _ in calls] == ["second"]


class TestEventBusPublish:
    """Test result aggregation and failure isolation."""

    def test_publish_without_subscribers_returns_true(self, bus: EventBus) -> None:
        assert bus.publish("src", "nobody-listens") is True

    def test_publish_skips_non_matching_sources(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(FakeConnection, "ping", Recorder("conn", calls, result=False))

        assert bus.publish(FakeFile("a"), "ping") is True
        assert calls == []

    def test_falsy_result_reported_but_delivery_continues(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(None, "ping", Recorder("veto", calls, result=False))
        bus.subscribe(None, "ping", Recorder("after", calls, result=True))

        assert bus.publish("src", "ping") is False
        assert [name for name, _, _ in calls] == ["veto", "after"]

    def test_late_falsy_result_reported(self, bus: EventBus) -> None:
        bus.subscribe(None, "ping", Recorder("ok", [], result=True))
        bus.subscribe(None, "ping", Recorder("veto", [], result=0))

        assert bus.publish("src", "ping") is False

    def test_none_result_counts_as_falsy(self, bus: EventBus) -> None:
        bus.subscribe(None, "ping", Recorder("ok", [], result=True))
        bus.subscribe(None, "ping", Recorder("silent", [], result=None))

        assert bus.publish("src", "ping") is False

    def test_truthy_results_report_true(self, bus: EventBus) -> None:
        bus.subscribe(None, "ping", Recorder("a", [], result="yes"))
        bus.subscribe(None, "ping", Recorder("b", [], result=1))

        assert bus.publish("src", "ping") is True

    def test_raising_subscriber_does_not_stop_delivery(
        self, bus: EventBus, caplog: pytest.LogCaptureFixture
    ) -> None:
        calls: list = []

        def broken(source: Any, *payload: Any) -> bool:
            raise RuntimeError("listener exploded")

        bus.subscribe(None, "ping", broken)
        bus.subscribe(None, "ping", Recorder("second", calls))

        with caplog.at_level(logging.ERROR, logger="batchkit.events"):
            result = bus.publish("src", "ping")

        assert result is True
        assert [name for name, _, _ in calls] == ["second"]
        assert "Exception in 'ping' event listener" in caplog.text
        assert "listener exploded" in caplog.text

    def test_raising_subscriber_result_ignored(self, bus: EventBus) -> None:
        def broken(source: Any, *payload: Any) -> bool:
            raise ValueError("boom")

        bus.subscribe(None, "ping", broken)

        assert bus.publish("src", "ping") is True

    def test_category_subscription_receives_subclass_instances(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(FakeConnection, "ping", Recorder("conn", calls))
        pooled = FakePooledConnection("db")

        bus.publish(pooled, "ping")

        assert calls == [("conn", pooled, ())]


class TestEventBusReentrancy:
    """Test subscription changes and nested publishing during dispatch."""

    def test_subscribing_during_dispatch_does_not_affect_current_event(
        self, bus: EventBus
    ) -> None:
        calls: list = []
        late = Recorder("late", calls)

        def subscribe_more(source: Any, *payload: Any) -> None:
            calls.append(("subscriber", source, payload))
            bus.subscribe(None, "ping", late)

        bus.subscribe(None, "ping", subscribe_more)

        bus.publish("src", "ping")
        assert [name for name, _, _ in calls] == ["subscriber"]

        bus.publish("src", "ping")
        assert [name for name, _, _ in calls] == ["subscriber", "subscriber", "late"]

    def test_unsubscribing_during_dispatch_still_delivers_snapshot(self, bus: EventBus) -> None:
        calls: list = []

        def remove_others(source: Any, *payload: Any) -> None:
            calls.append(("remover", source, payload))
            bus.unsubscribe("src", "ping")

        bus.subscribe(None, "ping", remove_others)
        bus.subscribe("src", "ping", Recorder("specific", calls))

        bus.publish("src", "ping")

        assert [name for name, _, _ in calls] == ["remover", "specific"]
        assert len(bus.subscriptions("ping")) == 1

    def test_nested_publish(self, bus: EventBus) -> None:
        calls: list = []

        def relay(source: Any, *payload: Any) -> bool:
            return bus.publish(source, "inner", *payload)

        bus.subscribe(None, "outer", relay)
        bus.subscribe(None, "inner", Recorder("inner", calls, result=False))

        assert bus.publish("src", "outer", 7) is False
        assert calls == [("inner", "src", (7,))]


class TestEventBusIntrospection:
    """Test has_subscribers, debug tracing and dumps."""

    def test_has_subscribers_matches_source(self, bus: EventBus) -> None:
        bus.subscribe(FakeConnection, "ping", Recorder("r", []))

        assert bus.has_subscribers(FakeConnection("db"), "ping")
        assert not bus.has_subscribers(FakeFile("a"), "ping")
        assert not bus.has_subscribers(FakeConnection("db"), "pong")

    def test_has_subscribers_has_no_side_effects(self, bus: EventBus) -> None:
        assert not bus.has_subscribers("src", "ping")

        assert list(bus.events()) == []
        assert bus.subscriptions("ping") == []

    def test_has_subscribers_does_not_invoke_callbacks(self, bus: EventBus) -> None:
        calls: list = []
        bus.subscribe(None, "ping", Recorder("r", calls))

        assert bus.has_subscribers("src", "ping")
        assert calls == []

    def test_events_lists_subscribed_events(self, bus: EventBus) -> None:
        bus.subscribe(None, "a", Recorder("r", []))
        bus.subscribe(None, "b", Recorder("r", []))

        assert sorted(bus.events()) == ["a", "b"]

    def test_debug_traces_calls(
        self, bus: EventBus, caplog: pytest.LogCaptureFixture
    ) -> None:
        bus.debug = True
        bus.subscribe(None, "ping", Recorder("r", []))

        with caplog.at_level(1, logger="batchkit.events"):
            bus.subscribe("src", "ping", Recorder("r", []))
            bus.publish("src", "ping")
            bus.unsubscribe("src", "ping")

        assert "Adding subscriber for 'src' event 'ping'" in caplog.text
        assert "Publishing event 'ping' for 'src'" in caplog.text
        assert "Notified 2 listeners of 'ping'" in caplog.text
        assert "Removing subscriber(s) for 'src' event 'ping'" in caplog.text

    def test_no_tracing_without_debug(
        self, bus: EventBus, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(1, logger="batchkit.events"):
            bus.subscribe("src", "ping", Recorder("r", []))
            bus.publish("src", "ping")

        assert caplog.text == ""

    def test_dump_subscribers(self, bus: EventBus, caplog: pytest.LogCaptureFixture) -> None:
        bus.subscribe(None, "a", Recorder("r", []))
        bus.subscribe(FakeFile, "b", Recorder("r", []))

        with caplog.at_level(logging.INFO, logger="batchkit.events"):
            bus.dump_subscribers("b")

        assert "Subscribers for event 'b':" in caplog.text
        assert "Subscribers for event 'a':" not in caplog.text
        assert "FakeFile" in caplog.text

    def test_clear(self, bus: EventBus) -> None:
        bus.subscribe(None, "a", Recorder("r", []))

        bus.clear()

        assert list(bus.events()) == []
