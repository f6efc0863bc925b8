"""Tests for the agent event log."""

import logging
import threading

import pytest

from aspec.events import Event, EventLog
from aspec.procurement import ProcurementEventType


class TestEvent:
    def test_create_uses_enum_value(self):
        event = Event.create(ProcurementEventType.ANALYSIS, subject="PackagePro", thought="Analyzing")
        assert event.type == "analysis"
        assert event.thought == "Analyzing"
        assert event.timestamp.endswith("Z")

    def test_to_dict_drops_empty_fields(self):
        event = Event.create("error", error="boom")
        d = event.to_dict()
        assert d["type"] == "error"
        assert d["data"] == {"error": "boom"}
        assert set(d) == {"id", "timestamp", "type", "data"}

    def test_ids_are_unique(self):
        assert Event.create("x").id != Event.create("x").id


class TestEventLog:
    def test_order_and_recent(self):
        log = EventLog()
        for i in range(15):
            log.emit("analysis", thought=str(i))
        assert len(log) == 15
        recent = log.recent()
        assert [e.thought for e in recent] == [str(i) for i in range(5, 15)]
        assert log.recent(0) == []
        assert len(log.recent(50)) == 15

    def test_append_is_idempotent(self):
        log = EventLog()
        seen = []
        log.subscribe(seen.append)
        event = Event.create("decision")
        assert log.append(event) is True
        assert log.append(event) is False
        assert len(log) == 1
        assert seen == [event]

    def test_subscribe_and_unsubscribe(self):
        log = EventLog()
        seen = []
        unsubscribe = log.subscribe(seen.append)
        log.emit("analysis")
        unsubscribe()
        unsubscribe()
        log.emit("decision")
        assert [e.type for e in seen] == ["analysis"]

    def test_failing_observer_is_isolated(self, caplog):
        log = EventLog()
        seen = []

        def broken(event):
            raise RuntimeError("observer down")

        log.subscribe(broken)
        log.subscribe(seen.append)
        with caplog.at_level(logging.ERROR, logger="aspec.events"):
            log.emit("analysis")
        assert len(seen) == 1
        assert len(log) == 1
        assert "Event observer failed" in caplog.text

    def test_cap_evicts_oldest(self):
        log = EventLog(max_events=3)
        events = [log.emit("analysis", thought=str(i)) for i in range(5)]
        assert [e.thought for e in log.all()] == ["2", "3", "4"]
        # An evicted id is no longer tracked.
        assert log.append(events[0]) is True

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            EventLog(max_events=0)

    def test_clear(self):
        log = EventLog()
        event = log.emit("analysis")
        log.clear()
        assert log.all() == []
        assert log.append(event) is True


class TestDeliveryOrder:
    def test_each_thread_is_delivered_in_append_order(self):
        log = EventLog()
        seen = []
        log.subscribe(seen.append)

        def worker(name):
            for i in range(50):
                log.emit("analysis", subject=name, thought=str(i))

        threads = [threading.Thread(target=worker, args=(f"t{n}",)) for n in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == len(log) == 300
        assert {e.id for e in seen} == {e.id for e in log.all()}
        for n in range(6):
            delivered = [int(e.thought) for e in seen if e.payload.subject == f"t{n}"]
            stored = [int(e.thought) for e in log.all() if e.payload.subject == f"t{n}"]
            assert delivered == stored == list(range(50))
