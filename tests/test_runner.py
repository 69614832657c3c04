"""Tests for the stdin forwarder."""

import io
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from courier.dispatch import BatchingDispatcher, DeliveryError, DispatcherConfig
from courier.events import DispatcherTopics, Notification
from courier.runner import ENDPOINT_ENV, build_config, drain, parse_line, run_forwarder

from conftest import RecordingSink, pile_up


def _line(event_type: str, subject_id: str = "user1", **properties) -> str:
    return json.dumps(
        {"event_type": event_type, "subject_id": subject_id, "properties": properties}
    )


class TestParseLine:
    """Input line validation."""

    def test_blank_line(self) -> None:
        assert parse_line("   \n") is None

    def test_valid_line(self) -> None:
        event = parse_line(_line("page_view", page="/dashboard"))
        assert event is not None
        assert event.event_type == "page_view"
        assert event.properties == {"page": "/dashboard"}

    def test_properties_optional(self) -> None:
        event = parse_line('{"event_type": "login", "subject_id": "u1"}')
        assert event is not None and event.properties == {}

    @pytest.mark.parametrize(
        "line",
        ["not json", '{"event_type": "x"}', '{"event_type": "", "subject_id": "u"}'],
    )
    def test_invalid_line(self, line: str) -> None:
        with pytest.raises(ValidationError):
            parse_line(line)


class TestBuildConfig:
    """Endpoint override from the environment."""

    def test_env_overrides_endpoint(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENDPOINT_ENV, "https://override.test/events")
        cfg = build_config({"dispatcher": {"batch_size": 7}})
        assert cfg.api_endpoint == "https://override.test/events"
        assert cfg.batch_size == 7

    def test_without_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(ENDPOINT_ENV, raising=False)
        cfg = build_config({"dispatcher": {"api_endpoint": "https://a.test/e"}})
        assert cfg.api_endpoint == "https://a.test/e"


class TestRunForwarder:
    """End-to-end over an in-memory sink."""

    @pytest.mark.asyncio
    async def test_forwards_valid_lines_and_drains(
        self, sink: RecordingSink, tmp_path: Path
    ) -> None:
        stream = io.StringIO(
            "\n".join([_line("A"), "garbage", "", _line("B"), _line("C")]) + "\n"
        )
        d = BatchingDispatcher(DispatcherConfig(batch_size=2), sink=sink)
        metrics_file = tmp_path / "metrics.json"

        count = await run_forwarder(d, stream, metrics_file)

        assert count == 3
        assert sink.types(0) == ["A", "B"]
        assert sink.types(1) == ["C"]
        data = json.loads(metrics_file.read_text(encoding="utf-8"))
        assert data["total_events"] == 3
        assert data["successful_flushes"] == 2
        assert data["queue_length"] == 0

    @pytest.mark.asyncio
    async def test_delivery_failures_do_not_stop_forwarding(self) -> None:
        sink = RecordingSink(fail=DeliveryError("HTTP 500: Internal Server Error", 500))
        stream = io.StringIO("\n".join(_line(n) for n in "ABC") + "\n")
        d = BatchingDispatcher(DispatcherConfig(batch_size=2), sink=sink)

        count = await run_forwarder(d, stream)

        assert count == 3
        assert d.metrics().failed_flushes == 2
        assert d.queue_length == 0


class TestDrain:
    """Draining keeps going after a dropped batch."""

    @pytest.mark.asyncio
    async def test_delivers_rest_after_one_failed_batch(self, sink: RecordingSink) -> None:
        d = BatchingDispatcher(DispatcherConfig(batch_size=2), sink=sink)
        await pile_up(d, sink, 5)
        sink.fail_times = 1
        shutdowns: list[Notification] = []
        d.emitter.subscribe(DispatcherTopics.SHUTDOWN, shutdowns.append, "test")

        left = await drain(d)

        assert left == 0
        assert d.metrics().failed_flushes == 1
        assert sink.types(0) == ["e2", "e3"]
        assert sink.types(1) == ["e4"]
        assert len(shutdowns) == 1

    @pytest.mark.asyncio
    async def test_always_failing_sink_drops_batch_by_batch(self) -> None:
        sink = RecordingSink()
        d = BatchingDispatcher(DispatcherConfig(batch_size=2), sink=sink)
        await pile_up(d, sink, 5)
        sink.fail = DeliveryError("HTTP 500: Internal Server Error", 500)

        left = await drain(d)

        assert left == 0
        assert sink.attempts == 3
        assert d.metrics().failed_flushes == 3
        assert sink.batches == []

    @pytest.mark.asyncio
    async def test_run_forwarder_drains_after_failed_flush(
        self, sink: RecordingSink, tmp_path: Path
    ) -> None:
        d = BatchingDispatcher(DispatcherConfig(batch_size=2), sink=sink)
        await pile_up(d, sink, 5)
        sink.fail_times = 1
        metrics_file = tmp_path / "metrics.json"

        # Dispatcher already holds five events; the stream adds none
        await run_forwarder(d, io.StringIO(""), metrics_file)

        data = json.loads(metrics_file.read_text(encoding="utf-8"))
        assert data["queue_length"] == 0
        assert data["failed_flushes"] == 1
        assert [len(b) for b in sink.batches] == [2, 1]
