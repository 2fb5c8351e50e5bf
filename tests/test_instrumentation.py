"""Tests for trace spans and phase timing."""

import json

import pytest

from capdriver.driver.instrumentation import Telemetry
from capdriver.pipeline.structures import TaskStatus


def test_instrumented_records_span_and_timing(tmp_path):
    telemetry = Telemetry()
    with telemetry.instrumented("capture"):
        pass

    assert [(e["name"], e["ph"]) for e in telemetry.trace.events] == [("capture", "B"), ("capture", "E")]
    assert telemetry.timings[0].name == "capture"
    assert telemetry.timings[0].success

    trace_file = tmp_path / "perf_events.json"
    telemetry.write_trace(trace_file)
    assert len(json.loads(trace_file.read_text(encoding="utf-8"))["traceEvents"]) == 2


def test_failure_is_recorded_and_propagated():
    telemetry = Telemetry()
    with pytest.raises(RuntimeError):
        with telemetry.instrumented("analyze"):
            raise RuntimeError("boom")

    assert telemetry.trace.events[-1]["ph"] == "E"
    assert telemetry.timings[0].status is TaskStatus.FAILED
    assert telemetry.summary()[0]["status"] == "failed"
