"""Trace spans and wall-clock timing around pipeline phases.

Spans are recorded in Chrome trace event format so ``perf_events.json`` can be
loaded straight into chrome://tracing or Perfetto. Neither wrapper changes the
outcome of the phase it wraps.
"""

import json
import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from capdriver.pipeline.structures import PhaseTiming, TaskStatus
from capdriver.utils.logging import logger


class PerfTrace:
    def __init__(self):
        self.events: list[dict[str, Any]] = []
        self._origin = time.perf_counter()

    def _event(self, phase: str, name: str) -> dict[str, Any]:
        return {
            "name": name,
            "ph": phase,
            "ts": int((time.perf_counter() - self._origin) * 1_000_000),
            "pid": os.getpid(),
            "tid": threading.get_ident(),
        }

    def begin(self, name: str) -> None:
        self.events.append(self._event("B", name))

    def end(self, name: str) -> None:
        self.events.append(self._event("E", name))

    def write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"traceEvents": self.events, "displayTimeUnit": "ms"}, f)


class Telemetry:
    """Per-invocation collection of trace events and phase timings."""

    def __init__(self):
        self.trace = PerfTrace()
        self.timings: list[PhaseTiming] = []

    @contextmanager
    def span(self, name: str) -> Iterator[None]:
        self.trace.begin(name)
        try:
            yield
        finally:
            self.trace.end(name)

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        status = TaskStatus.FAILED
        try:
            yield
            status = TaskStatus.SUCCESS
        finally:
            elapsed = time.perf_counter() - start
            self.timings.append(PhaseTiming(name=name, status=status, elapsed=elapsed))
            logger.info(f"{name} finished in {elapsed:.3f}s ({status.value})")

    @contextmanager
    def instrumented(self, name: str) -> Iterator[None]:
        with self.span(name), self.timed(name):
            yield

    def write_trace(self, path: Path) -> None:
        self.trace.write(path)
        logger.debug(f"Wrote {len(self.trace.events)} trace events to {path}")

    def summary(self) -> list[dict[str, Any]]:
        return [timing.to_dict() for timing in self.timings]
