"""Data contracts for pipeline execution."""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from capdriver.config import DriverConfig
    from capdriver.driver.collaborators import Collaborators
    from capdriver.driver.context import ProcessContext
    from capdriver.driver.instrumentation import Telemetry
    from capdriver.driver.layout import ResultsLayout
    from capdriver.driver.run_state import RunState


class TaskStatus(Enum):
    """Outcome of an instrumented pipeline phase."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class Command(Enum):
    """Top-level capd commands."""
    ANALYZE = "analyze"
    CAPTURE = "capture"
    COMPILE = "compile"
    EXPLORE = "explore"
    REPORT = "report"
    REPORT_DIFF = "report-diff"
    RUN = "run"


@dataclass
class PhaseTiming:
    """Wall-clock timing of a single pipeline phase.

    JSON-serializable so it can be written next to the perf trace.
    """
    name: str
    status: TaskStatus
    elapsed: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        d = asdict(self)
        d['status'] = self.status.value
        return d

    @property
    def success(self) -> bool:
        return self.status == TaskStatus.SUCCESS


@dataclass
class PipelineContext:
    """Everything a pipeline phase needs for one invocation.

    Built once by the driver and passed explicitly to every phase function.
    """
    config: "DriverConfig"
    process: "ProcessContext"
    layout: "ResultsLayout"
    run_state: "RunState"
    collaborators: "Collaborators"
    telemetry: "Telemetry"
    command: Command = Command.RUN
    notes: dict[str, Any] = field(default_factory=dict)
