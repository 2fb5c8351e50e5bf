"""Names of everything that lives in a results directory."""

from dataclasses import dataclass
from pathlib import Path

from capdriver.utils.logging import LOG_FILE_NAME

STORE_NAME = "results.db"
REPORT_JSON = "report.json"
COSTS_REPORT_JSON = "costs-report.json"
REPORT_TXT = "report.txt"
BUGS_TXT = "bugs.txt"
RUN_STATE_NAME = ".run_state.json"
CHANGED_FUNCTIONS_JSON = "changed_functions.json"
TEST_DETERMINATOR_JSON = "test_determinator.json"
DUPLICATES_NAME = "duplicates.txt"
PERF_EVENTS_JSON = "perf_events.json"

TMP_DIR = "tmp"
STATS_DIR = "stats"
CAPTURED_DIR = "captured"
XCODEBUILD_DIR = "xcodebuild"

# Never removed by the cleaner
PROTECTED_FILES = frozenset({
    REPORT_JSON,
    COSTS_REPORT_JSON,
    TEST_DETERMINATOR_JSON,
    CHANGED_FUNCTIONS_JSON,
})


@dataclass(frozen=True)
class ResultsLayout:
    root: Path

    @property
    def store(self) -> Path:
        return self.root / STORE_NAME

    @property
    def report_json(self) -> Path:
        return self.root / REPORT_JSON

    @property
    def costs_report_json(self) -> Path:
        return self.root / COSTS_REPORT_JSON

    @property
    def report_txt(self) -> Path:
        return self.root / REPORT_TXT

    @property
    def bugs_txt(self) -> Path:
        return self.root / BUGS_TXT

    @property
    def log_file(self) -> Path:
        return self.root / LOG_FILE_NAME

    @property
    def run_state(self) -> Path:
        return self.root / RUN_STATE_NAME

    @property
    def changed_functions(self) -> Path:
        return self.root / CHANGED_FUNCTIONS_JSON

    @property
    def test_determinator(self) -> Path:
        return self.root / TEST_DETERMINATOR_JSON

    @property
    def duplicates(self) -> Path:
        return self.root / DUPLICATES_NAME

    @property
    def perf_events(self) -> Path:
        return self.root / PERF_EVENTS_JSON

    @property
    def tmp_dir(self) -> Path:
        return self.root / TMP_DIR

    @property
    def captured_dir(self) -> Path:
        return self.root / CAPTURED_DIR

    @property
    def xcodebuild_dir(self) -> Path:
        return self.root / XCODEBUILD_DIR

    @property
    def wrappers_dir(self) -> Path:
        return self.tmp_dir / "wrappers"

    def ensure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.tmp_dir.mkdir(exist_ok=True)


def dirs_to_clean(cache_capture: bool) -> frozenset[str]:
    """Directories removed wholesale by the cleaner.

    Cache capture keeps all capture data; otherwise only reports survive.
    """
    common = {TMP_DIR, STATS_DIR}
    if cache_capture:
        return frozenset(common)
    return frozenset(common | {CAPTURED_DIR, XCODEBUILD_DIR})
