"""Severity normalization and ordering for reported issues."""

PRIORITY_ORDER = {
    "critical": 0,
    "high": 1,
    "medium": 2,
    "low": 3,
    "warning": 4,
    "info": 5,
    "unknown": 6,
}


SEVERITY_MAPPINGS = {
    4: "critical",
    3: "high",
    2: "medium",
    1: "low",
    0: "info",
    "error": "high",
    "warn": "medium",
    "note": "low",
    "advice": "low",
    "like": "info",
    "fatal": "critical",
    "blocker": "critical",
    "major": "high",
    "minor": "low",
}


def normalize_severity(severity_value) -> str:
    """Normalize severity from analyzer-specific formats to a standard string."""
    if severity_value is None:
        return "warning"

    if isinstance(severity_value, bool):
        return "warning"

    if isinstance(severity_value, (int, float)):
        if isinstance(severity_value, float) and 0.0 <= severity_value <= 1.0:
            if severity_value >= 0.9:
                return "critical"
            elif severity_value >= 0.7:
                return "high"
            elif severity_value >= 0.4:
                return "medium"
            else:
                return "low"

        return SEVERITY_MAPPINGS.get(int(severity_value), "warning")

    severity_str = str(severity_value).lower().strip()

    if severity_str in PRIORITY_ORDER:
        return severity_str

    return SEVERITY_MAPPINGS.get(severity_str, "warning")


def get_sort_key(issue):
    return (
        PRIORITY_ORDER.get(normalize_severity(issue.get("severity")), 6),
        issue.get("file", ""),
        issue.get("line", 0),
        issue.get("rule", ""),
    )


def sort_findings(issues):
    """Most severe first, then by location."""
    return sorted(issues, key=get_sort_key)
