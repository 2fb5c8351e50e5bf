"""Centralized exit codes for the capd CLI."""


class ExitCodes:
    """Standard exit codes for capd commands."""

    SUCCESS = 0

    USER_ERROR = 1

    # Default for --fail-on-issue-exit-code
    ISSUES_FOUND = 2

    INTERNAL_ERROR = 3
