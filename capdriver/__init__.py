"""capdriver - capture, merge, analyze and report orchestration for static analysis."""

__version__ = "1.4.0"
