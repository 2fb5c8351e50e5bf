"""Central UI handler for capdriver.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every module.

Usage:
    from capdriver.pipeline.ui import console, print_progress, print_warning

    print_progress("Capturing in make/cc mode...")
    print_warning("Nothing to compile.")
"""

import sys

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

DRIVER_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "progress": "cyan",
    "high": "bold red",
    "medium": "bold yellow",
    "low": "cyan",
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

# User-facing output goes to stderr so stdout stays free for build tool output
console = Console(
    theme=DRIVER_THEME,
    stderr=True,
    force_terminal=sys.stderr.isatty(),
    highlight=False,
    soft_wrap=True,
)


def print_progress(msg: str) -> None:
    console.print(f"[progress]{escape(msg)}[/progress]")


def print_error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[error]ERROR:[/error] {escape(msg)}")


def print_warning(msg: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[warning]WARNING:[/warning] {escape(msg)}")


def print_success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[success]OK:[/success] {escape(msg)}")


def print_status_panel(
    status: str,
    message: str,
    detail: str,
    level: str = "info"
) -> None:
    """Print a status panel with colored border.

    Args:
        status: Status label (e.g., "ISSUES", "CLEAN")
        message: Main message line
        detail: Additional detail line
        level: One of "high", "medium", "low", "success", "info"
    """
    style_map = {
        "high": ("bold red", "red"),
        "medium": ("bold yellow", "yellow"),
        "low": ("cyan", "cyan"),
        "success": ("bold green", "green"),
        "info": ("bold cyan", "cyan"),
    }
    text_style, border_style = style_map.get(level, ("white", "white"))

    panel = Panel(
        Text.assemble(
            (f"STATUS: [{status}]\n", text_style),
            (f"{message}\n", border_style),
            (detail, border_style)
        ),
        border_style=border_style,
        expand=False
    )
    console.print(panel)
