"""capdriver CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click
from rich.table import Table

from capdriver import __version__
from capdriver.pipeline.ui import console


class VerboseGroup(click.Group):
    """Help system that lists registered commands by category."""

    def format_commands(self, ctx, formatter):
        """Override to suppress default command listing (we use categorized format in format_help)."""
        pass

    COMMAND_CATEGORIES = {
        "CAPTURE": {
            "title": "CAPTURE",
            "description": "Record what a build compiles",
            "commands": ["capture", "compile"],
            "command_meta": {
                "capture": {
                    "use_when": "Capture now, analyze later",
                    "gives": "Captured translation units in the results store",
                },
                "compile": {
                    "use_when": "Build without capturing",
                },
            },
        },
        "ANALYSIS": {
            "title": "ANALYSIS",
            "description": "Analyze captured code and report issues",
            "commands": ["run", "analyze"],
            "command_meta": {
                "run": {
                    "run_when": "Default: capture, analyze and report in one go",
                },
                "analyze": {
                    "run_when": "After capd capture",
                },
            },
        },
        "REPORTING": {
            "title": "REPORTING",
            "description": "Read and compare results",
            "commands": ["report", "report-diff", "explore"],
            "command_meta": {
                "report": {
                    "use_when": "Reports need rewriting from the store",
                },
                "report-diff": {
                    "use_when": "Comparing a change against its base revision",
                    "gives": "Introduced, fixed and preexisting issues",
                },
                "explore": {
                    "use_when": "Reading one issue with its source",
                },
            },
        },
        "UTILITIES": {
            "title": "UTILITIES",
            "description": "Results directory housekeeping",
            "commands": ["clean"],
            "command_meta": {
                "clean": {
                    "use_when": "Pruning the results directory",
                },
            },
        },
    }

    def format_help(self, ctx, formatter):
        """Generate Rich-styled categorized help."""
        # Let Click handle the basic header (Usage, Options)
        super().format_help(ctx, formatter)

        registered = {
            name: cmd
            for name, cmd in self.commands.items()
            if not name.startswith("_") and not getattr(cmd, "hidden", False)
        }

        console.print()
        console.rule("[bold]COMMANDS[/bold]")

        for category_data in self.COMMAND_CATEGORIES.values():
            console.print(f"\n[bold cyan]{category_data['title']}[/bold cyan]")
            console.print(f"[dim]{category_data['description']}[/dim]")

            table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
            table.add_column("Command", style="cmd", width=14)
            table.add_column("Description", style="white")
            table.add_column("When", style="dim", width=40)

            for cmd_name in category_data["commands"]:
                if cmd_name not in registered:
                    continue
                cmd = registered[cmd_name]

                first_line = (cmd.help or "").split("\n")[0].strip()
                period_idx = first_line.find(".")
                short_help = first_line[:period_idx] if period_idx > 0 else first_line
                if len(short_help) > 45:
                    short_help = short_help[:45].rsplit(" ", 1)[0] + "..."

                cmd_meta = category_data.get("command_meta", {}).get(cmd_name, {})
                hint = ""
                if "use_when" in cmd_meta:
                    hint = f"USE: {cmd_meta['use_when']}"
                elif "run_when" in cmd_meta:
                    hint = f"RUN: {cmd_meta['run_when']}"

                table.add_row(cmd_name, short_help, hint)

            console.print(table)

        console.print()
        console.rule()
        console.print("For detailed options: [cmd]capd <command> --help[/cmd]")


@click.group(cls=VerboseGroup)
@click.version_option(version=__version__, prog_name="capd")
@click.help_option("-h", "--help")
def cli():
    """capdriver - capture builds and drive static analysis over them

    \b
    QUICK START:
      capd run -- make -j4                     # Capture, analyze, report
      capd capture -- gradle build             # Capture only
      capd analyze                             # Analyze earlier captures
      capd explore --select 0                  # Inspect one issue

    \b
    For detailed options: capd <command> --help"""
    pass


from capdriver.commands.analyze import analyze
from capdriver.commands.capture import capture, compile_command
from capdriver.commands.clean import clean
from capdriver.commands.explore import explore
from capdriver.commands.report import report, report_diff_command
from capdriver.commands.run import run

cli.add_command(capture)
cli.add_command(compile_command, name="compile")
cli.add_command(run)
cli.add_command(analyze)
cli.add_command(report)
cli.add_command(report_diff_command, name="report-diff")
cli.add_command(explore)
cli.add_command(clean)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
