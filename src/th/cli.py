"""
th CLI - turn a task description into a shell command.

Usage:
    th list the ten largest files here
    th "show which process is listening on port 8080"
"""
from __future__ import annotations

import asyncio
import sys
from typing import Tuple

import click

from th import __version__
from th.core.config import load_config
from th.core.logging import setup_logging
from th.orchestrator import CommandAssistant
from th.ui.console import ThConsole

EXIT_INTERRUPTED = 130


@click.command(
    context_settings={
        "help_option_names": ["-h", "--help"],
        # let words like "-la" through as part of the task
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    }
)
@click.version_option(version=__version__, prog_name="th")
@click.argument("task", nargs=-1, type=click.UNPROCESSED)
def cli(task: Tuple[str, ...]):
    """
    Ask GitHub Copilot for a shell command that does TASK.

    The proposed command is shown with a short explanation and only runs
    after you confirm. On first use th logs in with the GitHub device flow
    and stores credentials in ~/.config/008/auth.json.

    Examples:
        th find files larger than 100MB
        th "compress every log file in this directory"
    """
    settings = load_config()
    setup_logging(settings.log_level)

    ui = ThConsole()
    query = " ".join(task).strip()
    if not query:
        ui.print_error("Usage: th <task description>")
        sys.exit(1)

    assistant = CommandAssistant(settings=settings, ui=ui)
    try:
        exit_code = asyncio.run(assistant.run(query))
    except KeyboardInterrupt:
        ui.print_error("Interrupted.")
        sys.exit(EXIT_INTERRUPTED)

    sys.exit(exit_code)


def main():
    """Entry point for the th console script."""
    cli()


if __name__ == "__main__":
    main()
