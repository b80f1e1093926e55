"""Rich console UI for the th CLI."""

from __future__ import annotations

from typing import Optional, TextIO

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from th.client.decoder import CommandProposal
from th.ui.spinner import Spinner


class ThConsole:
    """Terminal output for th: status messages, proposals and prompts.

    Regular output goes to stdout; errors go to stderr as a single line.
    """

    def __init__(self, console: Optional[Console] = None, err_console: Optional[Console] = None):
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def thinking(self, message: str = "Planning command…") -> Spinner:
        """Return a spinner context for the planning request."""
        return Spinner(self.console, message)

    def print_error(self, error: str) -> None:
        """Print a one-line error to stderr."""
        self.err_console.print(Text(error, style="red"), soft_wrap=True)

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/green]")

    def print_info(self, message: str) -> None:
        self.console.print(f"[blue]ℹ {message}[/blue]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def show_device_code(self, verification_uri: str, user_code: str) -> None:
        """Tell the user where to enter the device code."""
        self.console.print(
            Panel(
                f"Visit [link]{verification_uri}[/link]\n"
                f"and enter code: [bold cyan]{user_code}[/bold cyan]",
                title="[bold]GitHub Copilot Login[/bold]",
                border_style="cyan",
            )
        )
        self.console.print("[dim]Waiting for authorization...[/dim]")

    def render_proposal(self, proposal: CommandProposal) -> None:
        """Print the proposed command with its explanation and summary."""
        line = Text("  ")
        line.append("command:", style="blue")
        line.append(" ")
        line.append(proposal.command, style="green")
        self.console.print(line, soft_wrap=True)

        for label, value in (("reason:", proposal.explanation), ("summary:", proposal.summary)):
            if value:
                row = Text("  ")
                row.append(label, style="blue")
                row.append(" ")
                row.append(value, style="dim")
                self.console.print(row, soft_wrap=True)

        self.console.print()

    def confirm_execution(self, stream: Optional[TextIO] = None) -> bool:
        """Ask whether to run the proposed command.

        Any answer starting with "y" approves; everything else, including an
        empty line or end of input, declines without asking again.
        """
        try:
            answer = Prompt.ask(
                "[yellow]  ->[/yellow] Execute this command? [dim](y/N)[/dim]",
                console=self.console,
                default="",
                show_default=False,
                stream=stream,
            )
        except EOFError:
            return False
        return answer.strip().lower().startswith("y")
