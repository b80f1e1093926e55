"""th CLI UI - Rich terminal interface."""

from th.ui.console import ThConsole
from th.ui.spinner import Spinner

__all__ = ["ThConsole", "Spinner"]
