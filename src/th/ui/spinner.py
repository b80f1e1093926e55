"""Progress spinner drawn from a background thread."""

from __future__ import annotations

import threading
from typing import List, Optional

from rich.console import Console
from rich.live import Live
from rich.text import Text

FRAMES = [":", "⁖", "⁘", "⁛", "⁙", "⁛", "⁘", "⁖"]
TICK_SECONDS = 0.14


class Spinner:
    """
    Animated status line while a request is in flight.

    Use as a context manager. Leaving the block (normally, by exception, or
    by task cancellation) stops the thread, joins it and clears the line.

        with Spinner(console, "Planning command…"):
            await client.request_command(...)
    """

    def __init__(
        self,
        console: Console,
        label: str,
        frames: Optional[List[str]] = None,
        interval: float = TICK_SECONDS,
    ):
        self.console = console
        self.label = label
        self.frames = frames or FRAMES
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._live: Optional[Live] = None
        self.ticks = 0

    def _render(self, index: int) -> Text:
        text = Text()
        text.append(self.frames[index % len(self.frames)], style="yellow")
        text.append(f" {self.label}")
        return text

    def _run(self) -> None:
        index = 0
        while not self._stop.is_set():
            if self._live is not None:
                self._live.update(self._render(index), refresh=True)
            self.ticks += 1
            index += 1
            # Returns early as soon as stop() sets the event
            self._stop.wait(self.interval)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "Spinner":
        if self._thread is not None:
            return self
        self._stop.clear()
        self._live = Live(
            self._render(0),
            console=self.console,
            auto_refresh=False,
            transient=True,
            redirect_stdout=False,
            redirect_stderr=False,
        )
        self._live.start()
        self._thread = threading.Thread(target=self._run, name="th-spinner", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        """Stop drawing and clear the line. Safe to call more than once."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._live is not None:
            self._live.stop()
            self._live = None

    def __enter__(self) -> "Spinner":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
