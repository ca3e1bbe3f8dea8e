"""Progress display for network-bound commands, using rich."""

from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressDisplay:
    """
    Transient spinner and counter on stderr.

    Nothing is drawn when disabled or when stderr is not a terminal, so piped
    output and test runners only see the reports.
    """

    def __init__(self, enabled: bool = True, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self.enabled = enabled and self.console.is_terminal
        self._progress: Optional[Progress] = None
        self._task = None

    def start_task(self, description: str, total: Optional[int] = None):
        if not self.enabled:
            return
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self._progress.start()
        self._task = self._progress.add_task(description, total=total)

    def advance(self, done: int, total: int):
        """Progress callback receiving (done, total)."""
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, completed=done, total=total)

    def finish(self):
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task = None

    @contextmanager
    def task(self, description: str, total: Optional[int] = None) -> Iterator["ProgressDisplay"]:
        self.start_task(description, total)
        try:
            yield self
        finally:
            self.finish()
