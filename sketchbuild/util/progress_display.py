# SPDX-License-Identifier: MIT
"""Rich-based terminal progress display for sketch compilation.

Renders a single live line with a spinner, the file last finished and the
number of files processed. Failures and, in verbose mode, each finished
file are printed above the live line.

Thread-safe: compile workers call on_progress() concurrently while Rich
refreshes the display from its own thread.
"""

from __future__ import annotations

import threading
from pathlib import Path
from types import TracebackType

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn
from rich.text import Text

from sketchbuild.builders.progress import CompilePhase

_PHASE_STYLES = {
    CompilePhase.COMPILED: "green",
    CompilePhase.SKIPPED: "dim",
    CompilePhase.RECORDED: "cyan",
    CompilePhase.FAILED: "bold red",
}


class RichProgressDisplay:
    """Progress callback rendering compile progress with Rich.

    Use as a context manager around the build:

        with RichProgressDisplay(sketch.name) as display:
            session = SketchBuildSession(..., progress=display)
            session.run()

    Args:
        title: Label for the live line (usually the sketch name).
        console: Rich Console to render on. If None, creates a new one.
        verbose: Print a line for every finished file.
    """

    def __init__(self, title: str, console: Console | None = None, verbose: bool = False) -> None:
        self._console = console if console is not None else Console()
        self._title = title
        self._verbose = verbose
        self._lock = threading.Lock()
        self._completed = 0
        self._counts: dict[CompilePhase, int] = {phase: 0 for phase in CompilePhase}
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            TextColumn("{task.completed} files"),
            TimeElapsedColumn(),
            console=self._console,
            transient=True,
        )
        self._task: TaskID | None = None

    def __enter__(self) -> RichProgressDisplay:
        self._progress.start()
        self._task = self._progress.add_task(f"Compiling {self._title}", total=None)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._progress.stop()

    @property
    def counts(self) -> dict[CompilePhase, int]:
        with self._lock:
            return dict(self._counts)

    def on_progress(self, task_name: str, phase: CompilePhase, progress: float, total: float, detail: str) -> None:
        with self._lock:
            self._completed += 1
            self._counts[phase] += 1
            completed = self._completed

        if self._task is not None:
            self._progress.update(
                self._task,
                completed=completed,
                description=f"Compiling {self._title}: {Path(task_name).name}",
            )
        style = _PHASE_STYLES[phase]
        if phase is CompilePhase.FAILED:
            self._progress.console.print(Text.assemble((phase.value, style), " ", task_name, "\n", detail))
        elif self._verbose:
            self._progress.console.print(Text.assemble((f"{phase.value:>8}", style), " ", task_name))

    def summary(self) -> str:
        counts = self.counts
        parts = [f"{counts[p]} {p.value}" for p in CompilePhase if counts[p]]
        return ", ".join(parts) if parts else "nothing to compile"
