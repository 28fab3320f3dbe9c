# SPDX-License-Identifier: MIT
"""Progress callback protocol for the compile pipeline.

Compile workers report one event per file. Events from a single worker
arrive in order; events from different workers interleave.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Protocol, runtime_checkable


class CompilePhase(Enum):
    """What happened to a file."""

    COMPILED = "compiled"
    SKIPPED = "skipped"
    RECORDED = "recorded"
    FAILED = "failed"


@runtime_checkable
class ProgressCallback(Protocol):
    """Receives progress updates from compile workers."""

    def on_progress(self, task_name: str, phase: CompilePhase, progress: float, total: float, detail: str) -> None:
        """Called when a file finishes (or fails) compiling.

        Args:
            task_name: The source file being compiled.
            phase: Outcome for this file.
            progress: Files finished so far in this batch.
            total: Files in this batch.
            detail: Human-readable detail (object file or error).
        """
        ...


class NullCallback:
    """No-op callback for tests and non-interactive use."""

    def on_progress(self, task_name: str, phase: CompilePhase, progress: float, total: float, detail: str) -> None:
        pass


class SynchronizedCallback:
    """Serializes calls into a callback that is not itself thread-safe."""

    def __init__(self, callback: ProgressCallback) -> None:
        self._callback = callback
        self._lock = threading.Lock()

    def on_progress(self, task_name: str, phase: CompilePhase, progress: float, total: float, detail: str) -> None:
        with self._lock:
            self._callback.on_progress(task_name, phase, progress, total, detail)
