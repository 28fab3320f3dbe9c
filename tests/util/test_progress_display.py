# SPDX-License-Identifier: MIT
"""Tests for the Rich compile progress display."""

from __future__ import annotations

import threading
from io import StringIO

from rich.console import Console

from sketchbuild.builders.progress import CompilePhase, NullCallback, ProgressCallback, SynchronizedCallback
from sketchbuild.util.progress_display import RichProgressDisplay


def make_display(verbose: bool = False) -> tuple[RichProgressDisplay, StringIO]:
    buffer = StringIO()
    return RichProgressDisplay("Blink", console=Console(file=buffer, width=120), verbose=verbose), buffer


class TestProtocol:
    def test_display_implements_protocol(self):
        display, _ = make_display()
        assert isinstance(display, ProgressCallback)

    def test_null_and_synchronized(self):
        assert isinstance(NullCallback(), ProgressCallback)
        assert isinstance(SynchronizedCallback(NullCallback()), ProgressCallback)


class TestSynchronizedCallback:
    def test_forwards(self):
        events = []

        class Recorder:
            def on_progress(self, task_name, phase, progress, total, detail):
                events.append((task_name, phase, progress, total, detail))

        SynchronizedCallback(Recorder()).on_progress("a.cpp", CompilePhase.COMPILED, 1, 2, "a.cpp.o")
        assert events == [("a.cpp", CompilePhase.COMPILED, 1, 2, "a.cpp.o")]


class TestRichProgressDisplay:
    def test_counts_and_summary(self):
        display, _ = make_display()
        with display:
            display.on_progress("/b/a.cpp", CompilePhase.COMPILED, 1, 3, "/b/a.cpp.o")
            display.on_progress("/b/b.cpp", CompilePhase.SKIPPED, 2, 3, "/b/b.cpp.o")
            display.on_progress("/b/c.cpp", CompilePhase.COMPILED, 3, 3, "/b/c.cpp.o")
        assert display.counts[CompilePhase.COMPILED] == 2
        assert display.counts[CompilePhase.SKIPPED] == 1
        assert display.summary() == "2 compiled, 1 skipped"

    def test_empty_summary(self):
        display, _ = make_display()
        assert display.summary() == "nothing to compile"

    def test_failure_printed(self):
        display, buffer = make_display()
        with display:
            display.on_progress("/b/bad.cpp", CompilePhase.FAILED, 0, 1, "error: boom")
        output = buffer.getvalue()
        assert "bad.cpp" in output
        assert "error: boom" in output

    def test_quiet_by_default(self):
        display, buffer = make_display()
        with display:
            display.on_progress("/b/quiet.cpp", CompilePhase.COMPILED, 1, 1, "/b/quiet.cpp.o")
        assert "quiet.cpp" not in buffer.getvalue()

    def test_verbose_prints_each_file(self):
        display, buffer = make_display(verbose=True)
        with display:
            display.on_progress("/b/loud.cpp", CompilePhase.RECORDED, 1, 1, "/b/loud.cpp.o")
        assert "loud.cpp" in buffer.getvalue()

    def test_concurrent_updates(self):
        display, _ = make_display()

        def worker(n: int) -> None:
            for i in range(25):
                display.on_progress(f"/b/f{n}_{i}.cpp", CompilePhase.COMPILED, i, 25, "")

        with display:
            threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
        assert display.counts[CompilePhase.COMPILED] == 100
