# SPDX-License-Identifier: MIT
"""Custom exceptions for sketchbuild.

All sketchbuild exceptions inherit from SketchbuildError, which includes
optional location information (a file path, a board identifier) for
better error messages.
"""

from __future__ import annotations

from pathlib import Path


class SketchbuildError(Exception):
    """Base class for all sketchbuild exceptions.

    Attributes:
        message: The error message.
        location: Optional location the error refers to.
    """

    def __init__(
        self,
        message: str,
        location: str | None = None,
    ) -> None:
        self.message = message
        self.location = location
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class ConfigurationError(SketchbuildError):
    """Build or debug configuration is invalid.

    Raised when placeholder expansion cannot complete or when property
    files cannot be parsed.
    """


class CircularReferenceError(ConfigurationError):
    """Circular placeholder reference detected.

    Attributes:
        chain: The chain of keys forming the cycle.
    """

    def __init__(
        self,
        chain: list[str],
        location: str | None = None,
    ) -> None:
        self.chain = chain
        cycle_str = " -> ".join(chain)
        super().__init__(f"circular property reference: {cycle_str}", location)


class ExpansionDepthError(ConfigurationError):
    """Placeholder nesting exceeded the expansion bound.

    Attributes:
        key: The key being expanded when the bound was hit.
        depth: The bound that was exceeded.
    """

    def __init__(self, key: str, depth: int) -> None:
        self.key = key
        self.depth = depth
        super().__init__(f"property '{key}' nests more than {depth} placeholders deep")


class InvalidArgumentError(SketchbuildError):
    """A request argument is missing or unusable."""


class InvalidFQBNError(InvalidArgumentError):
    """A fully qualified board name could not be parsed.

    Attributes:
        fqbn: The offending identifier.
    """

    def __init__(self, fqbn: str, reason: str) -> None:
        self.fqbn = fqbn
        super().__init__(f"invalid FQBN '{fqbn}': {reason}")


class PlatformNotFoundError(SketchbuildError):
    """No installed platform matches a vendor/architecture pair.

    Attributes:
        platform_id: The requested "vendor:arch" identifier.
    """

    def __init__(self, platform_id: str) -> None:
        self.platform_id = platform_id
        super().__init__(f"platform not installed: {platform_id}")


class BoardNotFoundError(SketchbuildError):
    """The platform has no board with the requested identifier.

    Attributes:
        fqbn: The board identifier that was looked up.
    """

    def __init__(self, fqbn: str) -> None:
        self.fqbn = fqbn
        super().__init__(f"board not found: {fqbn}")


class ProgrammerNotFoundError(SketchbuildError):
    """Requested programmer is absent from both platform programmer tables.

    Attributes:
        programmer: The requested programmer identifier.
    """

    def __init__(self, programmer: str) -> None:
        self.programmer = programmer
        super().__init__(f"programmer '{programmer}' not found")


class UnsupportedOperationError(SketchbuildError):
    """The target does not support the requested operation.

    This signals a missing capability (for example a board without a
    debugger configuration), not a transient fault.

    Attributes:
        board: Identifier of the board the operation was requested for.
    """

    def __init__(self, message: str, board: str = "") -> None:
        self.board = board
        super().__init__(message)


class BuildIOError(SketchbuildError):
    """Reading, writing or creating a file or directory failed.

    Attributes:
        operation: What was being attempted (e.g. "reading file").
        path: The path involved.
        cause: The underlying OSError.
    """

    def __init__(self, operation: str, path: Path | str, cause: OSError) -> None:
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"{operation}: {cause}", str(path))


class PathComputationError(SketchbuildError):
    """A file could not be expressed relative to the sketch root.

    Attributes:
        path: The file path.
        root: The sketch root it should live under.
    """

    def __init__(self, path: Path | str, root: Path | str) -> None:
        self.path = Path(path)
        self.root = Path(root)
        super().__init__(
            f"unable to compute relative path to the sketch for the item {path}",
            str(root),
        )


class CompileError(SketchbuildError):
    """Compiling a single source file failed.

    Attributes:
        source: The source file that failed.
        returncode: Exit status of the compiler, if it ran.
        output: Captured compiler diagnostics.
    """

    def __init__(
        self,
        source: Path | str,
        returncode: int | None = None,
        output: str = "",
    ) -> None:
        self.source = Path(source)
        self.returncode = returncode
        self.output = output
        detail = f"compilation failed (exit status {returncode})"
        if returncode is None:
            detail = "compilation failed"
        if output:
            detail = f"{detail}\n{output.rstrip()}"
        super().__init__(detail, str(source))
