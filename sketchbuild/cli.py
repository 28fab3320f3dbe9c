# SPDX-License-Identifier: MIT
"""Command-line interface for sketchbuild."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from sketchbuild.builders.session import SketchBuildSession
from sketchbuild.configure.config import Settings, load_settings
from sketchbuild.configure.hardware import HardwarePackageManager
from sketchbuild.configure.resolver import (
    ConfigurationResolver,
    DebugConfigRequest,
    get_debug_config,
)
from sketchbuild.core.errors import InvalidArgumentError, SketchbuildError, UnsupportedOperationError
from sketchbuild.core.sketch import Sketch
from sketchbuild.generators.compile_commands import DATABASE_FILE, CompilationDatabase

# Set up logging
logger = logging.getLogger("sketchbuild")

EXIT_UNSUPPORTED = 2


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def load_cli_settings(args: argparse.Namespace) -> Settings:
    """Load settings and apply command-line overrides."""
    settings = load_settings(getattr(args, "config", None))
    hardware = getattr(args, "hardware_dir", None)
    if hardware:
        settings.hardware_dirs = [Path(p) for p in hardware]
    tools = getattr(args, "tools_dir", None)
    if tools:
        settings.tools_dirs = [Path(p) for p in tools]
    return settings


def package_manager(settings: Settings) -> HardwarePackageManager:
    return HardwarePackageManager(settings.hardware_dirs, settings.tools_dirs)


def cmd_debug_config(args: argparse.Namespace) -> int:
    """Print the debug configuration for a sketch as JSON."""
    setup_logging(args.verbose, args.debug)

    try:
        settings = load_cli_settings(args)
        request = DebugConfigRequest(
            sketch_path=args.sketch,
            fqbn=args.fqbn or "",
            programmer=args.programmer or "",
            port=args.port or "",
            import_dir=args.input_dir or "",
        )
        config = get_debug_config(request, package_manager(settings))
    except UnsupportedOperationError as e:
        logger.error("%s", e)
        return EXIT_UNSUPPORTED
    except SketchbuildError as e:
        logger.error("%s", e)
        return 1

    print(json.dumps(config.to_dict(), indent=2))
    return 0


def cmd_compile(args: argparse.Namespace) -> int:
    """Prepare the build directory and compile a sketch."""
    setup_logging(args.verbose, args.debug)

    try:
        settings = load_cli_settings(args)
        sketch = Sketch.load(args.sketch)
        fqbn = args.fqbn or sketch.metadata.fqbn
        if not fqbn:
            raise InvalidArgumentError("no Fully Qualified Board Name provided")

        if args.build_path:
            build_path = Path(args.build_path).absolute()
        elif settings.build_root is not None:
            build_path = settings.build_root / sketch.build_path.name
        else:
            build_path = sketch.build_path

        resolver = ConfigurationResolver.from_package_manager(
            package_manager(settings), fqbn, programmer=args.programmer or ""
        )
        resolved = resolver.resolve("build", build_path, sketch.name)

        include_folders = [Path(p) for p in args.include or []]
        for key in ("core.path", "variant.path"):
            folder = resolved.subtree.get(key)
            if folder:
                include_folders.append(Path(folder))

        database = None
        if args.only_compilation_database or not args.no_compilation_database:
            database = CompilationDatabase.load(build_path / DATABASE_FILE)

        jobs = args.jobs if args.jobs is not None else settings.jobs
        session_args = dict(
            include_folders=include_folders,
            jobs=jobs,
            only_update_compilation_database=args.only_compilation_database,
            compilation_database=database,
        )

        logger.info("Building %s for %s in %s", sketch.name, fqbn, build_path)
        if sys.stdout.isatty() and not args.debug:
            from sketchbuild.util.progress_display import RichProgressDisplay

            with RichProgressDisplay(sketch.name, verbose=args.verbose) as display:
                result = SketchBuildSession(
                    sketch, build_path, resolved.properties, progress=display, **session_args
                ).run()
            print(f"{sketch.name}: {display.summary()}")
        else:
            result = SketchBuildSession(sketch, build_path, resolved.properties, **session_args).run()
    except SketchbuildError as e:
        logger.error("%s", e)
        return 1

    for obj in sorted(result.object_files):
        logger.info("  %s", obj)
    print(f"Built {len(result.object_files)} object files in {build_path}")
    return 0


def cmd_programmers(args: argparse.Namespace) -> int:
    """List installed programmer identifiers, one per line.

    This is the completion source for the --programmer option.
    """
    setup_logging(args.verbose, args.debug)

    try:
        settings = load_cli_settings(args)
        programmers = package_manager(settings).installed_programmers()
    except SketchbuildError as e:
        logger.error("%s", e)
        return 1

    for programmer in programmers:
        print(programmer)
    return 0


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument("--config", metavar="FILE", help="Settings file (default: ./sketchbuild.json)")
    parser.add_argument(
        "--hardware-dir", action="append", metavar="DIR", help="Hardware directory (repeatable)"
    )
    parser.add_argument("--tools-dir", action="append", metavar="DIR", help="Tools directory (repeatable)")


def add_board_args(parser: argparse.ArgumentParser) -> None:
    """Add sketch, board and programmer arguments."""
    parser.add_argument("sketch", help="Sketch directory or main file")
    parser.add_argument("-b", "--fqbn", help="Fully Qualified Board Name, e.g.: arduino:avr:uno")
    parser.add_argument("-P", "--programmer", help="Programmer to use, e.g: atmel_ice")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the sketchbuild CLI."""
    parser = argparse.ArgumentParser(
        prog="sketchbuild",
        description="Resolve board configuration and compile sketches.",
        epilog="Run 'sketchbuild <command> --help' for command-specific help.",
    )
    from sketchbuild import __version__

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # sketchbuild debug-config
    debug_parser = subparsers.add_parser("debug-config", help="Show the debug configuration for a sketch")
    add_common_args(debug_parser)
    add_board_args(debug_parser)
    debug_parser.add_argument("-p", "--port", help="Debug port address, e.g.: /dev/ttyACM0")
    debug_parser.add_argument("--input-dir", metavar="DIR", help="Directory containing the compiled sketch")
    debug_parser.set_defaults(func=cmd_debug_config)

    # sketchbuild compile
    compile_parser = subparsers.add_parser("compile", help="Compile a sketch")
    add_common_args(compile_parser)
    add_board_args(compile_parser)
    compile_parser.add_argument("--build-path", metavar="DIR", help="Build directory")
    compile_parser.add_argument("-j", "--jobs", type=int, help="Number of parallel jobs (0 = CPU count)")
    compile_parser.add_argument("-I", "--include", action="append", metavar="DIR", help="Extra include folder")
    compile_parser.add_argument(
        "--only-compilation-database",
        action="store_true",
        help="Only update compile_commands.json, do not compile",
    )
    compile_parser.add_argument(
        "--no-compilation-database",
        action="store_true",
        help="Do not write compile_commands.json",
    )
    compile_parser.set_defaults(func=cmd_compile)

    # sketchbuild programmers
    prog_parser = subparsers.add_parser("programmers", help="List installed programmers")
    add_common_args(prog_parser)
    prog_parser.set_defaults(func=cmd_programmers)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
