# SPDX-License-Identifier: MIT
"""Shared fixtures: a minimal installed hardware tree and a fake compiler."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from sketchbuild.builders.compile import CommandResult
from sketchbuild.configure.hardware import HardwarePackageManager

SAMD_PLATFORM = """\
name=Arduino SAMD (32-bits ARM Cortex-M0+) Boards
version=1.8.9

compiler.path={runtime.tools.arm-none-eabi-gcc.path}/bin/
compiler.cpp.cmd=arm-none-eabi-g++
compiler.c.cmd=arm-none-eabi-gcc
compiler.cpp.flags=-c -g -Os
recipe.cpp.o.pattern="{compiler.path}{compiler.cpp.cmd}" -mcpu={build.mcu} {compiler.cpp.flags} {includes} "{source_file}" -o "{object_file}"
recipe.c.o.pattern="{compiler.path}{compiler.c.cmd}" -mcpu={build.mcu} {includes} "{source_file}" -o "{object_file}"
recipe.S.o.pattern="{compiler.path}{compiler.c.cmd}" -x assembler-with-cpp {includes} "{source_file}" -o "{object_file}"
"""

SAMD_BOARDS = """\
menu.cache=Cache

mkr1000.name=Arduino MKR1000
mkr1000.build.mcu=cortex-m0plus
mkr1000.build.core=arduino
mkr1000.build.variant=mkr1000
mkr1000.build.openocdscript=openocd_scripts/arduino_zero.cfg
mkr1000.menu.cache.on=Enabled
mkr1000.menu.cache.on.build.cache_flags=-DENABLE_CACHE
mkr1000.menu.cache.off=Disabled
mkr1000.menu.cache.off.build.cache_flags=

nano_33_iot.name=Arduino NANO 33 IoT
nano_33_iot.build.mcu=cortex-m0plus
nano_33_iot.build.core=arduino
nano_33_iot.build.variant=nano_33_iot
"""

SAMD_PROGRAMMERS = """\
atmel_ice.name=Atmel-ICE
atmel_ice.protocol=cmsis-dap
sam_ice.name=Atmel SAM-ICE
sam_ice.protocol=jlink
"""

AVR_PLATFORM = """\
name=Arduino AVR Boards
version=1.8.6
recipe.cpp.o.pattern=avr-g++ -c {includes} "{source_file}" -o "{object_file}"
"""

AVR_BOARDS = """\
uno.name=Arduino Uno
uno.build.mcu=atmega328p
uno.build.core=arduino
uno.build.variant=standard
"""

AVR_PROGRAMMERS = """\
avrisp.name=AVR ISP
avrisp.protocol=stk500v1
"""

SAMD_TOOLS = (
    ("arm-none-eabi-gcc", "7-2017q4"),
    ("openocd", "0.10.0-arduino7"),
)


def write_platform(
    hardware: Path,
    vendor: str,
    arch: str,
    *,
    platform: str = "",
    boards: str = "",
    programmers: str = "",
) -> Path:
    """Create ``<hardware>/<vendor>/<arch>`` with the given properties files."""
    platform_dir = hardware / vendor / arch
    platform_dir.mkdir(parents=True, exist_ok=True)
    for name, text in (("platform.txt", platform), ("boards.txt", boards), ("programmers.txt", programmers)):
        if text:
            (platform_dir / name).write_text(text)
    return platform_dir


@dataclass
class InstalledPackages:
    hardware: Path
    tools: Path

    def package_manager(self) -> HardwarePackageManager:
        return HardwarePackageManager([self.hardware], [self.tools])


@pytest.fixture
def installed(tmp_path: Path) -> InstalledPackages:
    """An arduino:samd and arduino:avr install plus the samd tools."""
    hardware = tmp_path / "hardware"
    tools = tmp_path / "tools"
    write_platform(
        hardware, "arduino", "samd", platform=SAMD_PLATFORM, boards=SAMD_BOARDS, programmers=SAMD_PROGRAMMERS
    )
    write_platform(hardware, "arduino", "avr", platform=AVR_PLATFORM, boards=AVR_BOARDS, programmers=AVR_PROGRAMMERS)
    for name, version in SAMD_TOOLS:
        (tools / name / version / "bin").mkdir(parents=True)
    return InstalledPackages(hardware, tools)


@pytest.fixture
def blink(tmp_path: Path) -> Path:
    """A sketch directory with a main file and no umbrella include."""
    sketch_dir = tmp_path / "Blink"
    sketch_dir.mkdir()
    (sketch_dir / "Blink.ino").write_text("void setup() {}\nvoid loop() {}\n")
    return sketch_dir


@dataclass
class FakeRunner:
    """Records compiler invocations and writes the ``-o`` object file.

    Sources whose name is listed in fail_on exit with status 1.
    """

    fail_on: set[str] = field(default_factory=set)
    calls: list[list[str]] = field(default_factory=list)

    def run(self, args: list[str], cwd: Path) -> CommandResult:
        self.calls.append(list(args))
        output = Path(args[args.index("-o") + 1])
        if any(Path(a).name in self.fail_on for a in args):
            return CommandResult(1, "", "error: expected ';' before '}' token\n")
        output.write_text("obj")
        return CommandResult(0)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()
