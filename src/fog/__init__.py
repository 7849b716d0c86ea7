"""fog: lightweight QEMU machine supervisor.

Boots QEMU machines with collision-free socket wiring, keeps a resilient
connection to their serial console, and merges the log output of many
sources into one readable stream.

Quick Start:
    ```python
    import sys
    from pathlib import Path

    from fog import Image, LogMux, Machine, MachineConfig, StartOptions

    mux = LogMux(sys.stdout.buffer, prefix=True)

    machine = Machine(
        "web",
        MachineConfig(memory="1G", ports=["tcp::2222-:22"]),
        Image(name="ubuntu-24.04"),
        Path("~/.local/share/fog/images/ubuntu-24.04.qcow2").expanduser(),
    )
    await machine.start(StartOptions(imds_port=8181, output=mux.stream("web")))
    reader, writer = await machine.conn()
    ```

Requirements:
    - qemu-system-x86_64 on PATH (KVM used when available, TCG otherwise)
    - Python 3.12+
"""

from fog._logging import configure_logging
from fog.colors import Color
from fog.exceptions import (
    DuplicateStreamError,
    FogError,
    MachineAlreadyStartedError,
    MachineConnectionError,
    MachineDependencyError,
    MachineLaunchError,
    MachinePathError,
    PermanentError,
    TransientError,
    UsageError,
)
from fog.identity import generate_machine_id
from fog.launcher import ProcessLauncher, SubprocessLauncher
from fog.logmux import LogMux, LogStream
from fog.machine import Machine
from fog.models import Image, MachineConfig, MachineSockets, StartOptions
from fog.retry import RetryPolicy
from fog.settings import LogSettings, Settings

__all__ = [
    "Color",
    "DuplicateStreamError",
    "FogError",
    "Image",
    "LogMux",
    "LogSettings",
    "LogStream",
    "Machine",
    "MachineAlreadyStartedError",
    "MachineConfig",
    "MachineConnectionError",
    "MachineDependencyError",
    "MachineLaunchError",
    "MachinePathError",
    "MachineSockets",
    "PermanentError",
    "ProcessLauncher",
    "RetryPolicy",
    "Settings",
    "StartOptions",
    "SubprocessLauncher",
    "TransientError",
    "UsageError",
    "configure_logging",
    "generate_machine_id",
]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fog-vm")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
