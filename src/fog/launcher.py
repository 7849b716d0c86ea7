"""Process launching capability.

Machine never calls subprocess APIs directly; it goes through a
ProcessLauncher so tests can substitute a fake that records the command
instead of running a real hypervisor.
"""

import asyncio
import shutil
from typing import Protocol, runtime_checkable

from fog.platform_utils import ProcessWrapper


@runtime_checkable
class ProcessLauncher(Protocol):
    """Resolve executables and start processes."""

    def which(self, name: str) -> str | None:
        """Resolve an executable on the search path (None if not found)."""
        ...

    async def spawn(self, cmd: list[str], *, capture_output: bool = False) -> ProcessWrapper:
        """Start ``cmd`` without waiting for it to exit.

        Args:
            cmd: Executable path followed by its arguments
            capture_output: Pipe stdout/stderr instead of discarding them

        Raises:
            OSError: The OS could not create the process
        """
        ...


class SubprocessLauncher:
    """ProcessLauncher backed by shutil.which and asyncio subprocesses."""

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    async def spawn(self, cmd: list[str], *, capture_output: bool = False) -> ProcessWrapper:
        out = asyncio.subprocess.PIPE if capture_output else asyncio.subprocess.DEVNULL
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=out,
            stderr=out,
            # Own session: terminal signals to the supervisor don't reach QEMU
            start_new_session=True,
        )
        return ProcessWrapper(proc)
