"""Runtime directory resolution and process wrappers.

Socket paths follow the XDG base directory convention for runtime files.
QEMU process handles use psutil for PID-reuse safe liveness checks.
"""

import asyncio
import contextlib
import os
import tempfile
from pathlib import Path

import psutil


def get_runtime_dir(override: Path | None = None) -> Path:
    """Resolve the per-user runtime directory.

    Order:
    1. Explicit override (Settings.runtime_dir)
    2. XDG_RUNTIME_DIR environment variable
    3. /run/user/<uid> when it exists (systemd-logind)
    4. <tmp>/fog-<uid>

    Returns:
        Absolute path (not necessarily existing yet)
    """
    if override is not None:
        return override.absolute()
    if env_path := os.environ.get("XDG_RUNTIME_DIR"):
        return Path(env_path).absolute()
    run_user = Path("/run/user") / str(os.getuid())
    if run_user.is_dir():
        return run_user
    return Path(tempfile.gettempdir()) / f"fog-{os.getuid()}"


def runtime_file(relpath: str, runtime_dir: Path | None = None) -> Path:
    """Return the absolute path of a runtime file, creating its parent dirs.

    The file itself is not created.

    Raises:
        OSError: Parent directory could not be created
    """
    path = get_runtime_dir(runtime_dir) / relpath
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    return path


def _alive(proc: psutil.Process) -> bool:
    try:
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


class ProcessWrapper:
    """Handle on a spawned QEMU process.

    Liveness goes through psutil, which remembers the process creation
    time and so never reports a recycled PID as this machine's QEMU.

    Attributes:
        process: asyncio handle, owner of the stdout/stderr pipes
        psutil_proc: psutil handle (None when the process was gone at spawn)
    """

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self.process = process
        self.psutil_proc: psutil.Process | None = None

        if process.pid:
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                self.psutil_proc = psutil.Process(process.pid)

    async def is_running(self) -> bool:
        """Whether QEMU is alive. A crashed process awaiting reaping counts as dead."""
        if self.psutil_proc is None:
            return self.process.returncode is None
        return await asyncio.to_thread(_alive, self.psutil_proc)

    @property
    def pid(self) -> int | None:
        return self.process.pid

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        return self.process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        return self.process.stderr
