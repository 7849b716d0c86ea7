"""Shared pytest fixtures for fog tests.

Nothing here needs QEMU: the process launcher is faked, and serial
connections are exercised against real unix socket servers.
"""

import asyncio
import shutil
import tempfile
import threading
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from fog.machine import Machine
from fog.models import Image, MachineConfig
from fog.platform_utils import ProcessWrapper
from fog.retry import RetryPolicy
from fog.settings import Settings

# ============================================================================
# Fakes
# ============================================================================


class FakeLauncher:
    """ProcessLauncher that records commands instead of running them."""

    def __init__(self, binary: str | None = "/usr/bin/qemu-system-x86_64", spawn_error: OSError | None = None):
        self.binary = binary
        self.spawn_error = spawn_error
        self.commands: list[list[str]] = []
        self.capture_output: list[bool] = []

    def which(self, name: str) -> str | None:
        return self.binary

    async def spawn(self, cmd: list[str], *, capture_output: bool = False) -> ProcessWrapper:
        if self.spawn_error is not None:
            raise self.spawn_error
        self.commands.append(cmd)
        self.capture_output.append(capture_output)
        proc = MagicMock(spec=asyncio.subprocess.Process)
        proc.pid = None
        proc.returncode = None
        proc.stdout = None
        proc.stderr = None
        return ProcessWrapper(proc)


class RecordingSink:
    """Thread-safe byte sink recording each write call separately."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.writes: list[bytes] = []

    def write(self, data: bytes) -> int:
        with self._lock:
            self.writes.append(bytes(data))
        return len(data)

    @property
    def data(self) -> bytes:
        with self._lock:
            return b"".join(self.writes)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def runtime_dir() -> Iterator[Path]:
    """Short runtime dir under /tmp.

    pytest's tmp_path is too long for AF_UNIX paths (108 bytes) once a
    64-char machine ID and suffix are appended.
    """
    path = Path(tempfile.mkdtemp(prefix="fog", dir="/tmp"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def settings(runtime_dir: Path) -> Settings:
    return Settings(runtime_dir=runtime_dir, connect_attempts=3, connect_delay_seconds=0)


@pytest.fixture
def image_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    # Not tmp_path: its directory is named after the test, which leaks test
    # names (e.g. "..._hostfwd") into the -hda argument.
    path = tmp_path_factory.mktemp("image") / "base.qcow2"
    path.write_bytes(b"QFI\xfb")
    return path


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_machine(settings: Settings, image_path: Path, launcher: FakeLauncher) -> Callable[..., Machine]:
    """Factory for machines wired to the fake launcher and zero retry delay."""

    def _make(
        name: str = "test",
        config: MachineConfig | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> Machine:
        return Machine(
            name,
            config or MachineConfig(),
            Image(name="test-image"),
            image_path,
            settings=settings,
            launcher=launcher,
            retry_policy=retry_policy or RetryPolicy(max_attempts=3, delay=0),
        )

    return _make


@pytest.fixture
async def serial_server() -> AsyncGenerator[Callable[[Path], Awaitable[asyncio.Server]], None]:
    """Start unix socket servers that echo one line back; closed on teardown."""
    servers: list[asyncio.Server] = []
    peers: list[asyncio.StreamWriter] = []

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peers.append(writer)
        line = await reader.readline()
        if line and not writer.is_closing():
            writer.write(line)
            await writer.drain()

    async def _start(path: Path) -> asyncio.Server:
        server = await asyncio.start_unix_server(handle, path=str(path))
        servers.append(server)
        return server

    yield _start

    for writer in peers:
        writer.close()
    for server in servers:
        server.close()
        await server.wait_closed()
