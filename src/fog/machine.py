"""Machine: one supervised QEMU process and its serial connection.

A Machine is constructed without side effects beyond drawing a random ID.
start() resolves QEMU, derives three unix socket paths from the ID and
launches the process without waiting for the guest to boot. conn() dials
the serial socket lazily, retrying while QEMU is still creating it, and
caches the first working connection for the machine's lifetime.
"""

import asyncio
from pathlib import Path

import aiofiles.os

from fog import constants
from fog._logging import get_logger
from fog.exceptions import (
    MachineAlreadyStartedError,
    MachineConnectionError,
    MachineDependencyError,
    MachineLaunchError,
    MachinePathError,
)
from fog.identity import generate_machine_id
from fog.launcher import ProcessLauncher, SubprocessLauncher
from fog.models import Image, MachineConfig, MachineSockets, StartOptions
from fog.platform_utils import ProcessWrapper, runtime_file
from fog.qemu_cmd import build_qemu_cmd
from fog.retry import RetryPolicy
from fog.settings import Settings
from fog.subprocess_utils import drain_subprocess_output, log_task_exception

logger = get_logger(__name__)

Connection = tuple[asyncio.StreamReader, asyncio.StreamWriter]


def derive_socket_paths(machine_id: str, runtime_dir: Path | None = None) -> MachineSockets:
    """Derive the serial, tty and monitor socket paths for a machine ID.

    Parent directories are created; the sockets themselves are created by QEMU.

    Raises:
        MachinePathError: Runtime directory unavailable
    """
    paths: dict[str, Path] = {}
    for field, suffix, label in (
        ("serial", constants.SERIAL_SOCKET_SUFFIX, "socket"),
        ("tty", constants.TTY_SOCKET_SUFFIX, "tty socket"),
        ("monitor", constants.MONITOR_SOCKET_SUFFIX, "monitor socket"),
    ):
        relpath = f"{constants.RUNTIME_SUBDIR}/{machine_id}{suffix}{constants.SOCKET_EXTENSION}"
        try:
            paths[field] = runtime_file(relpath, runtime_dir)
        except OSError as e:
            raise MachinePathError(
                f"generating {label} file path: {e}",
                context={"machine_id": machine_id, "relpath": relpath},
            ) from e
    return MachineSockets(**paths)


class Machine:
    """A virtual machine managed by fog.

    Attributes:
        id: Random 64-char hex identity, fixed at construction
        name: Display name
        config: Memory size and port forward rules
        image: Image the machine boots from
        image_path: Resolved path of the boot disk
        process: QEMU process handle (None before start)
    """

    def __init__(
        self,
        name: str,
        config: MachineConfig,
        image: Image,
        image_path: Path,
        *,
        settings: Settings | None = None,
        launcher: ProcessLauncher | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.id = generate_machine_id()
        self.name = name
        self.config = config
        self.image = image
        self.image_path = Path(image_path)
        self.settings = settings or Settings()
        self.process: ProcessWrapper | None = None

        self._launcher = launcher or SubprocessLauncher()
        self._retry = retry_policy or RetryPolicy(
            max_attempts=self.settings.connect_attempts,
            delay=self.settings.connect_delay_seconds,
        )
        self._started = False
        self._sockets: MachineSockets | None = None
        self._drain_task: asyncio.Task[None] | None = None

        # Guards _conn plus the dial bookkeeping below
        self._conn_lock = asyncio.Lock()
        self._conn: Connection | None = None
        self._dial_generation = 0
        self._dial_error: MachineConnectionError | None = None

        logger.debug("Created machine", extra={"machine_id": self.id, "machine_name": name})

    def __repr__(self) -> str:
        return f"Machine(name={self.name!r}, id={self.id[:12]}...)"

    @property
    def sockets(self) -> MachineSockets | None:
        """Socket paths, available once start() has derived them."""
        return self._sockets

    async def start(self, options: StartOptions) -> None:
        """Boot the virtual machine.

        Returns once the OS has created the QEMU process; guest readiness is
        established lazily by conn().

        Raises:
            MachineAlreadyStartedError: start() was already called
            MachineDependencyError: QEMU binary or boot image missing
            MachinePathError: Socket paths could not be derived
            MachineLaunchError: The OS failed to start QEMU
        """
        if self._started:
            raise MachineAlreadyStartedError(
                f"Machine {self.name} already started",
                context={"machine_id": self.id, "name": self.name},
            )
        self._started = True
        try:
            await self._start(options)
        except BaseException:
            self._started = False
            raise

    async def _start(self, options: StartOptions) -> None:
        binary = self._launcher.which(self.settings.qemu_binary)
        if binary is None:
            raise MachineDependencyError(
                f"finding qemu binary: {self.settings.qemu_binary} not found in PATH",
                context={"machine_id": self.id, "binary": self.settings.qemu_binary},
            )

        if not await aiofiles.os.path.exists(self.image_path):
            raise MachineDependencyError(
                f"finding boot image: {self.image_path} does not exist",
                context={"machine_id": self.id, "image": self.image.name, "image_path": str(self.image_path)},
            )

        sockets = derive_socket_paths(self.id, self.settings.runtime_dir)

        cmd = build_qemu_cmd(
            binary,
            self.id,
            self.config,
            self.image_path,
            sockets,
            options.imds_port,
        )

        logger.info(
            "Starting machine",
            extra={
                "machine_id": self.id,
                "machine_name": self.name,
                "sock": str(sockets.serial),
                "mon": str(sockets.monitor),
            },
        )

        try:
            process = await self._launcher.spawn(cmd, capture_output=options.output is not None)
        except OSError as e:
            raise MachineLaunchError(
                f"starting machine: {e}",
                context={"machine_id": self.id, "name": self.name, "binary": binary},
            ) from e

        self._sockets = sockets
        self.process = process

        if options.output is not None:
            self._drain_task = asyncio.create_task(
                drain_subprocess_output(process, options.output.write, process_name="QEMU", context_id=self.id),
                name=f"drain-{self.name}",
            )
            self._drain_task.add_done_callback(log_task_exception)

    async def is_running(self) -> bool:
        """Whether the QEMU process is alive (False before start)."""
        if self.process is None:
            return False
        return await self.process.is_running()

    async def conn(self) -> Connection:
        """Return a connection to the machine's serial socket.

        The first successful dial is cached and returned to every later
        caller without a liveness check. Concurrent callers share one dial
        sequence: callers that queued behind a failing sequence receive the
        same MachineConnectionError instead of dialing again.

        Raises:
            MachineConnectionError: Every dial attempt failed, or the machine
                was never started
        """
        generation = self._dial_generation
        async with self._conn_lock:
            if self._conn is not None:
                return self._conn

            if self._dial_error is not None and generation != self._dial_generation:
                raise self._dial_error

            if self._sockets is None:
                raise MachineConnectionError(
                    "opening connection: machine has not been started",
                    context={"machine_id": self.id, "name": self.name},
                )

            try:
                self._conn = await self._dial(self._sockets.serial)
            except OSError as e:
                self._dial_generation += 1
                self._dial_error = MachineConnectionError(
                    f"failed to open connection: {e}",
                    context={
                        "machine_id": self.id,
                        "sock": str(self._sockets.serial),
                        "attempts": self._retry.max_attempts,
                    },
                )
                logger.warning(
                    "Serial connection attempts exhausted",
                    extra={"machine_id": self.id, "attempts": self._retry.max_attempts},
                )
                raise self._dial_error from e

            logger.info("Connected to machine", extra={"machine_id": self.id, "machine_name": self.name})
            return self._conn

    async def _dial(self, path: Path) -> Connection:
        # QEMU may not have created its listening socket yet
        return await self._retry.retrying()(asyncio.open_unix_connection, str(path))
