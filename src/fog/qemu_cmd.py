"""QEMU command line builder for fog machines.

Builds the argument list for qemu-system-x86_64 from a machine's
configuration, boot image and derived socket paths. Pure: no probing,
no filesystem access.
"""

from pathlib import Path

from fog import constants
from fog._logging import get_logger
from fog.models import MachineConfig, MachineSockets

logger = get_logger(__name__)


def build_datasource_url(imds_port: int, machine_id: str) -> str:
    """Per-machine metadata URL as reached from inside the guest."""
    return f"http://{constants.METADATA_HOST}:{imds_port}/{machine_id}/"


def build_hostfwd(ports: list[str]) -> str:
    """Build the hostfwd suffix for ``-net user``.

    QEMU takes one rule per hostfwd key, so each rule gets its own
    ",hostfwd=" clause. Returns "" when there are no rules.
    """
    return "".join(f",hostfwd={rule}" for rule in ports)


def _chardev_socket(chardev_id: str, path: Path) -> str:
    # server + nowait: QEMU listens and boots without waiting for a client
    return f"socket,id={chardev_id},path={path},server,nowait"


def build_qemu_cmd(
    binary: str,
    machine_id: str,
    config: MachineConfig,
    image_path: Path,
    sockets: MachineSockets,
    imds_port: int,
) -> list[str]:
    """Build the QEMU command for a machine.

    Args:
        binary: Resolved path of the QEMU executable
        machine_id: Machine identity, embedded in the metadata URL
        config: Memory size and port forward rules
        image_path: Boot disk, attached in snapshot mode so it is never written
        sockets: Serial, tty and monitor socket paths
        imds_port: Host port of the metadata service

    Returns:
        QEMU command as list of strings (binary first)
    """
    ds_url = build_datasource_url(imds_port, machine_id)

    cmd = [
        binary,
        # Machine settings
        "-machine",
        f"accel={constants.ACCEL_PREFERENCE}",
        # System resources
        "-cpu",
        constants.CPU_MODEL,
        "-m",
        config.memory,
        # Graphics
        "-nographic",
        "-vga",
        "none",
        # Boot image
        "-hda",
        str(image_path),
        "-snapshot",
        # Networking
        "-net",
        "nic",
        "-net",
        "user" + build_hostfwd(config.ports),
        # Serial socket
        "-chardev",
        _chardev_socket("serial", sockets.serial),
        "-serial",
        "chardev:serial",
        # TTY socket
        "-chardev",
        _chardev_socket("tty", sockets.tty),
        "-serial",
        "chardev:tty",
        # Monitor socket (debugging only)
        "-chardev",
        _chardev_socket("monitor", sockets.monitor),
        "-monitor",
        "chardev:monitor",
        # cloud-init NoCloud datasource
        "-smbios",
        f"type=1,serial=ds=nocloud-net;s={ds_url}",
    ]

    logger.debug(
        "Built QEMU command",
        extra={"machine_id": machine_id, "argc": len(cmd), "ports": config.ports},
    )
    return cmd
