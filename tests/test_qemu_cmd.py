"""Tests for the QEMU command builder."""

from pathlib import Path

from hypothesis import given
from hypothesis.strategies import integers, lists, sampled_from, tuples

from fog.models import MachineConfig, MachineSockets
from fog.qemu_cmd import build_datasource_url, build_hostfwd, build_qemu_cmd

MACHINE_ID = "ab" * 32

SOCKETS = MachineSockets(
    serial=Path(f"/run/user/1000/fog/{MACHINE_ID}.sock"),
    tty=Path(f"/run/user/1000/fog/{MACHINE_ID}_tty.sock"),
    monitor=Path(f"/run/user/1000/fog/{MACHINE_ID}_monitor.sock"),
)


def _cmd(config: MachineConfig | None = None, imds_port: int = 8181) -> list[str]:
    return build_qemu_cmd(
        "/usr/bin/qemu-system-x86_64",
        MACHINE_ID,
        config or MachineConfig(),
        Path("/images/base.qcow2"),
        SOCKETS,
        imds_port,
    )


def _flag_value(cmd: list[str], flag: str) -> str:
    return cmd[cmd.index(flag) + 1]


def _flag_values(cmd: list[str], flag: str) -> list[str]:
    return [cmd[i + 1] for i, arg in enumerate(cmd) if arg == flag]


# ============================================================================
# Machine / resources
# ============================================================================


class TestBuildQemuCmd:
    def test_binary_first(self) -> None:
        assert _cmd()[0] == "/usr/bin/qemu-system-x86_64"

    def test_prefers_kvm_then_tcg(self) -> None:
        assert _flag_value(_cmd(), "-machine") == "accel=kvm:tcg"

    def test_cpu_passthrough(self) -> None:
        assert _flag_value(_cmd(), "-cpu") == "host"

    def test_memory_from_config(self) -> None:
        assert _flag_value(_cmd(MachineConfig(memory="2G")), "-m") == "2G"

    def test_headless(self) -> None:
        cmd = _cmd()
        assert "-nographic" in cmd
        assert _flag_value(cmd, "-vga") == "none"

    def test_boot_image_in_snapshot_mode(self) -> None:
        cmd = _cmd()
        assert _flag_value(cmd, "-hda") == "/images/base.qcow2"
        assert "-snapshot" in cmd

    def test_deterministic(self) -> None:
        config = MachineConfig(ports=["tcp::2222-:22"])
        assert _cmd(config) == _cmd(config)


# ============================================================================
# Networking
# ============================================================================


class TestNetworking:
    def test_hostfwd_from_ports(self) -> None:
        nets = _flag_values(_cmd(MachineConfig(ports=["tcp::2222-:22"])), "-net")
        assert nets == ["nic", "user,hostfwd=tcp::2222-:22"]

    def test_no_ports_no_hostfwd(self) -> None:
        nets = _flag_values(_cmd(), "-net")
        assert nets == ["nic", "user"]
        assert not any("hostfwd" in arg for arg in _cmd())

    def test_one_hostfwd_key_per_rule(self) -> None:
        assert build_hostfwd(["tcp::2222-:22", "tcp::8080-:80"]) == ",hostfwd=tcp::2222-:22,hostfwd=tcp::8080-:80"

    def test_multiple_ports_in_user_net(self) -> None:
        nets = _flag_values(_cmd(MachineConfig(ports=["tcp::2222-:22", "udp::5353-:53"])), "-net")
        assert nets == ["nic", "user,hostfwd=tcp::2222-:22,hostfwd=udp::5353-:53"]

    @given(
        lists(
            tuples(sampled_from(["tcp", "udp"]), integers(1, 65535), integers(1, 65535)),
            max_size=5,
        )
    )
    def test_every_rule_lands_in_user_net(self, specs: list[tuple[str, int, int]]) -> None:
        ports = [f"{proto}::{host}-:{guest}" for proto, host, guest in specs]
        user_net = _flag_values(_cmd(MachineConfig(ports=ports)), "-net")[1]
        for rule in ports:
            assert f",hostfwd={rule}" in user_net
        assert user_net.count("hostfwd=") == len(ports)


# ============================================================================
# Sockets / metadata
# ============================================================================


class TestSocketsAndMetadata:
    def test_three_chardev_sockets(self) -> None:
        chardevs = _flag_values(_cmd(), "-chardev")
        assert chardevs == [
            f"socket,id=serial,path={SOCKETS.serial},server,nowait",
            f"socket,id=tty,path={SOCKETS.tty},server,nowait",
            f"socket,id=monitor,path={SOCKETS.monitor},server,nowait",
        ]

    def test_serial_ports_and_monitor_wired(self) -> None:
        cmd = _cmd()
        assert _flag_values(cmd, "-serial") == ["chardev:serial", "chardev:tty"]
        assert _flag_value(cmd, "-monitor") == "chardev:monitor"

    def test_smbios_embeds_datasource_url(self) -> None:
        smbios = _flag_value(_cmd(imds_port=9000), "-smbios")
        assert smbios == f"type=1,serial=ds=nocloud-net;s=http://10.0.2.2:9000/{MACHINE_ID}/"

    def test_datasource_url(self) -> None:
        assert build_datasource_url(8181, "abc") == "http://10.0.2.2:8181/abc/"
