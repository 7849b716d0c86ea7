"""Data models for fog."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fog import constants
from fog.logmux import LogStream

# proto:[hostaddr]:hostport-[guestaddr]:guestport (QEMU -net user,hostfwd=...)
_HOSTFWD_RULE = re.compile(r"^(tcp|udp):[0-9.]*:\d{1,5}-[0-9.]*:\d{1,5}$")


class MachineConfig(BaseModel):
    """Declarative machine sizing and networking.

    Attributes:
        memory: Guest memory in QEMU size syntax ("512M", "2G", or plain MiB).
        ports: Host-to-guest forward rules in QEMU hostfwd syntax,
            e.g. "tcp::2222-:22".
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    memory: str = Field(
        default=constants.DEFAULT_MEMORY,
        pattern=r"^[1-9][0-9]*[kKmMgGtT]?$",
        description="Guest memory size (QEMU -m syntax)",
    )
    ports: list[str] = Field(default_factory=list, description="QEMU hostfwd rules")

    @field_validator("ports")
    @classmethod
    def _validate_ports(cls, v: list[str]) -> list[str]:
        for rule in v:
            if not _HOSTFWD_RULE.match(rule):
                raise ValueError(f"Invalid port forward rule: {rule!r} (expected e.g. 'tcp::2222-:22')")
        return v


class Image(BaseModel):
    """Reference to the boot image a machine was created from."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    url: str | None = None


class StartOptions(BaseModel):
    """Options for Machine.start().

    Attributes:
        imds_port: Host port of the metadata service the guest fetches its
            first-boot configuration from.
        output: Optional log stream receiving QEMU's stdout/stderr.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    imds_port: int = Field(ge=1, le=65535)
    output: LogStream | None = None


class MachineSockets(BaseModel):
    """The three unix socket paths derived from a machine ID."""

    model_config = ConfigDict(frozen=True)

    serial: Path
    tty: Path
    monitor: Path
