"""Constants for fog machines and log multiplexing."""

from typing import Final

# ============================================================================
# Machine Identity
# ============================================================================

MACHINE_ID_BYTES: Final[int] = 32
"""Random bytes per machine ID (hex-encoded to 64 characters)."""

# ============================================================================
# QEMU
# ============================================================================

QEMU_BINARY: Final[str] = "qemu-system-x86_64"
"""Executable resolved on PATH when launching a machine."""

ACCEL_PREFERENCE: Final[str] = "kvm:tcg"
"""Accelerators in preference order: KVM first, TCG emulation fallback."""

CPU_MODEL: Final[str] = "host"

DEFAULT_MEMORY: Final[str] = "512M"

# ============================================================================
# Runtime Sockets
# ============================================================================

RUNTIME_SUBDIR: Final[str] = "fog"
"""Directory under the per-user runtime dir holding machine sockets."""

SERIAL_SOCKET_SUFFIX: Final[str] = ""
TTY_SOCKET_SUFFIX: Final[str] = "_tty"
MONITOR_SOCKET_SUFFIX: Final[str] = "_monitor"
SOCKET_EXTENSION: Final[str] = ".sock"

# ============================================================================
# Connection Retry
# ============================================================================

CONNECT_ATTEMPTS: Final[int] = 3
"""Dial attempts against the serial socket before giving up."""

CONNECT_DELAY_SECONDS: Final[float] = 1.0
"""Fixed delay between dial attempts (absorbs the QEMU listen race)."""

# ============================================================================
# Metadata Service
# ============================================================================

METADATA_HOST: Final[str] = "10.0.2.2"
"""Host address as seen from a guest on QEMU user-mode networking."""

# ============================================================================
# Log Multiplexing
# ============================================================================

LOG_FLUSH_WINDOW_MS: Final[int] = 10
"""Coalescing window measured from the first unflushed write of a stream."""

LOG_PREFIX_SEPARATOR: Final[str] = " | "
