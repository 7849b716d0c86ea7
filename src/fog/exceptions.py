"""Exception hierarchy for fog.

All exceptions inherit from FogError.

Hierarchy:
    FogError (base)
    ├── TransientError (retryable marker base)
    │   └── MachineConnectionError     ← serial socket never accepted a dial
    ├── PermanentError (non-retryable marker base)
    │   ├── MachineDependencyError     ← missing qemu binary / boot image
    │   ├── MachinePathError           ← runtime dir / socket path unavailable
    │   └── MachineLaunchError         ← OS refused to spawn the process
    └── UsageError (caller-bug marker base)
        ├── DuplicateStreamError       ← stream name already registered
        └── MachineAlreadyStartedError ← start() called twice
"""

from __future__ import annotations

from typing import Any


class FogError(Exception):
    """Base exception for all fog errors with structured context.

    Attributes:
        message: Human-readable error message
        context: Dictionary of structured error context for logging/debugging
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


# =============================================================================
# Transient vs Permanent Error Base Classes
# =============================================================================


class TransientError(FogError):
    """Base for errors that may succeed if the caller retries later."""


class PermanentError(FogError):
    """Base for errors that won't succeed on retry without an environment change."""


class UsageError(FogError):
    """Base for programmer-contract violations.

    These signal misuse of the API, not environment conditions, and are
    not meant to be caught and recovered from.
    """


# =============================================================================
# Machine Errors
# =============================================================================


class MachineConnectionError(TransientError):
    """All dial attempts against the machine's serial socket failed.

    Conn does not retry again on its own; a caller may call it again later.
    """


class MachineDependencyError(PermanentError):
    """Required binary or boot image is missing."""


class MachinePathError(PermanentError):
    """Runtime socket path could not be derived or created."""


class MachineLaunchError(PermanentError):
    """The OS failed to start the QEMU process."""


class MachineAlreadyStartedError(UsageError):
    """Machine.start() was called on a machine that was already started."""


# =============================================================================
# Log Multiplexer Errors
# =============================================================================


class DuplicateStreamError(UsageError):
    """A log stream with this name is already registered on the mux."""
