"""Runtime configuration from environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fog import constants


class LogSettings(BaseSettings):
    """Log multiplexing settings.

    Read on their own by LogMux, so an invalid machine setting elsewhere in
    the environment does not stop log output.
    """

    model_config = SettingsConfigDict(
        env_prefix="FOG_",
        extra="ignore",
    )

    log_flush_window_ms: int = Field(default=constants.LOG_FLUSH_WINDOW_MS, ge=0)


class Settings(LogSettings):
    """Runtime configuration from environment variables.

    All settings can be overridden via environment variables with FOG_ prefix.
    Example: FOG_CONNECT_ATTEMPTS=5
    """

    # QEMU
    qemu_binary: str = constants.QEMU_BINARY

    # Sockets (None = XDG_RUNTIME_DIR convention, see platform_utils.get_runtime_dir)
    runtime_dir: Path | None = None

    # Serial connection retry
    connect_attempts: int = Field(default=constants.CONNECT_ATTEMPTS, ge=1)
    connect_delay_seconds: float = Field(default=constants.CONNECT_DELAY_SECONDS, ge=0)
