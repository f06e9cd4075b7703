"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Connection overrides (beat ~/.ssh/config)
    port: int | None = field(default=None)
    user: str | None = field(default=None)
    ssh_config_path: str | None = field(default=None)
    system_ssh_config_path: str | None = field(default=None)

    # Host keys
    known_hosts: str | None = field(default=None)
    strict_host_key_checking: bool = field(default=True)

    # Authentication
    answers: list[str] = field(default_factory=list)

    # Transport
    backend: str = field(default="asyncssh")
    verbose: bool = field(default=False)

    # Output draining
    read_chunk_size: int = field(default=1024)
    reader_pause_ms: int = field(default=100)

    # Opt-in timeouts in seconds (None waits forever)
    auth_timeout: int | None = field(default=None)
    command_timeout: int | None = field(default=None)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from SSHRUN_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            port=cls._get_optional_int("SSHRUN_PORT"),
            user=os.getenv("SSHRUN_USER") or None,
            ssh_config_path=os.getenv("SSHRUN_SSH_CONFIG") or None,
            system_ssh_config_path=os.getenv("SSHRUN_SYSTEM_SSH_CONFIG") or None,
            known_hosts=os.getenv("SSHRUN_KNOWN_HOSTS") or None,
            strict_host_key_checking=cls._get_bool("SSHRUN_STRICT_HOST_KEY_CHECKING", True),
            answers=cls._get_list("SSHRUN_ANSWERS"),
            backend=cls._get_backend(),
            verbose=cls._get_bool("SSHRUN_VERBOSE", False),
            read_chunk_size=cls._get_int("SSHRUN_READ_CHUNK_SIZE", 1024),
            reader_pause_ms=cls._get_int("SSHRUN_READER_PAUSE_MS", 100),
            auth_timeout=cls._get_optional_int("SSHRUN_AUTH_TIMEOUT"),
            command_timeout=cls._get_optional_int("SSHRUN_COMMAND_TIMEOUT"),
            log_level=os.getenv("SSHRUN_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("SSHRUN_LOG_COLORS", True),
        )

    @property
    def reader_pause(self) -> float:
        """Drainer pause in seconds."""
        return self.reader_pause_ms / 1000

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get positive integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default
        if parsed <= 0:
            logger.warning("%s must be > 0, got %d, using default %d", key, parsed, default)
            return default
        return parsed

    @staticmethod
    def _get_optional_int(key: str) -> int | None:
        """Get optional positive integer; unset or invalid means None."""
        value = os.getenv(key, "").strip()
        if not value:
            return None
        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, ignoring", key, value)
            return None
        if parsed <= 0:
            logger.warning("%s must be > 0, got %d, ignoring", key, parsed)
            return None
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_list(key: str) -> list[str]:
        """Get comma-separated list from environment.

        Entries are kept verbatim apart from the separator, since
        credentials may legitimately contain spaces.
        """
        value = os.getenv(key, "")
        if not value:
            return []
        return value.split(",")

    @staticmethod
    def _get_backend() -> str:
        """Get transport backend from environment with validation.

        Returns:
            Backend name (currently always "asyncssh")
        """
        backend = os.getenv("SSHRUN_BACKEND", "").strip().lower()
        if not backend or backend == "asyncssh":
            return "asyncssh"
        logger.warning("Unknown SSHRUN_BACKEND %r, using asyncssh", backend)
        return "asyncssh"
