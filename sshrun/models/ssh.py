"""SSH-related data models."""

from dataclasses import dataclass


@dataclass
class SSHHost:
    """Resolved SSH connection parameters."""

    name: str
    hostname: str
    user: str
    port: int = 22
    identity_file: str | None = None

    @property
    def destination(self) -> str:
        """Return user@hostname:port for log messages."""
        return f"{self.user}@{self.hostname}:{self.port}"
