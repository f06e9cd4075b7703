"""Application configuration.

Delegates to specialized components:
- SSHConfigParser: Reads ~/.ssh/config
- HostKeyVerifier: Manages known_hosts
- Settings: Environment variables
"""

import logging
from dataclasses import dataclass

from sshrun.config.host_keys import HostKeyVerifier
from sshrun.config.parser import SSHConfigParser
from sshrun.config.settings import Settings
from sshrun.models import SSHHost

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration.

    Aggregates settings from SSH config, known_hosts, and environment.
    """

    settings: Settings
    parser: SSHConfigParser
    host_keys: HostKeyVerifier

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized
        """
        return cls.from_settings(Settings.from_env())

    @classmethod
    def from_settings(cls, settings: Settings) -> "Config":
        """Create config from already-built settings.

        Raises:
            FileNotFoundError: If a strict known_hosts file is missing
        """
        parser = SSHConfigParser(
            config_path=settings.ssh_config_path,
            system_config_path=settings.system_ssh_config_path,
        )
        host_keys = HostKeyVerifier(
            known_hosts_path=settings.known_hosts,
            strict_checking=settings.strict_host_key_checking,
        )
        return cls(settings=settings, parser=parser, host_keys=host_keys)

    def resolve_host(self, name: str) -> SSHHost:
        """Resolve a host from SSH config and apply overrides.

        Args:
            name: Host name or alias to connect to

        Returns:
            SSHHost with port/user overrides applied
        """
        host = self.parser.resolve(name)
        if self.settings.port is not None:
            host.port = self.settings.port
        if self.settings.user:
            host.user = self.settings.user
        return host

    # Delegate to settings for convenience
    @property
    def answers(self) -> list[str]:
        """Credential answers for authentication prompts."""
        return self.settings.answers

    @property
    def backend(self) -> str:
        """Transport backend name."""
        return self.settings.backend

    @property
    def read_chunk_size(self) -> int:
        """Drainer scratch buffer size in bytes."""
        return self.settings.read_chunk_size

    @property
    def reader_pause(self) -> float:
        """Drainer pause in seconds."""
        return self.settings.reader_pause

    @property
    def auth_timeout(self) -> int | None:
        """Authentication timeout in seconds, or None."""
        return self.settings.auth_timeout

    @property
    def command_timeout(self) -> int | None:
        """Command timeout in seconds, or None."""
        return self.settings.command_timeout
