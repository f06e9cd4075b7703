"""Configuration module for sshrun.

Provides focused classes for different configuration concerns:
- Config: Main configuration class (aggregates all components)
- SSHConfigParser: Resolves hosts from ~/.ssh/config files
- HostKeyVerifier: Answers host key challenges from known_hosts
- Settings: Environment variable configuration
"""

from sshrun.config.host_keys import HostKeyVerifier
from sshrun.config.main import Config
from sshrun.config.parser import SSHConfigParser
from sshrun.config.settings import Settings

__all__ = ["Config", "SSHConfigParser", "HostKeyVerifier", "Settings"]
