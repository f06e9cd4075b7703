"""SSH config file parser.

Reads ~/.ssh/config followed by /etc/ssh/ssh_config and resolves the
options that apply to one host, using OpenSSH semantics: every matching
Host block contributes and the first value obtained for each option wins.
"""

import getpass
import glob
import logging
import os
import re
from fnmatch import fnmatchcase
from pathlib import Path

from sshrun.models import SSHHost

logger = logging.getLogger(__name__)

SYSTEM_CONFIG_PATH = Path("/etc/ssh/ssh_config")
MAX_INCLUDE_DEPTH = 16

_HOST_RE = re.compile(r"^Host\s+(.+)$", re.IGNORECASE)
_MATCH_RE = re.compile(r"^Match\s+", re.IGNORECASE)
_OPTION_RE = re.compile(r"^(\w+)(?:\s*=\s*|\s+)(.+)$")


def _host_matches(patterns: list[str], name: str) -> bool:
    """Check a Host line's patterns against a host name.

    A negated pattern (!pattern) that matches excludes the host outright.
    """
    matched = False
    for pattern in patterns:
        if pattern.startswith("!"):
            if fnmatchcase(name, pattern[1:]):
                return False
        elif fnmatchcase(name, pattern):
            matched = True
    return matched


class SSHConfigParser:
    """Parser for SSH config files."""

    def __init__(
        self,
        config_path: Path | str | None = None,
        system_config_path: Path | str | None = None,
    ):
        """Initialize SSH config parser.

        Args:
            config_path: Path to user SSH config file (default: ~/.ssh/config)
            system_config_path: Path to system-wide SSH config file
                (default: /etc/ssh/ssh_config)
        """
        if config_path is None:
            config_path = Path.home() / ".ssh" / "config"
        if system_config_path is None:
            system_config_path = SYSTEM_CONFIG_PATH

        self.config_path = Path(config_path)
        self.system_config_path = Path(system_config_path)

    def _read_lines(self, path: Path) -> list[str]:
        if not path.exists():
            logger.debug("SSH config not found: %s", path)
            return []

        try:
            content = path.read_text()
            logger.debug("Reading SSH config from %s", path)
        except (OSError, PermissionError) as e:
            logger.warning("Cannot read SSH config %s: %s", path, e)
            return []
        return content.splitlines()

    def _expand_include(self, value: str, base_dir: Path) -> list[Path]:
        """Expand an Include argument into the files it names."""
        paths: list[Path] = []
        for pattern in value.split():
            pattern = os.path.expanduser(pattern.strip('"'))
            if not os.path.isabs(pattern):
                pattern = str(base_dir / pattern)
            matches = sorted(glob.glob(pattern))
            if not matches:
                logger.debug("Include %s matched no files", pattern)
            paths.extend(Path(match) for match in matches)
        return paths

    def _apply_file(
        self,
        path: Path,
        name: str,
        options: dict[str, str],
        base_dir: Path,
        depth: int = 0,
    ) -> None:
        """Merge one config file's matching options into options."""
        # Options before the first Host line apply to every host
        active = True

        for line in self._read_lines(path):
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            host_match = _HOST_RE.match(line)
            if host_match:
                active = _host_matches(host_match.group(1).split(), name)
                continue

            if _MATCH_RE.match(line):
                logger.debug("Skipping unsupported Match block: %s", line)
                active = False
                continue

            option_match = _OPTION_RE.match(line)
            if not option_match or not active:
                continue

            key = option_match.group(1).lower()
            value = option_match.group(2).strip()
            if key == "include":
                if depth >= MAX_INCLUDE_DEPTH:
                    logger.warning("Include nested too deeply in %s, skipping", path)
                    continue
                for included in self._expand_include(value, base_dir):
                    self._apply_file(included, name, options, base_dir, depth + 1)
                continue

            value = value.strip('"')
            # Expand tilde in identity file paths
            if key == "identityfile":
                value = os.path.expanduser(value)
            options.setdefault(key, value)

    def for_host(self, name: str) -> dict[str, str]:
        """Collect the options that apply to a host.

        The user config is read before the system config, so user
        settings take precedence. Include directives are followed;
        relative paths resolve against ~/.ssh for the user config and
        /etc/ssh for the system config.

        Args:
            name: Host name or alias as given by the user

        Returns:
            Lower-cased option names mapped to their first value
        """
        options: dict[str, str] = {}
        self._apply_file(self.config_path, name, options, Path.home() / ".ssh")
        self._apply_file(
            self.system_config_path, name, options, SYSTEM_CONFIG_PATH.parent
        )
        return options

    def resolve(self, name: str) -> SSHHost:
        """Resolve a host name to connection parameters.

        Hosts without a config entry connect to themselves on port 22
        as the local user.

        Args:
            name: Host name or alias

        Returns:
            SSHHost built from the matching config blocks
        """
        options = self.for_host(name)

        try:
            port = int(options.get("port", "22"))
        except ValueError:
            logger.warning(
                "Invalid port %r for %s in %s, using 22",
                options.get("port"),
                name,
                self.config_path,
            )
            port = 22

        host = SSHHost(
            name=name,
            hostname=options.get("hostname", name),
            user=options.get("user") or getpass.getuser(),
            port=port,
            identity_file=options.get("identityfile"),
        )
        logger.debug("Resolved %s to %s", name, host.destination)
        return host
