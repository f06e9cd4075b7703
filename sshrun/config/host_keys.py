"""SSH host key verification.

Answers HostVerify challenges from a known_hosts file. Without one, every
host key is trusted on first use.
"""

import logging
import os
from pathlib import Path

import asyncssh

from sshrun.models import HostKeyChallenge

logger = logging.getLogger(__name__)


class HostKeyVerifier:
    """SSH host key verification policy."""

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file, or None/'none'
                to trust any host key
            strict_checking: Fail if the given file does not exist

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path.

        Returns:
            Path to known_hosts file or None to trust on first use

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        if not value or value.lower() == "none":
            logger.warning(
                "SSH host key verification DISABLED - any host key is trusted. "
                "Set SSHRUN_KNOWN_HOSTS to a known_hosts file path."
            )
            return None

        path = Path(os.path.expanduser(value))
        if not path.exists():
            if self.strict_checking:
                raise FileNotFoundError(
                    f"SSH host key verification required but specified "
                    f"known_hosts file not found: {path}\n\n"
                    f"To fix this:\n"
                    f"1. Add host keys: ssh-keyscan <hostname> >> {path}\n"
                    f"2. Or disable verification (NOT RECOMMENDED): "
                    f"SSHRUN_KNOWN_HOSTS=none"
                )
            logger.warning(
                "known_hosts not found at %s, verification disabled. "
                "This is insecure!",
                path,
            )
            return None
        return str(path)

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self._known_hosts is not None

    def verify(self, challenge: HostKeyChallenge) -> bool:
        """Decide whether to trust a presented host key.

        Args:
            challenge: Host identity from the HostVerify event

        Returns:
            True if verification is disabled or the key is listed
        """
        if not self.is_enabled():
            return True

        try:
            known_hosts = asyncssh.read_known_hosts(self._known_hosts)
        except (OSError, ValueError) as e:
            logger.error("Cannot read known_hosts %s: %s", self._known_hosts, e)
            return False

        if challenge.key is None:
            logger.error("No host key presented for %s:%d", challenge.host, challenge.port)
            return False

        trusted_keys = known_hosts.match(challenge.host, "", challenge.port)[0]
        presented = challenge.key.public_data
        if any(key.public_data == presented for key in trusted_keys):
            return True

        logger.error(
            "Host key for %s:%d (%s) not found in %s",
            challenge.host,
            challenge.port,
            challenge.fingerprint,
            self._known_hosts,
        )
        return False
