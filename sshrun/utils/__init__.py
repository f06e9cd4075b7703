"""Utilities for sshrun."""

from sshrun.utils.console import ColorfulFormatter
from sshrun.utils.shell import join_command

__all__ = [
    "ColorfulFormatter",
    "join_command",
]
