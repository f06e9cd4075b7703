"""Shell command utilities."""

import shlex


def join_command(argv: list[str]) -> str:
    """Build a remote command line from CLI arguments.

    A single argument is passed through unchanged so callers can hand
    over a full shell expression (pipes, redirects). Several arguments
    are quoted individually and joined.

    Args:
        argv: Command words

    Returns:
        Command line for the remote shell

    Raises:
        ValueError: If argv is empty
    """
    if not argv:
        raise ValueError("No command given")
    if len(argv) == 1:
        return argv[0]
    return shlex.join(argv)
