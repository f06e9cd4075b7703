"""Entry point: run one command on a remote host over SSH."""

import argparse
import asyncio
import logging
import sys

import asyncssh

from sshrun.config import Config, Settings
from sshrun.services import AuthError, ExecError, run_remote_command
from sshrun.utils import ColorfulFormatter, join_command

logger = logging.getLogger("sshrun")


def configure_logging(settings: Settings) -> None:
    """Configure colorful logging for the sshrun package."""
    use_colors = settings.log_colors and sys.stderr.isatty()

    logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColorfulFormatter(use_colors=use_colors))
        logger.addHandler(handler)
        logger.propagate = False

    ssh_logger = logging.getLogger("asyncssh")
    if settings.verbose:
        ssh_logger.setLevel(logging.DEBUG)
        asyncssh.set_debug_level(2)
        if not ssh_logger.handlers:
            ssh_logger.addHandler(logger.handlers[0])
    else:
        ssh_logger.setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sshrun",
        description="Run a command on a remote host over SSH and print its output.",
    )
    parser.add_argument("host", help="Host name or ~/.ssh/config alias")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run")
    parser.add_argument("-p", "--port", type=int, help="Port (overrides SSH config)")
    parser.add_argument("-l", "--user", help="User name (overrides SSH config)")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose transport logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        0 if the command succeeded, 1 if it ran and failed, 2 on errors
    """
    args = build_parser().parse_args(argv)

    settings = Settings.from_env()
    if args.port is not None:
        settings.port = args.port
    if args.user:
        settings.user = args.user
    if args.verbose:
        settings.verbose = True
    configure_logging(settings)

    try:
        command = join_command(args.command)
        config = Config.from_settings(settings)
    except (ValueError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 2

    try:
        result = asyncio.run(run_remote_command(config, args.host, command))
    except (AuthError, ExecError, TimeoutError) as e:
        logger.error("%s", e)
        return 2

    print(f"Success = {str(result.success).lower()}")
    print(f"Stdout = '{result.stdout_text}'")
    print(f"Stderr = '{result.stderr_text}'")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
