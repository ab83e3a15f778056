"""
Command-line entry point for relctl.

Usage:
    relctl upgrade                      # upgrade to the latest release
    relctl upgrade --target-version v0.2.21
    relctl upgrade rollback             # restore the binary the last upgrade replaced
"""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING, TextIO

from relctl import __version__
from relctl.config import cli_overrides, load_config
from relctl.errors import AlreadyUpToDateError, RelctlError
from relctl.logging import get_logger, setup_logging
from relctl.upgrade.coordinator import UpgradeCoordinator
from relctl.upgrade.github import GitHubReleaseClient
from relctl.upgrade.release import parse_selector
from relctl.upgrade.version import BuildInfo

if TYPE_CHECKING:
    from relctl.upgrade.release import ReleaseClient

logger = get_logger(__name__)

ROLLBACK_SUBCOMMAND = "rollback"

UPGRADE_SHORT = "Upgrade or roll back the relctl binary"
UPGRADE_LONG = (
    "Upgrade relctl to the latest release, or to the version given with "
    "--target-version. The replaced binary is kept so that "
    "'relctl upgrade rollback' can restore it. Not available on Windows."
)


def build_parser() -> argparse.ArgumentParser:
    """Build the relctl argument parser."""
    parser = argparse.ArgumentParser(
        prog="relctl",
        description="relctl manages remote resource configuration",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s v{__version__}",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        help="Override log level",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    upgrade = subparsers.add_parser(
        "upgrade",
        help=UPGRADE_SHORT,
        description=UPGRADE_LONG,
    )
    upgrade.add_argument(
        "mode",
        nargs="?",
        choices=[ROLLBACK_SUBCOMMAND],
        help="Roll back to the binary replaced by the last upgrade",
    )
    upgrade.add_argument(
        "--target-version",
        type=str,
        default=None,
        help="Release to install, e.g. v0.2.21 (default: latest)",
    )
    upgrade.add_argument(
        "--executable",
        type=str,
        default=None,
        help="Path of the executable to replace (default: the running one)",
    )

    return parser


def _report_error(error: RelctlError, stream: TextIO) -> None:
    print(f"error: {error.error_code}: {error.message}", file=stream)
    if error.hint:
        print(f"hint: {error.hint}", file=stream)


def main(
    argv: list[str] | None = None,
    *,
    build_info: BuildInfo | None = None,
    client: ReleaseClient | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """
    Run relctl.

    Args:
        argv: Command-line arguments. Defaults to sys.argv[1:].
        build_info: Identity of the running build. Defaults to this package.
        client: Release client. Defaults to GitHub per configuration.
        stdout: Stream for results. Defaults to sys.stdout.
        stderr: Stream for errors. Defaults to sys.stderr.

    Returns:
        Process exit status.
    """
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    args = build_parser().parse_args(argv)
    owned_client: GitHubReleaseClient | None = None

    try:
        config = load_config(config_path=args.config, overrides=cli_overrides(args))
        setup_logging(config.logging, stream=err)

        if client is None:
            owned_client = client = GitHubReleaseClient.from_config(config.upgrade)
        coordinator = UpgradeCoordinator.from_config(
            config.upgrade,
            build_info or BuildInfo(version=f"v{__version__}"),
            client=client,
        )
        if args.mode == ROLLBACK_SUBCOMMAND:
            result = coordinator.run(rollback=True)
        else:
            result = coordinator.run(target=parse_selector(args.target_version))
    except AlreadyUpToDateError as e:
        print(e.message, file=out)
        return 0
    except RelctlError as e:
        logger.debug(
            "Command failed",
            extra={"error_code": e.error_code, "details": e.details},
        )
        _report_error(e, err)
        return 1
    finally:
        if owned_client is not None:
            owned_client.close()

    print(result.message, file=out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
