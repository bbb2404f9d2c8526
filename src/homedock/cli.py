"""
CLI argument parsing.
"""

import argparse
from pathlib import Path
from typing import Optional

from . import __version__
from .config import DEFAULT_CHANNEL, DEFAULT_VERSION


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="homedock",
        description="Install a rootless Docker engine under your home directory.",
    )
    parser.add_argument("-V", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--bin-dir",
        type=Path,
        metavar="PATH",
        default=None,
        help="Directory for the Docker binaries (default: $HOME/bin)",
    )

    # Release selection
    parser.add_argument(
        "--channel",
        choices=["stable", "test", "nightly"],
        default=DEFAULT_CHANNEL,
        help=f"download.docker.com static channel (default: {DEFAULT_CHANNEL})",
    )
    parser.add_argument(
        "--version",
        type=str,
        metavar="VERSION",
        default=DEFAULT_VERSION,
        help=f"Docker release to install (default: {DEFAULT_VERSION})",
    )
    parser.add_argument(
        "--engine-url",
        type=str,
        metavar="URL",
        help="Override the engine archive URL (docker-<version>.tgz)",
    )
    parser.add_argument(
        "--extras-url",
        type=str,
        metavar="URL",
        help="Override the rootless extras archive URL (docker-rootless-extras-<version>.tgz)",
    )
    parser.add_argument(
        "--engine-sha256",
        type=str,
        metavar="HEX",
        help="Expected SHA-256 of the engine archive; mismatch aborts",
    )
    parser.add_argument(
        "--extras-sha256",
        type=str,
        metavar="HEX",
        help="Expected SHA-256 of the extras archive; mismatch aborts",
    )

    # Daemon and service
    parser.add_argument(
        "--skip-iptables",
        action="store_true",
        help="Start dockerd with --iptables=false even if iptables is available",
    )
    parser.add_argument(
        "--overwrite-unit",
        action="store_true",
        help="Rewrite ~/.config/systemd/user/docker.service even if it already exists",
    )
    parser.add_argument(
        "--skip-start",
        action="store_true",
        help="Install the systemd unit but do not start the service",
    )

    return parser.parse_args(argv)
