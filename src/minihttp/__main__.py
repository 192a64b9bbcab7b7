"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m minihttp [options]
    minihttp [options]              (installed console script)

Command-line flags override environment variables (see config.py), which
override the defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  minihttp                          # Serve the current directory on :8080
  minihttp --port 3000              # Custom port
  minihttp --root ./public          # Serve another directory
  minihttp --host 127.0.0.1         # Localhost only
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)"
    )

    parser.add_argument(
        "--backlog",
        type=int,
        default=None,
        help="Listen backlog (default: 10)"
    )

    parser.add_argument(
        "--buffer-size",
        type=int,
        default=None,
        help="Request read / file chunk size in bytes (default: 8192)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-connection socket timeout in seconds (default: none)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILE SERVING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-d",
        default=None,
        help="Document root (default: current directory)"
    )

    parser.add_argument(
        "--no-follow-symlinks",
        action="store_true",
        help="Refuse (403) files whose real path is outside the document root"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """
    Translate parsed arguments into a ServerConfig.

    Starts from the environment and overrides whatever was given on the
    command line.
    """
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.backlog is not None:
        config.backlog = args.backlog
    if args.buffer_size is not None:
        config.buffer_size = args.buffer_size
    if args.timeout is not None:
        config.timeout = args.timeout
    if args.root is not None:
        config.document_root = args.root
    if args.no_follow_symlinks:
        config.follow_symlinks = False
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)
    config = config_from_args(args)

    try:
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
