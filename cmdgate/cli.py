"""Command-line interface for cmdgate."""

import argparse
import sys
from typing import List, Optional

from colorama import init as colorama_init

from .core.application import create_application
from .utils.logging import logger
from . import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="cmdgate",
        description="cmdgate: run a shell command behind permission checks, with a timeout and output limit.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cmdgate --yes "ls -la"                          # Approve everything
  cmdgate --allow "git status*" "git status"      # Approve matching invocations only
  cmdgate --allow "rm *" --allow "/tmp*" "rm -rf /tmp/build"
  cmdgate --yes --timeout 5000 "sleep 10"         # Killed after 5 seconds
  cmdgate --render captured.log                   # Render a terminal transcript

Permissions:
  Every program a command runs needs a 'bash' permission, and every path it
  creates, moves or deletes outside the project root needs an
  'external_directory' permission. Without --yes or a matching --allow glob
  the request is rejected and nothing runs.
        """
    )

    parser.add_argument(
        'command',
        nargs='*',
        help="Shell command to run (joined with spaces)"
    )

    parser.add_argument(
        '--workdir',
        type=str,
        help="Directory to run the command in (defaults to the project root)"
    )

    parser.add_argument(
        '--project-root',
        type=str,
        help="Directory the command may freely modify (defaults to the current directory)"
    )

    parser.add_argument(
        '--timeout',
        type=int,
        help="Timeout in milliseconds"
    )

    parser.add_argument(
        '-y', '--yes',
        action='store_true',
        help="Approve every permission request"
    )

    parser.add_argument(
        '--allow',
        action='append',
        default=[],
        metavar='GLOB',
        help="Approve permission patterns matching GLOB (repeatable)"
    )

    parser.add_argument(
        '--raw',
        action='store_true',
        help="Print raw output instead of the rendered terminal text"
    )

    parser.add_argument(
        '--render',
        type=str,
        metavar='FILE',
        help="Render a captured terminal transcript and exit"
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'cmdgate {__version__}'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help="Enable debug logging output"
    )

    parser.add_argument(
        '--config-dir',
        type=str,
        help="Custom configuration directory path"
    )

    parser.add_argument(
        '--config-summary',
        action='store_true',
        help="Show configuration summary and exit"
    )

    return parser


def main(args: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    # Initialize colorama for cross-platform colored output
    colorama_init(autoreset=True)

    parser = create_parser()
    parsed_args = parser.parse_args(args)

    # Only the config summary is meant for stdout; otherwise it carries output
    logger.set_system_to_stderr(not parsed_args.config_summary)

    try:
        app = create_application(
            config_dir=parsed_args.config_dir,
            debug=parsed_args.debug,
            project_root=parsed_args.project_root,
            allow_all=parsed_args.yes,
            allowed_globs=parsed_args.allow,
        )
    except Exception as e:
        logger.error(f"Failed to initialize cmdgate: {e}")
        sys.exit(1)

    if parsed_args.config_summary:
        app.print_config_summary()
        return

    if parsed_args.render:
        sys.exit(0 if app.render_file(parsed_args.render) else 1)

    if not parsed_args.command:
        parser.print_usage(sys.stderr)
        logger.error("No command given.")
        sys.exit(2)

    command = " ".join(parsed_args.command)
    exit_code = app.run_command(
        command,
        workdir=parsed_args.workdir,
        timeout_ms=parsed_args.timeout,
        raw=parsed_args.raw,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
