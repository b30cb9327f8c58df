#!/usr/bin/env python3
"""
idea-download - manage IntelliJ IDEA installations from the command line.

Tells you whether updates are available, installs them below the install root
and optionally binds a label (e.g. "current") to an installation, which makes
it available as a desktop entry.

Usage:
    idea.py --stable --make-current install
    idea.py --version 15.0.6 --label 15 install
    idea.py clean
    idea.py --stable status
"""

import argparse
import json
import os
import re
import sys

# Add current directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from idea_download.config import ACTIONS, Options, load_config
from idea_download.editions import Edition
from idea_download.errors import ExitCode, IdeaDownloadError, OptionError, StateError
from idea_download.logging_config import get_logger, setup_logging
from idea_download.patterns import VersionPattern
from idea_download.reconciler import Reconciler


EPILOG = """\
commands:
  install   Install the most recent version matching the version pattern.
            Without a pattern the most recent build is installed, which may
            not be a stable release yet.
  remove    Remove all installed versions matching the pattern (all versions
            of the edition if no pattern is given) and their desktop entries.
  repair    remove followed by install.
  clean     Remove all matching installations no label refers to.
  status    Show installed versions, whether a label refers to them, and the
            most recent versions available in the repository.

install, remove, repair and clean must run as root unless --dry-run is given.

examples:
  %(prog)s --stable --make-current install
        Install the most recent stable version and mark it as current.
  %(prog)s --version 15.0.6 --label 15 install
        Install version 15.0.6 and bind the label '15' to it.
  %(prog)s clean
        Remove installations left behind by earlier updates.
  %(prog)s -q -s install
        Install and print only the installation directory.
  %(prog)s --json status
        Print the status report as JSON.
"""


class _ArgumentParser(argparse.ArgumentParser):
    """Raise OptionError instead of exiting with argparse's status 2."""

    def error(self, message):
        raise OptionError(
            f"Failed to parse options: {message}",
            remediation="Use --help to get usage information.",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        description="Manage IntelliJ IDEA installations from the command line.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    versions = parser.add_mutually_exclusive_group()
    versions.add_argument(
        "-v", "--version",
        dest="version",
        metavar="PREFIX",
        help="Version to operate on, taken literally (e.g. 2016.3 or 163.10154)",
    )
    versions.add_argument(
        "-s", "--stable",
        action="store_true",
        help="Only accept stable releases (2 or 4 digit release line)",
    )
    versions.add_argument(
        "-p", "--pattern",
        metavar="REGEX",
        help="Version given as regular expression",
    )

    parser.add_argument(
        "-c", "--community",
        dest="edition",
        action="store_const",
        const="community",
        default="community",
        help="Community edition (default)",
    )
    parser.add_argument(
        "-u", "--ultimate",
        dest="edition",
        action="store_const",
        const="ultimate",
        help="Ultimate edition",
    )
    parser.add_argument(
        "-m", "--make-current",
        dest="label",
        action="store_const",
        const="current",
        help="Same as --label current",
    )
    parser.add_argument(
        "-l", "--label",
        dest="label",
        metavar="NAME",
        help="Bind NAME to the installation and create a desktop entry for it, "
             "replacing the previous entry with the same label",
    )
    parser.add_argument(
        "-n", "--dry-run", "--dryrun",
        dest="dry_run",
        action="store_true",
        help="Only report what would be done",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="No output except errors; install prints the installation directory",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Configuration file (YAML)",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        help="Additionally log everything to FILE",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the operation result as JSON (implies --quiet console logging)",
    )
    parser.add_argument(
        "commands",
        nargs="*",
        metavar="command",
        help=f"One of: {', '.join(ACTIONS)}",
    )
    return parser


def parse_options(args: argparse.Namespace) -> Options:
    """
    Turn parsed arguments into runtime options.

    Raises:
        StateError: If the command is unknown or more than one is given
        OptionError: If an option value is invalid
    """
    action = None
    for command in args.commands:
        if command not in ACTIONS:
            raise StateError(
                f"Unknown command '{command}'. Please choose one of {', '.join(ACTIONS)}."
            )
        if action is not None:
            raise StateError(
                f"Already chosen action: '{action}'. Cannot perform additional action: '{command}'."
            )
        action = command

    if args.version is not None:
        pattern = VersionPattern.literal(args.version)
    elif args.stable:
        pattern = VersionPattern.stable()
    elif args.pattern is not None:
        try:
            pattern = VersionPattern.raw(args.pattern)
        except re.error as e:
            raise OptionError(f"Invalid version pattern {args.pattern!r}: {e}") from e
    else:
        pattern = VersionPattern.unset()

    try:
        return Options(
            action=action,
            pattern=pattern,
            edition=Edition.from_name(args.edition),
            label=args.label,
            dry_run=args.dry_run,
            quiet=args.quiet,
            verbose=args.debug,
        )
    except ValueError as e:
        raise OptionError(str(e)) from e


def report_error(error: IdeaDownloadError) -> None:
    logger = get_logger()
    logger.error(error.message)
    if error.remediation:
        logger.error(error.remediation)


def run(parser: argparse.ArgumentParser, argv: list[str] | None) -> int:
    try:
        args = parser.parse_args(argv)
        options = parse_options(args)
    except IdeaDownloadError as e:
        setup_logging()
        report_error(e)
        return int(e.exit_code)

    setup_logging(
        verbose=options.verbose,
        quiet=options.quiet or args.json,
        log_file=args.log_file,
    )

    if options.action is None:
        parser.print_help()
        return int(ExitCode.OK)

    try:
        config = load_config(args.config, verbose=options.verbose)
        result = Reconciler(config, options).run()
    except IdeaDownloadError as e:
        report_error(e)
        return int(e.exit_code)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    elif options.quiet and result.quiet_output:
        print(result.quiet_output)
    return int(ExitCode.OK)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    try:
        return run(parser, argv)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
