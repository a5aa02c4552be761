"""
Parser for the offline certificate parse command.

This module defines the command-line interface for the 'parse' command,
which writes the same report as 'export' from local certificate files.
"""

import argparse
from typing import Callable, Tuple

# Command name identifier
NAME = "parse"


def entry(options: argparse.Namespace) -> None:
    """
    Entry point for the parse command.

    Args:
        options: Parsed command-line arguments
    """
    from certexport.commands import parse

    parse.entry(options)


def add_subparser(subparsers: argparse._SubParsersAction) -> Tuple[str, Callable]:  # type: ignore
    """
    Add the offline parse command subparser to the main parser.

    Args:
        subparsers: Parent parser to attach the subparser to

    Returns:
        Tuple of (command_name, entry_function) for command registration
    """
    subparser = subparsers.add_parser(
        NAME,
        help="Offline report from certificate files",
        description=(
            "Decode DER or PEM certificate files and write the subject, issuer, "
            "validity and certificate template of each certificate to a CSV file."
        ),
    )

    subparser.add_argument(
        "files",
        action="store",
        nargs="+",
        metavar="file",
        help="Certificate files (DER, or PEM with one or more certificates)",
    )

    # Parse options group
    parse_group = subparser.add_argument_group("parse options")
    parse_group.add_argument(
        "-user",
        action="store",
        metavar="name",
        default="offline",
        help="User name used for the report file name (default: offline)",
    )
    parse_group.add_argument(
        "-template-name",
        action="append",
        metavar="OID=NAME",
        help="Name of a certificate template OID. Can be repeated",
    )

    # Output options group
    output_group = subparser.add_argument_group("output options")
    output_group.add_argument(
        "-output-dir",
        action="store",
        metavar="directory",
        help="Directory to write the report to (default: <temp>/certexport)",
    )

    return NAME, entry
