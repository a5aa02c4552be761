"""
Parser for the user certificate export command.

This module defines the command-line interface for the 'export' command,
which reads the certificates published on Active Directory users and writes
one report per user.
"""

import argparse
from typing import Callable, Tuple

from . import target

# Command name identifier
NAME = "export"


def entry(options: argparse.Namespace) -> None:
    """
    Entry point for the export command.

    This function imports and calls the actual implementation of the export
    command from the certexport.commands module.

    Args:
        options: Parsed command-line arguments
    """
    from certexport.commands import export

    export.entry(options)


def add_subparser(subparsers: argparse._SubParsersAction) -> Tuple[str, Callable]:  # type: ignore
    """
    Add the export command subparser to the main parser.

    Args:
        subparsers: Parent parser to attach the subparser to

    Returns:
        Tuple of (command_name, entry_function) for command registration
    """
    subparser = subparsers.add_parser(
        NAME,
        help="Export the certificates of directory users",
        description=(
            "Look up Active Directory users by name, login name or principal name "
            "and write the subject, issuer, validity and certificate template of "
            "every certificate published on them to a CSV file per user."
        ),
    )

    # Export options group
    export_group = subparser.add_argument_group("export options")
    export_group.add_argument(
        "-users",
        action="store",
        nargs="+",
        metavar="identifier",
        required=True,
        help="Users to export (cn, sAMAccountName or userPrincipalName)",
    )

    # Output options group
    output_group = subparser.add_argument_group("output options")
    output_group.add_argument(
        "-output-dir",
        action="store",
        metavar="directory",
        help="Directory to write the reports to (default: <temp>/certexport)",
    )

    # Add standard target arguments from shared module
    target.add_argument_group(subparser)

    return NAME, entry
