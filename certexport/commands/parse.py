"""
Offline Certificate Parser Module for certexport.

This module runs the export pipeline over certificate files instead of a
directory: every certificate found in the given DER or PEM files is decoded,
its template is read, and one CSV report is written for the given user label.
"""

import argparse
from pathlib import Path
from typing import Dict, List, Optional

from certexport.commands import export
from certexport.lib.certificate import PEM_HEADER, split_pem
from certexport.lib.errors import handle_error
from certexport.lib.ldap import DirectoryUser
from certexport.lib.logger import logging


def parse_template_names(values: Optional[List[str]]) -> Dict[str, str]:
    """
    Parse "-template-name OID=NAME" options into a mapping.

    Args:
        values: Raw option values

    Returns:
        Dictionary of template OID to template name

    Raises:
        ValueError: If a value is not of the form OID=NAME
    """
    template_names = {}
    for value in values or []:
        oid, sep, name = value.partition("=")
        if not sep or not oid or not name:
            raise ValueError(f"Invalid template name {value!r}, expected OID=NAME")
        template_names[oid.strip()] = name.strip()
    return template_names


def read_certificates(path: str) -> List[bytes]:
    """
    Read the certificates stored in a file.

    A PEM file may hold several certificates; any other file is taken as a
    single DER certificate.

    Args:
        path: Certificate file

    Returns:
        Raw certificates, in file order
    """
    data = Path(path).read_bytes()

    if data.lstrip().startswith(PEM_HEADER):
        blocks = split_pem(data)
        # Unbalanced PEM is left to the decoder to report
        return blocks or [data]

    return [data]


class Parse(export.Export):
    """
    Offline variant of the export command.

    The certificates of a single user label are read from files, and
    template names come from the command line instead of the directory.
    """

    def __init__(
        self,
        files: Optional[List[str]] = None,
        user: str = "offline",
        template_name: Optional[List[str]] = None,
        **kwargs,  # type: ignore
    ):
        super().__init__(users=[user], **kwargs)

        self.files = files or []
        self.user = user
        self._template_names = parse_template_names(template_name)

    @property
    def connection(self):  # type: ignore
        return None

    def get_user(self, identifier: str) -> Optional[DirectoryUser]:
        """
        Collect the certificates of every input file.

        Files that cannot be read are reported and skipped.
        """
        certificates: List[bytes] = []

        for path in self.files:
            try:
                found = read_certificates(path)
            except OSError as e:
                logging.error(f"Failed to read certificate file {path!r}: {e}")
                handle_error()
                continue

            logging.debug(f"Read {len(found)} certificate(s) from {path!r}")
            certificates.extend(found)

        return DirectoryUser(
            identifier=identifier,
            cn=identifier,
            sam_account_name=identifier,
            user_principal_name="",
            distinguished_name="",
            certificates=tuple(certificates),
        )


def entry(options: argparse.Namespace) -> None:
    """
    Entry point for the 'parse' command.

    Args:
        options: Command-line arguments
    """
    parse = Parse(**vars(options))
    parse.export()
