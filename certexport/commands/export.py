"""
Certificate Export Module for certexport.

This module exports the certificates published on Active Directory user
objects:
- Users are looked up by canonical name, login name or principal name
- Every certificate in the userCertificate attribute is decoded
- The issuing certificate template is read from each certificate
- One CSV report is written per user

A corrupt certificate or an unknown user is reported and skipped; the
remaining users are still exported.
"""

import argparse
from datetime import datetime
from typing import Dict, List, Optional

from certexport.lib.errors import handle_error
from certexport.lib.files import prepare_output_directory
from certexport.lib.ldap import DirectoryUser, LDAPConnection
from certexport.lib.logger import logging
from certexport.lib.record import UserCertificateBatch, process
from certexport.lib.report import write_report
from certexport.lib.target import Target


class Export:
    def __init__(
        self,
        target: Optional[Target] = None,
        users: Optional[List[str]] = None,
        output_dir: Optional[str] = None,
        connection: Optional[LDAPConnection] = None,
        **kwargs,  # type: ignore
    ):
        self.target = target
        self.users = users or []
        self.output_dir = output_dir
        self.kwargs = kwargs

        self._connection = connection
        self._template_names: Optional[Dict[str, str]] = None

        # Per-run summary
        self.exported: List[str] = []
        self.failed: List[str] = []

    # =========================================================================
    # Connection Handling
    # =========================================================================

    @property
    def connection(self) -> LDAPConnection:
        """
        Get or create an LDAP connection.

        Returns:
            Active LDAP connection to the target
        """
        if self._connection is not None:
            return self._connection

        if self.target is None:
            raise Exception("No target specified")

        self._connection = LDAPConnection(self.target)
        self._connection.connect()

        return self._connection

    @property
    def template_names(self) -> Dict[str, str]:
        """
        Get the template OID to name mapping of the forest.

        A failure to read it only means templates are reported by OID.
        """
        if self._template_names is None:
            try:
                self._template_names = self.connection.get_template_names()
            except Exception as e:
                logging.warning(f"Failed to read certificate template names: {e}")
                handle_error(True)
                self._template_names = {}

        return self._template_names

    # =========================================================================
    # Data Sources
    # =========================================================================

    def get_user(self, identifier: str) -> Optional[DirectoryUser]:
        """
        Resolve a user identifier and read its certificates.

        Args:
            identifier: Canonical name, sAMAccountName or userPrincipalName

        Returns:
            The user, or None if it could not be resolved
        """
        return self.connection.get_certificate_user(identifier)

    # =========================================================================
    # Main Export Method
    # =========================================================================

    def export(self) -> bool:
        """
        Export the certificates of every requested user.

        Returns:
            True if every user was exported without error
        """
        if not self.users:
            logging.error("No users specified")
            return False

        # The output directory must be usable before any user is processed
        output_dir = prepare_output_directory(self.output_dir)
        logging.info(f"Writing reports to {output_dir!r}")

        # Early establish connection
        _connection = self.connection

        for identifier in self.users:
            try:
                self.export_user(identifier, output_dir)
            except Exception as e:
                logging.error(f"Failed to export certificates of {identifier!r}: {e}")
                handle_error()
                self.failed.append(identifier)

        logging.info(
            f"Exported {len(self.exported)} of {len(self.users)} "
            f"user{'s' if len(self.users) != 1 else ''}"
        )

        return len(self.failed) == 0

    def export_user(self, identifier: str, output_dir: str) -> Optional[str]:
        """
        Export the certificates of one user.

        Args:
            identifier: User identifier as given on the command line
            output_dir: Directory the report is written to

        Returns:
            Path of the written report, or None if nothing was written
        """
        logging.info(f"Retrieving certificates of {identifier!r}")

        user = self.get_user(identifier)
        if user is None:
            self.failed.append(identifier)
            return None

        logging.debug(f"Found user {user.distinguished_name!r}")

        batch = process(user.account_name, user.certificates, self.template_names)
        self.log_batch(batch)

        if batch.is_empty:
            logging.warning(f"User {user.account_name!r} has no issued certificates")
            self.exported.append(identifier)
            return None

        output_path = write_report(
            batch, output_dir, account_name=user.account_name, timestamp=datetime.now()
        )
        logging.info(f"Wrote certificates of {user.account_name!r} to {output_path!r}")

        self.exported.append(identifier)
        return output_path

    def log_batch(self, batch: UserCertificateBatch) -> None:
        logging.info(
            f"Found {batch.found} certificate{'s' if batch.found != 1 else ''} "
            f"for {batch.user_id!r}"
        )

        if batch.failures:
            logging.warning(
                f"{len(batch.failures)} certificate"
                f"{'s' if len(batch.failures) != 1 else ''} of {batch.user_id!r} "
                "could not be decoded"
            )

        for record in batch.records:
            logging.debug(
                f"{record.subject!r} issued by {record.issuer!r} "
                f"with template {record.template_name or record.template_oid or '<none>'!r}"
            )


def entry(options: argparse.Namespace) -> None:
    """
    Entry point for the 'export' command.

    Args:
        options: Command-line arguments
    """
    target = Target.from_options(options)
    options.__delattr__("target")

    export = Export(target=target, **vars(options))
    export.export()
