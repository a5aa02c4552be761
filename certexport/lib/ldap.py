"""
LDAP connection and query functionality for certexport.

This module provides classes and methods for:
- Establishing LDAP/LDAPS connections to Active Directory
- Looking up users by name, login name or principal name
- Reading the certificates stored in a user's userCertificate attribute
- Mapping certificate template OIDs to template display names

Main components:
- LDAPEntry: Dictionary-like class for LDAP objects with attribute access methods
- DirectoryUser: A resolved user and its raw certificates
- LDAPConnection: Main class for connecting to and querying LDAP servers
"""

import ssl
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import ldap3
from ldap3.core.results import (
    RESULT_INVALID_CREDENTIALS,
    RESULT_STRONGER_AUTH_REQUIRED,
    RESULT_SUCCESS,
)
from ldap3.utils.conv import escape_filter_chars

from certexport.lib.constants import TEMPLATE_OID_ATTRIBUTES, USER_ATTRIBUTES
from certexport.lib.errors import translate_error_code
from certexport.lib.logger import logging
from certexport.lib.target import Target


class LDAPEntry(Dict[str, Any]):
    """
    Dictionary-like class representing an LDAP entry with helper methods.

    This class extends the standard dictionary to provide convenient access
    to LDAP attributes and raw attribute values.
    """

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get an attribute value from the LDAP entry with support for default values.

        Args:
            key: Attribute name to retrieve
            default: Value to return if attribute is missing or empty (default: None)

        Returns:
            Attribute value if present and not empty, otherwise the default value
        """
        if key not in self.__getitem__("attributes").keys():
            return default

        item = self.__getitem__("attributes").__getitem__(key)

        # Return default for empty lists
        if isinstance(item, list) and len(item) == 0:
            return default

        return item

    def get_raw(self, key: str) -> Any:
        """
        Get the raw (unprocessed) attribute value from the LDAP entry.

        Args:
            key: Attribute name to retrieve

        Returns:
            Raw attribute value or None if not present
        """
        if key not in self.__getitem__("raw_attributes").keys():
            return None

        return self.__getitem__("raw_attributes").__getitem__(key)


@dataclass(frozen=True)
class DirectoryUser:
    """A user resolved in the directory, with its raw certificate blobs."""

    identifier: str
    cn: str
    sam_account_name: str
    user_principal_name: str
    distinguished_name: str
    certificates: Tuple[bytes, ...] = ()

    @property
    def account_name(self) -> str:
        return self.sam_account_name or self.cn or self.identifier

    @staticmethod
    def from_entry(identifier: str, entry: LDAPEntry) -> "DirectoryUser":
        certificates = entry.get_raw("userCertificate") or []
        return DirectoryUser(
            identifier=identifier,
            cn=entry.get("cn") or "",
            sam_account_name=entry.get("sAMAccountName") or "",
            user_principal_name=entry.get("userPrincipalName") or "",
            distinguished_name=entry.get("distinguishedName") or "",
            certificates=tuple(bytes(c) for c in certificates),
        )


def get_user_filter(identifier: str) -> str:
    """
    Build the search filter matching a user by name, login name or UPN.

    Args:
        identifier: Canonical name, sAMAccountName or userPrincipalName

    Returns:
        LDAP filter string with the identifier escaped
    """
    value = escape_filter_chars(identifier)
    return (
        "(&(objectCategory=person)(objectClass=user)"
        f"(|(cn={value})(sAMAccountName={value})(userPrincipalName={value})))"
    )


class LDAPConnection:
    """
    Manages connections and queries to Active Directory via LDAP/LDAPS.

    This class handles authentication and searching using the ldap3 library.
    """

    def __init__(self, target: Target) -> None:
        """
        Initialize an LDAP connection with the specified target.

        Args:
            target: Target object containing connection details
        """
        self.target = target
        self.use_ssl = target.ldap_scheme == "ldaps"

        # Determine port based on scheme and target configuration
        if self.use_ssl:
            self.port = int(target.ldap_port) if target.ldap_port is not None else 636
        else:
            self.port = int(target.ldap_port) if target.ldap_port is not None else 389

        self.default_path: Optional[str] = None
        self.configuration_path: Optional[str] = None
        self.ldap_server: Optional[ldap3.Server] = None
        self.ldap_conn: Optional[ldap3.Connection] = None
        self.domain: Optional[str] = None

    def connect(self) -> None:
        """
        Connect and bind to the LDAP server.

        NTLM is used unless simple authentication was requested.

        Raises:
            Exception: If connection or authentication fails
        """
        if self.target.target_ip is None:
            raise Exception("Target IP is not set")

        user = f"{self.target.domain}\\{self.target.username}"
        user_upn = f"{self.target.username}@{self.target.domain}"

        if self.use_ssl:
            tls = ldap3.Tls(
                validate=ssl.CERT_NONE,
                version=ssl.PROTOCOL_TLS_CLIENT,
                ciphers="ALL:@SECLEVEL=0",
                ssl_options=[ssl.OP_ALL],
            )
            ldap_server = ldap3.Server(
                self.target.target_ip,
                use_ssl=True,
                port=self.port,
                get_info=ldap3.ALL,
                tls=tls,
                connect_timeout=self.target.timeout,
            )
        else:
            ldap_server = ldap3.Server(
                self.target.target_ip,
                use_ssl=False,
                port=self.port,
                get_info=ldap3.ALL,
                connect_timeout=self.target.timeout,
            )

        auth_method = "SIMPLE" if self.target.do_simple else "NTLM"
        logging.debug(f"Authenticating to LDAP server using {auth_method} authentication")

        if self.target.hashes is not None:
            ldap_pass = f"{self.target.lmhash}:{self.target.nthash}"
        else:
            ldap_pass = self.target.password

        ldap_conn = ldap3.Connection(
            ldap_server,
            user=user_upn if self.target.do_simple else user,
            password=ldap_pass,
            authentication=ldap3.SIMPLE if self.target.do_simple else ldap3.NTLM,
            auto_referrals=False,
            receive_timeout=self.target.timeout * 10,
        )

        if not ldap_conn.bind():
            self._check_ldap_result(ldap_conn.result)

        if ldap_server.info is None:
            raise Exception("Failed to get LDAP server information")

        logging.debug(f"Bound to {ldap_server}")

        self.ldap_conn = ldap_conn
        self.ldap_server = ldap_server

        self.default_path = ldap_server.info.other["defaultNamingContext"][0]
        self.configuration_path = ldap_server.info.other["configurationNamingContext"][0]

        logging.debug(f"Default path: {self.default_path}")
        logging.debug(f"Configuration path: {self.configuration_path}")

        # Extract domain name from LDAP service name
        self.domain = ldap_server.info.other["ldapServiceName"][0].split("@")[-1]

    def _check_ldap_result(self, result: Dict[str, Any]) -> None:
        """
        Raise a descriptive error for a failed bind.

        Args:
            result: Result dictionary from the LDAP bind operation

        Raises:
            Exception: Always, describing the failure
        """
        message = result.get("message") or ""
        code = message.split(":")[0]

        if result["result"] == RESULT_INVALID_CREDENTIALS and code == "80090346":
            raise Exception(
                "LDAP authentication refused because channel binding policy was not satisfied. "
                "Try '-ldap-scheme ldap' or '-ldap-simple-auth'"
            )

        if result["result"] == RESULT_STRONGER_AUTH_REQUIRED:
            raise Exception(
                "LDAP authentication refused because LDAP signing is required. "
                "Try '-ldap-scheme ldaps'"
            )

        try:
            details = translate_error_code(int(code, 16))
        except ValueError:
            details = message

        raise Exception(
            f"LDAP bind failed ({result.get('description')}): {details}"
        )

    def search(
        self,
        search_filter: str,
        attributes: Union[str, List[str]] = ldap3.ALL_ATTRIBUTES,
        search_base: Optional[str] = None,
        **kwargs: Any,
    ) -> List[LDAPEntry]:
        """
        Search the LDAP directory with the given filter and return matching entries.

        Args:
            search_filter: LDAP search filter string
            attributes: List of attributes to retrieve or ldap3.ALL_ATTRIBUTES
            search_base: Base DN for the search, defaults to domain base
            **kwargs: Additional arguments for the search operation

        Returns:
            List of matching LDAP entries

        Raises:
            Exception: If LDAP connection is not established
        """
        if search_base is None:
            search_base = self.default_path

        if self.ldap_conn is None:
            raise Exception("LDAP connection is not established")

        # Perform paged search to handle large result sets
        results = self.ldap_conn.extend.standard.paged_search(
            search_base=search_base,
            search_filter=search_filter,
            attributes=attributes,
            paged_size=200,
            generator=False,
            **kwargs,
        )

        if self.ldap_conn.result["result"] != RESULT_SUCCESS:
            logging.warning(
                f"LDAP search {search_filter!r} failed: "
                f"({self.ldap_conn.result['description']}) {self.ldap_conn.result['message']}"
            )
            return []

        return [
            LDAPEntry(**entry) for entry in results if entry["type"] == "searchResEntry"
        ]

    def get_certificate_user(self, identifier: str) -> Optional[DirectoryUser]:
        """
        Find a user and read its certificates.

        Args:
            identifier: Canonical name, sAMAccountName or userPrincipalName

        Returns:
            The user, or None if no user or more than one user matches
        """
        results = self.search(get_user_filter(identifier), attributes=USER_ATTRIBUTES)

        if len(results) == 0:
            logging.error(f"Could not find user {identifier!r}")
            return None

        if len(results) > 1:
            logging.error(
                f"Identifier {identifier!r} matches {len(results)} users: "
                + ", ".join(repr(entry.get("distinguishedName")) for entry in results)
            )
            return None

        return DirectoryUser.from_entry(identifier, results[0])

    def get_template_names(self) -> Dict[str, str]:
        """
        Map certificate template OIDs to their display names.

        Both the enterprise OID objects and the certificate template objects
        of the forest are read; template objects win on conflicts.

        Returns:
            Dictionary of template OID to display name
        """
        public_key_services = (
            f"CN=Public Key Services,CN=Services,{self.configuration_path}"
        )
        sources = [
            ("(objectClass=msPKI-Enterprise-Oid)", f"CN=OID,{public_key_services}"),
            (
                "(objectClass=pKICertificateTemplate)",
                f"CN=Certificate Templates,{public_key_services}",
            ),
        ]

        template_names: Dict[str, str] = {}
        for search_filter, search_base in sources:
            entries = self.search(
                search_filter,
                attributes=TEMPLATE_OID_ATTRIBUTES,
                search_base=search_base,
            )
            for entry in entries:
                oid = entry.get("msPKI-Cert-Template-OID")
                name = entry.get("displayName") or entry.get("name")
                if oid and name:
                    template_names[oid] = name

        logging.debug(f"Found {len(template_names)} certificate template OID(s)")
        return template_names
