"""
Target management module for certexport.

This module describes the domain controller the user certificates are read
from. It handles:

- Authentication parameters (username, password, NTLM hashes)
- Domain controller name resolution (DNS, local resolution, IP addresses)
- Connection settings (timeouts, LDAP scheme and port)

The primary class is Target, built from command-line options with
Target.from_options. DnsResolver provides the name resolution.
"""

import argparse
import socket
from getpass import getpass
from typing import Dict, Optional

from dns.resolver import Resolver

from certexport.lib.errors import handle_error
from certexport.lib.logger import logging


class Target:
    """
    Class representing a domain controller with all connection details.
    """

    def __init__(
        self,
        resolver: "DnsResolver",
        domain: str = "",
        username: str = "",
        password: Optional[str] = None,
        remote_name: str = "",
        hashes: Optional[str] = None,
        lmhash: str = "",
        nthash: str = "",
        do_simple: bool = False,
        dc_ip: Optional[str] = None,
        dc_host: Optional[str] = None,
        target_ip: Optional[str] = None,
        timeout: int = 5,
        ldap_scheme: str = "ldaps",
        ldap_port: Optional[int] = None,
    ) -> None:
        """
        Initialize a Target with the specified connection parameters.

        Args:
            resolver: DNS resolver for hostname resolution
            domain: Domain name (empty string if not specified)
            username: Username (empty string if not specified)
            password: Password (None if not specified)
            remote_name: Remote target name (empty string if not specified)
            hashes: NTLM hashes in format LM:NT
            lmhash: LM hash
            nthash: NT hash
            do_simple: Use simple authentication
            dc_ip: Domain controller IP
            dc_host: Domain controller hostname
            target_ip: Target IP address
            timeout: Connection timeout in seconds
            ldap_scheme: LDAP scheme (default is ldaps)
            ldap_port: LDAP port to use
        """
        self.resolver = resolver

        self.domain: str = domain
        self.username: str = username
        self.password: Optional[str] = password
        self.remote_name: str = remote_name
        self.hashes: Optional[str] = hashes
        self.lmhash: str = lmhash
        self.nthash: str = nthash
        self.do_simple: bool = do_simple
        self.dc_ip: Optional[str] = dc_ip
        self.dc_host: Optional[str] = dc_host
        self.target_ip: Optional[str] = target_ip
        self.timeout: int = timeout
        self.ldap_scheme: str = ldap_scheme
        self.ldap_port: Optional[int] = ldap_port

    @staticmethod
    def from_options(options: argparse.Namespace) -> "Target":
        """
        Create a Target from command line options.

        The domain controller is the target: -target, -dc-host, -dc-ip and
        the domain part of -username are tried in that order.

        Args:
            options: Command line options

        Returns:
            Target: Configured target object

        Raises:
            Exception: If no target can be determined
        """
        dc_ip = getattr(options, "dc_ip", None)
        dc_host = getattr(options, "dc_host", None)
        target_ip = getattr(options, "target_ip", None)
        target = getattr(options, "target", None)

        ns = getattr(options, "ns", None) or dc_ip
        dns_tcp = getattr(options, "dns_tcp", False)
        timeout = getattr(options, "timeout", 10)

        principal = getattr(options, "username", None)
        password = getattr(options, "password", None)
        hashes = getattr(options, "hashes", None)
        no_pass = getattr(options, "no_pass", False)
        do_simple = getattr(options, "do_simple", False)

        ldap_scheme = getattr(options, "ldap_scheme", None) or "ldaps"
        ldap_port = getattr(options, "ldap_port", None)

        # Parse username and domain from principal format (user@DOMAIN)
        domain = ""
        username = ""

        if principal is not None:
            parts = principal.split("@")
            if len(parts) == 1:
                username = parts[0]
            else:
                username = "@".join(parts[:-1])
                domain = parts[-1]

        domain = domain.upper()
        username = username.upper()

        if len(username) == 0:
            logging.error("Username is not specified")

        if not password and username != "" and hashes is None and not no_pass:
            password = getpass("Password:")

        # Parse hashes if provided
        lmhash = ""
        nthash = ""
        if hashes is not None:
            hash_parts = hashes.split(":")
            if len(hash_parts) == 1:
                nthash = hash_parts[0]
                lmhash = nthash
            else:
                lmhash, nthash = hash_parts
                if len(lmhash) == 0:
                    lmhash = nthash

        remote_name = target or dc_host or ""
        if not remote_name:
            if dc_ip:
                remote_name = dc_ip
            elif domain:
                logging.debug(
                    f"Target name (-target) and DC host (-dc-host) not specified. "
                    f"Using domain {domain!r} as target name"
                )
                remote_name = domain
            else:
                raise Exception("Could not find a target in the specified options")

        if not dc_host:
            dc_host = remote_name

        if ldap_port is None:
            ldap_port = 389 if ldap_scheme == "ldap" else 636

        if dc_ip is None and is_ip(remote_name):
            dc_ip = remote_name

        if not target_ip and dc_ip:
            target_ip = dc_ip

        ns = ns or dc_ip

        logging.debug(f"Nameserver: {ns!r}")
        logging.debug(f"DC IP: {dc_ip!r}")
        logging.debug(f"DC Host: {dc_host!r}")
        logging.debug(f"Target IP: {target_ip!r}")
        logging.debug(f"Remote Name: {remote_name!r}")
        logging.debug(f"Domain: {domain!r}")
        logging.debug(f"Username: {username!r}")

        resolver = DnsResolver.create(ns=ns, dns_tcp=dns_tcp)

        if target_ip is None:
            target_ip = resolver.resolve(remote_name)

        return Target(
            resolver,
            domain=domain,
            username=username,
            password=password,
            remote_name=remote_name,
            hashes=hashes,
            lmhash=lmhash,
            nthash=nthash,
            do_simple=do_simple,
            dc_ip=dc_ip,
            dc_host=dc_host,
            target_ip=target_ip,
            timeout=timeout,
            ldap_scheme=ldap_scheme,
            ldap_port=ldap_port,
        )

    def __repr__(self) -> str:
        """String representation of the Target object."""
        return f"<Target ({self.__dict__!r})>"


class DnsResolver:
    """
    DNS resolver for hostname resolution with caching capabilities.
    """

    def __init__(self) -> None:
        self.resolver: Resolver = Resolver(configure=False)
        self.use_tcp: bool = False
        self.mappings: Dict[str, str] = {}

    @staticmethod
    def create(ns: Optional[str] = None, dns_tcp: bool = False) -> "DnsResolver":
        """
        Create a DnsResolver with specified parameters.

        Args:
            ns: Nameserver to use; the system resolver is used if omitted
            dns_tcp: Whether to use TCP for DNS queries

        Returns:
            DnsResolver: A configured DNS resolver
        """
        resolver = DnsResolver()

        if ns is not None:
            resolver.resolver.nameservers = [ns]

        resolver.use_tcp = dns_tcp

        return resolver

    def resolve(self, hostname: str) -> str:
        """
        Resolve hostname to IP address using DNS or local resolution.
        Uses cache for previously resolved hostnames.

        Args:
            hostname: The hostname to resolve

        Returns:
            str: The resolved IP address or the original hostname if resolution fails
        """
        if hostname in self.mappings:
            logging.debug(
                f"Resolved {hostname!r} from cache: {self.mappings[hostname]}"
            )
            return self.mappings[hostname]

        if is_ip(hostname):
            return hostname

        ip_addr = None

        # Only query DNS directly when a nameserver was given
        if self.resolver.nameservers:
            logging.debug(
                f"Trying to resolve {hostname!r} at {self.resolver.nameservers[0]!r}"
            )
            try:
                answers = self.resolver.resolve(hostname, tcp=self.use_tcp)
                if answers:
                    ip_addr = str(answers[0])
            except Exception as e:
                logging.warning(f"DNS resolution failed: {e}")
                handle_error(True)

        # Fall back to socket resolution
        if ip_addr is None:
            logging.debug(f"Trying to resolve {hostname!r} locally")
            try:
                ip_addr = socket.gethostbyname(hostname)
            except OSError:
                ip_addr = None

        if ip_addr is None:
            logging.warning(f"Failed to resolve: {hostname}")
            return hostname

        self.mappings[hostname] = ip_addr
        return ip_addr


def is_ip(hostname: Optional[str]) -> bool:
    """
    Check if the given hostname is an IP address.

    Args:
        hostname: The hostname to check

    Returns:
        bool: True if the hostname is an IP address, False otherwise
    """
    if hostname is None:
        return False

    try:
        _ = socket.inet_aton(hostname)
        return True
    except OSError:
        return False
