"""
Certificate decoding for certexport.

This module turns a raw certificate blob, as stored in the userCertificate
attribute of a directory object, into a ParsedCertificate:
- Subject and issuer distinguished names
- Validity window
- Every extension, in encoding order, rendered as the multi-line text a
  certificate inspector shows (e.g. "Template=User(1.3.6...)")

Key components:
- decode: the pure DER/PEM to ParsedCertificate transformation
- render_extension: extension to text rendering, including the Microsoft
  certificate template extensions
"""

import datetime
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from asn1crypto import core as asn1core
from asn1crypto import x509 as asn1x509
from cryptography import x509
from cryptography.x509.oid import ObjectIdentifier

from certexport.lib.constants import (
    EXTENSION_NAMES,
    OID_APPLICATION_POLICIES,
    OID_CERTIFICATE_TEMPLATE,
    OID_ENROLL_CERTTYPE,
    OID_TO_STR_MAP,
)
from certexport.lib.logger import logging

# =========================================================================
# Constants and structures
# =========================================================================

# Line separator used by the inspector rendering
CRLF = "\r\n"

# Indentation of nested values in the inspector rendering
INDENT = "     "

# Principal name inside a SAN OtherName
PRINCIPAL_NAME = ObjectIdentifier("1.3.6.1.4.1.311.20.2.3")

PEM_HEADER = b"-----BEGIN"


class CertificateTemplateInfo(asn1core.Sequence):
    """
    Value of the szOID_CERTIFICATE_TEMPLATE extension.

    CertificateTemplate ::= SEQUENCE {
        templateID              EncodedObjectID,
        templateMajorVersion    TemplateVersion,
        templateMinorVersion    TemplateVersion OPTIONAL
    }
    """

    _fields = [
        ("template_id", asn1core.ObjectIdentifier),
        ("major_version", asn1core.Integer),
        ("minor_version", asn1core.Integer, {"optional": True}),
    ]


class RawExtension(asn1core.Sequence):
    """Extension whose value is kept as the undecoded DER octets."""

    _fields = [
        ("extn_id", asn1core.ObjectIdentifier),
        ("critical", asn1core.Boolean, {"default": False}),
        ("extn_value", asn1core.OctetString),
    ]


class RawExtensions(asn1core.SequenceOf):
    _child_spec = RawExtension


class RawTbsCertificate(asn1x509.TbsCertificate):
    """TBSCertificate that does not interpret extension values on access."""

    _fields = asn1x509.TbsCertificate._fields[:-1] + [
        ("extensions", RawExtensions, {"explicit": 3, "optional": True}),
    ]


class DecodeError(ValueError):
    """Raised when a byte sequence is not a decodable X.509 certificate."""


@dataclass(frozen=True)
class Extension:
    """A certificate extension with its inspector-style rendering."""

    identifier: str
    rendered_text: str
    critical: bool = False

    @property
    def name(self) -> str:
        return EXTENSION_NAMES.get(self.identifier, self.identifier)


@dataclass(frozen=True)
class ParsedCertificate:
    """Structured view of one decoded certificate."""

    subject: str
    issuer: str
    not_before: datetime.datetime
    not_after: datetime.datetime
    extensions: Tuple[Extension, ...]
    serial_number: int = 0


# =========================================================================
# Format conversion
# =========================================================================


def der_to_cert(certificate: bytes) -> x509.Certificate:
    """Convert DER-encoded certificate to object."""
    return x509.load_der_x509_certificate(certificate)


def pem_to_cert(certificate: bytes) -> x509.Certificate:
    """Convert PEM-encoded certificate to object."""
    return x509.load_pem_x509_certificate(certificate)


def split_pem(data: bytes) -> List[bytes]:
    """
    Split a PEM bundle into the individual certificate blocks it contains.

    Args:
        data: PEM data with one or more certificates

    Returns:
        List of PEM blocks, in file order
    """
    blocks = []
    current: List[bytes] = []

    for line in data.splitlines(keepends=True):
        if line.startswith(b"-----BEGIN CERTIFICATE-----"):
            current = [line]
        elif current:
            current.append(line)
            if line.startswith(b"-----END CERTIFICATE-----"):
                blocks.append(b"".join(current))
                current = []

    return blocks


# =========================================================================
# Extension rendering
# =========================================================================


def _render_hex(data: bytes) -> str:
    return " ".join(f"{b:02x}" for b in data)


def _oid_with_name(dotted: str) -> str:
    name = OID_TO_STR_MAP.get(dotted)
    if name is None:
        return dotted
    return f"{name} ({dotted})"


def render_template_info(
    data: bytes, template_names: Optional[Mapping[str, str]] = None
) -> str:
    """
    Render the certificate template information extension.

    The first line is "Template=<name>(<oid>)" when the template name is
    known, and "Template=<oid>" otherwise.

    Args:
        data: DER value of the extension
        template_names: Mapping of template OID to template display name

    Returns:
        Rendered extension text
    """
    info = CertificateTemplateInfo.load(data)

    template_oid = info["template_id"].dotted
    template_name = (template_names or {}).get(template_oid)

    if template_name:
        lines = [f"Template={template_name}({template_oid})"]
    else:
        lines = [f"Template={template_oid}"]

    lines.append(f"Major Version Number={info['major_version'].native}")

    minor_version = info["minor_version"]
    if minor_version.native is not None:
        lines.append(f"Minor Version Number={minor_version.native}")

    return CRLF.join(lines)


def render_template_name(data: bytes) -> str:
    """Render the version 1 template name extension (a BMPString)."""
    return asn1core.BMPString.load(data).native


def render_application_policies(data: bytes) -> str:
    policies = asn1x509.CertificatePolicies.load(data)

    lines = []
    for i, policy in enumerate(policies, start=1):
        lines.append(f"[{i}]Application Certificate Policy:")
        lines.append(
            f"{INDENT}Policy Identifier={_oid_with_name(policy['policy_identifier'].dotted)}"
        )
    return CRLF.join(lines)


def render_key_usage(value: x509.KeyUsage) -> str:
    usages = [
        ("Digital Signature", value.digital_signature),
        ("Non-Repudiation", value.content_commitment),
        ("Key Encipherment", value.key_encipherment),
        ("Data Encipherment", value.data_encipherment),
        ("Key Agreement", value.key_agreement),
        ("Certificate Signing", value.key_cert_sign),
        ("CRL Signing", value.crl_sign),
    ]

    # Only defined when key agreement is set
    if value.key_agreement:
        usages.append(("Encipher Only", value.encipher_only))
        usages.append(("Decipher Only", value.decipher_only))

    return ", ".join(name for name, is_set in usages if is_set)


def render_extended_key_usage(value: x509.ExtendedKeyUsage) -> str:
    return CRLF.join(_oid_with_name(usage.dotted_string) for usage in value)


def render_general_name(name: x509.GeneralName) -> str:
    """Render one entry of a subject alternative name."""
    if isinstance(name, x509.OtherName):
        if name.type_id == PRINCIPAL_NAME:
            upn = asn1core.UTF8String.load(name.value).native
            return f"Other Name:{CRLF}{INDENT}Principal Name={upn}"
        return (
            f"Other Name:{CRLF}{INDENT}{name.type_id.dotted_string}="
            f"{_render_hex(name.value)}"
        )
    if isinstance(name, x509.DNSName):
        return f"DNS Name={name.value}"
    if isinstance(name, x509.RFC822Name):
        return f"RFC822 Name={name.value}"
    if isinstance(name, x509.UniformResourceIdentifier):
        return f"URL={name.value}"
    if isinstance(name, x509.IPAddress):
        return f"IP Address={name.value}"
    if isinstance(name, x509.DirectoryName):
        return f"Directory Address:{CRLF}{INDENT}{name.value.rfc4514_string()}"
    if isinstance(name, x509.RegisteredID):
        return f"Registered ID={name.value.dotted_string}"
    return str(name)


def render_subject_alternative_name(value: x509.SubjectAlternativeName) -> str:
    return CRLF.join(render_general_name(name) for name in value)


def render_basic_constraints(value: x509.BasicConstraints) -> str:
    subject_type = "CA" if value.ca else "End Entity"
    path_length = "None" if value.path_length is None else str(value.path_length)
    return CRLF.join(
        [f"Subject Type={subject_type}", f"Path Length Constraint={path_length}"]
    )


def render_subject_key_identifier(value: x509.SubjectKeyIdentifier) -> str:
    return value.digest.hex()


def render_authority_key_identifier(value: x509.AuthorityKeyIdentifier) -> str:
    if value.key_identifier is None:
        return ""
    return f"KeyID={value.key_identifier.hex()}"


# Renderers for extensions that cryptography does not recognize, keyed by OID
RAW_RENDERERS: Dict[str, Callable[[bytes], str]] = {
    OID_ENROLL_CERTTYPE: render_template_name,
    OID_APPLICATION_POLICIES: render_application_policies,
}

# Renderers for extension values parsed by cryptography
TYPED_RENDERERS: List[Tuple[type, Callable]] = [
    (x509.KeyUsage, render_key_usage),
    (x509.ExtendedKeyUsage, render_extended_key_usage),
    (x509.SubjectAlternativeName, render_subject_alternative_name),
    (x509.BasicConstraints, render_basic_constraints),
    (x509.SubjectKeyIdentifier, render_subject_key_identifier),
    (x509.AuthorityKeyIdentifier, render_authority_key_identifier),
]


def render_extension(
    oid: str,
    data: bytes,
    value: Optional[x509.ExtensionType] = None,
    template_names: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Render an extension value as multi-line descriptive text.

    Extensions without a dedicated renderer, or whose value cannot be
    interpreted, are rendered as a hex dump of their DER value.

    Args:
        oid: Dotted extension identifier
        data: DER value of the extension
        value: Value parsed by cryptography, if it could be parsed
        template_names: Mapping of template OID to template display name

    Returns:
        Rendered extension text, lines separated by CRLF
    """
    try:
        if oid == OID_CERTIFICATE_TEMPLATE:
            return render_template_info(data, template_names)

        if oid in RAW_RENDERERS:
            return RAW_RENDERERS[oid](data)

        for value_type, renderer in TYPED_RENDERERS:
            if isinstance(value, value_type):
                return renderer(value)
    except Exception as e:
        logging.debug(f"Could not interpret extension {oid}: {e}")

    return _render_hex(data)


def get_typed_extensions(certificate: x509.Certificate) -> Dict[str, x509.ExtensionType]:
    """
    Get the extension values cryptography can parse, keyed by OID.

    cryptography parses the whole extension list at once, so a single
    malformed or duplicated extension leaves every extension untyped.
    """
    try:
        return {
            extension.oid.dotted_string: extension.value
            for extension in certificate.extensions
        }
    except Exception as e:
        logging.debug(f"Could not parse extensions of certificate: {e}")
        return {}


def get_extensions(
    certificate: x509.Certificate,
    template_names: Optional[Mapping[str, str]] = None,
) -> Tuple[Extension, ...]:
    """
    Render every extension of a certificate, in encoding order.

    Raises:
        ValueError: If the extension list itself is not well-formed
    """
    tbs = RawTbsCertificate.load(certificate.tbs_certificate_bytes)
    typed = get_typed_extensions(certificate)

    extensions = []
    # An absent extension list iterates as empty
    for raw_extension in tbs["extensions"]:
        oid = raw_extension["extn_id"].dotted
        data = raw_extension["extn_value"].native
        extensions.append(
            Extension(
                identifier=oid,
                rendered_text=render_extension(
                    oid, data, typed.get(oid), template_names
                ),
                critical=raw_extension["critical"].native,
            )
        )

    return tuple(extensions)


# =========================================================================
# Decoding
# =========================================================================


def load_certificate(data: bytes) -> x509.Certificate:
    """
    Load a certificate from DER or PEM data.

    Raises:
        DecodeError: If the data is not a valid certificate
    """
    try:
        if data.lstrip().startswith(PEM_HEADER):
            return pem_to_cert(data)
        return der_to_cert(data)
    except Exception as e:
        raise DecodeError(f"Failed to decode certificate: {e}") from e


def decode(
    data: bytes, template_names: Optional[Mapping[str, str]] = None
) -> ParsedCertificate:
    """
    Decode a raw certificate into a ParsedCertificate.

    The subject, issuer and validity are returned as encoded; validity bounds
    are timezone-aware UTC datetimes. Extensions keep their encoding order.

    Args:
        data: DER (or PEM) encoded certificate
        template_names: Mapping of template OID to template display name,
            used to render the certificate template extension

    Returns:
        The parsed certificate

    Raises:
        DecodeError: If the data is not a valid certificate. No partial
            result is produced.
    """
    certificate = load_certificate(data)

    # cryptography parses the version, names and validity lazily
    try:
        _ = certificate.version
        subject = certificate.subject.rfc4514_string()
        issuer = certificate.issuer.rfc4514_string()
        not_before = certificate.not_valid_before_utc
        not_after = certificate.not_valid_after_utc
        serial_number = certificate.serial_number

        extensions = get_extensions(certificate, template_names)
    except Exception as e:
        raise DecodeError(f"Failed to decode certificate: {e}") from e

    return ParsedCertificate(
        subject=subject,
        issuer=issuer,
        not_before=not_before,
        not_after=not_after,
        extensions=extensions,
        serial_number=serial_number,
    )
