import datetime
from typing import Optional, Tuple

import pytest
from asn1crypto import core as asn1core
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from certexport.lib.certificate import PRINCIPAL_NAME, CertificateTemplateInfo
from certexport.lib.constants import OID_CERTIFICATE_TEMPLATE

ACME_TEMPLATE_OID = "1.3.6.1.4.1.311.21.8.123456.789"
NOT_BEFORE = datetime.datetime(2024, 1, 1, 8, 0, 0, tzinfo=datetime.timezone.utc)
NOT_AFTER = datetime.datetime(2025, 1, 1, 8, 0, 0, tzinfo=datetime.timezone.utc)


def template_extension_value(
    oid: str, major: int = 100, minor: Optional[int] = 5
) -> bytes:
    fields = {"template_id": oid, "major_version": major}
    if minor is not None:
        fields["minor_version"] = minor
    return CertificateTemplateInfo(fields).dump()


def make_certificate(
    common_name: str = "Alice",
    issuer: str = "Corp Issuing CA",
    serial_number: int = 0x1001,
    template: Optional[Tuple[str, int, Optional[int]]] = (ACME_TEMPLATE_OID, 100, 5),
    upn: Optional[str] = None,
    encoding: Encoding = Encoding.DER,
) -> bytes:
    """Build a signed certificate, optionally carrying a template extension."""
    key = ec.generate_private_key(ec.SECP256R1())

    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)]))
        .issuer_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, issuer)]))
        .public_key(key.public_key())
        .serial_number(serial_number)
        .not_valid_before(NOT_BEFORE)
        .not_valid_after(NOT_AFTER)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]), critical=False
        )
    )

    if template is not None:
        oid, major, minor = template
        builder = builder.add_extension(
            x509.UnrecognizedExtension(
                x509.ObjectIdentifier(OID_CERTIFICATE_TEMPLATE),
                template_extension_value(oid, major, minor),
            ),
            critical=False,
        )

    if upn is not None:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(
                [x509.OtherName(PRINCIPAL_NAME, asn1core.UTF8String(upn).dump())]
            ),
            critical=False,
        )

    certificate = builder.sign(key, hashes.SHA256())
    return certificate.public_bytes(encoding)


def with_version(certificate: bytes, version: int) -> bytes:
    """Replace the encoded X.509 version of a v3 certificate."""
    encoded = b"\xa0\x03\x02\x01\x02"
    assert encoded in certificate
    return certificate.replace(encoded, encoded[:-1] + bytes([version]), 1)


def with_name_tag(certificate: bytes, value: str, tag: int) -> bytes:
    """Replace the string tag of a UTF8String name value."""
    encoded = b"\x0c" + bytes([len(value)]) + value.encode()
    assert encoded in certificate
    return certificate.replace(encoded, bytes([tag]) + encoded[1:], 1)


@pytest.fixture
def acme_certificate() -> bytes:
    """DER certificate issued from the Acme-SmartCard template."""
    return make_certificate()


@pytest.fixture
def plain_certificate() -> bytes:
    """DER certificate without a template extension."""
    return make_certificate(common_name="Bob", template=None, serial_number=0x2002)


@pytest.fixture
def template_names():
    return {ACME_TEMPLATE_OID: "Acme-SmartCard"}
