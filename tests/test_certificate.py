import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import ExtensionOID, NameOID

from certexport.lib.certificate import (
    CRLF,
    DecodeError,
    decode,
    render_template_info,
    split_pem,
)
from certexport.lib.constants import OID_CERTIFICATE_TEMPLATE

from conftest import (
    ACME_TEMPLATE_OID,
    NOT_AFTER,
    NOT_BEFORE,
    make_certificate,
    template_extension_value,
    with_name_tag,
    with_version,
)


def test_decode_matches_reference_decoder(acme_certificate):
    parsed = decode(acme_certificate)
    reference = x509.load_der_x509_certificate(acme_certificate)

    assert parsed.subject == reference.subject.rfc4514_string() == "CN=Alice"
    assert parsed.issuer == reference.issuer.rfc4514_string() == "CN=Corp Issuing CA"
    assert parsed.not_before == reference.not_valid_before_utc == NOT_BEFORE
    assert parsed.not_after == reference.not_valid_after_utc == NOT_AFTER
    assert parsed.serial_number == 0x1001


def test_decode_keeps_extension_order(acme_certificate):
    parsed = decode(acme_certificate)

    assert [extension.identifier for extension in parsed.extensions] == [
        "2.5.29.15",
        "2.5.29.37",
        OID_CERTIFICATE_TEMPLATE,
    ]
    assert parsed.extensions[0].critical is True
    assert parsed.extensions[0].rendered_text == "Digital Signature"
    assert parsed.extensions[1].rendered_text == "Client Authentication (1.3.6.1.5.5.7.3.2)"
    assert parsed.extensions[2].name == "Certificate Template Information"


def test_decode_renders_template_with_known_name(acme_certificate, template_names):
    parsed = decode(acme_certificate, template_names)

    assert parsed.extensions[-1].rendered_text == CRLF.join(
        [
            f"Template=Acme-SmartCard({ACME_TEMPLATE_OID})",
            "Major Version Number=100",
            "Minor Version Number=5",
        ]
    )


def test_decode_renders_template_oid_when_name_unknown(acme_certificate):
    parsed = decode(acme_certificate)

    assert parsed.extensions[-1].rendered_text.splitlines()[0] == (
        f"Template={ACME_TEMPLATE_OID}"
    )


def test_render_template_info_without_minor_version():
    text = render_template_info(template_extension_value("1.2.3.4", 2, None))
    assert text == f"Template=1.2.3.4{CRLF}Major Version Number=2"


def test_decode_renders_principal_name():
    parsed = decode(make_certificate(template=None, upn="alice@corp.local"))

    san = parsed.extensions[-1]
    assert san.identifier == "2.5.29.17"
    assert san.rendered_text == f"Other Name:{CRLF}     Principal Name=alice@corp.local"


def test_decode_accepts_pem():
    pem = make_certificate(common_name="Carol", encoding=Encoding.PEM)
    assert decode(pem).subject == "CN=Carol"


def test_decode_renders_uninterpretable_template_extension_as_hex():
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Dave")])
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(7)
        .not_valid_before(NOT_BEFORE)
        .not_valid_after(NOT_AFTER)
        .add_extension(
            x509.UnrecognizedExtension(
                x509.ObjectIdentifier(OID_CERTIFICATE_TEMPLATE), b"\x04\x02ab"
            ),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )

    parsed = decode(certificate.public_bytes(Encoding.DER))

    assert parsed.extensions[0].identifier == OID_CERTIFICATE_TEMPLATE
    assert parsed.extensions[0].rendered_text == "04 02 61 62"


def test_decode_keeps_template_next_to_malformed_extension(template_names):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Erin")])
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(8)
        .not_valid_before(NOT_BEFORE)
        .not_valid_after(NOT_AFTER)
        .add_extension(
            x509.UnrecognizedExtension(ExtensionOID.KEY_USAGE, b"\x04\x00"),
            critical=True,
        )
        .add_extension(
            x509.UnrecognizedExtension(
                x509.ObjectIdentifier(OID_CERTIFICATE_TEMPLATE),
                template_extension_value(ACME_TEMPLATE_OID),
            ),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )

    parsed = decode(certificate.public_bytes(Encoding.DER), template_names)

    assert parsed.subject == "CN=Erin"
    assert parsed.extensions[0].identifier == "2.5.29.15"
    assert parsed.extensions[0].critical is True
    assert parsed.extensions[0].rendered_text == "04 00"
    assert parsed.extensions[1].rendered_text.splitlines()[0] == (
        f"Template=Acme-SmartCard({ACME_TEMPLATE_OID})"
    )


def test_decode_without_extensions():
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Frank")])
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(9)
        .not_valid_before(NOT_BEFORE)
        .not_valid_after(NOT_AFTER)
        .sign(key, hashes.SHA256())
    )

    assert decode(certificate.public_bytes(Encoding.DER)).extensions == ()


@pytest.mark.parametrize("version", [3, 14])
def test_decode_rejects_invalid_version(acme_certificate, version):
    with pytest.raises(DecodeError):
        decode(with_version(acme_certificate, version))


def test_decode_invalid_name_tag_raises_decode_error_only():
    data = with_name_tag(make_certificate(common_name="Mallory"), "Mallory", 0x27)

    # Some cryptography releases accept the unknown string type
    try:
        parsed = decode(data)
    except DecodeError:
        return
    assert parsed.issuer == "CN=Corp Issuing CA"


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"not a certificate",
        b"\x30\x82\x01\x00\x30",
        b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n",
    ],
)
def test_decode_rejects_malformed_input(data):
    with pytest.raises(DecodeError):
        decode(data)


def test_decode_rejects_truncated_certificate(acme_certificate):
    with pytest.raises(DecodeError):
        decode(acme_certificate[: len(acme_certificate) // 2])


def test_split_pem_bundle():
    first = make_certificate(common_name="One", encoding=Encoding.PEM)
    second = make_certificate(common_name="Two", encoding=Encoding.PEM)

    blocks = split_pem(b"garbage\n" + first + second)

    assert blocks == [first, second]
