"""
Report records and per-user batches.

normalize() flattens a decoded certificate and its template metadata into a
CertificateRecord. process() runs decode, template extraction and
normalization over every certificate of one user, skipping blobs that fail
to decode so that one corrupt certificate does not block the export.
"""

import datetime
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

from certexport.lib.certificate import DecodeError, ParsedCertificate, decode
from certexport.lib.logger import logging
from certexport.lib.template import TemplateMetadata, extract_template


@dataclass(frozen=True)
class CertificateRecord:
    """One row of a certificate report."""

    subject: str
    issuer: str
    not_before: datetime.datetime
    not_after: datetime.datetime
    template_name: str
    template_oid: str


@dataclass(frozen=True)
class UserCertificateBatch:
    """
    Records produced for one user in one processing pass.

    Attributes:
        user_id: Identifier the batch was produced for
        records: One record per decodable certificate, in input order
        found: Number of raw certificates supplied
        failures: (index, message) for each certificate that failed to decode
    """

    user_id: str
    records: Tuple[CertificateRecord, ...] = ()
    found: int = 0
    failures: Tuple[Tuple[int, str], ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.found == 0


def normalize(
    parsed: ParsedCertificate, template: TemplateMetadata
) -> CertificateRecord:
    """Combine a parsed certificate and its template metadata into a record."""
    return CertificateRecord(
        subject=parsed.subject,
        issuer=parsed.issuer,
        not_before=parsed.not_before,
        not_after=parsed.not_after,
        template_name=template.template_name,
        template_oid=template.template_oid,
    )


def process(
    user_id: str,
    raw_certificates: Sequence[bytes],
    template_names: Optional[Mapping[str, str]] = None,
) -> UserCertificateBatch:
    """
    Build the certificate batch of one user.

    Args:
        user_id: Identifier of the user the certificates belong to
        raw_certificates: Raw certificate blobs, in directory order
        template_names: Mapping of template OID to template display name

    Returns:
        The user's batch. A certificate that fails to decode is left out and
        listed in `failures`; the remaining ones keep their relative order.
    """
    records = []
    failures = []

    for index, data in enumerate(raw_certificates):
        try:
            parsed = decode(data, template_names)
        except DecodeError as e:
            logging.warning(
                f"Skipping certificate #{index + 1} of {user_id!r}: {e}"
            )
            failures.append((index, str(e)))
            continue

        for extension in parsed.extensions:
            logging.debug(
                f"Certificate {parsed.serial_number:x} of {user_id!r}: "
                f"{extension.name}{' (critical)' if extension.critical else ''}"
            )

        template = extract_template(parsed.extensions)
        if template.mismatch:
            logging.warning(
                f"Could not read the template of certificate "
                f"{parsed.serial_number:x} of {user_id!r}"
            )
        elif not template.template_oid:
            logging.debug(
                f"Certificate {parsed.serial_number:x} of {user_id!r} "
                "has no certificate template extension"
            )

        records.append(normalize(parsed, template))

    return UserCertificateBatch(
        user_id=user_id,
        records=tuple(records),
        found=len(raw_certificates),
        failures=tuple(failures),
    )
