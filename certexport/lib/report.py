"""
Certificate report writer.

Serializes a user's certificate batch as a semicolon-delimited CSV file with
one row per certificate.
"""

import csv
import io
from datetime import datetime
from typing import Dict, Optional

from certexport.lib.files import try_to_save_file
from certexport.lib.logger import logging
from certexport.lib.record import CertificateRecord, UserCertificateBatch

# Column order for the CSV output
COLUMN_ORDER = [
    "Subject",
    "Issuer",
    "Not Before",
    "Not After",
    "Template Name",
    "Template OID",
]

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def record_to_row(record: CertificateRecord) -> Dict[str, str]:
    return {
        "Subject": record.subject,
        "Issuer": record.issuer,
        "Not Before": record.not_before.isoformat(),
        "Not After": record.not_after.isoformat(),
        "Template Name": record.template_name,
        "Template OID": record.template_oid,
    }


def get_report_csv(batch: UserCertificateBatch) -> str:
    """
    Convert a batch to CSV text.

    Args:
        batch: Batch to serialize

    Returns:
        CSV data with a header row
    """
    # Semicolon delimiter and quote all fields, since DNs contain commas
    csvfile = io.StringIO(newline="")
    writer = csv.DictWriter(
        csvfile,
        fieldnames=COLUMN_ORDER,
        delimiter=";",
        quoting=csv.QUOTE_ALL,
    )

    writer.writeheader()
    writer.writerows(record_to_row(record) for record in batch.records)

    return csvfile.getvalue()


def get_report_filename(account_name: str, timestamp: Optional[datetime] = None) -> str:
    """Build the report file name for an account, e.g. jdoe_20250101120000_Certificates.csv."""
    timestamp = timestamp or datetime.now()
    return f"{account_name}_{timestamp.strftime(TIMESTAMP_FORMAT)}_Certificates.csv"


def write_report(
    batch: UserCertificateBatch,
    directory: str,
    account_name: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> str:
    """
    Write a batch to a CSV file in the given directory.

    Args:
        batch: Batch to write
        directory: Output directory (must exist)
        account_name: Account name used in the file name (default: batch user id)
        timestamp: Generation time used in the file name (default: now)

    Returns:
        Path of the written file

    Raises:
        OSError: If the file cannot be written
    """
    filename = get_report_filename(account_name or batch.user_id, timestamp)

    logging.debug(f"Saving {len(batch.records)} record(s) to {filename!r}")
    return try_to_save_file(
        get_report_csv(batch), directory, filename, abort_on_fail=True
    )
