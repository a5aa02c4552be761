"""
Certificate template metadata extraction.

An enterprise CA records the template a certificate was issued from in the
certificate template information extension. Its rendered text starts with

    Template=<name>(<oid>)

followed by version lines. This module finds that extension in a decoded
certificate and turns the first line into a (template name, template OID)
pair. A missing extension is a normal outcome; a rendering with an
unexpected shape is reported but never fatal.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from certexport.lib.certificate import Extension
from certexport.lib.constants import OID_CERTIFICATE_TEMPLATE
from certexport.lib.logger import logging

TEMPLATE_PREFIX = "Template="

# Dotted-numeric object identifier
OID_PATTERN = re.compile(r"^[0-9]+(\.[0-9]+)+$")


@dataclass(frozen=True)
class TemplateMetadata:
    """
    Template name and OID of a certificate.

    Both fields are empty when the certificate has no template extension.
    `mismatch` is set when the extension exists but its rendering could not
    be interpreted.
    """

    template_name: str = ""
    template_oid: str = ""
    mismatch: bool = False


def find_extension(
    extensions: Iterable[Extension], identifier: str
) -> Optional[Extension]:
    """
    Return the first extension with the given identifier, if any.

    Args:
        extensions: Extensions in encoding order
        identifier: Dotted OID to look for

    Returns:
        The first matching extension or None
    """
    for extension in extensions:
        if extension.identifier == identifier:
            return extension
    return None


def parse_template_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Parse "Template=<name>(<oid>)" into (name, oid).

    A line holding only an OID ("Template=<oid>", the rendering of a template
    whose name is unknown) yields an empty name. Whitespace is kept as is.

    Args:
        line: First line of the rendered template extension

    Returns:
        Tuple of (template name, template OID), or None if the line does not
        have the expected shape
    """
    if not line.startswith(TEMPLATE_PREFIX):
        return None

    value = line[len(TEMPLATE_PREFIX) :]

    if value.endswith(")"):
        value = value[:-1]

    if "(" not in value:
        if OID_PATTERN.match(value):
            return ("", value)
        return None

    name, oid = value.split("(", 1)
    return (name, oid)


def extract_template(extensions: Iterable[Extension]) -> TemplateMetadata:
    """
    Extract the template name and OID from a certificate's extensions.

    Args:
        extensions: Extensions of a decoded certificate

    Returns:
        TemplateMetadata; empty when the certificate has no template
        extension, empty with `mismatch` set when the rendering is unexpected
    """
    extension = find_extension(extensions, OID_CERTIFICATE_TEMPLATE)
    if extension is None:
        return TemplateMetadata()

    lines = extension.rendered_text.splitlines()
    first_line = lines[0] if lines else ""

    parsed = parse_template_line(first_line)
    if parsed is None:
        logging.warning(
            f"Unexpected certificate template rendering: {first_line!r}"
        )
        return TemplateMetadata(mismatch=True)

    template_name, template_oid = parsed
    return TemplateMetadata(template_name=template_name, template_oid=template_oid)
