"""
Error reporting utilities for certexport.

Functions:
    translate_error_code: Convert a Windows error code to a readable message
    handle_error: Print a stacktrace in debug mode, or a hint otherwise
"""

import traceback
from typing import Tuple

from impacket import hresult_errors

from certexport.lib.logger import is_verbose, logging


def translate_error_code(error_code: int) -> str:
    """
    Translate a Windows API error code to a human-readable string.

    Active Directory embeds these codes in the diagnostic message of a failed
    LDAP bind (e.g. "80090346: LdapErr: DSID-0C0906AC, ...").

    Args:
        error_code: Windows API error code (HRESULT)

    Returns:
        Formatted error message with code, short description, and detailed explanation
    """
    # Mask to 32 bits to handle sign extension issues
    masked_code = error_code & 0xFFFFFFFF

    if masked_code in hresult_errors.ERROR_MESSAGES:
        error_tuple: Tuple[str, str] = hresult_errors.ERROR_MESSAGES[masked_code]
        error_short, error_detail = error_tuple

        return f"code: 0x{masked_code:x} - {error_short} - {error_detail}"
    else:
        return f"unknown error code: 0x{masked_code:x}"


def handle_error(is_warning: bool = False) -> None:
    """
    Report the exception currently being handled.

    In verbose mode the full traceback is printed; otherwise the user is told
    how to get it.

    Args:
        is_warning: Log the hint as a warning instead of an error
    """
    if is_verbose():
        traceback.print_exc()
    else:
        msg = "Use -debug to print a stacktrace"
        if is_warning:
            logging.warning(msg)
        else:
            logging.error(msg)
