"""
File handling utilities for certexport.

This module provides functions for preparing the output directory and
safely writing report files into it.
"""

import os
import tempfile
import uuid
from typing import Optional, Union

from certexport.lib.errors import handle_error
from certexport.lib.logger import logging

# Default location for reports when no output directory is given
DEFAULT_OUTPUT_DIRECTORY = os.path.join(tempfile.gettempdir(), "certexport")


def sanitize_filename(name: str) -> str:
    """Replace path separators and drive colons in a file name."""
    return name.replace("\\", "_").replace("/", "_").replace(":", "_")


def prepare_output_directory(path: Optional[str] = None) -> str:
    """
    Validate and create the directory reports are written to.

    If the path points to an existing file, its parent directory is used
    instead.

    Args:
        path: Requested output directory (default: DEFAULT_OUTPUT_DIRECTORY)

    Returns:
        Absolute path of the directory to write to

    Raises:
        OSError: If the directory cannot be created
    """
    path = os.path.abspath(path or DEFAULT_OUTPUT_DIRECTORY)

    if os.path.isfile(path):
        parent = os.path.dirname(path)
        logging.warning(
            f"Output path {path!r} is a file. Using parent directory {parent!r}"
        )
        return parent

    if not os.path.isdir(path):
        logging.debug(f"Creating output directory {path!r}")
        os.makedirs(path, exist_ok=True)

    return path


def try_to_save_file(
    data: Union[bytes, str],
    directory: str,
    filename: str,
    abort_on_fail: bool = False,
) -> str:
    """
    Write data to a file in the given directory.

    The file name is sanitized, and an existing file is never overwritten:
    a unique suffix is appended instead. If writing fails and abort_on_fail
    is False, the data is printed to stdout.

    Args:
        data: Data to write (either binary bytes or text string)
        directory: Directory to write into
        filename: Name of the file
        abort_on_fail: If True, raise on failure instead of dumping to stdout

    Returns:
        Path the data was written to, or "stdout"
    """
    output_path = _handle_file_exists(
        os.path.join(directory, sanitize_filename(filename))
    )
    logging.debug(f"Attempting to write data to {output_path!r}")

    try:
        if isinstance(data, bytes):
            with open(output_path, "wb") as f:
                f.write(data)
        else:
            # Rows already carry their own line endings
            with open(output_path, "w", newline="", encoding="utf-8") as f:
                f.write(data)
        logging.debug(f"Data written to {output_path!r}")
        return output_path
    except Exception as e:
        if abort_on_fail:
            logging.error(f"Error writing output file: {e}")
            raise
        logging.error(f"Error writing output file: {e}. Dumping to stdout instead")
        handle_error()
        print(data.decode(errors="replace") if isinstance(data, bytes) else data)
        return "stdout"


def _handle_file_exists(path: str) -> str:
    """
    Return a path that does not exist yet.

    Args:
        path: Original file path

    Returns:
        The original path, or the path with a UUID appended if it exists
    """
    if os.path.exists(path):
        base, ext = os.path.splitext(path)
        new_path = f"{base}_{uuid.uuid4()}{ext}"
        logging.debug(f"File {path!r} already exists. Using {new_path!r}")
        return new_path
    return path
