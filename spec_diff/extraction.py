"""
Document Extraction
===================
Turns uploaded bytes into document text. Only plain text and lightweight
markup (.txt, .md) are accepted.
"""

import os
from pathlib import Path
from typing import Union

from config_logging import get_logger, handle_errors, FileError, validate_file_extension

logger = get_logger('spec_diff.extraction')

SUPPORTED_EXTENSIONS = ('.txt', '.md')


def read_document(filename: str, data: bytes,
                  allowed_extensions: tuple = SUPPORTED_EXTENSIONS) -> str:
    """
    Decode an uploaded document.

    Args:
        filename: Original file name, used for the extension check
        data: Raw file content
        allowed_extensions: Accepted extensions, with leading dot

    Returns:
        Decoded text (a UTF-8 byte order mark is dropped)

    Raises:
        FileError: unsupported extension or undecodable content
    """
    if not filename or not validate_file_extension(filename, allowed_extensions):
        extension = os.path.splitext(filename or '')[1].lower() or '(none)'
        raise FileError(
            f"Unsupported file type: {extension} "
            f"(supported: {', '.join(allowed_extensions)})",
            filename=filename,
            extension=extension
        )

    try:
        text = data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        logger.warning(f"Could not decode upload {filename!r}: {e}")
        raise FileError(f"File could not be read as UTF-8 text: {e.reason}",
                        filename=filename) from e

    logger.debug(f"Read {filename!r}: {len(data)} bytes")
    return text


@handle_errors(logger)
def read_document_path(path: Union[str, Path],
                       allowed_extensions: tuple = SUPPORTED_EXTENSIONS) -> str:
    """Read and decode a document from disk. OS errors surface as FileError."""
    path = Path(path)
    return read_document(path.name, path.read_bytes(), allowed_extensions)
