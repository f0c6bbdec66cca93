"""
Spec Diff Export Functions
==========================
Packs the final document text into a downloadable artifact with a
caller-chosen name and one of a fixed set of extensions.
"""

from dataclasses import dataclass
from typing import Optional

from config_logging import get_config, ValidationError, sanitize_filename

DEFAULT_EXTENSION = 'txt'

MERGED_DOCUMENT_NAME = '完成版ドキュメント'
MODIFIED_DOCUMENT_NAME = '修正版ドキュメント'

_MIMETYPES = {
    'txt': 'text/plain; charset=utf-8',
    'log': 'text/plain; charset=utf-8',
    'md': 'text/markdown; charset=utf-8',
    'csv': 'text/csv; charset=utf-8',
}


@dataclass
class DownloadArtifact:
    """Encoded file ready to hand to the client."""
    filename: str
    mimetype: str
    data: bytes


def default_download_name(has_merged: bool) -> str:
    """Suggested file name: the final document after a merge, else the modified one."""
    return MERGED_DOCUMENT_NAME if has_merged else MODIFIED_DOCUMENT_NAME


def select_download_content(merged_text: Optional[str], modified_text: Optional[str]) -> str:
    """Merged text when a merge was made, otherwise the modified text."""
    return merged_text or modified_text or ''


def build_download(content: str, file_name: Optional[str] = None,
                   extension: str = DEFAULT_EXTENSION,
                   has_merged: bool = True,
                   allowed_extensions: Optional[tuple] = None) -> DownloadArtifact:
    """
    Build the download artifact.

    Args:
        content: Document text
        file_name: Base name without extension; defaults per has_merged
        extension: One of the allowed extensions (a leading dot is tolerated)
        has_merged: Whether content is a merge result (only affects the default name)
        allowed_extensions: Defaults to the configured download_extensions

    Raises:
        ValidationError: unsupported extension
    """
    allowed = allowed_extensions or get_config().download_extensions
    extension = str(extension or DEFAULT_EXTENSION).lstrip('.').lower()
    if extension not in allowed:
        raise ValidationError(
            f"Unsupported download extension: {extension} "
            f"(supported: {', '.join(allowed)})",
            field='extension'
        )

    name = (file_name or '').strip() or default_download_name(has_merged)
    name = sanitize_filename(name)

    return DownloadArtifact(
        filename=f"{name}.{extension}",
        mimetype=_MIMETYPES.get(extension, _MIMETYPES[DEFAULT_EXTENSION]),
        data=content.encode('utf-8')
    )
