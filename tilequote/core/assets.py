"""
Logo resolution.
Turns the stored logo reference (data URL, media path or raw bytes) into
encoded image bytes before a document is composed.
"""

import base64
import binascii
from pathlib import Path
from typing import Optional, Union

from tilequote.core.exceptions import LogoDecodeError
from tilequote.core.logging_config import get_logger
from tilequote.core.paths import AppPaths, app_paths

logger = get_logger(__name__)

LogoSource = Union[str, bytes, Path, None]


def resolve_logo(source: LogoSource, paths: AppPaths = app_paths) -> Optional[bytes]:
    """
    Resolve a logo reference to encoded image bytes.

    Args:
        source: 'data:image/...;base64,...' URL, file path (absolute or
            relative to the media directory), raw bytes, or empty
        paths: Application paths used for relative media paths

    Returns:
        Encoded image bytes, or None when no logo is configured

    Raises:
        LogoDecodeError: if a data URL carries invalid base64
        FileNotFoundError: if a logo path does not exist
    """
    if not source:
        return None

    if isinstance(source, bytes):
        return source

    if isinstance(source, str) and source.startswith('data:'):
        return _decode_data_url(source)

    path = paths.get_absolute_media_path(str(source))
    logger.debug(f"Reading logo from {path}")
    return Path(path).read_bytes()


def _decode_data_url(url: str) -> bytes:
    header, _, payload = url.partition(',')
    if not header.endswith(';base64'):
        raise LogoDecodeError(f"unsupported data URL header {header[:40]!r}")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise LogoDecodeError("invalid base64 payload", e) from e


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    """Encode image bytes as a data URL for storage in the business profile."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
