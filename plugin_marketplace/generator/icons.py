"""Plugin icons — loading fallback images and encoding them as data URIs.

Icons are stored inline in the catalogue as ``data:<mime>;base64,<payload>``.
SVG is recognised from its markup; raster formats are sniffed from their
leading magic bytes.
"""

from __future__ import annotations

import base64
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plugin_marketplace.generator.host import ArtifactFetcher

logger = logging.getLogger(__name__)

SVG_MIME = "image/svg+xml"

_COMMENT_RE = re.compile(rb"<!--.*?-->", re.DOTALL)
_SVG_RE = re.compile(
    rb"^\s*(?:<\?xml[^>]*>\s*)?(?:<!doctype\s+svg[^>]*>\s*)?<svg[\s>]",
    re.IGNORECASE,
)

# (offset, magic bytes, mime)
_RASTER_SIGNATURES: list[tuple[int, bytes, str]] = [
    (0, b"\x89PNG\r\n\x1a\n", "image/png"),
    (0, b"\xff\xd8\xff", "image/jpeg"),
    (0, b"GIF87a", "image/gif"),
    (0, b"GIF89a", "image/gif"),
    (8, b"WEBP", "image/webp"),
    (0, b"BM", "image/bmp"),
    (0, b"\x00\x00\x01\x00", "image/x-icon"),
    (0, b"II*\x00", "image/tiff"),
    (0, b"MM\x00*", "image/tiff"),
]


class IconError(RuntimeError):
    """Raised when an icon cannot be loaded or is not a recognised image."""


def is_svg(data: bytes) -> bool:
    """Whether *data* looks like an SVG document."""
    stripped = _COMMENT_RE.sub(b"", data)
    return bool(_SVG_RE.match(stripped)) and b"</svg>" in stripped.lower()


def sniff_mime(data: bytes) -> str | None:
    """Return the image MIME type of *data*, or ``None`` if unrecognised."""
    if is_svg(data):
        return SVG_MIME
    for offset, magic, mime in _RASTER_SIGNATURES:
        if mime == "image/webp" and not data.startswith(b"RIFF"):
            continue
        if data[offset:offset + len(magic)] == magic:
            return mime
    return None


def to_data_uri(data: bytes, default_mime: str | None = None) -> str:
    """Encode *data* as a base64 data URI.

    Raises
    ------
    IconError
        If the MIME type cannot be determined and no *default_mime* is given.
    """
    mime = sniff_mime(data) or default_mime
    if mime is None:
        raise IconError("failed to match icon to a known image type")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def load_icon(reference: str, fetcher: ArtifactFetcher | None = None) -> bytes:
    """Load icon bytes from an ``http(s)`` URL or a local file path."""
    if reference.startswith(("http://", "https://")):
        if fetcher is None:
            raise IconError(f"no fetcher available to download icon at {reference}")
        logger.debug("Fetching icon from url %s.", reference)
        return fetcher.fetch(reference)

    logger.debug("Reading icon from path %s.", reference)
    try:
        return Path(reference).read_bytes()
    except OSError as exc:
        raise IconError(f"failed to open icon at path {reference}: {exc}") from exc
