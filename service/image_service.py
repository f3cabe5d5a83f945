"""Request-level operations over an injected AssetCatalog.

The HTTP layer (routing, status mapping) and the network fetch of source
images live outside this package; handlers call into ImageService with
plain values and get plain values or typed errors back:

    NotFoundError -> 404, DecodeError / EncodeError / EmptySequenceError -> 5xx
"""

import logging
from dataclasses import dataclass
from typing import List

from catalog.catalog import AssetCatalog
from core.filters import apply_filter
from core.frames import process_sequence
from io_utils.file_utils import sniff_mime
from io_utils.image_handler import decode_image, decode_sequence, encode_image, encode_sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterResult:
    body: bytes
    content_type: str


def filter_image_bytes(filter_name: str, data: bytes) -> FilterResult:
    """
    Apply `filter_name` to encoded image bytes.
    GIF input goes through the frame pipeline and is returned as GIF;
    anything else is decoded once and re-encoded in its own format
    (PNG when the format has no encoder mapping).
    """
    if sniff_mime(data).startswith("image/gif"):
        sequence = decode_sequence(data)
        result = process_sequence(filter_name, sequence)
        logger.info("Filtered %d-frame animation with '%s'", len(result), filter_name,
                    extra={"filter_name": filter_name})
        return FilterResult(encode_sequence(result), "image/gif")

    rgba, fmt = decode_image(data)
    filtered = apply_filter(filter_name, rgba)
    body, content_type = encode_image(filtered, fmt)
    logger.info("Filtered %dx%d %s image with '%s'", rgba.shape[1], rgba.shape[0], fmt or "unknown",
                filter_name, extra={"filter_name": filter_name})
    return FilterResult(body, content_type)


class ImageService:
    def __init__(self, catalog: AssetCatalog):
        self.catalog = catalog

    def random_image(self, category: str) -> str:
        return self.catalog.get_random(category)

    def image_path(self, category: str, name: str) -> str:
        return self.catalog.get_image_path(category, name)

    def image_meta(self, category: str, name: str) -> dict:
        return self.catalog.describe(category, name)

    def cache_listing(self, category: str) -> dict:
        """Diagnostics view of one category's current snapshot."""
        files: List[str] = self.catalog.get_files(category) or []
        return {"category": category, "count": len(files), "files": files}

    def filter_bytes(self, filter_name: str, data: bytes) -> FilterResult:
        return filter_image_bytes(filter_name, data)
