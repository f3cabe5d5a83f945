# io_utils/__init__.py
"""
I/O helpers: image codec and file helpers.
"""
from .image_handler import (
    decode_image,
    decode_sequence,
    detect_format,
    encode_image,
    encode_sequence,
    read_image,
    save_image,
)
from .file_utils import human_file_size, make_result_filename, sniff_file_mime, sniff_mime

__all__ = [
    "decode_image",
    "decode_sequence",
    "detect_format",
    "encode_image",
    "encode_sequence",
    "read_image",
    "save_image",
    "human_file_size",
    "make_result_filename",
    "sniff_file_mime",
    "sniff_mime",
]
