# io_utils/file_utils.py
"""
File naming, size formatting and content-type sniffing helpers.
"""

import os
import datetime

SNIFF_LEN = 512
OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=utf-8"

# (offset, signature, mime)
_SIGNATURES = [
    (0, b"\xff\xd8\xff", "image/jpeg"),
    (0, b"\x89PNG\r\n\x1a\n", "image/png"),
    (0, b"GIF87a", "image/gif"),
    (0, b"GIF89a", "image/gif"),
    (0, b"BM", "image/bmp"),
    (0, b"\x00\x00\x01\x00", "image/x-icon"),
    (0, b"\x00\x00\x02\x00", "image/x-icon"),
    (4, b"ftypavif", "image/avif"),
    (0, b"%PDF-", "application/pdf"),
]

_BINARY_BYTES = set(range(0x00, 0x09)) | {0x0B} | set(range(0x0E, 0x1B)) | set(range(0x1C, 0x20))


def human_file_size(size: int) -> str:
    """
    Format a byte count with binary (1024) units: "512 B", "1.50 KB", "3.00 MB" ...
    """
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.2f} {'KMGTPE'[exp]}B"


def sniff_mime(data: bytes) -> str:
    """
    Guess a MIME type from the leading bytes of a file (at most SNIFF_LEN are used).
    Unknown binary content is reported as application/octet-stream, content
    without control bytes as text/plain.
    """
    head = bytes(data[:SNIFF_LEN])
    for offset, sig, mime in _SIGNATURES:
        if head[offset:offset + len(sig)] == sig:
            return mime
    if head[:4] == b"RIFF" and head[8:14] == b"WEBPVP":
        return "image/webp"
    if any(b in _BINARY_BYTES for b in head):
        return OCTET_STREAM
    return TEXT_PLAIN


def sniff_file_mime(path: str) -> str:
    """sniff_mime() on the first SNIFF_LEN bytes of `path`; octet-stream if unreadable."""
    try:
        with open(path, "rb") as f:
            head = f.read(SNIFF_LEN)
    except OSError:
        return OCTET_STREAM
    return sniff_mime(head)


def make_result_filename(
    input_path: str,
    filter_name: str,
    ext: str = "png",
    outdir: str = ".",
) -> str:
    base = os.path.splitext(os.path.basename(input_path))[0]
    timestamp = datetime.datetime.now().strftime("%Y%m%dT%H%M%S")
    fname = f"{base}_{filter_name}_{timestamp}.{ext}"
    os.makedirs(outdir, exist_ok=True)
    return os.path.join(outdir, fname)
