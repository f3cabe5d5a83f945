# io_utils/image_handler.py
"""
Image decode/encode helpers using Pillow.

Functions:
- detect_format(data) -> "jpeg" | "png" | "gif" | "webp" | ...
- decode_image(data) -> (HxWx4 uint8 array, format)
- decode_sequence(data) -> core.frames.FrameSequence   (all frames, full canvas)
- encode_image(array, fmt) -> (bytes, content_type)
- encode_sequence(sequence) -> GIF bytes
- read_image(path) / save_image(path, array) for scripts

Output format selection: "jpeg" -> JPEG quality 90, "png" -> PNG,
"webp" -> lossless WebP, anything else -> PNG.
"""

import io
import struct
from typing import Tuple

import numpy as np
from PIL import GifImagePlugin, Image, ImageSequence
import pillow_avif  # noqa: F401  (registers the AVIF decoder)

from core.errors import DecodeError, EmptySequenceError, EncodeError
from core.filters import as_rgba
from core.frames import DISPOSAL_UNSPECIFIED, Frame, FrameSequence, padded_timing
from core.palette import TRANSPARENT_INDEX, quantize_with_transparency

JPEG_QUALITY = 90

CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
}

FORMAT_ALIASES = {"mpo": "jpeg"}


def _open(data: bytes) -> Image.Image:
    try:
        return Image.open(io.BytesIO(data))
    except (OSError, ValueError) as e:
        raise DecodeError(f"unsupported or corrupt image data: {e}") from e


def _format_name(img: Image.Image) -> str:
    fmt = (img.format or "").lower()
    # multi-picture JPEGs (camera/phone output) are plain JPEG for format selection
    return FORMAT_ALIASES.get(fmt, fmt)


def detect_format(data: bytes) -> str:
    """Lower-cased Pillow format name of `data`; raises DecodeError if it is not an image."""
    return _format_name(_open(data))


def decode_image(data: bytes) -> Tuple[np.ndarray, str]:
    """
    Decode a single image (first frame for animations).
    Returns (rgba, fmt) where rgba is a writable HxWx4 uint8 array.
    """
    img = _open(data)
    fmt = _format_name(img)
    try:
        rgba = np.array(img.convert("RGBA"))
    except (OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"failed to decode {fmt or 'image'}: {e}") from e
    return rgba, fmt


def decode_sequence(data: bytes) -> FrameSequence:
    """
    Decode every frame of an animation.
    Frames are returned composited to the full logical canvas (offset 0, 0);
    delays are in milliseconds, loop is None without a loop extension.
    """
    img = _open(data)
    frames, delays, disposals = [], [], []
    try:
        for frame in ImageSequence.Iterator(img):
            frames.append(Frame(frame.convert("RGBA")))
            delays.append(int(frame.info.get("duration", 0)))
            disposals.append(int(getattr(frame, "disposal_method", DISPOSAL_UNSPECIFIED)))
    except (OSError, ValueError, EOFError, SyntaxError) as e:
        raise DecodeError(f"failed to decode animation frames: {e}") from e
    return FrameSequence(
        frames=frames,
        size=img.size,
        delays=delays,
        disposals=disposals,
        loop=img.info.get("loop"),
    )


def encode_image(image, fmt: str) -> Tuple[bytes, str]:
    """
    Encode `image` (array or RGBA-convertible) into `fmt`.
    Returns (body, content_type). Unrecognized formats fall back to PNG.
    """
    img = Image.fromarray(as_rgba(np.asarray(image)))
    fmt = (fmt or "").lower()
    fmt = FORMAT_ALIASES.get(fmt, fmt)
    buf = io.BytesIO()
    try:
        if fmt == "jpeg":
            img.convert("RGB").save(buf, format="JPEG", quality=JPEG_QUALITY)
        elif fmt == "webp":
            img.save(buf, format="WEBP", lossless=True)
        else:
            fmt = "png"
            img.save(buf, format="PNG")
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"failed to encode {fmt}: {e}") from e
    return buf.getvalue(), CONTENT_TYPES[fmt]


def _paletted(image: Image.Image) -> Image.Image:
    if image.mode == "P" and image.info.get("transparency", TRANSPARENT_INDEX) == TRANSPARENT_INDEX:
        return image.copy()
    return quantize_with_transparency(np.asarray(image.convert("RGBA")))


def encode_sequence(sequence: FrameSequence) -> bytes:
    """
    Write `sequence` as an animated GIF with palette index 0 transparent.

    Every frame is written as its own image block, identical neighbours
    included, so the output has exactly one frame and one delay per input
    frame (Pillow's save_all path would merge them). Frames that are not
    paletted onto index 0 are re-quantized onto the reference palette; a
    frame whose palette differs from the first one gets a local color table.
    """
    if len(sequence.frames) == 0:
        raise EmptySequenceError("animation has no frames")
    delays, disposals = padded_timing(sequence)
    buf = io.BytesIO()
    try:
        images = [_paletted(f.image) for f in sequence.frames]
        header, _ = GifImagePlugin.getheader(
            images[0], info={"transparency": TRANSPARENT_INDEX, "loop": sequence.loop}
        )
        # logical screen size is the canvas, not the first frame
        header[0] = header[0][:6] + struct.pack("<HH", *sequence.size)
        buf.write(b"".join(header))
        global_palette = images[0].getpalette()
        for frame, img, delay, disposal in zip(sequence.frames, images, delays, disposals):
            chunks = GifImagePlugin.getdata(
                img,
                offset=tuple(frame.offset),
                duration=delay,
                disposal=disposal,
                transparency=TRANSPARENT_INDEX,
                include_color_table=img.getpalette() != global_palette,
            )
            buf.write(b"".join(chunks))
        buf.write(b";")
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"failed to encode gif: {e}") from e
    return buf.getvalue()


def read_image(path: str) -> Tuple[np.ndarray, dict]:
    """
    Read an image from `path` and return (rgba, meta).
    meta contains the source format, mode, size and frame count.
    """
    with open(path, "rb") as f:
        data = f.read()
    img = _open(data)
    meta = {
        "format": _format_name(img),
        "mode": img.mode,
        "size": img.size,
        "n_frames": getattr(img, "n_frames", 1),
    }
    rgba, _ = decode_image(data)
    return rgba, meta


def save_image(path: str, array: np.ndarray):
    """
    Save an image array to `path`. Accepts HxW, HxWx3 or HxWx4 uint8 arrays;
    the format follows the file extension.
    """
    arr = np.asarray(array)
    if np.issubdtype(arr.dtype, np.floating):
        arr = np.clip(arr, 0.0, 255.0).astype(np.uint8)
    img = Image.fromarray(as_rgba(arr.astype(np.uint8)))
    if path.lower().endswith((".jpg", ".jpeg")):
        img = img.convert("RGB")
    img.save(path)
