"""
core/palette.py

Fixed 256-color reference palette and transparency-aware re-quantization
for animated (GIF) output.

The reference palette uses the Plan 9 color-map layout (4x4x4 RGB cube with
interpolated luminance steps). Slot 0 is reserved for full transparency:
it is never chosen by dithering, and every pixel whose alpha is below 255 is
forced onto it afterwards.

API:
- plan9_palette() -> (256, 3) uint8 array
- quantize_with_transparency(rgba) -> PIL.Image in mode "P"
"""

import numpy as np
from PIL import Image

TRANSPARENT_INDEX = 0


def plan9_palette() -> np.ndarray:
    """
    Build the 256-entry Plan 9 palette.
    Entries are grouped by red level r and value step v (16 entries each);
    within a group, j = v - r + running offset picks the slot (mod 16).
    """
    pal = np.zeros((256, 3), dtype=np.uint8)
    i = 0
    for r in range(4):
        for v in range(4):
            j = v - r
            for g in range(4):
                for b in range(4):
                    den = max(r, g, b)
                    if den == 0:
                        color = (0x11 * v, 0x11 * v, 0x11 * v)
                    else:
                        num = 17 * (4 * den + v)
                        color = (r * num // den, g * num // den, b * num // den)
                    pal[i + (j & 0x0F)] = color
                    j += 1
            i += 16
    return pal


REFERENCE_PALETTE = plan9_palette()
REFERENCE_PALETTE[TRANSPARENT_INDEX] = (0, 0, 0)

# Dithering runs against slots 1..255 only. Pillow wants a full 256-entry
# palette, so slot 1 is repeated in the last position and mapped back.
_DITHER_COLORS = np.vstack([REFERENCE_PALETTE[1:], REFERENCE_PALETTE[1:2]])
_DITHER_TO_SLOT = np.append(np.arange(1, 256), 1).astype(np.uint8)


def _palette_image(colors: np.ndarray) -> Image.Image:
    img = Image.new("P", (1, 1))
    img.putpalette(np.ascontiguousarray(colors, dtype=np.uint8).tobytes())
    return img


_DITHER_PALETTE_IMAGE = _palette_image(_DITHER_COLORS)


def quantize_with_transparency(rgba: np.ndarray) -> Image.Image:
    """
    Re-quantize an HxWx4 uint8 image onto REFERENCE_PALETTE.

    Colors are chosen with Floyd-Steinberg error diffusion over the opaque
    slots; afterwards any pixel with alpha < 255 is set to TRANSPARENT_INDEX.
    The returned image carries info["transparency"] = TRANSPARENT_INDEX.
    """
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError("quantize_with_transparency expects an HxWx4 array.")
    h, w = rgba.shape[:2]
    rgb = Image.fromarray(np.ascontiguousarray(rgba[..., :3], dtype=np.uint8))
    dithered = rgb.quantize(palette=_DITHER_PALETTE_IMAGE, dither=Image.Dither.FLOYDSTEINBERG)

    indices = _DITHER_TO_SLOT[np.asarray(dithered)]
    indices[rgba[..., 3] < 255] = TRANSPARENT_INDEX

    out = Image.frombytes("P", (w, h), np.ascontiguousarray(indices).tobytes())
    out.putpalette(REFERENCE_PALETTE.tobytes())
    out.info["transparency"] = TRANSPARENT_INDEX
    return out
