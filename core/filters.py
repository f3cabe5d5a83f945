"""
core/filters.py

Stateless pixel filters and the name -> filter registry.

Every filter takes an HxWx4 uint8 RGBA array and returns a new HxWx4 uint8
array with identical shape. Inputs are never modified in place, and the
source alpha channel is carried over unless the filter says otherwise
(pixelate averages it, anime_outline paints opaque black edges).

API:
- apply_filter(name, image) -> np.ndarray   (unknown name -> unchanged copy)
- available_filters() -> list[str]
- as_rgba(image) -> HxWx4 uint8 array

Numeric conventions: channel values are computed in float64 and truncated
toward zero before clamping to 0..255 (greyscale rounds half up instead).
Luminance uses the BT.601 weights 0.299 / 0.587 / 0.114.
"""

from typing import Callable, Dict, List, Optional, Tuple
import numpy as np

FilterFn = Callable[[np.ndarray], np.ndarray]

_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float64)

_WHITE = (255, 255, 255)
_NEAR_BLACK = (35, 39, 42)


# --- helpers ---
def as_rgba(image) -> np.ndarray:
    """
    Return `image` as a contiguous HxWx4 uint8 array.
    Grayscale (HxW) and RGB (HxWx3) inputs are promoted with an opaque alpha.
    """
    arr = np.asarray(image)
    if arr.dtype != np.uint8:
        raise ValueError("filters expect uint8 image data.")
    if arr.ndim == 2:
        rgba = np.empty(arr.shape + (4,), dtype=np.uint8)
        rgba[..., :3] = arr[..., None]
        rgba[..., 3] = 255
        return rgba
    if arr.ndim == 3 and arr.shape[2] == 3:
        rgba = np.empty(arr.shape[:2] + (4,), dtype=np.uint8)
        rgba[..., :3] = arr
        rgba[..., 3] = 255
        return rgba
    if arr.ndim == 3 and arr.shape[2] == 4:
        return np.ascontiguousarray(arr)
    raise ValueError("filters expect an HxW, HxWx3 or HxWx4 array.")


def _clamp8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.trunc(values), 0, 255).astype(np.uint8)


def _float_channels(rgba: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    rgb = rgba[..., :3].astype(np.float64)
    return rgb[..., 0], rgb[..., 1], rgb[..., 2]


def _with_rgb(rgba: np.ndarray, r: np.ndarray, g: np.ndarray, b: np.ndarray) -> np.ndarray:
    out = rgba.copy()
    out[..., 0] = r
    out[..., 1] = g
    out[..., 2] = b
    return out


def luminance(rgba: np.ndarray) -> np.ndarray:
    """Unscaled luminance (0..255) of each pixel as float64."""
    return rgba[..., :3].astype(np.float64) @ _LUMA


# --- simple per-pixel filters ---
def negative(rgba: np.ndarray) -> np.ndarray:
    out = rgba.copy()
    out[..., :3] = 255 - rgba[..., :3]
    return out


def greyscale(rgba: np.ndarray) -> np.ndarray:
    grey = np.clip(np.floor(luminance(rgba) + 0.5), 0, 255).astype(np.uint8)
    return _with_rgb(rgba, grey, grey, grey)


def posterize(rgba: np.ndarray, levels: int = 4) -> np.ndarray:
    """
    Reduce each color channel to `levels` steps: floor(c / step) * step,
    with step = 256 // levels. Alpha is untouched.
    """
    if levels < 1 or levels > 256:
        raise ValueError("posterize levels must be in 1..256.")
    step = 256 // levels
    out = rgba.copy()
    out[..., :3] = (rgba[..., :3] // step) * step
    return out


def pixelate(rgba: np.ndarray, block_size: int = 6) -> np.ndarray:
    """
    Replace every block_size x block_size cell with its per-channel mean
    (alpha included). Means are taken over 16-bit scaled samples and shifted
    back to 8 bits, so they round down. Edge cells that run past the image
    border average only the pixels they cover.
    """
    if block_size < 1:
        raise ValueError("block_size must be >= 1.")
    h, w = rgba.shape[:2]
    b = block_size
    wide = np.pad(rgba.astype(np.int64) * 257, ((0, -h % b), (0, -w % b), (0, 0)))
    rows, cols = wide.shape[0] // b, wide.shape[1] // b
    sums = wide.reshape(rows, b, cols, b, 4).sum(axis=(1, 3))

    counts = np.minimum(b, h - np.arange(rows) * b)[:, None] * np.minimum(b, w - np.arange(cols) * b)[None, :]
    means = (sums // np.maximum(counts, 1)[..., None]) >> 8
    out = np.repeat(np.repeat(means, b, axis=0), b, axis=1)[:h, :w]
    return out.astype(np.uint8)


def deepfry(rgba: np.ndarray) -> np.ndarray:
    r, g, b = _float_channels(rgba)
    return _with_rgb(
        rgba,
        _clamp8(np.minimum(255.0, r * 1.8 + 50)),
        _clamp8(np.minimum(255.0, g * 1.4)),
        _clamp8(np.minimum(255.0, b * 0.8)),
    )


def vaporwave(rgba: np.ndarray) -> np.ndarray:
    r, g, b = _float_channels(rgba)
    return _with_rgb(rgba, _clamp8(r * 1.2 + 30), _clamp8(g * 0.9), _clamp8(b * 1.2 + 20))


def neon(rgba: np.ndarray) -> np.ndarray:
    r, g, b = _float_channels(rgba)
    avg = (r + g + b) / 3
    factor = np.where(avg > 180, 2.5, np.where(avg < 50, 0.5, 2.0))
    return _with_rgb(rgba, _clamp8(r * factor), _clamp8(g * factor * 0.8), _clamp8(b * factor * 1.2))


def glitch(rgba: np.ndarray, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Channel-shift glitch.
    Each scanline samples R, G and B from three independent horizontal offsets
    in [-3, 3] (x clamped to the image), then 5 random bands of 5..14 rows get
    their color channels XORed with a random byte in 0..99.
    """
    rng = np.random.default_rng() if rng is None else rng
    h, w = rgba.shape[:2]
    out = rgba.copy()
    if h == 0 or w == 0:
        return out

    offsets = rng.integers(-3, 4, size=(h, 3))
    rows = np.arange(h)[:, None]
    cols = np.arange(w)[None, :]
    for c in range(3):
        xs = np.clip(cols + offsets[:, c:c + 1], 0, w - 1)
        out[..., c] = rgba[rows, xs, c]

    for _ in range(5):
        y0 = int(rng.integers(0, h))
        band = int(rng.integers(5, 15))
        shift = np.uint8(rng.integers(0, 100))
        out[y0:y0 + band, :, :3] ^= shift
    return out


# --- luminance-banded palettes ---
def _luminance_band(rgba: np.ndarray, bright: Tuple[int, int, int], mid: Tuple[int, int, int]) -> np.ndarray:
    """
    Map each pixel to one of four colors by normalized luminance L:
      L >= 0.92 -> white, 0.70 <= L -> bright, 0.45 <= L -> mid, else near-black.
    """
    lum = luminance(rgba) / 255.0
    rgb = np.empty(lum.shape + (3,), dtype=np.uint8)
    rgb[...] = _NEAR_BLACK
    rgb[lum >= 0.45] = mid
    rgb[lum >= 0.70] = bright
    rgb[lum >= 0.92] = _WHITE
    out = rgba.copy()
    out[..., :3] = rgb
    return out


def blurple(rgba: np.ndarray) -> np.ndarray:
    return _luminance_band(rgba, (88, 101, 242), (69, 79, 191))


def fuchsia(rgba: np.ndarray) -> np.ndarray:
    return _luminance_band(rgba, (192, 88, 168), (152, 40, 128))


def crimson(rgba: np.ndarray) -> np.ndarray:
    return _luminance_band(rgba, (180, 50, 50), (120, 20, 30))


def mint(rgba: np.ndarray) -> np.ndarray:
    return _luminance_band(rgba, (100, 255, 200), (30, 120, 100))


def sunset(rgba: np.ndarray) -> np.ndarray:
    return _luminance_band(rgba, (255, 140, 90), (120, 60, 80))


# --- neighborhood filters ---
def anime_outline(rgba: np.ndarray, threshold: int = 30) -> np.ndarray:
    """
    Paint opaque black where the color jump to the right and below neighbors
    is large. Only interior pixels are tested; the 1-pixel border keeps the
    source pixel instead of becoming transparent black, so the output keeps
    its outer frame of pixels.

    The per-pixel delta is the sum of absolute R, G, B differences to the
    right neighbor plus the same to the neighbor below, on 16-bit scaled
    samples (c * 257), compared against threshold * 3 * 256.
    """
    out = rgba.copy()
    h, w = rgba.shape[:2]
    if h < 3 or w < 3:
        return out
    wide = rgba[..., :3].astype(np.int64) * 257
    center = wide[1:-1, 1:-1]
    right = wide[1:-1, 2:]
    below = wide[2:, 1:-1]
    delta = np.abs(center - right).sum(axis=2) + np.abs(center - below).sum(axis=2)
    edges = delta > threshold * 3 * 256
    interior = out[1:-1, 1:-1]
    interior[edges] = (0, 0, 0, 255)
    return out


def _edge_strength(rgb: np.ndarray) -> np.ndarray:
    """
    Mean over the in-bounds 4-neighbors of (|dR| + |dG| + |dB|) / 3.
    """
    h, w = rgb.shape[:2]
    total = np.zeros((h, w), dtype=np.float64)
    count = np.zeros((h, w), dtype=np.float64)

    vertical = np.abs(rgb[:-1] - rgb[1:]).sum(axis=2) / 3.0
    total[:-1] += vertical
    count[:-1] += 1
    total[1:] += vertical
    count[1:] += 1

    horizontal = np.abs(rgb[:, :-1] - rgb[:, 1:]).sum(axis=2) / 3.0
    total[:, :-1] += horizontal
    count[:, :-1] += 1
    total[:, 1:] += horizontal
    count[:, 1:] += 1

    return np.divide(total, count, out=np.zeros_like(total), where=count > 0)


def _dilate3x3(mask: np.ndarray) -> np.ndarray:
    h, w = mask.shape
    padded = np.pad(mask, 1, mode="constant", constant_values=False)
    out = np.zeros_like(mask)
    for dy in range(3):
        for dx in range(3):
            out |= padded[dy:dy + h, dx:dx + w]
    return out


def pop_pink(rgba: np.ndarray) -> np.ndarray:
    """
    Boosted base colors with a red halo around edges.

    Base: R*1.5+40, G*1.2+90, B*1.8+127.5 (clamped).
    Halo: pixels whose 4-neighbor edge strength exceeds 20 get (255, 40, 60)
    at alpha 60, expanded by a 3x3 max-alpha dilation, then alpha-blended over
    the base. Output alpha is the source alpha.
    """
    h, w = rgba.shape[:2]
    if h == 0 or w == 0:
        return rgba.copy()
    r, g, b = _float_channels(rgba)
    base = np.stack(
        [_clamp8(r * 1.5 + 40), _clamp8(g * 1.2 + 90), _clamp8(b * 1.8 + 127.5)],
        axis=-1,
    ).astype(np.float64)

    halo = _dilate3x3(_edge_strength(rgba[..., :3].astype(np.float64)) > 20.0)
    alpha = np.where(halo, 60 / 255.0, 0.0)[..., None]
    halo_rgb = np.array([255.0, 40.0, 60.0])

    out = rgba.copy()
    out[..., :3] = _clamp8(base * (1.0 - alpha) + halo_rgb * alpha)
    return out


# --- registry ---
FILTERS: Dict[str, FilterFn] = {
    "negative": negative,
    "greyscale": greyscale,
    "posterize": posterize,
    "pixelate": pixelate,
    "deepfry": deepfry,
    "vaporwave": vaporwave,
    "neon": neon,
    "glitch": glitch,
    "blurple": blurple,
    "fuchsia": fuchsia,
    "crimson": crimson,
    "mint": mint,
    "sunset": sunset,
    "anime_outline": anime_outline,
    "pop_pink": pop_pink,
}


def available_filters() -> List[str]:
    return list(FILTERS)


def apply_filter(name: str, image) -> np.ndarray:
    """
    Apply the filter registered under `name` (exact, case-sensitive).
    An unknown name is not an error: a pixel-identical copy of the input
    (as RGBA) is returned so that a typo never fails a whole request.
    """
    rgba = as_rgba(image)
    fn = FILTERS.get(name)
    if fn is None:
        return rgba.copy()
    return fn(rgba)
