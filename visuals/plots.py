"""
visuals/plots.py

Plotting utilities for inspecting filter output.

APIs:
- compare_and_save(original, filtered, out_path=None, titles=None)
- plot_filter_gallery(image, filter_names=None, out_path=None, columns=4)
- plot_palette(palette, out_path=None, swatch=16)
- plot_frame_strip(sequence, out_path=None, max_frames=8)

Notes:
- This module uses matplotlib. It does not modify core behavior.
- If out_path is None, functions return the matplotlib Figure object
  (plot_palette returns the swatch array instead).
"""

import math
import os
from typing import Optional, Sequence

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from PIL import Image

from core.filters import apply_filter, as_rgba, available_filters
from core.frames import FrameSequence


def _ensure_outdir(out_path: Optional[str]):
    if out_path is None:
        return None
    d = os.path.dirname(out_path)
    if d:
        os.makedirs(d, exist_ok=True)
    return out_path


def _save_or_return(fig: plt.Figure, out_path: Optional[str], dpi: int = 100):
    if out_path is not None:
        _ensure_outdir(out_path)
        fig.savefig(out_path, dpi=dpi, bbox_inches="tight", pad_inches=0.05)
        plt.close(fig)
        return out_path
    return fig


def _show(ax, rgba: np.ndarray, title: str):
    ax.imshow(rgba, interpolation="nearest")
    ax.set_title(title)
    ax.axis("off")


def compare_and_save(
    original: np.ndarray,
    filtered: np.ndarray,
    out_path: Optional[str] = None,
    titles: Optional[Sequence[str]] = None,
):
    """
    Original (left) | Filtered (right)
    """
    titles = titles or ("Original", "Filtered")
    fig, axs = plt.subplots(1, 2, figsize=(12, 6))
    _show(axs[0], as_rgba(original), titles[0])
    _show(axs[1], as_rgba(filtered), titles[1])
    return _save_or_return(fig, out_path, dpi=200)


def plot_filter_gallery(
    image: np.ndarray,
    filter_names: Optional[Sequence[str]] = None,
    out_path: Optional[str] = None,
    columns: int = 4,
):
    """
    Grid of `image` through each filter (all registered filters by default),
    the unfiltered source in the first cell.
    """
    rgba = as_rgba(image)
    names = list(filter_names) if filter_names is not None else available_filters()
    cells = [("original", rgba)] + [(name, apply_filter(name, rgba)) for name in names]

    columns = max(1, min(columns, len(cells)))
    rows = math.ceil(len(cells) / columns)
    fig, axs = plt.subplots(rows, columns, figsize=(3 * columns, 3 * rows), squeeze=False)
    for ax in axs.flat:
        ax.axis("off")
    for ax, (title, arr) in zip(axs.flat, cells):
        _show(ax, arr, title)
    return _save_or_return(fig, out_path)


def plot_palette(palette: np.ndarray, out_path: Optional[str] = None, swatch: int = 16):
    """
    Render a (N, 3) palette as a 16-column grid of square swatches.
    Saved as a raw PNG (no Matplotlib) when out_path is given.
    """
    pal = np.asarray(palette, dtype=np.uint8).reshape(-1, 3)
    cols = 16
    rows = math.ceil(len(pal) / cols)
    grid = np.zeros((rows * swatch, cols * swatch, 3), dtype=np.uint8)
    for i, color in enumerate(pal):
        r, c = divmod(i, cols)
        grid[r * swatch:(r + 1) * swatch, c * swatch:(c + 1) * swatch] = color
    if out_path is None:
        return grid
    _ensure_outdir(out_path)
    Image.fromarray(grid).save(out_path)
    return out_path


def plot_frame_strip(sequence: FrameSequence, out_path: Optional[str] = None, max_frames: int = 8):
    """Show the first `max_frames` frames of an animation side by side with their delays."""
    frames = sequence.frames[:max_frames]
    if not frames:
        raise ValueError("plot_frame_strip needs at least one frame.")
    fig, axs = plt.subplots(1, len(frames), figsize=(3 * len(frames), 3), squeeze=False)
    for i, (ax, frame) in enumerate(zip(axs[0], frames)):
        delay = sequence.delays[i] if i < len(sequence.delays) else 0
        _show(ax, np.asarray(frame.image.convert("RGBA")), f"#{i} ({delay} ms)")
    return _save_or_return(fig, out_path)
