"""
core/frames.py

Frame-by-frame filtering of animations.

Pipeline per frame (playback order is preserved):
  1) compose the frame onto a transparent full-canvas RGBA raster at its offset
  2) apply the named filter (core.filters.apply_filter)
  3) re-quantize onto the reference palette with index 0 kept transparent
     (core.palette.quantize_with_transparency)

Per-frame delays and disposal methods are copied positionally; missing
entries default to delay 0 and disposal DISPOSAL_NONE. The loop count is
copied unchanged, and the output always has as many frames as the input.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from .errors import EmptySequenceError
from .filters import apply_filter
from .palette import quantize_with_transparency

logger = logging.getLogger(__name__)

# GIF disposal codes
DISPOSAL_UNSPECIFIED = 0
DISPOSAL_NONE = 1
DISPOSAL_BACKGROUND = 2
DISPOSAL_PREVIOUS = 3


@dataclass
class Frame:
    """One animation frame; `offset` is the (x, y) of its top-left corner on the canvas."""
    image: Image.Image
    offset: Tuple[int, int] = (0, 0)


@dataclass
class FrameSequence:
    """
    Ordered frames plus timing metadata.
    size is the (width, height) of the logical canvas, delays are in
    milliseconds, loop is None when the source had no loop extension
    (0 means loop forever).
    """
    frames: List[Frame]
    size: Tuple[int, int]
    delays: List[int] = field(default_factory=list)
    disposals: List[int] = field(default_factory=list)
    loop: Optional[int] = None

    def __len__(self) -> int:
        return len(self.frames)


def padded_timing(sequence: FrameSequence) -> Tuple[List[int], List[int]]:
    """
    Return (delays, disposals) with exactly one entry per frame.
    Missing entries default to 0 ms and DISPOSAL_NONE; surplus entries are dropped.
    """
    n = len(sequence.frames)
    delays = [sequence.delays[i] if i < len(sequence.delays) else 0 for i in range(n)]
    disposals = [sequence.disposals[i] if i < len(sequence.disposals) else DISPOSAL_NONE for i in range(n)]
    return delays, disposals


def compose_frame(frame: Frame, size: Tuple[int, int]) -> np.ndarray:
    """Draw `frame` over a fully transparent canvas of `size`; returns HxWx4 uint8."""
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.alpha_composite(frame.image.convert("RGBA"), dest=tuple(frame.offset))
    return np.asarray(canvas)


def process_sequence(filter_name: str, sequence: FrameSequence) -> FrameSequence:
    """
    Apply `filter_name` to every frame of `sequence` and return a new
    sequence of paletted full-canvas frames.
    Raises EmptySequenceError when the input has no frames.
    """
    if len(sequence.frames) == 0:
        raise EmptySequenceError("animation has no frames")

    frames: List[Frame] = []
    for frame in sequence.frames:
        canvas = compose_frame(frame, sequence.size)
        filtered = apply_filter(filter_name, canvas)
        frames.append(Frame(quantize_with_transparency(filtered)))

    delays, disposals = padded_timing(sequence)

    logger.debug("Applied '%s' to %d animation frames", filter_name, len(frames))
    return FrameSequence(
        frames=frames,
        size=sequence.size,
        delays=delays,
        disposals=disposals,
        loop=sequence.loop,
    )
