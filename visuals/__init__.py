# visuals/__init__.py
"""
Visual helpers for inspecting filters, palettes and animations.
Used by the scripts in scripts/.
"""
from .plots import (
    compare_and_save,
    plot_filter_gallery,
    plot_palette,
    plot_frame_strip,
)
__all__ = [
    "compare_and_save",
    "plot_filter_gallery",
    "plot_palette",
    "plot_frame_strip",
]
