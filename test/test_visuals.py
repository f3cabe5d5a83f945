import os
import numpy as np
import pytest
from PIL import Image
from core.frames import Frame, FrameSequence
from core.palette import REFERENCE_PALETTE
from visuals.plots import compare_and_save, plot_filter_gallery, plot_frame_strip, plot_palette


def _make_temp_dir(tmp_path, name="vis_tmp"):
    p = tmp_path / name
    p.mkdir()
    return str(p)


def test_gallery_and_compare(tmp_path):
    outdir = _make_temp_dir(tmp_path)
    img = np.zeros((16, 16, 3), dtype=np.uint8)
    img[:, 8:] = 200
    p1 = os.path.join(outdir, "gallery.png")
    p2 = os.path.join(outdir, "cmp.png")
    assert plot_filter_gallery(img, filter_names=["negative", "blurple", "glitch"], out_path=p1) == p1
    assert compare_and_save(img, 255 - img, out_path=p2) == p2
    assert os.path.exists(p1)
    assert os.path.exists(p2)


def test_palette_swatch(tmp_path):
    grid = plot_palette(REFERENCE_PALETTE, swatch=2)
    assert grid.shape == (32, 32, 3)
    assert tuple(grid[-1, -1]) == tuple(REFERENCE_PALETTE[255])
    p = str(tmp_path / "nested" / "palette.png")
    assert plot_palette(REFERENCE_PALETTE, out_path=p) == p
    assert Image.open(p).size == (256, 256)


def test_frame_strip(tmp_path):
    seq = FrameSequence(
        frames=[Frame(Image.new("RGBA", (8, 8), (i * 60, 0, 0, 255))) for i in range(3)],
        size=(8, 8),
        delays=[10, 20],
    )
    p = str(tmp_path / "strip.png")
    assert plot_frame_strip(seq, out_path=p) == p
    assert os.path.exists(p)
    with pytest.raises(ValueError):
        plot_frame_strip(FrameSequence(frames=[], size=(1, 1)))
