"""
Render every registered filter on one image, plus the reference GIF palette,
into the gallery directory (NEKO_GALLERY_DIR, default results/gallery/).

Usage (from project root):
python -m scripts.filter_gallery data/sample.png
python -m scripts.filter_gallery data/dance.gif      # also writes a frame strip
python -m scripts.filter_gallery data/sample.png --each   # plus one PNG per filter
"""

import argparse
import os

from core.filters import apply_filter, available_filters
from core.frames import process_sequence
from core.palette import REFERENCE_PALETTE
from io_utils.image_handler import decode_sequence, read_image, save_image
from service.config import get_settings
from visuals.plots import plot_filter_gallery, plot_frame_strip, plot_palette


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("input", help="source image path")
    parser.add_argument("--strip-filter", default="negative", help="filter used for the animation frame strip")
    parser.add_argument("--each", action="store_true", help="also save every filtered image as its own PNG")
    args = parser.parse_args(argv)

    outdir = get_settings().gallery_dir
    base = os.path.splitext(os.path.basename(args.input))[0]

    rgba, meta = read_image(args.input)
    written = [
        plot_filter_gallery(rgba, out_path=os.path.join(outdir, f"{base}_gallery.png")),
        plot_palette(REFERENCE_PALETTE, out_path=os.path.join(outdir, "reference_palette.png")),
    ]

    if args.each:
        for name in available_filters():
            p = os.path.join(outdir, f"{base}_{name}.png")
            save_image(p, apply_filter(name, rgba))
            written.append(p)

    if meta["format"] == "gif" and meta["n_frames"] > 1:
        with open(args.input, "rb") as f:
            sequence = decode_sequence(f.read())
        processed = process_sequence(args.strip_filter, sequence)
        written.append(plot_frame_strip(processed, out_path=os.path.join(outdir, f"{base}_{args.strip_filter}_frames.png")))

    for p in written:
        print("Wrote:", p)
    return written


if __name__ == "__main__":
    main()
