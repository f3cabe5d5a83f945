"""
Apply one named filter to an image file (GIF animations are processed frame by frame).

Usage (from project root):
python -m scripts.apply_filter blurple data/cat.png
python -m scripts.apply_filter glitch data/dance.gif -o results/dance_glitch.gif

Without -o the output goes to results/<name>_<filter>_<timestamp>.<ext>, with the
extension picked from the returned content type.
"""

import argparse
import logging
import os

from core.filters import available_filters
from io_utils.image_handler import detect_format
from io_utils.file_utils import make_result_filename
from service.config import get_settings
from service.image_service import filter_image_bytes
from service.observability import setup_logging

logger = logging.getLogger("scripts.apply_filter")

EXTENSIONS = {
    "image/gif": "gif",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("filter", help="one of: " + ", ".join(available_filters()))
    parser.add_argument("input", help="source image path")
    parser.add_argument("-o", "--output", help="output path")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    if args.filter not in available_filters():
        logger.warning("Unknown filter '%s': output will equal the input pixels", args.filter)

    with open(args.input, "rb") as f:
        data = f.read()
    logger.info("Source %s is %s", args.input, detect_format(data) or "unknown", extra={"path": args.input})
    result = filter_image_bytes(args.filter, data)

    out_path = args.output or make_result_filename(
        args.input, args.filter, ext=EXTENSIONS.get(result.content_type, "png"), outdir="results"
    )
    d = os.path.dirname(out_path)
    if d:
        os.makedirs(d, exist_ok=True)
    with open(out_path, "wb") as f:
        f.write(result.body)
    print(f"{result.content_type} -> {out_path}")
    return out_path


if __name__ == "__main__":
    main()
