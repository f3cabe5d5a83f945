"""
Scan the asset root and print the catalog as JSON (one record per asset).
With --watch SECONDS the change watcher runs for that long and the report is
printed again afterwards, showing what it picked up.

Usage (from project root):
python -m scripts.catalog_report
NEKO_ASSETS_ROOT=/srv/assets python -m scripts.catalog_report --watch 30
"""

import argparse
import json
import time

from service.bootstrap import build_service
from service.config import get_settings


def report(catalog) -> dict:
    return {
        category: [catalog.describe(category, name) for name in catalog.get_files(category) or []]
        for category in catalog.categories()
    }


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--watch", type=float, default=0.0, help="seconds to keep the watcher running")
    args = parser.parse_args(argv)

    settings = get_settings().model_copy(update={"watch_enabled": args.watch > 0})
    with build_service(settings) as runtime:
        print(json.dumps(report(runtime.catalog), indent=2))
        if args.watch > 0:
            time.sleep(args.watch)
            print(json.dumps(report(runtime.catalog), indent=2))


if __name__ == "__main__":
    main()
