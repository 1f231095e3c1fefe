#!/usr/bin/env python3
"""
Relocate the images of items already stored in Mnemo.

Lists every stored item of a content type, copies each image still hosted
outside the CDN (Webflow's asset host, for instance) into the bucket and
updates the rows whose URLs changed.  Rows that only reference the CDN are
left untouched, so the script can be re-run safely.

Example::

    python scripts/relocate_collection_images.py --type programme --webp
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Allows importing webflow_migrator when run as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from webflow_migrator.config import CONFIG_FILE, load_config  # noqa: E402
from webflow_migrator.migration_tool import WebflowMigrationTool  # noqa: E402
from webflow_migrator.models.collection_item import CONTENT_TYPES  # noqa: E402
from webflow_migrator.utils.errors import MigrationError  # noqa: E402
from webflow_migrator.utils.pre_flight_checks import run_pre_flight_checks  # noqa: E402


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Move the images of stored Mnemo items to the CDN and update the items.",
    )
    parser.add_argument("--type", required=True, choices=CONTENT_TYPES, help="Content type to process.")
    parser.add_argument("--config", default=CONFIG_FILE, help="JSON configuration file.")
    parser.add_argument("--webp", action="store_true", default=None, help="Re-encode images as WebP.")
    parser.add_argument("--dry-run", action="store_true", default=None, help="List work without uploading.")
    parser.add_argument("--limit", type=int, help="Only process the first N stored items.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    overrides = {
        "relocate_images": True,
        "compress_to_webp": args.webp,
        "dry_run": args.dry_run,
        "limit": args.limit,
    }
    try:
        config = load_config(args.config, overrides=overrides)
        config.require(args.type, source=False)
        tool = WebflowMigrationTool(config)
        run_pre_flight_checks(config, args.type, tool.relocator.storage, source=False)
        report = tool.run(args.type, relocate_only=True)
    except MigrationError as e:
        print(f"[ERROR] {e}")
        return 1

    print(
        f"[INFO] {report['updated']} items updated, {report['relocated_images']} images relocated, "
        f"{report['image_failures']} images failed"
    )
    return 1 if report["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
