"""
Entry point for the Webflow to Mnemo migration tool.

Usage::

    python main.py --type post
    python main.py --type event --on-duplicate suffix --relocate-images --webp
    python main.py --type team --item-id 64f0c2... --dry-run
"""

import argparse
import sys

from webflow_migrator.config import CONFIG_FILE, load_config
from webflow_migrator.extractors import webflow_extractor
from webflow_migrator.migration_tool import WebflowMigrationTool
from webflow_migrator.migrators import mnemo_migrator
from webflow_migrator.models.collection_item import CONTENT_TYPES
from webflow_migrator.utils.errors import MigrationError
from webflow_migrator.utils.pre_flight_checks import run_pre_flight_checks


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Migrate a Webflow CMS collection into Mnemo.")
    parser.add_argument("--type", required=True, choices=CONTENT_TYPES, help="Content type to migrate.")
    parser.add_argument("--config", default=CONFIG_FILE, help="JSON configuration file.")
    parser.add_argument("--item-id", help="Migrate a single Webflow item instead of the whole collection.")
    parser.add_argument(
        "--on-duplicate",
        choices=("skip", "suffix", "update"),
        help="What to do when the slug already exists in Mnemo (default: skip).",
    )
    parser.add_argument("--relocate-images", action="store_true", default=None, help="Copy images to the CDN bucket.")
    parser.add_argument("--webp", action="store_true", default=None, help="Re-encode relocated images as WebP.")
    parser.add_argument("--dry-run", action="store_true", default=None, help="Map records without writing anything.")
    parser.add_argument("--limit", type=int, help="Stop after N source records.")
    parser.add_argument("--skip-pre-flight", action="store_true", help="Do not check the services before starting.")
    parser.add_argument("--strict", action="store_true", help="Exit with status 1 if any item failed.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Main function to run the Webflow to Mnemo migration tool.
    """
    args = parse_args(argv)
    overrides = {
        "on_duplicate": args.on_duplicate,
        "relocate_images": args.relocate_images,
        "compress_to_webp": args.webp,
        "dry_run": args.dry_run,
        "limit": args.limit,
    }
    try:
        config = load_config(args.config, overrides=overrides)
        config.require(args.type)
        webflow_extractor.configure_rate_limit(config.webflow.requests_per_minute)
        mnemo_migrator.configure_rate_limit(config.mnemo.requests_per_minute)

        tool = WebflowMigrationTool(config)
        tool.log_message(f"Starting Webflow to Mnemo migration of '{args.type}'.")
        if not args.skip_pre_flight:
            storage = tool.relocator.storage if config.migration.relocate_images else None
            run_pre_flight_checks(config, args.type, storage)

        report = tool.run(args.type, item_id=args.item_id)
    except MigrationError as e:
        print(f"[ERROR] {e}")
        return 1
    except Exception as e:
        print(f"[ERROR] Unexpected error: {e}")
        return 1

    tool.log_message("Migration process finished.")
    if args.strict and report["failed"]:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
