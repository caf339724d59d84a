"""Replace broken thumbnail URLs in the video catalog.

Each thumbnail is HEAD-checked; broken ones are swapped for the first working
platform-generated alternative, or the inline placeholder image. The original
file is kept next to the catalog with a ``.backup`` suffix.
"""

import argparse
import json
import logging
import shutil
import time
from pathlib import Path
from typing import List, Optional

from netescola.services.catalog import CATALOG_PATH, load_catalog_file
from netescola.services.thumbnails import ThumbnailChecker
from netescola.utils.config import setup_logging

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate and repair catalog thumbnail URLs.")
    parser.add_argument(
        "--catalog",
        type=Path,
        default=CATALOG_PATH,
        help="Catalog JSON file to repair.",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=0.1,
        help="Seconds to wait between requests.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report broken thumbnails without writing anything.",
    )
    return parser.parse_args(argv)


def fix_thumbnails(catalog_path: Path, checker: ThumbnailChecker, dry_run: bool = False) -> int:
    """Repair ``catalog_path`` in place; returns the number of replaced thumbnails."""
    entries = load_catalog_file(catalog_path)
    logger.info(f"Found {len(entries)} thumbnail URLs to validate...")

    replacements = 0
    for entry in entries:
        original = entry.get('thumbnailUrl', '')
        repaired = checker.repair(original, entry.get('videoUrl', ''))
        if repaired != original:
            entry['thumbnailUrl'] = repaired
            replacements += 1

    if not replacements:
        logger.info("All thumbnail URLs are valid!")
        return 0

    if dry_run:
        logger.info(f"{replacements} broken thumbnail URLs found (dry run, nothing written)")
        return replacements

    backup_path = catalog_path.with_name(catalog_path.name + '.backup')
    shutil.copyfile(catalog_path, backup_path)
    logger.info(f"Backup created: {backup_path}")

    with open(catalog_path, 'w', encoding='utf-8') as f:
        json.dump(entries, f, indent=2, ensure_ascii=False)
        f.write('\n')

    logger.info(f"Fixed {replacements} broken thumbnail URLs")
    return replacements


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    setup_logging("INFO")
    checker = ThumbnailChecker(sleep=time.sleep, delay=args.delay)
    fix_thumbnails(args.catalog, checker, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
