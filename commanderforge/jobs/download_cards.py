"""
Download the Scryfall oracle card database.

Usage:
    python -m commanderforge.jobs.download_cards [--output PATH] [--force]

The file feeds ScryfallCardRepository; deck generation cannot run without it.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from commanderforge.config import settings
from commanderforge.services.card_database import download_card_database, load_card_database

logger = logging.getLogger(__name__)


async def run_download(output_path: Path, force: bool = False) -> Path:
    """
    Download card data unless a copy already exists.

    Args:
        output_path: Destination file
        force: Re-download even if the file exists

    Returns:
        Path to the card data file
    """
    if output_path.exists() and not force:
        logger.info("Card database already present at %s (use --force to refresh)", output_path)
        return output_path

    logger.info("Downloading Scryfall oracle cards to %s", output_path)
    try:
        path = await download_card_database(output_path)
    except Exception as e:
        logger.error("Failed to download card database: %s", e)
        raise

    cards = load_card_database(path)
    logger.info("Downloaded %d cards to %s", len(cards), path)
    return path


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Download Scryfall oracle card data")
    parser.add_argument(
        "--output",
        type=Path,
        default=settings.card_data_path,
        help=f"Where to write the card file (default: {settings.card_data_path})",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-download even if the file exists",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_download(args.output, force=args.force))


if __name__ == "__main__":
    main()
