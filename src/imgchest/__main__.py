from __future__ import annotations

import asyncio
import logging
import pprint
import sys
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from imgchest.client import Client
from imgchest.config import ClientConfig
from imgchest.urls import ImgchestUrlInfo
from imgchest.urls import parse_imgchest_url


async def scrape_url(client: Client, info: ImgchestUrlInfo) -> BaseModel:
    """Scrape the post or user page an imgchest URL points to.

    Raises:
        ValueError: If the URL points to something that cannot be scraped.
    """
    if info.kind == "post" and info.post_id:
        return await client.get_scraped_post(info.post_id)
    if info.kind == "user" and info.username:
        return await client.get_scraped_user(info.username)

    msg = f"Cannot scrape a {info.kind} URL"
    raise ValueError(msg)


def main() -> None:
    """Scrape an imgchest post or user URL from the command line and save it as JSON."""
    # Configure logging to show DEBUG messages
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    if len(sys.argv) < 2:  # noqa: PLR2004
        logger.error("Usage: python -m imgchest <post-or-user-url>")
        sys.exit(1)
    url: str = sys.argv[1]
    info: ImgchestUrlInfo = parse_imgchest_url(url)

    async def run() -> None:
        client = Client(ClientConfig.from_env())
        data: BaseModel = await scrape_url(client, info)
        logger.debug(pprint.pformat(data))
        logger.info("Scraped imgchest {} from URL: {}", info.kind, url)

        # Save to JSON file
        output_path = Path(f"imgchest_{info.kind}.json")
        output_path.write_text(  # noqa: ASYNC240
            data.model_dump_json(indent=4),
            encoding="utf-8",
        )
        logger.info("Saved scraped data to {}", output_path)

    asyncio.run(run())


if __name__ == "__main__":
    main()
