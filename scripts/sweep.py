import asyncio
import logging
import os
import sys

# Add project root to path so we can import flightops
sys.path.append(os.getcwd())

from flightops.database import dispose_engine
from flightops.services import ExpirationReaper


async def main():
    """Expire stale bids and abandon idle sessions once, for cron deployments."""

    try:
        result = await ExpirationReaper().run_once()
    finally:
        await dispose_engine()

    print(f"Expired bids: {result.expired_bids}")
    print(f"Abandoned sessions: {result.abandoned_sessions}")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    asyncio.run(main())
