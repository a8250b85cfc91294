import asyncio
import logging
from storefront.app import StorefrontApp
from storefront.config import setup_logging

async def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        # Initialize and start the HTTP service
        app = StorefrontApp()
        logger.info("Starting storefront service...")
        await app.start()
    except Exception as e:
        logger.error(f"Error starting storefront service: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    asyncio.run(main())
