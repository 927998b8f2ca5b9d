import asyncio
from contextlib import asynccontextmanager

from pattern_common.logging_config import apply_logging_settings, configure_logging

from .config_loader import config
from .handlers.asset_handler import AssetFinalizedHandler

logger = configure_logging("pattern-matcher:main")


def setup_logging() -> None:
    """Apply LOG_LEVEL and LOG_FORMAT to every component logger."""
    apply_logging_settings(config.LOG_LEVEL, config.LOG_FORMAT)


setup_logging()


@asynccontextmanager
async def service_context():
    """Context manager for service resources"""
    handler = AssetFinalizedHandler()
    try:
        await handler.db.connect()
        await handler.broker.connect()
        await handler.initialize()
        yield handler
    finally:
        await handler.db.disconnect()
        await handler.broker.disconnect()


async def main():
    """Main service loop"""
    logger.info("Starting pattern matcher", data_root=config.DATA_ROOT, broker=config.BUS_BROKER)
    try:
        async with service_context() as handler:
            # One upload at a time; each run already fans out its own downloads
            await handler.broker.subscribe_to_topic(
                config.ASSET_TOPIC,
                handler.handle_asset_finalized,
                queue_name="pattern_matcher.asset_finalized",
                prefetch_count=1,
            )

            logger.info("Pattern matcher started", topic=config.ASSET_TOPIC)

            while True:
                await asyncio.sleep(1)

    except asyncio.CancelledError:
        logger.info("Shutting down pattern matcher")
    except Exception as e:
        logger.error("Service error", error=str(e))
        raise


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down pattern matcher")


if __name__ == "__main__":
    run()
