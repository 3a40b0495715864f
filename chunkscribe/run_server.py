import logging

from chunkscribe.config import Config

logger = logging.getLogger("chunkscribe")


def main():
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    for missing in Config.validate():
        logger.warning("Missing setting: %s", missing)

    logger.info("===========================================")
    logger.info("Starting chunkscribe on %s:%s...", Config.HOST, Config.PORT)
    logger.info("   Serving UI at GET /")
    logger.info("   %ss chunks, log at '%s'", Config.CHUNK_SECONDS, Config.LOG_PATH)
    logger.info("===========================================")

    import uvicorn
    uvicorn.run("chunkscribe.main:app", host=Config.HOST, port=Config.PORT, log_level=Config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
