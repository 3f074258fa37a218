"""Entry point: configure logging and create the database schema."""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
import os

from dotenv import load_dotenv


def setup_logging(level: str, log_dir: str) -> None:
    os.makedirs(log_dir, exist_ok=True)

    log_format = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Console handler
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(console)

    # File handler (rotating, persistent)
    file_handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, "tripshare.log"), maxBytes=5_000_000, backupCount=3
    )
    file_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(file_handler)


def main() -> None:
    load_dotenv()

    from tripshare.config.settings import get_settings
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    logger = logging.getLogger(__name__)

    async def _start() -> None:
        from tripshare.db.migrations import init_db

        if settings.DATABASE_URL.startswith("sqlite") and ":///" in settings.DATABASE_URL:
            os.makedirs(os.path.dirname(settings.DATABASE_URL.split(":///", 1)[1]) or ".", exist_ok=True)

        repo, profiles = await init_db(settings.DATABASE_URL)
        logger.info("Database ready at %s", settings.DATABASE_URL)
        await repo.close()
        await profiles.close()

    try:
        asyncio.run(_start())
    except KeyboardInterrupt:
        logger.info("Interrupted.")


if __name__ == "__main__":
    main()
