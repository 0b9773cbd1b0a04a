"""Main entry point for Dental Works."""

import logging
import sys

from dental_works.config import get_settings

# Chatty libraries stay at WARNING unless the app itself runs at DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "httpcore", "passlib")


def setup_logging() -> None:
    """Configure root logging from ``LOG_LEVEL``."""
    settings = get_settings()
    level = getattr(logging, settings.log_level)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def main() -> None:
    """Run the dental-works CLI."""
    setup_logging()

    from dental_works.cli.commands import app

    app()


if __name__ == "__main__":
    main()
