import logging
import sys


def setup_logging(log_level: str = "INFO") -> None:
    """Configure stdlib logging once for the whole application."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=level,
    )

    # Set third-party loggers to WARNING to reduce noise
    for logger_name in ["uvicorn.access", "httpx", "httpcore", "sqlalchemy", "asyncio"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("app").setLevel(level)
