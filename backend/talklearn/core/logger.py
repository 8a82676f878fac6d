import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import get_config


class StatsPollFilter(logging.Filter):
    """Drops uvicorn access lines for the deck stats the quiz UI polls after every answer."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return "GET /api/decks/" not in message or "/stats" not in message


def setup_logging() -> None:
    config = get_config()
    log_file = Path(config.logging.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = [
        RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=5, encoding="utf-8"),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.logging.level.upper(), logging.INFO))
    root_logger.handlers = handlers

    # httpx logs every LLM request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").addFilter(StatsPollFilter())
