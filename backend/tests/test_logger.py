import logging
from logging.handlers import RotatingFileHandler

from talklearn.core.logger import StatsPollFilter, setup_logging


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("uvicorn.access", logging.INFO, __file__, 1, message, None, None)


def test_setup_logging_installs_one_handler_pair():
    setup_logging()
    setup_logging()
    handlers = logging.getLogger().handlers
    assert len(handlers) == 2
    assert any(isinstance(h, RotatingFileHandler) for h in handlers)
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING


def test_stats_polling_is_filtered_from_access_log():
    stats_filter = StatsPollFilter()
    assert not stats_filter.filter(_record('"GET /api/decks/math.csv/stats HTTP/1.1" 200'))
    assert stats_filter.filter(_record('"GET /api/decks/math.csv/next HTTP/1.1" 200'))
    assert stats_filter.filter(_record('"POST /api/evaluate HTTP/1.1" 200'))
