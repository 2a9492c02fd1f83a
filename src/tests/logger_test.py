import logging

import pytest

from src.utils.logger import DotMsFormatter, setup_logger


@pytest.fixture
def logger_name(request):
    name = f"test.{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_console_only_by_default(logger_name):
    logger = setup_logger(logger_name)
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO


def test_file_handler_writes(tmp_path, logger_name):
    log_path = tmp_path / "logs" / "btce_adapter.log"

    logger = setup_logger(logger_name, log_path, level=logging.DEBUG)
    logger.warning("[btc_usd] ticker failed: timeout")
    for handler in logger.handlers:
        handler.flush()

    content = log_path.read_text(encoding="utf-8")
    assert "WARNING" in content
    assert "[btc_usd] ticker failed: timeout" in content


def test_repeated_setup_does_not_duplicate_handlers(tmp_path, logger_name):
    setup_logger(logger_name, tmp_path / "a.log")
    logger = setup_logger(logger_name, tmp_path / "a.log", level=logging.WARNING)

    assert len(logger.handlers) == 2
    assert logger.level == logging.WARNING


def test_formatter_milliseconds():
    formatter = DotMsFormatter('%(asctime)s', datefmt='%Y-%m-%d %H:%M:%S.%f')
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    record.msecs = 7

    assert formatter.formatTime(record, formatter.datefmt).endswith(".007")
