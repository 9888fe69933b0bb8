import logging
import pytest
from src.common.logging import log_execution_time, setup_logger

logger = logging.getLogger("tests.stage")

@log_execution_time(logger)
def double(value):
    if value < 0:
        raise ValueError("negative")
    return value * 2

@log_execution_time(logger, stage="resolver")
def labelled():
    return None

def test_setup_logger_adds_handlers_once(tmp_path):
    log_file = tmp_path / "run.log"
    first = setup_logger("roadreports.test", log_file=str(log_file))
    second = setup_logger("roadreports.test")
    assert first is second
    assert len(second.handlers) == 2

    first.info("series assembled")
    for handler in first.handlers:
        handler.flush()
    assert "INFO - series assembled" in log_file.read_text(encoding="utf-8")

    for handler in list(first.handlers):
        handler.close()
        first.removeHandler(handler)

def test_stage_timing_is_logged(caplog):
    with caplog.at_level(logging.DEBUG, logger="tests.stage"):
        assert double(2) == 4
        labelled()
    assert "double finished in" in caplog.text
    assert "resolver finished in" in caplog.text

def test_stage_failure_is_logged_and_raised(caplog):
    with caplog.at_level(logging.ERROR, logger="tests.stage"):
        with pytest.raises(ValueError):
            double(-1)
    assert "double failed after" in caplog.text
    assert "negative" in caplog.text
