"""Tests for logging configuration and operation context."""

import logging

import pytest

from mcp_jira_cloud.logging_config import (
    ContextFilter,
    format_log_context,
    get_log_context,
    log_operation,
    setup_logger,
)


class RecordingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []
        self.addFilter(ContextFilter())

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def test_logger():
    logger = logging.getLogger("mcp-jira-cloud.tests.logging")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = RecordingHandler()
    logger.addHandler(handler)
    yield logger, handler
    logger.removeHandler(handler)


def test_no_context_outside_operations():
    assert get_log_context() == {}
    assert format_log_context() == "no-context"


def test_operation_context_is_attached_to_records(test_logger):
    logger, handler = test_logger

    with log_operation(logger, "issue_get", issue_key="CMP-1", trace_id="abc12345"):
        logger.info("inside")

    inside = [r for r in handler.records if r.getMessage() == "inside"][0]
    assert inside.context == "issue_key=CMP-1,trace_id=abc12345,operation=issue_get"
    assert handler.records[0].getMessage() == "Operation started: issue_get"
    assert get_log_context() == {}


def test_nested_operations_restore_outer_context(test_logger):
    logger, _ = test_logger

    with log_operation(logger, "outer", trace_id="11111111"):
        with log_operation(logger, "inner"):
            assert get_log_context()["operation"] == "inner"
            assert get_log_context()["trace_id"] != "11111111"
        assert get_log_context() == {"operation": "outer", "trace_id": "11111111"}


def test_failed_operation_is_logged_and_reraised(test_logger):
    logger, handler = test_logger

    with pytest.raises(RuntimeError):
        with log_operation(logger, "sprint_create"):
            raise RuntimeError("boom")

    assert handler.records[-1].levelno == logging.ERROR
    assert "Operation failed: sprint_create" in handler.records[-1].getMessage()
    assert get_log_context() == {}


def test_setup_logger_does_not_duplicate_handlers():
    name = "mcp-jira-cloud.tests.setup"
    setup_logger(name, level="DEBUG", log_to_file=False)
    logger = setup_logger(name, level="WARNING", log_to_file=False)

    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING
    assert logger.propagate is False


def test_setup_logger_writes_to_file(tmp_path):
    name = "mcp-jira-cloud.tests.file"
    logger = setup_logger(name, level="INFO", log_to_file=True, log_dir=str(tmp_path))

    with log_operation(logger, "project_list", trace_id="feedbeef"):
        logger.info("listing projects")
    for handler in logger.handlers:
        handler.flush()

    content = (tmp_path / f"{name}.log").read_text()
    assert "listing projects" in content
    assert "operation=project_list" in content

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
