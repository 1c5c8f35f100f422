"""Tests for service layer structured logging."""

import logging

from src.services.logging_utils import get_service_logger, log_operation


class TestLoggingUtilities:
    """Tests for logging utility functions."""

    def test_get_service_logger_returns_logger(self):
        """get_service_logger returns a configured Logger instance."""
        logger = get_service_logger("test_module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "restaurant_stock.services.test_module"

    def test_get_service_logger_extracts_module_name(self):
        """get_service_logger extracts module name from full path."""
        logger = get_service_logger("src.services.cost_engine")
        assert logger.name == "restaurant_stock.services.cost_engine"

    def test_log_operation_logs_at_info_level(self, caplog):
        """log_operation logs at INFO level by default."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(logger, operation="test_op", outcome="success", recipe_id=12)

        assert "test_op: success" in caplog.text
        assert caplog.records[-1].levelno == logging.INFO

    def test_log_operation_logs_at_custom_level(self, caplog):
        """log_operation respects custom log level."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.DEBUG):
            log_operation(logger, operation="rebind", outcome="memo_cleared", level=logging.DEBUG)

        assert caplog.records[-1].levelno == logging.DEBUG

    def test_log_operation_passes_context_as_extra(self, caplog):
        """Context fields land on the log record."""
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(
                logger,
                operation="can_add",
                outcome="insufficient_stock",
                recipe_id=10,
                limiting_ingredient_id=1,
            )

        record = caplog.records[-1]
        assert record.operation == "can_add"
        assert record.outcome == "insufficient_stock"
        assert record.limiting_ingredient_id == 1
