"""
Tests for structured logging.

Covers:
- StructuredFormatter JSON output including Decimal, UUID and enum extras
- LogContext binding and restoration
- Exception fields from InventoryKernelError subclasses
"""

import json
import logging
import sys
from decimal import Decimal
from uuid import UUID

import pytest

from inventory_kernel.domain.values import AdjustmentType
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(record: logging.LogRecord) -> dict:
    return json.loads(StructuredFormatter().format(record))


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("inventory_kernel.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_basic_fields(self):
        payload = _format(_record("document_created"))

        assert payload["message"] == "document_created"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "inventory_kernel.test"
        assert "ts" in payload

    def test_extras_are_serialized(self):
        payload = _format(
            _record(
                "x",
                quantity=Decimal("1.50"),
                actor=UUID("00000000-0000-4000-8000-000000000001"),
                kind=AdjustmentType.ADD,
            )
        )

        assert payload["quantity"] == "1.50"
        assert payload["actor"] == "00000000-0000-4000-8000-000000000001"
        assert payload["kind"] == "add"

    def test_exception_fields(self):
        try:
            raise ValidationError("bad", field="unit_cost", line_index=2)
        except ValidationError:
            record = logging.LogRecord(
                "inventory_kernel.test", logging.ERROR, __file__, 1, "failed", (), None
            )
            record.exc_info = sys.exc_info()

        payload = _format(record)

        assert payload["exc_type"] == "ValidationError"
        assert payload["exc_code"] == "VALIDATION_ERROR"
        assert payload["exc_field"] == "unit_cost"
        assert payload["exc_line_index"] == 2


class TestLogContext:
    def test_bind_sets_and_restores(self):
        LogContext.set(correlation_id="outer")

        with LogContext.bind(document_id="doc-1", correlation_id="inner"):
            assert LogContext.get_all() == {
                "correlation_id": "inner",
                "document_id": "doc-1",
            }

        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_context_appears_in_log_lines(self, captured_logs):
        logger = get_logger("test.context")

        with LogContext.bind(document_id="doc-42"):
            logger.info("inside")
        logger.info("outside")

        records = {r["message"]: r for r in captured_logs()}
        assert records["inside"]["document_id"] == "doc-42"
        assert "document_id" not in records["outside"]

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="store"):
            LogContext.set(store="s1")

    def test_none_values_ignored(self):
        with LogContext.bind(document_id="doc-1", actor_id=None):
            assert LogContext.get_all() == {"document_id": "doc-1"}


class TestGetLogger:
    def test_namespaced(self):
        assert get_logger("services.lifecycle").name == "inventory_kernel.services.lifecycle"

    def test_already_namespaced(self):
        assert get_logger("inventory_kernel.db").name == "inventory_kernel.db"
