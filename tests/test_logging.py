"""Tests for structured logging and LogContext."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

from bullion_kernel.exceptions import PartyNotFoundError
from bullion_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(record_factory) -> dict:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    logger = logging.getLogger("bullion_kernel.test_logging")
    logger.addHandler(handler)
    try:
        record_factory(logger)
    finally:
        logger.removeHandler(handler)
    return json.loads(stream.getvalue().strip().split("\n")[-1])


class TestStructuredFormatter:
    def test_basic_fields(self):
        record = _format(lambda log: log.info("hello", extra={"amount": Decimal("1.5")}))

        assert record["message"] == "hello"
        assert record["level"] == "INFO"
        assert record["logger"] == "bullion_kernel.test_logging"
        assert record["amount"] == "1.5"
        assert "ts" in record

    def test_uuid_serialized(self):
        value = uuid4()
        record = _format(lambda log: log.info("uuid", extra={"id": value}))
        assert record["id"] == str(value)

    def test_exception_fields(self):
        def emit(log):
            try:
                raise PartyNotFoundError("SUPP-404")
            except PartyNotFoundError:
                log.error("failed", exc_info=True)

        record = _format(emit)

        assert record["exc_type"] == "PartyNotFoundError"
        assert record["exc_code"] == "PARTY_NOT_FOUND"
        assert record["exc_party_ref"] == "SUPP-404"
        assert "traceback" in record


class TestLogContext:
    def test_bind_adds_and_restores(self):
        with LogContext.bind(voucher_number="MP-1", actor_id="a1"):
            record = _format(lambda log: log.info("inside"))
            assert record["voucher_number"] == "MP-1"
            assert record["actor_id"] == "a1"

        assert LogContext.get_all() == {}

    def test_nested_bind(self):
        with LogContext.bind(correlation_id="outer"):
            with LogContext.bind(transaction_id="t1"):
                assert LogContext.get_all() == {
                    "correlation_id": "outer",
                    "transaction_id": "t1",
                }
            assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_set_and_clear(self):
        LogContext.set(correlation_id="c1", voucher_number=None)
        assert LogContext.get_all() == {"correlation_id": "c1"}

        LogContext.clear()
        assert LogContext.get_all() == {}


class TestGetLogger:
    def test_namespace(self):
        assert get_logger("services.party").name == "bullion_kernel.services.party"
