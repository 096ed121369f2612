"""
Unit Tests for Logging Configuration.
"""

import logging
import sys

import pytest
from loguru import logger

from eligibility_verifier.utils.logging import (
    InterceptHandler,
    get_logger,
    mask_member_id,
    setup_logging,
)


@pytest.fixture
def captured():
    """Collect loguru messages for the duration of a test."""
    messages = []
    sink_id = logger.add(lambda message: messages.append(message.record), level="DEBUG")
    yield messages
    logger.remove(sink_id)


class TestMaskMemberId:
    @pytest.mark.parametrize(
        "member_id, expected",
        [
            ("ABC123456", "*****3456"),
            ("12345", "*2345"),
            ("1234", "****"),
            ("", "<none>"),
            (None, "<none>"),
        ],
    )
    def test_mask(self, member_id, expected):
        assert mask_member_id(member_id) == expected


class TestInterceptHandler:
    def test_forwards_stdlib_records(self, captured):
        stdlib_logger = logging.getLogger("eligibility_verifier.tests.intercept")
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.propagate = False
        stdlib_logger.setLevel(logging.DEBUG)

        stdlib_logger.warning("payer slow")

        assert any(
            r["message"] == "payer slow" and r["level"].name == "WARNING" for r in captured
        )

    def test_custom_level_number(self, captured):
        stdlib_logger = logging.getLogger("eligibility_verifier.tests.custom_level")
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.propagate = False
        stdlib_logger.setLevel(1)

        stdlib_logger.log(15, "between debug and info")

        assert any(r["message"] == "between debug and info" for r in captured)


class TestSetupLogging:
    def test_installs_intercept_handler(self, tmp_path):
        setup_logging(level="DEBUG", log_file=str(tmp_path / "logs" / "app.log"))
        try:
            assert any(isinstance(h, InterceptHandler) for h in logging.getLogger().handlers)
            assert (tmp_path / "logs").is_dir()
        finally:
            logging.getLogger().handlers = []
            logger.remove()
            logger.add(sys.stderr)

    def test_get_logger_binds_name(self, captured):
        get_logger("eligibility_verifier.sample").info("bound")

        record = next(r for r in captured if r["message"] == "bound")
        assert record["extra"]["name"] == "eligibility_verifier.sample"
