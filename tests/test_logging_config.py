"""
Tests for shazam_signature.logging_config.
"""
import logging

from shazam_signature.logging_config import setup_logger


class TestSetupLogger:

    def test_single_handler(self):
        logger = setup_logger("tests.single_handler")
        again = setup_logger("tests.single_handler")
        assert logger is again
        assert len(logger.handlers) == 1

    def test_level(self, monkeypatch):
        monkeypatch.delenv("SHAZAM_SIGNATURE_LOG_LEVEL", raising=False)
        logger = setup_logger("tests.level", level=logging.WARNING)
        assert logger.level == logging.WARNING

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SHAZAM_SIGNATURE_LOG_LEVEL", "debug")
        logger = setup_logger("tests.env_override", level=logging.INFO)
        assert logger.level == logging.DEBUG
