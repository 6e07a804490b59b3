"""
Unit tests for logging setup.
"""

import logging

from spnode.utils.logger import get_logger, setup_logging


class TestLogger:
    """Tests for subsystem loggers."""

    def test_namespace(self):
        assert get_logger("defaults").name == "spnode.defaults"

    def test_file_output(self, tmp_path):
        try:
            setup_logging(level=logging.INFO, log_dir=str(tmp_path / "logs"))
            get_logger("test").info("traversal budget loaded")
            text = (tmp_path / "logs" / "spnode.log").read_text()
            assert "[spnode.test] INFO" in text
            assert "traversal budget loaded" in text
        finally:
            setup_logging(level=logging.INFO)

    def test_no_file_by_default(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        setup_logging(level=logging.INFO)
        get_logger("test").info("console only")
        assert not (tmp_path / "logs").exists()
