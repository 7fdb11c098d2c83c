#!/usr/bin/env python3
"""
Tests for logging setup
"""

import logging

import pytest

from producer_protocol.logs import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_log_file_receives_records(tmp_path):
    """Test logging to a file"""
    log_file = tmp_path / "deploy.log"
    configure_logging("debug", str(log_file))

    logging.getLogger("producer_protocol.deploy").info("WPJK deployed to: 0x5FbDB2315678afecb367f032d93F642f64180aa3")
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = log_file.read_text()
    assert "producer_protocol.deploy - INFO - WPJK deployed to" in content
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("web3").level == logging.WARNING


def test_unknown_level_falls_back_to_info():
    """Test an unknown log level"""
    configure_logging("chatty")
    assert logging.getLogger().level == logging.INFO
