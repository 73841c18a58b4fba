import json
import logging

import pytest

from app.logger import configure_logging, get_logger


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def test_configure_logging_emits_json(root_logger, capsys):
    configure_logging("DEBUG")

    get_logger("service").info("Event %s not handled", "customer.created")

    assert root_logger.level == logging.DEBUG
    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["message"] == "Event customer.created not handled"
    assert record["levelname"] == "INFO"
    assert record["name"] == "payments.service"
