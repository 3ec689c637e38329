import sys

import pytest
from loguru import logger

from travel_resilience.logging_config import setup_logging


@pytest.fixture
def restore_default_sink():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_file_sink_writes_bound_context(tmp_path, restore_default_sink):
    log_file = tmp_path / "logs" / "resilience.log"

    setup_logging(verbose=True, log_file=log_file)
    logger.bind(circuit="flight_provider").warning("Circuit 'flight_provider' failure 1/5")
    logger.complete()
    logger.remove()

    content = log_file.read_text()
    assert "WARNING" in content
    assert "failure 1/5" in content
    assert "'circuit': 'flight_provider'" in content
