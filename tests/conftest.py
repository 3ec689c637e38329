import pytest
from loguru import logger


@pytest.fixture
def log_records():
    """Capture loguru records emitted during a test"""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


class FakeClock:
    """Manually advanced replacement for time.time"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    """Fake asyncio.sleep that records requested delays instead of waiting"""
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    fake_sleep.delays = delays
    return fake_sleep
