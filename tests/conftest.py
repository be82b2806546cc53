"""Shared fixtures: an in-memory database wired through the real composition root."""
import os
import sys
from datetime import datetime

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from database.db_manager import DatabaseManager  # noqa: E402
from main import build_services  # noqa: E402


class FakeClock:
    def __init__(self, current: datetime):
        self.current = current

    def __call__(self) -> datetime:
        return self.current

    def set(self, *args):
        self.current = datetime(*args)


@pytest.fixture
def db():
    manager = DatabaseManager(":memory:")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 5, 10, 30))


@pytest.fixture
def services(db, clock):
    return build_services(db, clock)


@pytest.fixture
def other_category(services):
    return services["categories"].resolve()
