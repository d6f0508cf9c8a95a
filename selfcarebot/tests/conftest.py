# selfcarebot/tests/conftest.py
import sys
from datetime import datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio

# This file is at <project_root>/selfcarebot/tests/conftest.py
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from selfcarebot.core.clock import Clock  # noqa: E402
from selfcarebot.db.gateway import CourseGateway  # noqa: E402
from selfcarebot.db.session import create_engine, init_schema  # noqa: E402

TZ = ZoneInfo("Europe/Moscow")


class FixedClock(Clock):
    """Clock frozen at a given local time; tests move it explicitly."""

    def __init__(self, when: datetime):
        super().__init__(when.tzinfo)
        self.current = when

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


class FakeAdapter:
    def __init__(self):
        self.sent = []  # (chat_id, text, options, menu)
        self.documents = []  # (chat_id, filename, content)
        self.fail_for: set[int] = set()  # send() returns False
        self.raise_for: set[int] = set()  # send() raises

    async def send(self, chat_id, text, options=None, *, menu=None):
        if chat_id in self.raise_for:
            raise RuntimeError(f"network down for {chat_id}")
        if chat_id in self.fail_for:
            return False
        self.sent.append((chat_id, text, list(options or []), menu))
        return True

    async def send_document(self, chat_id, filename, content):
        self.documents.append((chat_id, filename, content))

    def texts_to(self, chat_id):
        return [text for (cid, text, _, _) in self.sent if cid == chat_id]


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 2, 9, 0, tzinfo=TZ))


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest_asyncio.fixture
async def db():
    engine = create_engine("sqlite+aiosqlite://")
    await init_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def gateway(db, clock):
    return CourseGateway(db, clock, active_window_days=30)
