import itertools
import os
import sys
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ.setdefault("SAFEHARBOR_LOG_LEVEL", "WARNING")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest

from api.forum_service import ForumService
from api.store import InMemoryForumStore


def tick_clock(start=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)):
    """Clock advancing one second per call, so every write gets a distinct timestamp."""
    counter = itertools.count()
    return lambda: start + timedelta(seconds=next(counter))


@pytest.fixture
def store():
    return InMemoryForumStore()


@pytest.fixture
def service(store):
    return ForumService(store, clock=tick_clock())


class FakeResult:
    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Records a supabase-py builder chain and answers execute() from the client's queue."""

    def __init__(self, client, target):
        self.client = client
        self.target = target
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def execute(self):
        self.client.executed.append((self.target, self.calls))
        if self.client.error is not None:
            raise self.client.error
        if self.client.results:
            result = self.client.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return FakeResult(data=[])


class FakeSupabase:
    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        q = FakeQuery(self, "rpc:" + name)
        q.calls.append(("rpc", (name, params), {}))
        return q


@pytest.fixture
def fake_supabase():
    return FakeSupabase()
