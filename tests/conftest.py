import pytest
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
os.environ.setdefault("RATELIMIT_ENABLED", "false")

from overload.app import app

# Blueprint modules that talk to the state store
REDIS_USERS = (
    'overload.blueprints.targets',
    'overload.blueprints.plates',
    'overload.blueprints.deload',
)


class FakeRedis:
    """In-memory stand-in for the few Redis commands the stores use."""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed


@pytest.fixture()
def client():
    app.config.update(TESTING=True)
    with app.test_client() as client:
        yield client


@pytest.fixture()
def fake_redis(monkeypatch):
    fake = FakeRedis()
    for module in REDIS_USERS:
        monkeypatch.setattr(f"{module}.get_redis", lambda: fake)
    return fake
