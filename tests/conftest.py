"""Shared fixtures: in-memory redis client, item/response factories, service."""

import pytest

from assessment_service import AssessmentService
from core.models import ItemBankConfig, ItemParameters, ResponseRecord
from redis_store import RedisStore

DAY_MS = 24 * 60 * 60 * 1000
JAN_1_2024 = 1704067200000  # 2024-01-01T00:00:00Z


class FakeRedis:
    """The slice of the redis-py API that RedisStore uses, kept in dicts."""

    def __init__(self):
        self.data = {}

    def _slice(self, values, start, end):
        n = len(values)
        if start < 0:
            start = max(0, n + start)
        if end < 0:
            end = n + end
        return values[start:end + 1]

    # Hashes
    def hget(self, name, key):
        return self.data.get(name, {}).get(key)

    def hset(self, name, key=None, value=None, mapping=None):
        h = self.data.setdefault(name, {})
        if key is not None:
            h[key] = value
        if mapping:
            h.update(mapping)
        return 1

    def hgetall(self, name):
        return dict(self.data.get(name, {}))

    # Lists
    def rpush(self, name, *values):
        lst = self.data.setdefault(name, [])
        lst.extend(values)
        return len(lst)

    def lrange(self, name, start, end):
        return self._slice(self.data.get(name, []), start, end)

    def llen(self, name):
        return len(self.data.get(name, []))

    def ltrim(self, name, start, end):
        self.data[name] = self._slice(self.data.get(name, []), start, end)
        return True

    # Sets
    def sadd(self, name, *values):
        s = self.data.setdefault(name, set())
        s.update(values)
        return len(values)

    def smembers(self, name):
        return set(self.data.get(name, set()))

    def srem(self, name, *values):
        s = self.data.get(name, set())
        for v in values:
            s.discard(v)
        return len(values)

    # Strings / keys
    def get(self, name):
        return self.data.get(name)

    def set(self, name, value):
        self.data[name] = value
        return True

    def delete(self, *names):
        removed = 0
        for name in names:
            if self.data.pop(name, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def make_item():
    def _make(item_id, discrimination=1.0, difficulty=0.0, guessing=0.05, skill_tags=("single-digit",),
              problem_type="single-digit"):
        return ItemParameters(
            item_id=item_id,
            discrimination=discrimination,
            difficulty=difficulty,
            guessing=guessing,
            skill_tags=frozenset(skill_tags),
            problem_type=problem_type
        )
    return _make


@pytest.fixture
def make_response():
    def _make(item_id, is_correct, timestamp=JAN_1_2024, learner_id="learner-1", response_time_ms=3000):
        return ResponseRecord(
            learner_id=learner_id,
            item_id=item_id,
            is_correct=is_correct,
            response_time_ms=response_time_ms,
            timestamp=timestamp
        )
    return _make


@pytest.fixture
def item_bank(make_item):
    """Five single-digit items spread from easy to hard."""
    return {
        f"q{i}": make_item(f"q{i}", difficulty=b)
        for i, b in enumerate([-2.0, -1.0, 0.0, 1.0, 2.0])
    }


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return RedisStore(client=fake_redis, response_log_limit=500)


@pytest.fixture
def service(store):
    return AssessmentService(store, config=ItemBankConfig(min_calibration_sample=5))
