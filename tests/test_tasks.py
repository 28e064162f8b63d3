import pytest

from services import tasks


class FakeRedis:
    def __init__(self):
        self.values = {}
        self.ttls = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.values:
            return None
        self.values[key] = value
        self.ttls[key] = ex
        return True


class FakeQueue:
    def __init__(self):
        self.enqueued = []
        self.scheduled = []

    def enqueue(self, func, *args, **kwargs):
        self.enqueued.append(func)

    def enqueue_in(self, delay, func, *args, **kwargs):
        self.scheduled.append((delay, func))


@pytest.fixture
def fakes(db, monkeypatch):
    redis, queue = FakeRedis(), FakeQueue()
    monkeypatch.setattr(tasks, "get_redis", lambda: redis)
    monkeypatch.setattr(tasks, "get_queue", lambda: queue)
    return redis, queue


def test_sweep_reschedules_itself(fakes):
    redis, queue = fakes
    assert tasks.run_sweep() == {}
    assert [func for _, func in queue.scheduled] == [tasks.run_sweep]
    assert queue.scheduled[0][0].total_seconds() == tasks.SWEEP_INTERVAL_SECONDS
    assert tasks.SWEEP_CHAIN_KEY in redis.values


def test_sweep_reschedules_after_a_failure(fakes, monkeypatch):
    _, queue = fakes

    def failing_sweep(db):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(tasks, "sweep_expired_attempts", failing_sweep)
    with pytest.raises(RuntimeError):
        tasks.run_sweep()
    assert len(queue.scheduled) == 1


def test_sweep_without_reschedule(fakes):
    _, queue = fakes
    tasks.run_sweep(reschedule=False)
    assert queue.scheduled == []


def test_only_one_sweep_chain_is_seeded(fakes):
    redis, queue = fakes

    assert tasks.seed_sweep() is True
    assert tasks.seed_sweep() is False
    assert queue.enqueued == [tasks.run_sweep]
    assert redis.ttls[tasks.SWEEP_CHAIN_KEY] == tasks.SWEEP_INTERVAL_SECONDS * 3
