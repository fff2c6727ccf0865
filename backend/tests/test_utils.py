import threading
import time

from examprep.utils.rate_limit import SlidingWindowLimiter
from examprep.utils.rwlock import ReadWriteLock


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_limiter_blocks_then_recovers():
    clock = FakeClock()
    limiter = SlidingWindowLimiter(2, 60, clock=clock)
    assert limiter.hit("k") == 0
    assert limiter.hit("k") == 0
    assert limiter.hit("k") == 60
    assert limiter.hit("other") == 0
    clock.now += 30
    assert limiter.hit("k") == 30
    clock.now += 31
    assert limiter.hit("k") == 0


def test_limiter_reset_and_unlimited():
    limiter = SlidingWindowLimiter(1, 60, clock=FakeClock())
    limiter.hit("k")
    assert limiter.hit("k") > 0
    limiter.reset("k")
    assert limiter.hit("k") == 0

    unlimited = SlidingWindowLimiter(0)
    assert all(unlimited.hit("k") == 0 for _ in range(100))


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = []
    barrier = threading.Barrier(3, timeout=5)

    def reader():
        with lock.read():
            inside.append(1)
            barrier.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)
    assert len(inside) == 3


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    events = []
    lock.acquire_write()

    def reader():
        with lock.read():
            events.append("read")

    t = threading.Thread(target=reader)
    t.start()
    time.sleep(0.05)
    events.append("write-done")
    lock.release_write()
    t.join(5)
    assert events == ["write-done", "read"]


def test_limiter_forgets_idle_clients():
    clock = FakeClock()
    limiter = SlidingWindowLimiter(3, 60, clock=clock)
    for i in range(50):
        limiter.hit(f"client-{i}")
    assert len(limiter) == 50
    clock.now += 61
    limiter.hit("fresh")
    assert len(limiter) == 1
