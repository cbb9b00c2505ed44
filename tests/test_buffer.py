import threading

import pytest

from path_tracker.buffer import PREVIEW_CAPACITY, TrajectoryBuffer
from path_tracker.models import Vector3, TrajectoryPoint


def point(t, x=0.0, y=0.0):
    return TrajectoryPoint(displacement=Vector3(x, y, 0.0), timestamp=t, elapsed=t)


def test_defaults_and_validation():
    assert TrajectoryBuffer().capacity == PREVIEW_CAPACITY
    with pytest.raises(ValueError):
        TrajectoryBuffer(0)


def test_oldest_points_are_evicted():
    buf = TrajectoryBuffer(capacity=5)
    for i in range(12):
        buf.append(point(float(i), x=float(i)))
    snapshot = buf.snapshot()
    assert len(buf) == 5
    assert [p.timestamp for p in snapshot] == [7.0, 8.0, 9.0, 10.0, 11.0]
    assert buf.latest().timestamp == 11.0


def test_reset_then_snapshot_is_empty():
    buf = TrajectoryBuffer(capacity=10)
    for i in range(4):
        buf.append(point(float(i), x=float(i)))
    buf.reset()
    assert buf.snapshot() == []
    assert buf.latest() is None

    buf.append(point(10.0, x=1.0))
    assert [p.timestamp for p in buf.snapshot()] == [10.0]


def test_offset_hides_and_rebases():
    buf = TrajectoryBuffer(capacity=10)
    for i in range(5):
        buf.append(point(float(i), x=float(i) * 2, y=1.0))

    buf.offset(2.0)
    visible = buf.snapshot()
    assert [p.timestamp for p in visible] == [3.0, 4.0]
    assert visible[0].displacement == Vector3(2.0, 0.0, 0.0)
    assert visible[1].displacement == Vector3(4.0, 0.0, 0.0)

    # History itself is untouched
    assert len(buf.history()) == 5
    assert buf.history()[4].displacement == Vector3(8.0, 1.0, 0.0)


def test_offset_applies_to_later_appends():
    buf = TrajectoryBuffer(capacity=10)
    buf.append(point(1.0, x=5.0))
    buf.offset(1.0)
    assert buf.snapshot() == []

    buf.append(point(2.0, x=6.0))
    assert buf.snapshot()[0].displacement.x == pytest.approx(1.0)
    assert buf.offset_since == 1.0

    buf.clear_offset()
    assert len(buf.snapshot()) == 2


def test_offset_before_first_point_keeps_origin():
    buf = TrajectoryBuffer(capacity=10)
    buf.append(point(5.0, x=3.0))
    buf.offset(0.0)
    assert buf.snapshot()[0].displacement.x == 3.0


def test_concurrent_appends():
    buf = TrajectoryBuffer(capacity=10_000)

    def writer(base):
        for i in range(500):
            buf.append(point(base + i))

    threads = [threading.Thread(target=writer, args=(k * 1000.0,)) for k in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(buf) == 2000


def test_late_hidden_points_move_the_base():
    buf = TrajectoryBuffer(capacity=10)
    buf.append(point(1.0, x=1.0))
    buf.offset(3.0)
    # Arrives after offset() but still at or before the cut
    buf.append(point(3.0, x=4.0))
    buf.append(point(4.0, x=6.0))

    visible = buf.snapshot()
    assert [p.timestamp for p in visible] == [4.0]
    assert visible[0].displacement.x == pytest.approx(2.0)
