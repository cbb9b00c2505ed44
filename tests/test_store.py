import pytest

from path_tracker.errors import InvalidStateError, SessionNotFoundError
from path_tracker.models import LatLng, Vector3
from path_tracker.store import SessionStore, default_db_path


def test_create_and_close(store, anchor):
    session_id = store.create_session(100.0, anchor)
    session = store.get_session(session_id)
    assert session.is_open
    assert session.anchor == anchor
    assert store.open_session() == session

    store.close_session(session_id, 160.0)
    session = store.get_session(session_id)
    assert not session.is_open
    assert session.duration == pytest.approx(60.0)
    assert store.open_session() is None


def test_session_without_anchor(store):
    session_id = store.create_session(1.0)
    assert store.get_session(session_id).anchor is None


def test_only_one_open_session(store):
    first = store.create_session(1.0)
    with pytest.raises(InvalidStateError):
        store.create_session(2.0)
    store.close_session(first, 3.0)
    assert store.create_session(4.0) != first


def test_motion_rows_are_ordered(store, anchor):
    session_id = store.create_session(0.0, anchor)
    for i in range(5):
        store.append_motion(session_id, Vector3(float(i), 0.0, 0.0), elapsed=i * 0.05,
                            timestamp=100.0 + i * 0.05, position=LatLng(52.0, 13.0 + i))
    points = store.list_motion(session_id)
    assert [p.displacement.x for p in points] == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert points[2].timestamp == pytest.approx(100.1)
    assert store.count_motion(session_id) == 5

    rows = store.list_motion_rows(session_id)
    assert rows[4]['longitude'] == 17.0
    assert rows[0]['elapsed'] == 0.0


def test_rows_can_be_appended_after_close(store):
    session_id = store.create_session(0.0)
    store.close_session(session_id, 1.0)
    store.append_motion(session_id, Vector3(1.0, 1.0, 0.0), elapsed=0.9)
    assert store.count_motion(session_id) == 1
    # No timestamp stored: elapsed stands in
    assert store.list_motion(session_id)[0].timestamp == 0.9


def test_delete_cascades(store):
    keep = store.create_session(0.0)
    store.append_motion(keep, Vector3(1.0, 0.0, 0.0), elapsed=0.1)
    store.close_session(keep, 1.0)

    doomed = store.create_session(2.0)
    for i in range(3):
        store.append_motion(doomed, Vector3(float(i), 0.0, 0.0), elapsed=i * 0.1)
    store.close_session(doomed, 3.0)

    store.delete_session(doomed)
    assert store.list_motion(doomed) == []
    assert [s.id for s in store.list_sessions()] == [keep]
    assert store.count_motion(keep) == 1
    with pytest.raises(SessionNotFoundError):
        store.get_session(doomed)


def test_unknown_session_ids(store):
    with pytest.raises(SessionNotFoundError) as exc:
        store.get_session(42)
    assert exc.value.session_id == 42
    assert isinstance(exc.value, LookupError)

    with pytest.raises(SessionNotFoundError):
        store.append_motion(42, Vector3(0.0, 0.0, 0.0), elapsed=0.0)
    with pytest.raises(SessionNotFoundError):
        store.delete_session(42)
    with pytest.raises(SessionNotFoundError):
        store.close_session(42, 1.0)
    assert store.list_motion(42) == []


def test_missing_session_id_fails_fast(store):
    with pytest.raises(InvalidStateError):
        store.append_motion(None, Vector3(0.0, 0.0, 0.0), elapsed=0.0)
    with pytest.raises(InvalidStateError):
        store.get_session(None)


def test_list_sessions_pagination(store):
    for i in range(5):
        session_id = store.create_session(float(i))
        store.close_session(session_id, float(i) + 0.5)
    assert store.count_sessions() == 5
    page = store.list_sessions(limit=2, offset=2)
    assert [s.start_time for s in page] == [2.0, 3.0]


def test_file_store_persists(tmp_path):
    path = tmp_path / "nested" / "db.sqlite"
    with SessionStore(path) as s:
        session_id = s.create_session(5.0)
        s.append_motion(session_id, Vector3(1.0, 2.0, 3.0), elapsed=0.0)

    with SessionStore(path) as s:
        assert s.get_session(session_id).is_open
        assert s.list_motion(session_id)[0].displacement == Vector3(1.0, 2.0, 3.0)


def test_default_db_path_env(monkeypatch, tmp_path):
    target = str(tmp_path / "elsewhere.sqlite")
    monkeypatch.setenv("PATH_TRACKER_DB", target)
    assert default_db_path() == target


def test_closing_twice_keeps_first_end_time(store):
    session_id = store.create_session(0.0)
    store.close_session(session_id, 10.0)
    with pytest.raises(InvalidStateError):
        store.close_session(session_id, 99.0)
    assert store.get_session(session_id).end_time == 10.0


def test_close_stale_sessions(store):
    recorded = store.create_session(100.0)
    for i in range(4):
        store.append_motion(recorded, Vector3(float(i), 0.0, 0.0), elapsed=i * 0.5)
    assert store.close_stale_sessions() == [recorded]
    assert store.get_session(recorded).end_time == pytest.approx(101.5)

    empty = store.create_session(200.0)
    assert store.close_stale_sessions() == [empty]
    assert store.get_session(empty).end_time == 200.0

    # Nothing left open; closed sessions are not touched
    assert store.close_stale_sessions() == []
    assert store.get_session(recorded).end_time == pytest.approx(101.5)
    assert store.open_session() is None
