from path_tracker.plotting import plot_session


def test_plot_written(store, recorded_session, tmp_path):
    output = plot_session(store, recorded_session.id, tmp_path / "plots" / "session.png")
    assert output.exists()
    assert output.read_bytes()[:8] == b'\x89PNG\r\n\x1a\n'


def test_plot_of_empty_unanchored_session(store, tmp_path):
    session_id = store.create_session(0.0)
    output = plot_session(store, session_id, tmp_path / "empty.png")
    assert output.stat().st_size > 0
