import threading

import pytest

from reactorkit.thread import Thread, current_tid, tid_string


def test_thread_runs_function():
    results = []
    worker = Thread(lambda: results.append("ran"))
    worker.start()
    worker.join()
    assert results == ["ran"]


def test_started_flag():
    worker = Thread(lambda: None)
    assert worker.started() is False
    worker.start()
    worker.join()
    assert worker.started() is True


def test_default_names_are_distinct():
    first = Thread(lambda: None)
    second = Thread(lambda: None)
    assert first.name().startswith("Thread")
    assert second.name().startswith("Thread")
    assert first.name() != second.name()


def test_explicit_name_kept():
    assert Thread(lambda: None, "worker").name() == "worker"


def test_tid_matches_inner_thread():
    seen = []
    worker = Thread(lambda: seen.append(current_tid()))
    worker.start()
    worker.join()
    assert worker.tid() == seen[0]
    assert worker.tid() != current_tid()


def test_current_tid_is_native_id():
    assert current_tid() == threading.get_native_id()


def test_tid_string_padded():
    text = tid_string()
    assert text.strip() == str(current_tid())
    assert len(text) >= 5


def test_join_before_start_raises():
    with pytest.raises(RuntimeError):
        Thread(lambda: None).join()


def test_double_start_raises():
    worker = Thread(lambda: None)
    worker.start()
    worker.join()
    with pytest.raises(RuntimeError):
        worker.start()