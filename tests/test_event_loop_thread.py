import threading

from reactorkit.event_loop_thread import EventLoopThread, EventLoopThreadPool


def _run_and_wait(loop, func):
    done = threading.Event()
    result = []

    def task():
        result.append(func())
        done.set()

    loop.run_in_loop(task)
    assert done.wait(5.0)
    return result[0]


def test_start_loop_runs_in_named_thread():
    thread = EventLoopThread(name="worker-a")
    loop = thread.start_loop()
    try:
        assert loop.is_in_loop_thread() is False
        name = _run_and_wait(loop, lambda: threading.current_thread().name)
        assert name == "worker-a"
        assert _run_and_wait(loop, loop.is_in_loop_thread) is True
    finally:
        thread.stop()


def test_init_callback_receives_loop():
    seen = []
    thread = EventLoopThread(seen.append, "worker-b")
    loop = thread.start_loop()
    try:
        assert seen == [loop]
    finally:
        thread.stop()


def test_stop_ends_thread():
    thread = EventLoopThread(name="worker-c")
    loop = thread.start_loop()
    assert _run_and_wait(loop, loop.is_in_loop_thread) is True
    thread.stop()
    names = [t.name for t in threading.enumerate()]
    assert "worker-c" not in names


def test_pool_without_threads_uses_base_loop():
    base = object()
    seen = []
    pool = EventLoopThreadPool(base, "pool")
    pool.start(seen.append)
    assert pool.started is True
    assert seen == [base]
    assert pool.get_next_loop() is base
    assert pool.get_loop_for_hash(7) is base
    assert pool.get_all_loops() == [base]


def test_pool_round_robin_and_hash():
    pool = EventLoopThreadPool(object(), "pool")
    pool.num_threads = 3
    pool.start()
    try:
        loops = pool.get_all_loops()
        assert len(loops) == 3
        assert len({id(loop) for loop in loops}) == 3
        handed_out = [pool.get_next_loop() for _ in range(6)]
        assert handed_out == loops + loops
        assert pool.get_loop_for_hash(4) is loops[1]
        names = {_run_and_wait(loop, lambda: threading.current_thread().name) for loop in loops}
        assert names == {"pool0", "pool1", "pool2"}
    finally:
        pool.stop()
    assert pool.get_all_loops() == [pool.base_loop]