import time

from reactorkit.timestamp import Timestamp, add_time


def test_invalid_is_zero_and_not_valid():
    stamp = Timestamp.invalid()
    assert stamp.microseconds_since_epoch == 0
    assert not stamp.valid()


def test_positive_is_valid():
    assert Timestamp(1).valid()


def test_now_is_current_time():
    before = time.time_ns() // 1000
    stamp = Timestamp.now()
    after = time.time_ns() // 1000
    assert before <= stamp.microseconds_since_epoch <= after
    assert stamp.valid()


def test_to_string_splits_seconds_and_microseconds():
    assert Timestamp(1_234_567_890_123_456).to_string() == "1234567890.123456"


def test_to_string_round_trips_through_float():
    stamp = Timestamp.now()
    parsed = float(stamp.to_string())
    assert abs(parsed * Timestamp.MICROSECONDS_PER_SECOND - stamp.microseconds_since_epoch) < 2


def test_format_string_at_epoch():
    epoch = Timestamp(0)
    assert epoch.to_format_string() == "19700101 00:00:00.000000"
    assert epoch.to_format_string(False) == "19700101 00:00:00"


def test_format_string_short_is_prefix_of_long():
    stamp = Timestamp.now()
    short = stamp.to_format_string(show_microseconds=False)
    full = stamp.to_format_string(show_microseconds=True)
    assert full.startswith(short)
    assert full[len(short)] == "."


def test_add_time_whole_seconds():
    stamp = Timestamp(5)
    moved = add_time(stamp, 2)
    assert moved == Timestamp(5 + 2 * Timestamp.MICROSECONDS_PER_SECOND)


def test_add_time_orders_after():
    stamp = Timestamp.now()
    assert add_time(stamp, 0.5) > stamp
    assert add_time(stamp, -0.5) < stamp


def test_add_zero_is_identity():
    stamp = Timestamp(42)
    assert add_time(stamp, 0.0) == stamp