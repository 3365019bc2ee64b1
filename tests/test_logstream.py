from reactorkit.logstream import (
    MAX_NUMERIC_SIZE,
    SMALL_BUFFER,
    FixedBuffer,
    LogStream,
    convert_integer,
)


def test_bools_render_as_digits():
    stream = LogStream()
    stream << True << False
    assert stream.buffer().to_bytes() == b"10"


def test_none_renders_as_null():
    stream = LogStream()
    stream << None
    assert stream.buffer().to_bytes() == b"(null)"


def test_integers_and_text_concatenate():
    stream = LogStream()
    stream << "n=" << -123 << " m=" << 0
    assert stream.buffer().to_bytes() == b"n=-123 m=0"


def test_lshift_returns_stream():
    stream = LogStream()
    assert (stream << "x") is stream


def test_convert_integer():
    assert convert_integer(-9876) == "-9876"
    assert convert_integer(0) == "0"


def test_default_capacity():
    stream = LogStream()
    assert stream.buffer().avail() == SMALL_BUFFER


def test_integer_dropped_when_little_room():
    stream = LogStream()
    stream.append(b"x" * (SMALL_BUFFER - MAX_NUMERIC_SIZE + 8))
    before = stream.buffer().length()
    stream << 12345
    assert stream.buffer().length() == before
    stream << "ab"
    assert stream.buffer().length() == before + 2


def test_fixed_buffer_requires_strictly_more_room():
    buf = FixedBuffer(10)
    buf.append(b"123456789")
    assert buf.length() == 9
    buf.append(b"z")
    assert buf.length() == 9
    assert buf.to_bytes() == b"123456789"


def test_fixed_buffer_reset():
    buf = FixedBuffer(16)
    buf.append(b"abc")
    buf.reset()
    assert buf.length() == 0
    assert buf.avail() == 16


def test_bzero_keeps_position_but_clears_content():
    buf = FixedBuffer(16)
    buf.append(b"abc")
    buf.bzero()
    assert buf.length() == 3
    assert buf.to_bytes() == bytes(3)


def test_data_view_matches_bytes():
    buf = FixedBuffer(16)
    buf.append(b"hello")
    assert bytes(buf.data()) == buf.to_bytes() == b"hello"


def test_reset_buffer():
    stream = LogStream()
    stream << "abc"
    stream.reset_buffer()
    assert stream.buffer().to_bytes() == b""