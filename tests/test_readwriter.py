import io

import pytest

from rtmplive.readwriter import ReadWriter

CASES_BE = [
    (1, 0x01, b"\x01"),
    (2, 0x0102, b"\x01\x02"),
    (3, 0x010203, b"\x01\x02\x03"),
    (4, 0x01020304, b"\x01\x02\x03\x04"),
]

CASES_LE = [
    (1, 0x01, b"\x01"),
    (2, 0x0102, b"\x02\x01"),
    (3, 0x010203, b"\x03\x02\x01"),
    (4, 0x01020304, b"\x04\x03\x02\x01"),
]


def test_reader_sticky_eof():
    stream = io.BytesIO(b"abc")
    rw = ReadWriter(stream, 1024)
    assert rw.read(3) == b"abc"
    assert rw.read_error is None
    with pytest.raises(EOFError) as first:
        rw.read(3)
    assert rw.read_error is first.value
    stream.write(b"123")
    stream.seek(3)
    with pytest.raises(EOFError) as second:
        rw.read(3)
    assert second.value is first.value


def test_short_read_is_eof():
    rw = ReadWriter(io.BytesIO(b"ab"), 1024)
    with pytest.raises(EOFError):
        rw.read(3)
    assert isinstance(rw.read_error, EOFError)


@pytest.mark.parametrize("n, value, raw", CASES_BE)
def test_read_uint_be(n, value, raw):
    rw = ReadWriter(io.BytesIO(raw), 1024)
    assert rw.read_uint_be(n) == value


@pytest.mark.parametrize("n, value, raw", CASES_LE)
def test_read_uint_le(n, value, raw):
    rw = ReadWriter(io.BytesIO(raw), 1024)
    assert rw.read_uint_le(n) == value


def test_writer_sticky_error():
    stream = io.BytesIO()
    rw = ReadWriter(stream, 1024)
    assert rw.write(b"\x01\x02\x03") == 3
    assert rw.write_error is None
    rw.write_error = EOFError()
    with pytest.raises(EOFError):
        rw.write(b"\x01\x02\x03")
    assert isinstance(rw.write_error, EOFError)


@pytest.mark.parametrize("n, value, raw", CASES_BE)
def test_write_uint_be(n, value, raw):
    stream = io.BytesIO()
    rw = ReadWriter(stream, 1024)
    rw.write_uint_be(value, n)
    rw.flush()
    assert stream.getvalue() == raw


@pytest.mark.parametrize("n, value, raw", CASES_LE)
def test_write_uint_le(n, value, raw):
    stream = io.BytesIO()
    rw = ReadWriter(stream, 1024)
    rw.write_uint_le(value, n)
    rw.flush()
    assert stream.getvalue() == raw


def test_write_is_buffered_until_flush():
    stream = io.BytesIO()
    rw = ReadWriter(stream, 1024)
    rw.write(b"abc")
    assert stream.getvalue() == b""
    rw.flush()
    assert stream.getvalue() == b"abc"


def test_peek_and_discard():
    rw = ReadWriter(io.BytesIO(b"\x01\x02\x03\x04\x05"), 1024)
    assert rw.peek(4) == b"\x01\x02\x03\x04"
    rw.discard(4)
    assert rw.read(1) == b"\x05"
    with pytest.raises(EOFError):
        rw.peek(1)