import io

import pytest

from rtmplive import pio
from rtmplive.conn import Conn
from rtmplive.handshake import (
    CLIENT_PARTIAL_KEY,
    HANDSHAKE_SIZE,
    SERVER_FULL_KEY,
    SERVER_PARTIAL_KEY,
    SERVER_VERSION,
    HandshakeError,
    calc_digest_pos,
    create_s0s1,
    create_s2,
    find_digest,
    handshake_client,
    handshake_server,
    make_digest,
    parse_c1,
)


class _Duplex:
    def __init__(self, incoming=b""):
        self.inp = io.BytesIO(incoming)
        self.out = io.BytesIO()

    def read(self, n):
        return self.inp.read(n)

    def write(self, data):
        return self.out.write(data)


def test_make_digest_ignores_gap_bytes():
    src = bytearray(range(200))
    first = make_digest(b"k", src, 50)
    src[50:82] = bytes(32)
    assert make_digest(b"k", src, 50) == first
    assert len(first) == 32
    assert make_digest(b"k", src, 0) == make_digest(b"k", src, -1)
    assert make_digest(b"k", src, 0) != first


def test_calc_digest_pos_range_and_zero():
    assert calc_digest_pos(bytes(HANDSHAKE_SIZE), 8) == 12
    p = bytes([255] * HANDSHAKE_SIZE)
    pos = calc_digest_pos(p, 772)
    assert 776 <= pos < 776 + 728


def test_create_s0s1_is_signed():
    s0s1 = create_s0s1(1234, 0x01020304, SERVER_PARTIAL_KEY)
    assert len(s0s1) == 1 + HANDSHAKE_SIZE
    assert s0s1[0] == 3
    s1 = s0s1[1:]
    assert pio.u32be(s1[0:4]) == 1234
    assert pio.u32be(s1[4:8]) == 0x01020304
    assert find_digest(s1, SERVER_PARTIAL_KEY, 8) == calc_digest_pos(s1, 8)
    assert find_digest(s1, CLIENT_PARTIAL_KEY, 8) is None


def test_create_s2_ends_with_digest():
    s2 = create_s2(b"digest-key")
    assert len(s2) == HANDSHAKE_SIZE
    assert s2[-32:] == make_digest(b"digest-key", s2, HANDSHAKE_SIZE - 32)


def test_parse_c1_round_trip():
    c1 = create_s0s1(7, 0x80000702, CLIENT_PARTIAL_KEY)[1:]
    digest = parse_c1(c1, CLIENT_PARTIAL_KEY, SERVER_FULL_KEY)
    pos = calc_digest_pos(c1, 8)
    assert digest == make_digest(SERVER_FULL_KEY, c1[pos:pos + 32], -1)


def test_parse_c1_rejects_unsigned():
    with pytest.raises(HandshakeError):
        parse_c1(bytes(HANDSHAKE_SIZE), CLIENT_PARTIAL_KEY, SERVER_FULL_KEY)


def test_server_simple_handshake_echoes_c1():
    c1 = bytes([0, 0, 0, 9, 0, 0, 0, 0]) + bytes(range(256)) * 5 + bytes(248)
    c2 = bytes(HANDSHAKE_SIZE)
    duplex = _Duplex(b"\x03" + c1 + c2)
    handshake_server(Conn(duplex))
    assert duplex.out.getvalue() == b"\x03" + bytes(HANDSHAKE_SIZE) + c1
    assert duplex.inp.read() == b""


def test_server_digest_handshake():
    c0c1 = create_s0s1(123, 0x80000702, CLIENT_PARTIAL_KEY)
    duplex = _Duplex(c0c1 + bytes(HANDSHAKE_SIZE))
    handshake_server(Conn(duplex))
    out = duplex.out.getvalue()
    assert len(out) == 1 + 2 * HANDSHAKE_SIZE
    assert out[0] == 3
    s1 = out[1:1 + HANDSHAKE_SIZE]
    s2 = out[1 + HANDSHAKE_SIZE:]
    assert pio.u32be(s1[0:4]) == 123
    assert pio.u32be(s1[4:8]) == SERVER_VERSION
    assert find_digest(s1, SERVER_PARTIAL_KEY, 8) is not None
    digest = parse_c1(c0c1[1:], CLIENT_PARTIAL_KEY, SERVER_FULL_KEY)
    assert s2[-32:] == make_digest(digest, s2, HANDSHAKE_SIZE - 32)


def test_server_rejects_bad_version():
    duplex = _Duplex(b"\x06" + bytes(2 * HANDSHAKE_SIZE))
    with pytest.raises(HandshakeError):
        handshake_server(Conn(duplex))
    assert duplex.out.getvalue() == b""


def test_server_truncated_input_raises_eof():
    with pytest.raises(EOFError):
        handshake_server(Conn(_Duplex(b"\x03" + bytes(100))))


def test_client_handshake_echoes_s1():
    s1 = bytes(range(256)) * 6
    duplex = _Duplex(b"\x03" + s1 + bytes(HANDSHAKE_SIZE))
    handshake_client(Conn(duplex))
    assert duplex.out.getvalue() == b"\x03" + bytes(HANDSHAKE_SIZE) + s1


def test_client_against_server_output():
    c0c1 = create_s0s1(1, 0x80000702, CLIENT_PARTIAL_KEY)
    server_side = _Duplex(c0c1 + bytes(HANDSHAKE_SIZE))
    handshake_server(Conn(server_side))
    reply = server_side.out.getvalue()

    client_side = _Duplex(reply)
    handshake_client(Conn(client_side))
    sent = client_side.out.getvalue()
    assert sent[1 + HANDSHAKE_SIZE:] == reply[1:1 + HANDSHAKE_SIZE]