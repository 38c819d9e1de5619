"""RTMP handshake, with the digest scheme used by Flash clients."""

import hashlib
import hmac
import os
from contextlib import contextmanager

from . import pio

HANDSHAKE_SIZE = 1536
TIMEOUT = 5.0
SERVER_VERSION = 0x0D0E0A0D

_KEY_TAIL = bytes([
    0xF0, 0xEE, 0xC2, 0x4A, 0x80, 0x68, 0xBE, 0xE8, 0x2E, 0x00, 0xD0, 0xD1,
    0x02, 0x9E, 0x7E, 0x57, 0x6E, 0xEC, 0x5D, 0x2D, 0x29, 0x80, 0x6F, 0xAB,
    0x93, 0xB8, 0xE6, 0x36, 0xCF, 0xEB, 0x31, 0xAE,
])
CLIENT_FULL_KEY = b"Genuine Adobe Flash Player 001" + _KEY_TAIL
SERVER_FULL_KEY = b"Genuine Adobe Flash Media Server 001" + _KEY_TAIL
CLIENT_PARTIAL_KEY = CLIENT_FULL_KEY[:30]
SERVER_PARTIAL_KEY = SERVER_FULL_KEY[:36]


class HandshakeError(Exception):
    """Raised when the peer sends an invalid handshake."""


def make_digest(key, src, gap):
    """HMAC-SHA256 of ``src``, skipping the 32 bytes at ``gap`` when gap > 0."""
    mac = hmac.new(bytes(key), digestmod=hashlib.sha256)
    if gap <= 0:
        mac.update(bytes(src))
    else:
        mac.update(bytes(src[:gap]))
        mac.update(bytes(src[gap + 32:]))
    return mac.digest()


def calc_digest_pos(p, base):
    """Position of the digest derived from the four bytes at ``base``."""
    return sum(p[base:base + 4]) % 728 + base + 4


def find_digest(p, key, base):
    """Return the digest position if the digest there is valid, else None."""
    gap = calc_digest_pos(p, base)
    if bytes(p[gap:gap + 32]) != make_digest(key, p, gap):
        return None
    return gap


def parse_c1(p, peer_key, key):
    """Validate a C1 packet and return the digest used to sign S2."""
    pos = find_digest(p, peer_key, 772)
    if pos is None:
        pos = find_digest(p, peer_key, 8)
    if pos is None:
        raise HandshakeError("rtmp: handshake server: C1 invalid")
    return make_digest(key, p[pos:pos + 32], -1)


def create_s0s1(time, version, key):
    """Build a signed S0+S1 (1537 bytes)."""
    p1 = bytearray(os.urandom(HANDSHAKE_SIZE))
    p1[0:4] = pio.pack_u32be(time)
    p1[4:8] = pio.pack_u32be(version)
    gap = calc_digest_pos(p1, 8)
    p1[gap:gap + 32] = make_digest(key, p1, gap)
    return b"\x03" + bytes(p1)


def create_s2(key):
    """Build a random S2 (1536 bytes) ending in its digest."""
    p = bytearray(os.urandom(HANDSHAKE_SIZE))
    gap = len(p) - 32
    p[gap:] = make_digest(key, p, gap)
    return bytes(p)


@contextmanager
def _deadline(conn):
    sock = getattr(conn, "sock", None)
    if sock is not None:
        sock.settimeout(TIMEOUT)
    try:
        yield
    finally:
        if sock is not None:
            sock.settimeout(None)


def handshake_client(conn):
    """Perform the simple client handshake on ``conn``."""
    with _deadline(conn):
        conn.rw.write(b"\x03" + bytes(HANDSHAKE_SIZE))
        conn.rw.flush()
        s0s1s2 = conn.rw.read(1 + 2 * HANDSHAKE_SIZE)
        conn.rw.write(s0s1s2[1:1 + HANDSHAKE_SIZE])
        conn.rw.flush()


def handshake_server(conn):
    """Perform the server handshake on ``conn``."""
    with _deadline(conn):
        c0c1 = conn.rw.read(1 + HANDSHAKE_SIZE)
        if c0c1[0] != 3:
            raise HandshakeError(f"rtmp: handshake version={c0c1[0]} invalid")
        c1 = c0c1[1:]
        cli_time = pio.u32be(c1[0:4])
        cli_ver = pio.u32be(c1[4:8])
        if cli_ver != 0:
            digest = parse_c1(c1, CLIENT_PARTIAL_KEY, SERVER_FULL_KEY)
            s0s1 = create_s0s1(cli_time, SERVER_VERSION, SERVER_PARTIAL_KEY)
            s2 = create_s2(digest)
        else:
            s0s1 = b"\x03" + bytes(HANDSHAKE_SIZE)
            s2 = c1
        conn.rw.write(s0s1 + s2)
        conn.rw.flush()
        conn.rw.read(HANDSHAKE_SIZE)