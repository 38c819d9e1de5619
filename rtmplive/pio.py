"""Big- and little-endian integer helpers for byte buffers."""

RECOMMENDED_BUFFER_SIZE = 64 * 1024


def _field(b, n):
    if len(b) < n:
        raise ValueError(f"need {n} bytes, got {len(b)}")
    return bytes(b[:n])


def _unsigned(b, n, order="big"):
    return int.from_bytes(_field(b, n), order)


def _signed(b, n):
    return int.from_bytes(_field(b, n), "big", signed=True)


def _pack(v, n, order="big"):
    return (v & ((1 << (8 * n)) - 1)).to_bytes(n, order)


def u8(b):
    """Read an unsigned 8-bit value."""
    return _field(b, 1)[0]


def u16be(b):
    """Read an unsigned 16-bit big-endian value."""
    return _unsigned(b, 2)


def i16be(b):
    """Read a signed 16-bit big-endian value."""
    return _signed(b, 2)


def i24be(b):
    """Read a signed 24-bit big-endian value."""
    return _signed(b, 3)


def u24be(b):
    """Read an unsigned 24-bit big-endian value."""
    return _unsigned(b, 3)


def i32be(b):
    """Read a signed 32-bit big-endian value."""
    return _signed(b, 4)


def u32le(b):
    """Read an unsigned 32-bit little-endian value."""
    return _unsigned(b, 4, "little")


def u32be(b):
    """Read an unsigned 32-bit big-endian value."""
    return _unsigned(b, 4)


def u40be(b):
    """Read an unsigned 40-bit big-endian value."""
    return _unsigned(b, 5)


def u64be(b):
    """Read an unsigned 64-bit big-endian value."""
    return _unsigned(b, 8)


def i64be(b):
    """Read a signed 64-bit big-endian value."""
    return _signed(b, 8)


def pack_u8(v):
    """Encode the low 8 bits of ``v``."""
    return _pack(v, 1)


def pack_i16be(v):
    """Encode ``v`` as 16-bit big-endian two's complement."""
    return _pack(v, 2)


def pack_u16be(v):
    """Encode the low 16 bits of ``v`` big-endian."""
    return _pack(v, 2)


def pack_i24be(v):
    """Encode ``v`` as 24-bit big-endian two's complement."""
    return _pack(v, 3)


def pack_u24be(v):
    """Encode the low 24 bits of ``v`` big-endian."""
    return _pack(v, 3)


def pack_i32be(v):
    """Encode ``v`` as 32-bit big-endian two's complement."""
    return _pack(v, 4)


def pack_u32be(v):
    """Encode the low 32 bits of ``v`` big-endian."""
    return _pack(v, 4)


def pack_u32le(v):
    """Encode the low 32 bits of ``v`` little-endian."""
    return _pack(v, 4, "little")


def pack_u40be(v):
    """Encode the low 40 bits of ``v`` big-endian."""
    return _pack(v, 5)


def pack_u48be(v):
    """Encode the low 48 bits of ``v`` big-endian."""
    return _pack(v, 6)


def pack_u64be(v):
    """Encode the low 64 bits of ``v`` big-endian."""
    return _pack(v, 8)


def pack_i64be(v):
    """Encode ``v`` as 64-bit big-endian two's complement."""
    return _pack(v, 8)