import pytest

from rtmplive import pio


@pytest.mark.parametrize(
    "pack, unpack, value",
    [
        (pio.pack_u8, pio.u8, 0xAB),
        (pio.pack_u16be, pio.u16be, 0xBEEF),
        (pio.pack_i16be, pio.i16be, -12345),
        (pio.pack_i24be, pio.i24be, -70000),
        (pio.pack_u24be, pio.u24be, 0xFFFFFF),
        (pio.pack_i32be, pio.i32be, -(2**31)),
        (pio.pack_u32be, pio.u32be, 0xDEADBEEF),
        (pio.pack_u32le, pio.u32le, 0xDEADBEEF),
        (pio.pack_u40be, pio.u40be, 2**40 - 3),
        (pio.pack_u64be, pio.u64be, 2**64 - 7),
        (pio.pack_i64be, pio.i64be, -(2**62) + 5),
    ],
)
def test_round_trip(pack, unpack, value):
    assert unpack(pack(value)) == value


def test_big_endian_wire_order():
    assert pio.pack_u32be(0x01020304) == b"\x01\x02\x03\x04"
    assert pio.u32be(b"\x01\x02\x03\x04") == 0x01020304


def test_little_endian_is_reverse_of_big_endian():
    value = 0x01020304
    assert pio.pack_u32le(value) == pio.pack_u32be(value)[::-1]
    assert pio.u32le(b"\x04\x03\x02\x01") == 0x01020304


def test_pack_truncates_to_width():
    assert pio.pack_u8(0x1FF) == pio.pack_u8(0xFF)
    assert pio.pack_u24be(0x12FFFFFF) == pio.pack_u24be(0xFFFFFF)
    assert len(pio.pack_u48be(2**60)) == 6


def test_signed_and_unsigned_share_bits():
    raw = pio.pack_i24be(-1)
    assert pio.u24be(raw) == 0xFFFFFF
    assert pio.i24be(raw) == -1


def test_reads_only_leading_bytes():
    data = pio.pack_u16be(0x1234) + b"\x99\x99"
    assert pio.u16be(data) == 0x1234


def test_short_buffer_raises():
    with pytest.raises(ValueError):
        pio.u32be(b"\x01\x02")
    with pytest.raises(ValueError):
        pio.u8(b"")