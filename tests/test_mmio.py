import sys

import pytest

from vmebus import mmio

if sys.byteorder == "big":
    BE16, BE32, LE16, LE32 = 0x1234, 0x12345678, 0x3412, 0x78563412
else:
    LE16, LE32, BE16, BE32 = 0x1234, 0x12345678, 0x3412, 0x78563412


def _native16(buf):
    return int.from_bytes(bytes(buf[:2]), sys.byteorder)


def _native32(buf):
    return int.from_bytes(bytes(buf[:4]), sys.byteorder)


def test_8bit_ops():
    buf = bytearray(1)
    mmio.iowrite8(buf, 0, 5)
    assert buf[0] == 5
    assert mmio.ioread8(buf, 0) == 5


def test_nat16():
    buf = bytearray(2)
    mmio.nat_iowrite16(buf, 0, 0x1234)
    assert _native16(buf) == 0x1234
    assert mmio.nat_ioread16(buf, 0) == 0x1234


def test_be16():
    buf = bytearray(2)
    mmio.be_iowrite16(buf, 0, 0x1234)
    assert _native16(buf) == BE16
    assert mmio.be_ioread16(buf, 0) == 0x1234


def test_le16():
    buf = bytearray(2)
    mmio.le_iowrite16(buf, 0, 0x1234)
    assert _native16(buf) == LE16
    assert mmio.le_ioread16(buf, 0) == 0x1234


def test_nat32():
    buf = bytearray(4)
    mmio.nat_iowrite32(buf, 0, 0x12345678)
    assert _native32(buf) == 0x12345678
    assert mmio.nat_ioread32(buf, 0) == 0x12345678


def test_be32():
    buf = bytearray(4)
    mmio.be_iowrite32(buf, 0, 0x12345678)
    assert _native32(buf) == BE32
    assert mmio.be_ioread32(buf, 0) == 0x12345678


def test_le32():
    buf = bytearray(4)
    mmio.le_iowrite32(buf, 0, 0x12345678)
    assert _native32(buf) == LE32
    assert mmio.le_ioread32(buf, 0) == 0x12345678


def test_bswap_values():
    assert mmio.bswap16(0x1234) == 0x3412
    assert mmio.bswap32(0x12345678) == 0x78563412


@pytest.mark.parametrize("value", [0, 1, 0x00FF, 0xFF00, 0xABCD, 0xFFFF])
def test_bswap16_involution(value):
    assert mmio.bswap16(mmio.bswap16(value)) == value


@pytest.mark.parametrize("value", [0, 1, 0xFF, 0xDEADBEEF, 0xFFFFFFFF])
def test_bswap32_involution(value):
    assert mmio.bswap32(mmio.bswap32(value)) == value


def test_be_and_le_disagree_by_swap():
    buf = bytearray(4)
    mmio.be_iowrite32(buf, 0, 0x12345678)
    assert mmio.le_ioread32(buf, 0) == mmio.bswap32(0x12345678)
    mmio.le_iowrite16(buf, 2, 0x1234)
    assert mmio.be_ioread16(buf, 2) == mmio.bswap16(0x1234)


def test_offset_access_leaves_neighbours():
    buf = bytearray(8)
    mmio.be_iowrite16(buf, 3, 0xFFFF)
    assert buf[2] == 0 and buf[5] == 0
    assert mmio.be_ioread16(buf, 3) == 0xFFFF


def test_memoryview_region():
    raw = bytearray(8)
    view = memoryview(raw)
    mmio.le_iowrite32(view, 4, 0x12345678)
    assert mmio.le_ioread32(raw, 4) == 0x12345678


def test_value_truncated_to_width():
    buf = bytearray(1)
    mmio.iowrite8(buf, 0, 0x1234)
    assert mmio.ioread8(buf, 0) == 0x34


@pytest.mark.parametrize(
    "reader, size",
    [
        (mmio.ioread8, 1),
        (mmio.nat_ioread16, 2),
        (mmio.be_ioread32, 4),
        (mmio.le_ioread16, 2),
    ],
)
def test_read_past_end_raises(reader, size):
    buf = bytearray(size)
    with pytest.raises(IndexError):
        reader(buf, 1)


def test_negative_offset_raises():
    with pytest.raises(IndexError):
        mmio.le_iowrite32(bytearray(8), -1, 0)


def test_native_access_follows_byte_order_constant():
    buf = bytearray(4)
    mmio.nat_iowrite32(buf, 0, 0x12345678)
    if mmio.BYTE_ORDER == mmio.ENDIAN_BIG:
        assert mmio.be_ioread32(buf, 0) == 0x12345678
    else:
        assert mmio.le_ioread32(buf, 0) == 0x12345678
    expected = mmio.ENDIAN_LITTLE if sys.byteorder == "little" else mmio.ENDIAN_BIG
    assert mmio.BYTE_ORDER == expected