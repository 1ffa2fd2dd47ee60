"""Width- and order-preserving access to memory mapped I/O regions.

A region is any writable buffer (``bytearray``, ``memoryview``, ``array``,
``mmap``).  Every accessor reads or writes exactly the requested width at
the given byte offset.  ``nat_`` accessors use the host byte order,
``be_`` and ``le_`` accessors use big and little endian order respectively.
"""

from __future__ import annotations

import struct
import sys

ENDIAN_LITTLE = 1234
ENDIAN_BIG = 4321

BYTE_ORDER = ENDIAN_LITTLE if sys.byteorder == "little" else ENDIAN_BIG
FLOAT_WORD_ORDER = BYTE_ORDER

_U8 = struct.Struct("B")
_NAT16 = struct.Struct("=H")
_NAT32 = struct.Struct("=I")
_BE16 = struct.Struct(">H")
_BE32 = struct.Struct(">I")
_LE16 = struct.Struct("<H")
_LE32 = struct.Struct("<I")


def _check_span(buf, offset: int, size: int) -> None:
    length = len(memoryview(buf).cast("B"))
    if offset < 0 or offset + size > length:
        raise IndexError(
            f"access of {size} byte(s) at offset {offset} outside region of {length} bytes"
        )


def _read(fmt: struct.Struct, buf, offset: int) -> int:
    _check_span(buf, offset, fmt.size)
    return fmt.unpack_from(buf, offset)[0]


def _write(fmt: struct.Struct, buf, offset: int, value: int) -> None:
    _check_span(buf, offset, fmt.size)
    fmt.pack_into(buf, offset, value & ((1 << (8 * fmt.size)) - 1))


def bswap16(value: int) -> int:
    """Unconditionally swap the two bytes of a 16-bit value."""
    value &= 0xFFFF
    return ((value & 0x00FF) << 8) | ((value & 0xFF00) >> 8)


def bswap32(value: int) -> int:
    """Unconditionally reverse the four bytes of a 32-bit value."""
    value &= 0xFFFFFFFF
    return (
        ((value & 0x000000FF) << 24)
        | ((value & 0x0000FF00) << 8)
        | ((value & 0x00FF0000) >> 8)
        | ((value & 0xFF000000) >> 24)
    )


def ioread8(buf, offset: int) -> int:
    """Read a single byte."""
    return _read(_U8, buf, offset)


def iowrite8(buf, offset: int, value: int) -> None:
    """Write a single byte."""
    _write(_U8, buf, offset, value)


def nat_ioread16(buf, offset: int) -> int:
    """Read two bytes in host order."""
    return _read(_NAT16, buf, offset)


def nat_iowrite16(buf, offset: int, value: int) -> None:
    """Write two bytes in host order."""
    _write(_NAT16, buf, offset, value)


def nat_ioread32(buf, offset: int) -> int:
    """Read four bytes in host order."""
    return _read(_NAT32, buf, offset)


def nat_iowrite32(buf, offset: int, value: int) -> None:
    """Write four bytes in host order."""
    _write(_NAT32, buf, offset, value)


def be_ioread16(buf, offset: int) -> int:
    """Read two bytes in big endian order."""
    return _read(_BE16, buf, offset)


def be_iowrite16(buf, offset: int, value: int) -> None:
    """Write two bytes in big endian order."""
    _write(_BE16, buf, offset, value)


def be_ioread32(buf, offset: int) -> int:
    """Read four bytes in big endian order."""
    return _read(_BE32, buf, offset)


def be_iowrite32(buf, offset: int, value: int) -> None:
    """Write four bytes in big endian order."""
    _write(_BE32, buf, offset, value)


def le_ioread16(buf, offset: int) -> int:
    """Read two bytes in little endian order."""
    return _read(_LE16, buf, offset)


def le_iowrite16(buf, offset: int, value: int) -> None:
    """Write two bytes in little endian order."""
    _write(_LE16, buf, offset, value)


def le_ioread32(buf, offset: int) -> int:
    """Read four bytes in little endian order."""
    return _read(_LE32, buf, offset)


def le_iowrite32(buf, offset: int, value: int) -> None:
    """Write four bytes in little endian order."""
    _write(_LE32, buf, offset, value)