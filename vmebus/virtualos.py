"""Bus access back ends: status codes, address types and bus implementations.

:class:`VirtualOS` is the interface an address map and the CSR helpers talk
to.  Its own methods do nothing useful: every operation fails with
:attr:`Status.UNSUPPORTED`, as on a host with no VME bus.
:class:`SimulatedVME` is a complete in-memory bus with memory-backed
devices, bus-error-safe probes and a vectored interrupt controller.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from . import mmio

log = logging.getLogger(__name__)


class Status(enum.Enum):
    """Reasons a bus operation can fail."""

    BAD_A16 = "bad A16 address"
    BAD_A24 = "bad A24 address"
    BAD_A32 = "bad A32 address"
    UNKNOWN_ADDR_TYPE = "unknown address type"
    ADDRESS_OVERLAP = "specified address range overlaps a device already present"
    IDENTIFY_OVERLAP = "this device already owns the address range"
    ADDR_MAP_FAIL = "unable to map address"
    INTERNAL = "internal failure"
    INT_EN_FAIL = "unable to enable interrupt level"
    INT_DIS_FAIL = "unable to disable interrupt level"
    NO_MEMORY = "memory allocation failed"
    ADDRESS_NOT_FOUND = "specified device address unregistered"
    NO_DEVICE = "no device at specified address"
    BAD_REQUEST = "bad request"
    LOW_VALUE = "value too low"
    DEVICE_DOES_NOT_FIT = "unable to fit device in the address space"
    BAD_ARGUMENT = "bad function argument"
    BAD_VECTOR = "interrupt vector number out of range"
    VECTOR_IN_USE = "interrupt vector in use"
    VEC_INSTL_FAIL = "interrupt vector install failed"
    VECTOR_NOT_IN_USE = "interrupt vector not in use by caller"
    BAD_CARD = "bad card number"
    UNSUPPORTED = "operation not supported by this bus implementation"


class DevLibError(Exception):
    """A bus operation failed; ``status`` tells why."""

    def __init__(self, status: Status, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        message = status.value if not detail else f"{status.value}: {detail}"
        super().__init__(message)


@dataclass(frozen=True)
class _TypeInfo:
    title: str
    limit: int
    hex_digits: int
    fail_status: Status


_TYPE_INFO = (
    _TypeInfo("VME A16", 0xFFFF, 4, Status.BAD_A16),
    _TypeInfo("VME A24", 0xFFFFFF, 6, Status.BAD_A24),
    _TypeInfo("VME A32", 0xFFFFFFFF, 8, Status.BAD_A32),
    _TypeInfo("ISA", 0xFFFFFF, 6, Status.BAD_A24),
    _TypeInfo("VME CR/CSR", 0xFFFFFF, 6, Status.BAD_A24),
)


class AddressType(enum.IntEnum):
    """Bus address spaces."""

    A16 = 0
    A24 = 1
    A32 = 2
    ISA = 3
    CSR = 4

    @property
    def title(self) -> str:
        """Human readable name of the address space."""
        return _TYPE_INFO[self].title

    @property
    def limit(self) -> int:
        """Highest valid address in this space."""
        return _TYPE_INFO[self].limit

    @property
    def hex_digits(self) -> int:
        """Number of hex digits needed to print an address of this space."""
        return _TYPE_INFO[self].hex_digits

    @property
    def fail_status(self) -> Status:
        """Status reported for an address out of this space's range."""
        return _TYPE_INFO[self].fail_status


Handler = Callable[[Any], None]


class VirtualOS:
    """Bus implementation interface.

    Local addresses returned by :meth:`map_address` are plain integers
    understood by the probe methods of the same implementation.
    """

    def init(self) -> None:
        """Prepare the bus for use."""

    def map_address(self, addr_type: AddressType, base: int, size: int) -> int:
        """Translate a bus address range to a local address."""
        raise DevLibError(Status.UNSUPPORTED, "map_address")

    def read_probe(self, width: int, address: int) -> int:
        """Read ``width`` bytes without faulting; raise if nothing answers."""
        raise DevLibError(Status.UNSUPPORTED, "read_probe")

    def write_probe(self, width: int, address: int, value: int) -> None:
        """Write ``width`` bytes without faulting; raise if nothing answers."""
        raise DevLibError(Status.UNSUPPORTED, "write_probe")

    def no_response_probe(self, addr_type: AddressType, base: int, size: int) -> None:
        """Succeed only if no device responds anywhere in the range."""
        raise DevLibError(Status.UNSUPPORTED, "no_response_probe")

    def connect_interrupt(self, vector: int, handler: Handler, parameter: Any) -> None:
        """Attach ``handler(parameter)`` to an interrupt vector."""
        raise DevLibError(Status.UNSUPPORTED, "connect_interrupt")

    def disconnect_interrupt(self, vector: int, handler: Handler) -> None:
        """Detach ``handler`` from a vector it was connected to."""
        raise DevLibError(Status.UNSUPPORTED, "disconnect_interrupt")

    def enable_interrupt_level(self, level: int) -> None:
        """Enable an interrupt level (1-7)."""
        raise DevLibError(Status.UNSUPPORTED, "enable_interrupt_level")

    def disable_interrupt_level(self, level: int) -> None:
        """Disable an interrupt level (1-7)."""
        raise DevLibError(Status.UNSUPPORTED, "disable_interrupt_level")

    def interrupt_in_use(self, vector: int) -> bool:
        """True if a handler is connected to the vector."""
        raise DevLibError(Status.UNSUPPORTED, "interrupt_in_use")


_READERS = {1: mmio.ioread8, 2: mmio.be_ioread16, 4: mmio.be_ioread32}
_WRITERS = {1: mmio.iowrite8, 2: mmio.be_iowrite16, 4: mmio.be_iowrite32}

_MAX_VECTOR = 255


def _local(addr_type: AddressType, base: int) -> int:
    return ((int(addr_type) + 1) << 32) | base


def _split(address: int) -> tuple[AddressType, int]:
    try:
        addr_type = AddressType((address >> 32) - 1)
    except ValueError:
        raise DevLibError(Status.NO_DEVICE, f"local address {address:#x}") from None
    return addr_type, address & 0xFFFFFFFF


class SimulatedVME(VirtualOS):
    """An in-memory VME bus.

    Devices are byte buffers placed in an address space.  Multi-byte
    accesses use big endian order, as on the VME bus.
    """

    def __init__(self) -> None:
        self.initialized = False
        self._devices: dict[AddressType, list[tuple[int, bytearray]]] = {
            t: [] for t in AddressType
        }
        self._isr: dict[int, tuple[Handler, Any]] = {}
        self._levels: set[int] = set()

    @property
    def enabled_levels(self) -> frozenset[int]:
        """Interrupt levels currently enabled."""
        return frozenset(self._levels)

    def init(self) -> None:
        self.initialized = True

    def add_device(self, addr_type: AddressType, base: int, size: int) -> bytearray:
        """Place a zero-filled memory device on the bus and return its memory."""
        addr_type = AddressType(addr_type)
        if size <= 0:
            raise DevLibError(Status.LOW_VALUE, f"device size {size}")
        if base < 0 or base + size - 1 > addr_type.limit:
            raise DevLibError(addr_type.fail_status, f"{base:#x}+{size:#x}")
        end = base + size
        for dbase, mem in self._devices[addr_type]:
            if base < dbase + len(mem) and dbase < end:
                raise DevLibError(
                    Status.ADDRESS_OVERLAP, f"{addr_type.title} {base:#x}"
                )
        mem = bytearray(size)
        self._devices[addr_type].append((base, mem))
        self._devices[addr_type].sort(key=lambda item: item[0])
        return mem

    def map_address(self, addr_type: AddressType, base: int, size: int) -> int:
        try:
            addr_type = AddressType(addr_type)
        except ValueError:
            raise DevLibError(Status.UNKNOWN_ADDR_TYPE, str(addr_type)) from None
        if base < 0 or size < 0 or base + max(size, 1) - 1 > addr_type.limit:
            raise DevLibError(
                Status.ADDR_MAP_FAIL, f"{addr_type.title} {base:#x} size {size:#x}"
            )
        return _local(addr_type, base)

    def _locate(self, address: int, width: int) -> tuple[bytearray, int]:
        addr_type, bus = _split(address)
        for dbase, mem in self._devices[addr_type]:
            if dbase <= bus and bus + width <= dbase + len(mem):
                return mem, bus - dbase
        raise DevLibError(Status.NO_DEVICE, f"{addr_type.title} {bus:#x}")

    def read_probe(self, width: int, address: int) -> int:
        reader = _READERS.get(width)
        if reader is None:
            raise DevLibError(Status.BAD_ARGUMENT, f"width {width}")
        mem, offset = self._locate(address, width)
        return reader(mem, offset)

    def write_probe(self, width: int, address: int, value: int) -> None:
        writer = _WRITERS.get(width)
        if writer is None:
            raise DevLibError(Status.BAD_ARGUMENT, f"width {width}")
        mem, offset = self._locate(address, width)
        writer(mem, offset, value)

    def read8(self, address: int) -> int:
        """Read one byte at a local address."""
        return self.read_probe(1, address)

    def write8(self, address: int, value: int) -> None:
        """Write one byte at a local address."""
        self.write_probe(1, address, value)

    def no_response_probe(self, addr_type: AddressType, base: int, size: int) -> None:
        addr_type = AddressType(addr_type)
        self.map_address(addr_type, base, size)
        end = base + size
        for dbase, mem in self._devices[addr_type]:
            if base < dbase + len(mem) and dbase < end:
                raise DevLibError(
                    Status.ADDRESS_OVERLAP,
                    f"{addr_type.title} device responds at {max(base, dbase):#x}",
                )

    @staticmethod
    def _check_vector(vector: int) -> None:
        if not 0 <= vector <= _MAX_VECTOR:
            raise DevLibError(Status.BAD_VECTOR, str(vector))

    def connect_interrupt(self, vector: int, handler: Handler, parameter: Any) -> None:
        self._check_vector(vector)
        if self.interrupt_in_use(vector):
            raise DevLibError(Status.VECTOR_IN_USE, str(vector))
        self._isr[vector] = (handler, parameter)

    def disconnect_interrupt(self, vector: int, handler: Handler) -> None:
        self._check_vector(vector)
        current = self._isr.get(vector)
        if current is None or current[0] is not handler:
            raise DevLibError(Status.VECTOR_NOT_IN_USE, str(vector))
        del self._isr[vector]

    def enable_interrupt_level(self, level: int) -> None:
        if not 1 <= level <= 7:
            raise DevLibError(Status.INT_EN_FAIL, f"level {level}")
        self._levels.add(level)

    def disable_interrupt_level(self, level: int) -> None:
        if not 1 <= level <= 7:
            raise DevLibError(Status.INT_DIS_FAIL, f"level {level}")
        self._levels.discard(level)

    def interrupt_in_use(self, vector: int) -> bool:
        self._check_vector(vector)
        return vector in self._isr

    def trigger(self, vector: int) -> bool:
        """Deliver an interrupt; return True if a connected handler ran."""
        self._check_vector(vector)
        entry = self._isr.get(vector)
        if entry is None:
            log.warning("Interrupt to disconnected vector 0x%02X", vector)
            return False
        handler, parameter = entry
        handler(parameter)
        return True