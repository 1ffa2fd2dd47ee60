"""Bookkeeping of bus address ranges owned by device drivers.

For every address space an :class:`AddressMap` keeps two ordered lists:
the ranges registered by drivers and the free ranges left over.
Registering a range splits a free block, releasing one merges it back
with its free neighbours.  All mapping and probing goes through a
:class:`~vmebus.virtualos.VirtualOS` back end.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace

from .virtualos import AddressType, DevLibError, Status, VirtualOS

log = logging.getLogger(__name__)

VACANT = "<Vacant>"
FRAGMENTED = "<fragmented block>"
RELEASED = "<released fragment>"


def create_mask(alignment: int) -> int:
    """Mask with the ``alignment`` least significant bits set."""
    return (1 << alignment) - 1


@dataclass
class AddressRange:
    """An inclusive range ``begin``..``end`` of bus addresses."""

    begin: int
    end: int
    owner: str
    physical: int | None = None

    @property
    def size(self) -> int:
        """Number of addresses in the range."""
        return self.end - self.begin + 1


def _addr_type(addr_type) -> AddressType:
    try:
        return AddressType(addr_type)
    except ValueError:
        raise DevLibError(Status.UNKNOWN_ADDR_TYPE, str(addr_type)) from None


def _verify(addr_type, base: int, size: int) -> AddressType:
    """Check that ``size`` bytes at ``base`` fit in the address space."""
    atype = _addr_type(addr_type)
    limit = atype.limit
    if size == 0 or size - 1 > limit or base > limit or size - 1 > limit - base:
        raise DevLibError(atype.fail_status, f"{base:#x} size {size:#x}")
    if base < 0 or size < 0:
        raise DevLibError(atype.fail_status, f"{base:#x} size {size:#x}")
    return atype


class AddressMap:
    """Allocation map of every bus address space, backed by a bus implementation."""

    def __init__(self, vos: VirtualOS) -> None:
        self._vos = vos
        self._lock = threading.RLock()
        self._initialized = False
        self._alloc: dict[AddressType, list[AddressRange]] = {}
        self._free: dict[AddressType, list[AddressRange]] = {}

    @property
    def vos(self) -> VirtualOS:
        """The bus implementation used by this map."""
        return self._vos

    def _ensure_init(self) -> None:
        with self._lock:
            if self._initialized:
                return
            self._alloc = {t: [] for t in AddressType}
            self._free = {
                t: [AddressRange(0, t.limit, VACANT)] for t in AddressType
            }
            self._initialized = True
        self._vos.init()

    def bus_to_local(self, addr_type, bus_address: int) -> int:
        """Translate a bus address to the local address of the back end."""
        self._ensure_init()
        atype = _verify(addr_type, bus_address, 4)
        try:
            return self._vos.map_address(atype, bus_address, 4)
        except DevLibError as exc:
            log.error("%s bus address =0X%X: %s", atype.title, bus_address, exc)
            raise

    def register(self, owner: str, addr_type, base: int, size: int) -> AddressRange:
        """Claim ``size`` bytes at ``base`` for ``owner``; return the new range."""
        self._ensure_init()
        atype = _verify(addr_type, base, size)
        if size == 0:
            raise DevLibError(Status.LOW_VALUE, "size 0")

        found = None
        with self._lock:
            for block in self._free[atype]:
                if block.begin > base:
                    break
                if base + (size - 1) <= block.end:
                    found = block
                    break

        if found is None:
            self._report_conflict(atype, base, size, owner)
            raise DevLibError(
                Status.ADDRESS_OVERLAP,
                f"{atype.title} {base:#x}-{base + size - 1:#x} requested by {owner}",
            )
        return self._install(found, owner, atype, base, size)

    def _install(
        self, block: AddressRange, owner: str, atype: AddressType, base: int, size: int
    ) -> AddressRange:
        req_end = base + (size - 1)
        if base < block.begin or req_end > block.end:
            raise DevLibError(Status.BAD_ARGUMENT, f"{base:#x} outside free block")

        try:
            physical = self._vos.map_address(atype, base, size)
        except DevLibError as exc:
            log.error("%s base=0X%X size = 0X%X: %s", atype.title, base, size, exc)
            raise

        with self._lock:
            free = self._free[atype]
            if block.begin == base:
                if block.end == req_end:
                    free.remove(block)
                else:
                    block.begin = base + size
            elif block.end == req_end:
                block.end = base - 1
            else:
                tail = AddressRange(base + size, block.end, FRAGMENTED)
                block.end = base - 1
                free.insert(free.index(block) + 1, tail)

            entry = AddressRange(base, req_end, owner, physical)
            self._insert(self._alloc[atype], entry)
        return replace(entry)

    @staticmethod
    def _insert(ranges: list[AddressRange], new: AddressRange) -> None:
        for index, item in enumerate(ranges):
            if new.end < item.begin:
                ranges.insert(index, new)
                return
        ranges.append(new)

    def _report_conflict(self, atype: AddressType, base: int, size: int, owner: str) -> None:
        last = base + size - 1
        log.error(
            "%10s 0X%08X - 0X%08X Requested by %s", atype.title, base, last, owner
        )
        with self._lock:
            for item in self._alloc[atype]:
                if item.begin <= last and item.end >= base:
                    log.error(
                        "%10s 0X%08X - 0X%08X Owned by %s",
                        atype.title,
                        item.begin,
                        item.end,
                        item.owner,
                    )

    def unregister(self, addr_type, base: int, owner: str) -> None:
        """Release the range starting at ``base`` owned by ``owner``."""
        self._ensure_init()
        atype = _verify(addr_type, base, 1)

        with self._lock:
            alloc = self._alloc[atype]
            entry = None
            for item in alloc:
                if item.begin == base:
                    entry = item
                    break
                if item.begin > base:
                    break

            if entry is None:
                raise DevLibError(Status.ADDRESS_NOT_FOUND, f"{atype.title} {base:#x}")

            if entry.owner != owner:
                log.error(
                    "unregister address for %s at 0X%X failed because %s owns it",
                    owner,
                    base,
                    entry.owner,
                )
                raise DevLibError(
                    Status.ADDRESS_OVERLAP, f"{base:#x} is owned by {entry.owner}"
                )

            alloc.remove(entry)
            entry.owner = RELEASED
            entry.physical = None
            free = self._free[atype]
            self._insert(free, entry)
            self._combine(free, entry)

    @staticmethod
    def _combine(ranges: list[AddressRange], entry: AddressRange) -> None:
        index = ranges.index(entry)
        before = ranges[index - 1] if index > 0 else None
        after = ranges[index + 1] if index + 1 < len(ranges) else None
        if before is not None and before.end == entry.begin - 1:
            entry.begin = before.begin
            ranges.remove(before)
        if after is not None and after.begin == entry.end + 1:
            entry.end = after.end
            ranges.remove(after)

    def allocate(
        self, owner: str, addr_type, size: int, alignment: int
    ) -> AddressRange:
        """Find an unoccupied block of ``size`` bytes and register it for ``owner``.

        ``alignment`` is the number of low address bits the block size is
        rounded up to.
        """
        self._ensure_init()
        atype = _verify(addr_type, 0, size)
        if size == 0:
            raise DevLibError(Status.LOW_VALUE, "size 0")

        found = None
        base = 0
        with self._lock:
            for block in self._free[atype]:
                if block.size < size:
                    continue
                try:
                    base = self._block_find(atype, block, size, alignment)
                except DevLibError:
                    continue
                found = block
                break

        if found is None:
            log.error("%s: device does not fit", atype.title)
            raise DevLibError(Status.DEVICE_DOES_NOT_FIT, atype.title)
        return self._install(found, owner, atype, base, size)

    def _block_find(
        self, atype: AddressType, block: AddressRange, size: int, alignment: int
    ) -> int:
        if size == 0:
            raise DevLibError(Status.BAD_REQUEST, "size 0")
        mask = create_mask(alignment)
        step = size
        if mask & step:
            step = (step | mask) + 1
        if block.size < step:
            raise DevLibError(Status.BAD_REQUEST, "block too small")

        error: DevLibError | None = None
        candidate = block.begin
        while candidate <= block.end + 1 - step:
            try:
                self._vos.no_response_probe(atype, candidate, step)
            except DevLibError as exc:
                error = exc
                candidate += step
                continue
            return candidate
        raise error if error is not None else DevLibError(Status.BAD_REQUEST)

    def allocated(self, addr_type) -> list[AddressRange]:
        """Registered ranges of an address space, in address order."""
        self._ensure_init()
        atype = _addr_type(addr_type)
        with self._lock:
            return [replace(item) for item in self._alloc[atype]]

    def free_blocks(self, addr_type) -> list[AddressRange]:
        """Unregistered ranges of an address space, in address order."""
        self._ensure_init()
        atype = _addr_type(addr_type)
        with self._lock:
            return [replace(item) for item in self._free[atype]]

    def report(self) -> str:
        """Text listing of every registered range, grouped by address space."""
        self._ensure_init()
        lines: list[str] = []
        with self._lock:
            for atype in AddressType:
                ranges = self._alloc[atype]
                if ranges:
                    lines.append(f"{atype.title} Address Map")
                digits = atype.hex_digits
                for item in ranges:
                    physical = "(nil)" if item.physical is None else f"{item.physical:#x}"
                    lines.append(
                        f"\t0X{item.begin:0{digits}X} - 0X{item.end:0{digits}X}"
                        f" physical base {physical} {item.owner}"
                    )
        return "".join(line + "\n" for line in lines)