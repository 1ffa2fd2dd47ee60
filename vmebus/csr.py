"""VME64/VME64x CR/CSR address space: register layout, probing and decoding.

Every slot owns a 512 KiB window of the CR/CSR address space.  Values in
the Configuration ROM are single bytes spaced four bytes apart, so a
multi-byte register is spread over consecutive byte lanes with a stride
of four.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TextIO

from .addressmap import AddressMap
from .virtualos import AddressType, DevLibError, Status, VirtualOS

DEVLIBVME_MAJOR = 1
DEVLIBVME_MINOR = 0

VMECSRANY = 0xFFFFFFFF
VMECSRSLOTMAX = (1 << 5) - 1

# Configuration ROM (CR), VME64 required
CR_ROM_CHECKSUM = 0x0003
CR_ROM_LENGTH = 0x0007
CR_DATA_ACCESS_WIDTH = 0x0013
CSR_DATA_ACCESS_WIDTH = 0x0017
CR_SPACE_ID = 0x001B
CR_ASCII_C = 0x001F
CR_ASCII_R = 0x0023
CR_IEEE_OUI = 0x0027
CR_IEEE_OUI_BYTES = 3
CR_BOARD_ID = 0x0033
CR_BOARD_ID_BYTES = 4
CR_REVISION_ID = 0x0043
CR_REVISION_ID_BYTES = 4
CR_ASCII_STRING = 0x0053
CR_PROGRAM_ID = 0x007F

# Configuration ROM (CR), VME64x required
CR_BEG_UCR = 0x0083
CR_END_UCR = 0x008F
CR_BEG_UCSR_BYTES = 3
CR_BEG_CRAM = 0x009B
CR_END_CRAM = 0x00A7
CR_BEG_UCSR = 0x00B3
CR_END_UCSR = 0x00BF
CR_BEG_SN = 0x00CB
CR_END_SN = 0x00DF
CR_SLAVE_CHAR = 0x00E3
CR_UD_SLAVE_CHAR = 0x00E7
CR_MASTER_CHAR = 0x00EB
CR_UD_MASTER_CHAR = 0x00EF
CR_IRQ_HANDLER_CAP = 0x00F3
CR_IRQ_CAP = 0x00F7
CR_CRAM_WIDTH = 0x00FF
CR_DAWPR_BYTES = 1
CR_AMCAP_BYTES = 8
CR_XAMCAP_BYTES = 32
CR_ADEM_BYTES = 4
CR_MASTER_DAWPR = 0x06AF
CR_MASTER_AMCAP = 0x06B3
CR_MASTER_XAMCAP = 0x06D3
CR_SIZE = 0x0750
CR_BYTES = CR_SIZE >> 2

# Control and Status Registers (CSR)
CSR_BAR = 0x7FFFF
CSR_BIT_SET = 0x7FFFB
CSR_BIT_CLEAR = 0x7FFF7
CSR_CRAM_OWNER = 0x7FFF3
CSR_UD_BIT_SET = 0x7FFEF
CSR_UD_BIT_CLEAR = 0x7FFEB
CSR_ADER_BYTES = 4

CSR_BITSET_RESET_MODE = 0x80
CSR_BITSET_SYSFAIL_ENA = 0x40
CSR_BITSET_MODULE_FAIL = 0x20
CSR_BITSET_MODULE_ENA = 0x10
CSR_BITSET_BERR = 0x08
CSR_BITSET_CRAM_OWNED = 0x04


@dataclass(frozen=True)
class VMECSRID:
    """Identification of a VME64 card; any field may be :data:`VMECSRANY`."""

    vendor: int
    board: int
    revision: int


VMECSR_END = VMECSRID(0, 0, 0)


def csr_slot_base(slot: int) -> int:
    """CR/CSR bus base address of a slot."""
    return slot << 19


def csr_ader(addr: int, mod: int) -> int:
    """Value of an address decoder compare register for a base and modifier."""
    return (addr & 0xFFFFFF00) | ((mod & 0x3F) << 2)


def cr_fn_dawpr(n: int) -> int:
    """Offset of the data access width register of function ``n``."""
    return 0x0103 + n * 0x04


def cr_fn_amcap(n: int) -> int:
    """Offset of the address mode capability registers of function ``n``."""
    return 0x0123 + n * 0x20


def cr_fn_xamcap(n: int) -> int:
    """Offset of the extended address mode capability registers of function ``n``."""
    return 0x0223 + n * 0x80


def cr_fn_adem(n: int) -> int:
    """Offset of the address decoder mask registers of function ``n``."""
    return 0x0623 + n * 0x10


def csr_fn_ader(n: int) -> int:
    """Offset of the address decoder compare register of function ``n``."""
    return 0x7FF63 + n * 0x10


def csr_read8(bus: VirtualOS, addr: int) -> int:
    """Read one CR/CSR byte."""
    return bus.read_probe(1, addr)


def csr_read16(bus: VirtualOS, addr: int) -> int:
    """Read a two byte CR/CSR register."""
    return csr_read8(bus, addr) << 8 | csr_read8(bus, addr + 4)


def csr_read24(bus: VirtualOS, addr: int) -> int:
    """Read a three byte CR/CSR register."""
    return csr_read16(bus, addr) << 8 | csr_read8(bus, addr + 8)


def csr_read32(bus: VirtualOS, addr: int) -> int:
    """Read a four byte CR/CSR register."""
    return csr_read24(bus, addr) << 8 | csr_read8(bus, addr + 12)


def csr_write8(bus: VirtualOS, addr: int, value: int) -> None:
    """Write one CR/CSR byte."""
    bus.write_probe(1, addr, value & 0xFF)


def csr_write16(bus: VirtualOS, addr: int, value: int) -> None:
    """Write a two byte CR/CSR register."""
    csr_write8(bus, addr, (value & 0xFF00) >> 8)
    csr_write8(bus, addr + 4, value & 0xFF)


def csr_write24(bus: VirtualOS, addr: int, value: int) -> None:
    """Write a three byte CR/CSR register."""
    csr_write16(bus, addr, (value & 0xFFFF00) >> 8)
    csr_write8(bus, addr + 8, value & 0xFF)


def csr_write32(bus: VirtualOS, addr: int, value: int) -> None:
    """Write a four byte CR/CSR register."""
    csr_write24(bus, addr, (value & 0xFFFFFF00) >> 8)
    csr_write8(bus, addr + 12, value & 0xFF)


def csr_set_base(bus: VirtualOS, base: int, n: int, addr: int, amod: int) -> None:
    """Program base address and modifier of VME64x function ``n`` (0-7).

    Function numbers above 7 are ignored.
    """
    if n > 7:
        return
    csr_write32(bus, base + csr_fn_ader(n), csr_ader(addr, amod))


def csr_match(a: VMECSRID, b: VMECSRID) -> bool:
    """True if two identifiers agree in every field not holding a wildcard."""
    for x, y in (
        (a.vendor, b.vendor),
        (a.board, b.board),
        (a.revision, b.revision),
    ):
        if x != y and x != VMECSRANY and y != VMECSRANY:
            return False
    return True


def probe_slot(amap: AddressMap, slot: int) -> int:
    """Return the local CR/CSR base address of a card providing standard CR.

    Raises :class:`DevLibError` if the slot is out of range, cannot be
    mapped, is empty, or holds a card without the "CR" signature.
    """
    if slot < 0 or slot > VMECSRSLOTMAX:
        raise DevLibError(Status.BAD_CARD, "VME slot number out of range")

    bus = amap.vos
    base = csr_slot_base(slot)
    try:
        addr = amap.bus_to_local(AddressType.CSR, base)
    except DevLibError as exc:
        raise DevLibError(
            exc.status,
            f"Failed to map slot {slot} to CR/CSR address 0x{base:08x}",
        ) from exc

    try:
        first = bus.read_probe(1, addr + CR_ASCII_C)
    except DevLibError as exc:
        raise DevLibError(Status.NO_DEVICE, f"No card in  slot {slot}") from exc

    second = csr_read8(bus, addr + CR_ASCII_R)
    if first != ord("C") or second != ord("R"):
        raise DevLibError(
            Status.NO_DEVICE,
            f"Card in slot {slot} has non-standard CR layout.  Ignoring...",
        )
    return addr


def match_slot(
    amap: AddressMap, ids: Iterable[VMECSRID], slot: int
) -> tuple[int, VMECSRID] | None:
    """Probe a slot and compare the card's identity with ``ids``.

    ``ids`` is read up to the first entry whose vendor is zero
    (:data:`VMECSR_END`).  Returns the CSR base address and the card's
    exact identity, or ``None`` if the card matches no entry.  Probe
    failures raise as in :func:`probe_slot`.
    """
    addr = probe_slot(amap, slot)
    bus = amap.vos
    found = VMECSRID(
        vendor=csr_read24(bus, addr + CR_IEEE_OUI),
        board=csr_read32(bus, addr + CR_BOARD_ID),
        revision=csr_read32(bus, addr + CR_REVISION_ID),
    )
    for candidate in ids:
        if not candidate.vendor:
            break
        if csr_match(candidate, found):
            return addr, found
    return None


def _yes(flag: int) -> str:
    return "Yes" if flag else "No"


def vmecsr_print(
    amap: AddressMap, slot: int, verbosity: int = 0, file: TextIO | None = None
) -> None:
    """Decode the CR/CSR contents of one slot and write them as text.

    Verbosity 0 shows identification, 1 adds configuration and
    capabilities, 2 adds a hex dump of the start of the CR.
    """
    if slot < 0 or slot >= 32:
        raise ValueError(f"Slot number {slot} out of range (0-31)")
    out = sys.stdout if file is None else file
    write = out.write

    write(f"====== Slot {slot}\n")
    try:
        addr = probe_slot(amap, slot)
    except DevLibError as exc:
        write(f"{exc.detail or exc}\n")
        return

    bus = amap.vos

    def r8(offset: int) -> int:
        return csr_read8(bus, addr + offset)

    if verbosity >= 2:
        for i in range(512):
            if i % 16 == 0:
                write(f"{i:04x}: ")
            write(f"{r8(i):02x}")
            if i % 16 == 15:
                write("\n")
            elif i % 4 == 3:
                write(" ")

    if verbosity >= 1:
        write(f"ROM Checksum : 0x{r8(CR_ROM_CHECKSUM):02x}\n")
        write(f"ROM Length   : 0x{csr_read24(bus, addr + CR_ROM_LENGTH):06x}\n")
        write(f"CR data width: 0x{r8(CR_DATA_ACCESS_WIDTH):02x}\n")
        write(f"CSR data width:0x{r8(CSR_DATA_ACCESS_WIDTH):02x}\n")

    space = r8(CR_SPACE_ID)
    write("CR space id:   ")
    if space == 1:
        write("VME64\n")
    elif space == 2:
        write("VME64x\n")
    else:
        write(f"Unknown (0x{space:02x})\n")

    ctrlsts = 0
    if space >= 1:
        write(f"Vendor ID    : 0x{csr_read24(bus, addr + CR_IEEE_OUI):06x}\n")
        write(f"Board ID     : 0x{csr_read32(bus, addr + CR_BOARD_ID):08x}\n")
        write(f"Revision ID  : 0x{csr_read32(bus, addr + CR_REVISION_ID):08x}\n")
        write(f"Program ID   : 0x{r8(CR_PROGRAM_ID):02x}\n")
        write(f"CSR Bar      : 0x{r8(CSR_BAR):02x}\n")
        ctrlsts = r8(CSR_BIT_SET)
        write(f"CSR CS       : 0x{ctrlsts:02x}\n")
        write(f"CSR Reset    : {_yes(ctrlsts & CSR_BITSET_RESET_MODE)}\n")
        write(f"CSR Sysfail  : {_yes(ctrlsts & CSR_BITSET_SYSFAIL_ENA)}\n")
        write(f"CSR Fail     : {_yes(ctrlsts & CSR_BITSET_MODULE_FAIL)}\n")
        write(f"CSR Enabled  : {_yes(ctrlsts & CSR_BITSET_MODULE_ENA)}\n")
        write(f"CSR Bus Err  : {_yes(ctrlsts & CSR_BITSET_BERR)}\n")

    if space >= 2:
        write(
            f"User CR      : {csr_read24(bus, addr + CR_BEG_UCR):08x}"
            f" -> {csr_read24(bus, addr + CR_END_UCR):08x}\n"
        )
        write(
            f"User CSR     : {csr_read24(bus, addr + CR_BEG_UCSR):08x}"
            f" -> {csr_read24(bus, addr + CR_END_UCSR):08x}\n"
        )
        write(f"CSR Owned    : {_yes(ctrlsts & CSR_BITSET_CRAM_OWNED)}\n")
        write(f"Owner        : 0x{r8(CSR_CRAM_OWNER):02x}\n")
        write(f"User bits    : 0x{r8(CSR_UD_BIT_SET):02x}\n")
        serial = "".join(
            f"{r8(i):02x}" for i in range(CR_BEG_SN, CR_END_SN + 1, 4)
        )
        write(f"Serial Number: 0x{serial}\n")
        if verbosity >= 1:
            write(f"Master Cap.  : 0x{csr_read16(bus, addr + CR_MASTER_CHAR):02x}\n")
            write(f"Slave Cap.   : 0x{csr_read16(bus, addr + CR_SLAVE_CHAR):02x}\n")
            write(f"IRQ Sink Cap.: 0x{r8(CR_IRQ_HANDLER_CAP):02x}\n")
            write(f"IRQ Src Cap. : 0x{r8(CR_IRQ_CAP):02x}\n")
            write(f"CRAM data width:0x{r8(CR_CRAM_WIDTH):02x}\n")
            for fn in range(8):
                write(f"Function {fn}\n")
                write(f"  Data width: {r8(cr_fn_dawpr(fn)):02x}\n")
                am = "".join(
                    f"{r8(cr_fn_amcap(fn) + j):02x}" for j in range(0, 0x20, 4)
                )
                write(f"  Data AM   : {am}\n")
                xam = "".join(
                    f"{r8(cr_fn_xamcap(fn) + j):02x}" for j in range(0, 0x80, 4)
                )
                write(f"  Data XAM  : {xam}\n")
                adem = "".join(
                    f"{r8(cr_fn_adem(fn) + j):02x}" for j in range(0, 0x10, 4)
                )
                write(f"  Data ADEM : {adem}\n")
                ader = csr_read32(bus, addr + csr_fn_ader(fn))
                write(
                    f"  Data ADER : Base {ader & 0xFFFFFF00:08x}"
                    f" Mod {(ader & 0xFF) >> 2:02x}\n"
                )


def vmecsr_dump(
    amap: AddressMap, verbosity: int = 0, file: TextIO | None = None
) -> None:
    """Decode the CR/CSR contents of slots 0-21."""
    out = sys.stdout if file is None else file
    out.write(">>> CSR/CR Dump\n")
    for slot in range(22):
        vmecsr_print(amap, slot, verbosity, out)
    out.write(">>> CSR/CR Dump End\n")