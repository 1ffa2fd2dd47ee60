"""Interactive VME debugging commands: register access, interrupts and CR/CSR."""

from __future__ import annotations

import shlex
import sys
from collections.abc import Callable
from typing import TextIO

from . import csr
from .addressmap import AddressMap
from .virtualos import AddressType, DevLibError

_ADDRESS_WIDTHS = {
    16: (AddressType.A16, 0xFFFF),
    24: (AddressType.A24, 0xFFFFFF),
    32: (AddressType.A32, 0xFFFFFFFF),
}
_DATA_WIDTHS = (8, 16, 32)
_HEX_DIGITS = {8: 2, 16: 4, 32: 8}


class _UsageError(Exception):
    """A command argument could not be parsed."""


def _parse_int(token: str) -> int:
    text = token.strip()
    sign = 1
    if text[:1] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    try:
        if text.lower().startswith("0x"):
            value = int(text[2:], 16)
        elif len(text) > 1 and text.startswith("0"):
            value = int(text[1:], 8)
        else:
            value = int(text, 10)
    except ValueError:
        raise _UsageError(f"Illegal integer '{token}'") from None
    return sign * value


class VMEShell:
    """Shell commands for poking at a VME bus through an :class:`AddressMap`."""

    def __init__(
        self,
        amap: AddressMap,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.amap = amap
        self.out = sys.stdout if out is None else out
        self.err = sys.stderr if err is None else err
        self._autodisable = [0] * 256
        self._commands: dict[str, tuple[Callable[..., None], tuple[str, ...]]] = {
            "vmeread": (self.vmeread, ("int", "int", "int", "int")),
            "vmewrite": (self.vmewrite, ("int", "int", "int", "int")),
            "vmeirqattach": (self.vmeirqattach, ("int", "int", "str")),
            "vmeirq": (self.vmeirq, ("int", "int")),
            "vmecsrprint": (self.vmecsrprint, ("int", "int")),
            "vmecsrdump": (self.vmecsrdump, ("int",)),
        }

    def _validate(self, addr: int, amod: int, dmod: int, count: int) -> int | None:
        """Check widths and range, then map ``addr``; None after reporting a failure."""
        if dmod not in _DATA_WIDTHS:
            self.err.write(f"Invalid data width {dmod}\n")
            return None
        if amod not in _ADDRESS_WIDTHS:
            self.err.write(f"Invalid address width {amod}\n")
            return None
        atype, limit = _ADDRESS_WIDTHS[amod]
        dbytes = dmod // 8
        if addr > limit or addr + count * dbytes >= limit:
            self.err.write("Address/count out of range\n")
            return None
        try:
            local = self.amap.bus_to_local(atype, addr)
        except DevLibError:
            self.err.write("Invalid register address\n")
            return None
        self.out.write(f"Mapped to {local:#x}\n")
        return local

    def vmeread(self, address: int, amod: int, dmod: int, count: int) -> None:
        """Read ``count`` consecutive values of ``dmod`` bits and print them."""
        addr = address & 0xFFFFFFFF
        count = max(count, 1)
        self.out.write(f"Reading from 0x{addr:08x} A{amod} D{dmod}\n")
        local = self._validate(addr, amod, dmod, count)
        if local is None:
            return

        dbytes = dmod // 8
        digits = _HEX_DIGITS[dmod]
        all_ones = (1 << dmod) - 1
        bus = self.amap.vos
        berr = False
        for offset in range(0, count * dbytes, dbytes):
            if offset % 16 == 0:
                self.out.write(f"\n0x{offset:08x} ")
            elif offset % 4 == 0:
                self.out.write(" ")
            try:
                value = bus.read_probe(dbytes, local + offset)
            except DevLibError:
                berr = True
                value = all_ones
            self.out.write(f"{value & all_ones:0{digits}x}")
        self.out.write("\n")
        if berr:
            self.err.write("*** Bus errors occurred ***\n")

    def vmewrite(self, address: int, amod: int, dmod: int, value: int) -> None:
        """Write one ``dmod`` bit value to a VME address."""
        addr = address & 0xFFFFFFFF
        value &= 0xFFFFFFFF
        self.out.write(
            f"Writing to 0x{addr:08x} A{amod} D{dmod} value 0x{value:08x}\n"
        )
        local = self._validate(addr, amod, dmod, 1)
        if local is None:
            return
        try:
            self.amap.vos.write_probe(dmod // 8, local, value & ((1 << dmod) - 1))
        except DevLibError:
            self.err.write("*** Bus Error detected ***\n")

    def _irq_handler(self, vector: int) -> None:
        self.out.write(f"VME IRQ on vector 0x{vector & 0xFF:02X}\n")
        level = self._autodisable[vector]
        if level:
            try:
                self.amap.vos.disable_interrupt_level(level)
            except DevLibError:
                self.out.write("oops, can't disable level\n")

    def vmeirqattach(self, level: int, vector: int, acktype: str | None) -> None:
        """Attach a handler that reports interrupts on ``vector``.

        With "rora" acknowledgement the level is disabled on every
        interrupt and must be re-enabled with :meth:`vmeirq`; with "roak"
        it stays enabled.
        """
        if acktype == "rora":
            autodisable = True
        elif acktype == "roak":
            autodisable = False
        else:
            self.err.write(
                f"Unknown IRQ ack method '{acktype}' (must be \"rora\" or \"roak\")\n"
            )
            return
        if level < 1 or level > 7:
            self.err.write(f"IRQ level {level} out of range (1-7)\n")
            return
        if vector < 0 or vector > 255:
            self.err.write(f"IRQ vector {vector} out of range (0-255)\n")
            return
        if self._autodisable[vector]:
            self.err.write("Vector already in use\n")
            return
        if autodisable:
            self._autodisable[vector] = level
        try:
            self.amap.vos.connect_interrupt(vector, self._irq_handler, vector)
        except DevLibError:
            self.err.write("Failed to install ISR\n")

    def vmeirq(self, level: int, act: int) -> None:
        """Enable (``act`` true) or disable an interrupt level."""
        if level < 1 or level > 7:
            self.err.write(f"IRQ level {level} out of range (1-7)\n")
            return
        bus = self.amap.vos
        if act:
            try:
                bus.enable_interrupt_level(level)
            except DevLibError:
                self.err.write("Failed to enable level\n")
        else:
            try:
                bus.disable_interrupt_level(level)
            except DevLibError:
                self.err.write("Failed to disable level\n")

    def vmecsrprint(self, slot: int, verbosity: int) -> None:
        """Decode the CR/CSR space of one slot."""
        try:
            csr.vmecsr_print(self.amap, slot, verbosity, self.out)
        except ValueError:
            self.err.write("Slot number of of range (1-31)\n")

    def vmecsrdump(self, verbosity: int) -> None:
        """Decode the CR/CSR space of every slot."""
        csr.vmecsr_dump(self.amap, verbosity, self.out)

    def run(self, line: str) -> bool:
        """Execute one command line such as ``vmeread(0x1000, 16, 16, 4)``.

        Arguments may be separated by spaces or commas.  Missing integer
        arguments are 0, missing strings are None.  Returns False if the
        command is unknown or an argument cannot be parsed.
        """
        lexer = shlex.shlex(line, posix=True)
        lexer.whitespace += ",()"
        lexer.whitespace_split = True
        lexer.commenters = "#"
        try:
            tokens = list(lexer)
        except ValueError as exc:
            self.err.write(f"{exc}\n")
            return False
        if not tokens:
            return True

        name, raw_args = tokens[0], tokens[1:]
        entry = self._commands.get(name)
        if entry is None:
            self.err.write(f"Command {name} not found.\n")
            return False
        func, kinds = entry
        args: list[object] = []
        try:
            for position, kind in enumerate(kinds):
                token = raw_args[position] if position < len(raw_args) else None
                if kind == "int":
                    args.append(0 if token is None else _parse_int(token))
                else:
                    args.append(token)
        except _UsageError as exc:
            self.err.write(f"{exc}\n")
            return False
        func(*args)
        return True