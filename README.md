# vmebus

Tools for working with a VME bus from Python, built around an in-memory
simulated bus so that drivers and diagnostics can be developed and
tested without hardware.

## Modules

- `vmebus.mmio` — register access on any writable buffer (`bytearray`,
  `memoryview`, `array`, `mmap`) at a byte offset: `ioread8`/`iowrite8`,
  and `nat_`, `be_` and `le_` variants of the 16- and 32-bit reads and
  writes, plus `bswap16` and `bswap32`. An access that falls outside the
  buffer raises `IndexError`. `BYTE_ORDER` tells the host byte order
  (`ENDIAN_LITTLE` or `ENDIAN_BIG`).
- `vmebus.vmedefs` — VME address-modifier and transfer-mode constants
  and the predicates `am_is_short`, `am_is_std`, `am_is_ext`,
  `am_is_sup` and `am_is_2esst`.
- `vmebus.virtualos` — the bus back end interface `VirtualOS`, the
  `AddressType` enumeration (`A16`, `A24`, `A32`, `ISA`, `CSR`), the
  `Status` codes and the `DevLibError` exception that carries one.
  The methods of `VirtualOS` itself all raise `DevLibError` with
  `Status.UNSUPPORTED`. `SimulatedVME` is a working bus: `add_device`
  places zero-filled memory in an address space, `read_probe` and
  `write_probe` access it in big endian order (raising
  `Status.NO_DEVICE` where nothing answers), and interrupts are
  connected with `connect_interrupt` and delivered with `trigger`.
- `vmebus.addressmap` — `AddressMap`, which keeps track of which owner
  holds which range of each address space: `register`, `unregister`,
  `allocate` (with alignment, probing the bus for free space) and
  `bus_to_local`, with `allocated`, `free_blocks` and `report` for
  inspection. Ranges are returned as `AddressRange` objects.
- `vmebus.csr` — VME64/VME64x configuration ROM and CSR access: the
  register offsets, `probe_slot`, `match_slot` against a list of
  `VMECSRID` entries, `csr_set_base`, the multi-byte
  `csr_read*`/`csr_write*` helpers, and the text decoders
  `vmecsr_print` and `vmecsr_dump`.
- `vmebus.vmesh` — `VMEShell`, with the diagnostic commands `vmeread`,
  `vmewrite`, `vmeirqattach`, `vmeirq`, `vmecsrprint` and `vmecsrdump`,
  and `run` to execute one command line such as
  `vmeread(0x1000, 16, 16, 4)` or `vmeread 0x1000 16 16 4`.

## Example

```python
import sys

from vmebus.addressmap import AddressMap
from vmebus.virtualos import AddressType, SimulatedVME
from vmebus.vmesh import VMEShell

bus = SimulatedVME()
memory = bus.add_device(AddressType.A24, 0x210000, 0x100)
memory[0:4] = b"\x12\x34\x56\x78"

amap = AddressMap(bus)
entry = amap.register("mydrv", AddressType.A24, 0x210000, 0x100)
print(amap.report())

shell = VMEShell(amap, sys.stdout, sys.stderr)
shell.run("vmeread 0x210000 24 32 4")
```

Errors from the address map and the bus are raised as `DevLibError`;
its `status` attribute holds the `Status` code.

## What it does not do

The package talks only to back ends written in Python. It has no back
end for a real VME bridge, so it does not reach hardware, and it
installs no command-line program: the shell commands are used through
`VMEShell` from Python code.

## Tests

```
pip install .[test]
pytest
```