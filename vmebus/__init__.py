"""Simulated VME bus access: MMIO helpers, address maps, CR/CSR probing and shell commands."""

__version__ = "2.12.0"

__all__ = ["mmio", "vmedefs", "virtualos", "addressmap", "csr", "vmesh"]