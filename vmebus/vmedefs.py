"""VME address modifier codes and transfer mode flags."""

VME_AM_STD_SUP_BLT = 0x3F
VME_AM_STD_SUP_ASCENDING = 0x3F
VME_AM_STD_SUP_PGM = 0x3E
VME_AM_STD_SUP_MBLT = 0x3C
VME_AM_STD_USR_BLT = 0x3B
VME_AM_STD_USR_ASCENDING = 0x3B
VME_AM_STD_USR_PGM = 0x3A
VME_AM_STD_SUP_DATA = 0x3D
VME_AM_STD_USR_DATA = 0x39
VME_AM_STD_USR_MBLT = 0x38
VME_AM_EXT_SUP_BLT = 0x0F
VME_AM_EXT_SUP_ASCENDING = 0x0F
VME_AM_EXT_SUP_PGM = 0x0E
VME_AM_EXT_SUP_DATA = 0x0D
VME_AM_EXT_SUP_MBLT = 0x0C
VME_AM_EXT_USR_BLT = 0x0B
VME_AM_EXT_USR_ASCENDING = 0x0B
VME_AM_EXT_USR_PGM = 0x0A
VME_AM_EXT_USR_DATA = 0x09
VME_AM_EXT_USR_MBLT = 0x08
VME_AM_2eVME_6U = 0x20
VME_AM_2eVME_3U = 0x21
VME_AM_CSR = 0x2F
VME_AM_SUP_SHORT_IO = 0x2D
VME_AM_USR_SHORT_IO = 0x29

VME_AM_MASK = 0x3F

# Hint that a window maps memory (caching, decoupled cycles allowed).
VME_AM_IS_MEMORY = 1 << 8

# 2eSST qualifiers; only meaningful together with a 2eVME mode.
VME_AM_2eSST_BCST = 1 << 9
VME_AM_2eSST_LO = 1 << 10
VME_AM_2eSST_MID = 2 << 10
VME_AM_2eSST_HI = 3 << 10

VME_MODE_DBW_MSK = 3 << 12
VME_MODE_DBW8 = 1 << 12
VME_MODE_DBW16 = 2 << 12
VME_MODE_DBW32 = 3 << 12


def am_is_short(am: int) -> bool:
    """True for an A16 (short I/O) address modifier."""
    return (am & 0x30) == 0x20


def am_is_std(am: int) -> bool:
    """True for an A24 (standard) address modifier."""
    return (am & 0x30) == 0x30


def am_is_ext(am: int) -> bool:
    """True for an A32 (extended) address modifier."""
    return (am & 0x30) == 0x00


def am_is_sup(am: int) -> bool:
    """True for a supervisory address modifier."""
    return bool(am & 4)


def am_is_2esst(am: int) -> bool:
    """True when any 2eSST speed bit is set."""
    return bool(am & (3 << 10))