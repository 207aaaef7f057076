"""Population counts on fixed-width unsigned integers."""


def count_bits8(bits: int) -> int:
    """Number of set bits in the low 8 bits of ``bits``."""
    return (bits & 0xFF).bit_count()


def count_bits32(bits: int) -> int:
    """Number of set bits in the low 32 bits of ``bits``."""
    return (bits & 0xFFFFFFFF).bit_count()


def count_bits64(bits: int) -> int:
    """Number of set bits in the low 64 bits of ``bits``."""
    return (bits & 0xFFFFFFFFFFFFFFFF).bit_count()