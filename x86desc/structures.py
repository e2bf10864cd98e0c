"""Pointer structure handed to the ``lgdt`` and ``lidt`` instructions."""

from __future__ import annotations

import struct
from dataclasses import dataclass

_POINTER_FORMAT = struct.Struct("<HQ")

U16_MAX = 0xFFFF
U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


@dataclass(frozen=True)
class DescriptorTablePointer:
    """Limit and base address of a descriptor table (GDT or IDT).

    ``limit`` is the size of the table in bytes minus one; ``base`` is the
    virtual address of the table.  The packed in-memory form is 10 bytes.
    """

    limit: int
    base: int

    SIZE = _POINTER_FORMAT.size

    def __post_init__(self) -> None:
        if not 0 <= self.limit <= U16_MAX:
            raise ValueError(f"limit {self.limit:#x} does not fit in 16 bits")
        if not 0 <= self.base <= U64_MAX:
            raise ValueError(f"base {self.base:#x} does not fit in 64 bits")

    def to_bytes(self) -> bytes:
        """Return the packed little-endian 10-byte representation."""
        return _POINTER_FORMAT.pack(self.limit, self.base)

    @classmethod
    def from_bytes(cls, data: bytes) -> DescriptorTablePointer:
        """Parse the packed 10-byte representation."""
        if len(data) != _POINTER_FORMAT.size:
            raise ValueError(
                f"descriptor table pointer needs {_POINTER_FORMAT.size} bytes, "
                f"got {len(data)}"
            )
        limit, base = _POINTER_FORMAT.unpack(bytes(data))
        return cls(limit=limit, base=base)