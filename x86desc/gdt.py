"""Global Descriptor Table, segment descriptors and segment selectors."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from x86desc.structures import U64_MAX, DescriptorTablePointer

ENTRY_SIZE = 8
MAX_GDT_ENTRIES = 1 << 13
TSS_SIZE = 104
_AVAILABLE_TSS_TYPE = 0b1001


def _check_u64(value: int, what: str = "value") -> int:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{what} {value:#x} does not fit in 64 bits")
    return value


class PrivilegeLevel(enum.IntEnum):
    """CPU protection ring."""

    Ring0 = 0
    Ring1 = 1
    Ring2 = 2
    Ring3 = 3

    @classmethod
    def from_u16(cls, value: int) -> PrivilegeLevel:
        """Convert a numeric level (0-3) into a privilege level."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"{value} is not a valid privilege level") from None


@dataclass(frozen=True)
class SegmentSelector:
    """A 16-bit selector indexing into a descriptor table."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 0xFFFF:
            raise ValueError(f"segment selector {self.value:#x} does not fit in 16 bits")

    @classmethod
    def from_index(cls, index: int, rpl: PrivilegeLevel) -> SegmentSelector:
        """Build a selector from a table index and a requested privilege level."""
        if not 0 <= index < MAX_GDT_ENTRIES:
            raise ValueError(f"selector index {index} out of range")
        return cls((index << 3) | int(rpl))

    @property
    def index(self) -> int:
        return self.value >> 3

    @property
    def rpl(self) -> PrivilegeLevel:
        return PrivilegeLevel(self.value & 0b11)


@dataclass
class Entry:
    """One raw 8-byte slot of a descriptor table."""

    raw: int

    def __post_init__(self) -> None:
        _check_u64(self.raw, "entry")

    def __repr__(self) -> str:
        return f"Entry({self.raw:#018x})"


_COMMON_BITS = (
    (1 << 44)  # USER_SEGMENT
    | (1 << 47)  # PRESENT
    | (1 << 41)  # WRITABLE
    | (1 << 40)  # ACCESSED
    | 0xFFFF  # LIMIT_0_15
    | (0xF << 48)  # LIMIT_16_19
    | (1 << 55)  # GRANULARITY
)


class DescriptorFlags(enum.IntFlag):
    """Bits of a segment descriptor; not every flag applies to every type."""

    ACCESSED = 1 << 40
    WRITABLE = 1 << 41
    CONFORMING = 1 << 42
    EXECUTABLE = 1 << 43
    USER_SEGMENT = 1 << 44
    DPL_RING_3 = 3 << 45
    PRESENT = 1 << 47
    AVAILABLE = 1 << 52
    LONG_MODE = 1 << 53
    DEFAULT_SIZE = 1 << 54
    GRANULARITY = 1 << 55

    LIMIT_0_15 = 0xFFFF
    LIMIT_16_19 = 0xF << 48
    BASE_0_23 = 0xFF_FFFF << 16
    BASE_24_31 = 0xFF << 56

    KERNEL_DATA = _COMMON_BITS | (1 << 54)
    KERNEL_CODE32 = _COMMON_BITS | (1 << 43) | (1 << 54)
    KERNEL_CODE64 = _COMMON_BITS | (1 << 43) | (1 << 53)
    USER_DATA = _COMMON_BITS | (1 << 54) | (3 << 45)
    USER_CODE32 = _COMMON_BITS | (1 << 43) | (1 << 54) | (3 << 45)
    USER_CODE64 = _COMMON_BITS | (1 << 43) | (1 << 53) | (3 << 45)


class Descriptor:
    """A 64-bit mode segment descriptor: a user or a system segment."""

    def raw_entries(self) -> tuple[int, ...]:
        """The raw table slots this descriptor occupies."""
        raise NotImplementedError

    def dpl(self) -> PrivilegeLevel:
        """The descriptor privilege level encoded in the low word."""
        low = self.raw_entries()[0]
        return PrivilegeLevel.from_u16((low & DescriptorFlags.DPL_RING_3) >> 45)

    @classmethod
    def kernel_code_segment(cls) -> UserSegment:
        """A 64-bit ring 0 code segment."""
        return UserSegment(int(DescriptorFlags.KERNEL_CODE64))

    @classmethod
    def kernel_data_segment(cls) -> UserSegment:
        """A ring 0 data segment."""
        return UserSegment(int(DescriptorFlags.KERNEL_DATA))

    @classmethod
    def user_data_segment(cls) -> UserSegment:
        """A ring 3 data segment."""
        return UserSegment(int(DescriptorFlags.USER_DATA))

    @classmethod
    def user_code_segment(cls) -> UserSegment:
        """A 64-bit ring 3 code segment."""
        return UserSegment(int(DescriptorFlags.USER_CODE64))

    @classmethod
    def tss_segment(cls, base: int) -> SystemSegment:
        """An available 64-bit TSS descriptor for a TSS at address ``base``."""
        _check_u64(base, "TSS base")
        low = int(DescriptorFlags.PRESENT)
        low |= (base & 0xFF_FFFF) << 16
        low |= ((base >> 24) & 0xFF) << 56
        low |= (TSS_SIZE - 1) & 0xFFFF
        low |= _AVAILABLE_TSS_TYPE << 40
        high = (base >> 32) & 0xFFFF_FFFF
        return SystemSegment(low, high)


@dataclass(frozen=True)
class UserSegment(Descriptor):
    """A code or data segment descriptor occupying one slot."""

    value: int

    def __post_init__(self) -> None:
        _check_u64(self.value, "descriptor")

    def raw_entries(self) -> tuple[int, ...]:
        return (self.value,)


@dataclass(frozen=True)
class SystemSegment(Descriptor):
    """A system descriptor (TSS, LDT) occupying two slots."""

    low: int
    high: int

    def __post_init__(self) -> None:
        _check_u64(self.low, "descriptor low word")
        _check_u64(self.high, "descriptor high word")

    def raw_entries(self) -> tuple[int, ...]:
        return (self.low, self.high)


class GdtFullError(Exception):
    """Raised when a descriptor does not fit into the remaining GDT slots."""


class GlobalDescriptorTable:
    """A GDT with a fixed capacity; slot 0 is always the null descriptor."""

    def __init__(self, max_entries: int = 8) -> None:
        if max_entries <= 0:
            raise ValueError("a GDT cannot have 0 entries")
        if max_entries > MAX_GDT_ENTRIES:
            raise ValueError("a GDT can only have at most 2^13 entries")
        self._max = max_entries
        self._table = [Entry(0) for _ in range(max_entries)]
        self._len = 1

    @classmethod
    def from_raw_entries(cls, entries, max_entries: int = 8) -> GlobalDescriptorTable:
        """Build a GDT from raw 64-bit values; the first must be zero."""
        values = [_check_u64(v, "entry") for v in entries]
        gdt = cls(max_entries)
        if not values:
            raise ValueError("cannot initialize GDT with empty slice")
        if values[0] != 0:
            raise ValueError("first GDT entry must be zero")
        if len(values) > max_entries:
            raise ValueError("cannot initialize GDT with slice exceeding the maximum length")
        for slot, value in zip(gdt._table, values):
            slot.raw = value
        gdt._len = len(values)
        return gdt

    @property
    def max_entries(self) -> int:
        return self._max

    def __len__(self) -> int:
        return self._len

    def entries(self) -> list[Entry]:
        """The used slots, including the null descriptor."""
        return self._table[: self._len]

    def append(self, descriptor: Descriptor) -> SegmentSelector:
        """Add a descriptor and return the selector that refers to it."""
        raw = descriptor.raw_entries()
        if self._len > max(self._max - len(raw), 0):
            if len(raw) == 1:
                raise GdtFullError("GDT full")
            raise GdtFullError("GDT requires two free spaces to hold a SystemSegment")
        index = self._len
        for value in raw:
            self._table[self._len] = Entry(value)
            self._len += 1
        return SegmentSelector.from_index(index, descriptor.dpl())

    def limit(self) -> int:
        """Size of the used part of the table in bytes, minus one."""
        return self._len * ENTRY_SIZE - 1

    def pointer(self, base: int) -> DescriptorTablePointer:
        """The ``lgdt`` operand for this table placed at address ``base``."""
        return DescriptorTablePointer(limit=self.limit(), base=base)

    def __repr__(self) -> str:
        return f"GlobalDescriptorTable(max_entries={self._max}, entries={self.entries()!r})"