"""Error codes pushed by the CPU for page faults and selector-related exceptions."""

from __future__ import annotations

import enum
from dataclasses import dataclass

_U16_MAX = 0xFFFF


class PageFaultErrorCode(enum.IntFlag):
    """Bits of the error code pushed on a page fault (#PF)."""

    PROTECTION_VIOLATION = 1
    CAUSED_BY_WRITE = 1 << 1
    USER_MODE = 1 << 2
    MALFORMED_TABLE = 1 << 3
    INSTRUCTION_FETCH = 1 << 4
    PROTECTION_KEY = 1 << 5
    SHADOW_STACK = 1 << 6
    SGX = 1 << 15
    RMP = 1 << 31


class DescriptorTable(enum.Enum):
    """The descriptor table a selector error code refers to."""

    Gdt = "gdt"
    Idt = "idt"
    Ldt = "ldt"


_TABLE_BY_BITS = {
    0b00: DescriptorTable.Gdt,
    0b01: DescriptorTable.Idt,
    0b10: DescriptorTable.Ldt,
    0b11: DescriptorTable.Idt,
}


@dataclass(frozen=True)
class SelectorErrorCode:
    """An error code that references a segment selector.

    Only the low 16 bits are meaningful; constructing one with any of the
    reserved bits (16-63) set raises ``ValueError``.
    """

    flags: int

    def __post_init__(self) -> None:
        if not 0 <= self.flags <= _U16_MAX:
            raise ValueError(
                f"selector error code {self.flags:#x} has reserved bits set"
            )

    @classmethod
    def new_truncate(cls, value: int) -> SelectorErrorCode:
        """Build an error code, dropping any reserved bits (16-63)."""
        return cls(value & _U16_MAX)

    def external(self) -> bool:
        """Whether the exception occurred while delivering an external event."""
        return bool(self.flags & 1)

    def descriptor_table(self) -> DescriptorTable:
        """The descriptor table this error code refers to."""
        return _TABLE_BY_BITS[(self.flags >> 1) & 0b11]

    def index(self) -> int:
        """The index of the selector that caused the error."""
        return (self.flags >> 3) & 0x1FFF

    def is_null(self) -> bool:
        """Whether the exception pushed zero rather than a selector error code."""
        return self.flags == 0

    def __repr__(self) -> str:
        return (
            f"SelectorErrorCode(external={self.external()}, "
            f"descriptor_table={self.descriptor_table().name}, "
            f"index={self.index()})"
        )