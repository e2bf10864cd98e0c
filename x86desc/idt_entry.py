"""Interrupt descriptor table entries, their options and the interrupt stack frame."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from x86desc.gdt import PrivilegeLevel, SegmentSelector
from x86desc.structures import U64_MAX

ENTRY_SIZE = 16
MAX_STACK_INDEX = 6

_ENTRY_FORMAT = struct.Struct("<HHHHII")
_FRAME_FORMAT = struct.Struct("<QH6xQQH6x")

_MINIMAL_BITS = 0b1110_0000_0000  # 64-bit interrupt gate
_PRESENT_BIT = 1 << 15
_INTERRUPTS_ENABLED_BIT = 1 << 8
_DPL_SHIFT = 13
_DPL_MASK = 0b11 << _DPL_SHIFT
_IST_MASK = 0b111
_ADDR_48_MASK = (1 << 48) - 1


def _check_u64(value: int, what: str) -> int:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{what} {value:#x} does not fit in 64 bits")
    return value


def _truncate_addr(addr: int) -> int:
    """Sign-extend bit 47 into bits 48-63, giving a canonical address."""
    low = addr & _ADDR_48_MASK
    if low & (1 << 47):
        low |= 0xFFFF << 48
    return low


@dataclass
class EntryOptions:
    """The four non-offset bytes of an IDT entry: code selector and option bits."""

    cs: SegmentSelector = field(default_factory=lambda: SegmentSelector(0))
    bits: int = _MINIMAL_BITS

    @classmethod
    def minimal(cls) -> EntryOptions:
        """Options with only the must-be-one bits set: null CS, no IST, DPL 0."""
        return cls(SegmentSelector(0), _MINIMAL_BITS)

    def set_code_selector(self, cs: SegmentSelector) -> EntryOptions:
        """Use ``cs`` as the code segment for this handler."""
        self.cs = cs
        return self

    def set_present(self, present: bool) -> EntryOptions:
        """Set or clear the present bit."""
        if present:
            self.bits |= _PRESENT_BIT
        else:
            self.bits &= ~_PRESENT_BIT
        return self

    def disable_interrupts(self, disable: bool) -> EntryOptions:
        """Choose whether hardware interrupts are disabled when the handler runs."""
        if disable:
            self.bits &= ~_INTERRUPTS_ENABLED_BIT
        else:
            self.bits |= _INTERRUPTS_ENABLED_BIT
        return self

    def set_privilege_level(self, dpl: PrivilegeLevel) -> EntryOptions:
        """Set the privilege level required to invoke the handler."""
        level = PrivilegeLevel.from_u16(int(dpl))
        self.bits = (self.bits & ~_DPL_MASK) | (int(level) << _DPL_SHIFT)
        return self

    def set_stack_index(self, index: int) -> EntryOptions:
        """Switch to IST stack ``index`` (0-6) before invoking the handler."""
        if not 0 <= index <= MAX_STACK_INDEX:
            raise ValueError(f"IST index {index} is not in the range 0..7")
        # The hardware IST index starts at 1.
        self.bits = (self.bits & ~_IST_MASK) | (index + 1)
        return self

    @property
    def present(self) -> bool:
        return bool(self.bits & _PRESENT_BIT)

    @property
    def interrupts_disabled(self) -> bool:
        return not self.bits & _INTERRUPTS_ENABLED_BIT

    @property
    def privilege_level(self) -> PrivilegeLevel:
        return PrivilegeLevel.from_u16((self.bits & _DPL_MASK) >> _DPL_SHIFT)

    @property
    def stack_index(self) -> int | None:
        hw_index = self.bits & _IST_MASK
        return hw_index - 1 if hw_index else None

    @property
    def gate_type(self) -> int:
        return (self.bits >> 8) & 0xF

    def __repr__(self) -> str:
        return (
            f"EntryOptions(code_selector={self.cs!r}, "
            f"stack_index={self.stack_index!r}, "
            f"type={self.gate_type:#04b}, "
            f"privilege_level={self.privilege_level.name}, "
            f"present={self.present})"
        )


@dataclass
class IdtEntry:
    """A 16-byte interrupt descriptor table entry."""

    pointer_low: int = 0
    options: EntryOptions = field(default_factory=EntryOptions.minimal)
    pointer_middle: int = 0
    pointer_high: int = 0
    reserved: int = 0

    @classmethod
    def missing(cls) -> IdtEntry:
        """A non-present entry with only the must-be-one bits set."""
        return cls()

    def set_handler_addr(self, addr: int, code_selector: SegmentSelector) -> EntryOptions:
        """Point this entry at the handler at ``addr``.

        The options are reset to: code selector ``code_selector``, present,
        interrupts disabled, DPL 0 and no IST stack.  The options object is
        returned for further customisation.
        """
        _check_u64(addr, "handler address")
        if _truncate_addr(addr) != addr:
            raise ValueError(f"handler address {addr:#x} is not canonical")
        self.pointer_low = addr & 0xFFFF
        self.pointer_middle = (addr >> 16) & 0xFFFF
        self.pointer_high = (addr >> 32) & 0xFFFF_FFFF
        self.options = EntryOptions.minimal()
        self.options.set_code_selector(code_selector)
        self.options.set_present(True)
        return self.options

    def handler_addr(self) -> int:
        """The virtual address of this entry's handler."""
        addr = self.pointer_low | (self.pointer_middle << 16) | (self.pointer_high << 32)
        return _truncate_addr(addr)

    def to_bytes(self) -> bytes:
        """The 16-byte in-memory representation."""
        return _ENTRY_FORMAT.pack(
            self.pointer_low,
            self.options.cs.value,
            self.options.bits,
            self.pointer_middle,
            self.pointer_high,
            self.reserved,
        )

    def __repr__(self) -> str:
        return f"Entry(handler_addr={self.handler_addr():#x}, options={self.options!r})"


@dataclass(frozen=True)
class InterruptStackFrame:
    """The stack frame pushed by the CPU on interrupt or exception entry."""

    instruction_pointer: int
    code_segment: SegmentSelector
    cpu_flags: int
    stack_pointer: int
    stack_segment: SegmentSelector

    SIZE = _FRAME_FORMAT.size

    def __post_init__(self) -> None:
        _check_u64(self.instruction_pointer, "instruction pointer")
        _check_u64(self.cpu_flags, "cpu flags")
        _check_u64(self.stack_pointer, "stack pointer")

    def to_bytes(self) -> bytes:
        """The 40-byte in-memory representation; reserved bytes are zero."""
        return _FRAME_FORMAT.pack(
            self.instruction_pointer,
            self.code_segment.value,
            self.cpu_flags,
            self.stack_pointer,
            self.stack_segment.value,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> InterruptStackFrame:
        """Parse the 40-byte in-memory representation."""
        if len(data) != _FRAME_FORMAT.size:
            raise ValueError(
                f"interrupt stack frame needs {_FRAME_FORMAT.size} bytes, got {len(data)}"
            )
        ip, cs, flags, sp, ss = _FRAME_FORMAT.unpack(bytes(data))
        return cls(
            instruction_pointer=ip,
            code_segment=SegmentSelector(cs),
            cpu_flags=flags,
            stack_pointer=sp,
            stack_segment=SegmentSelector(ss),
        )

    def __repr__(self) -> str:
        return (
            f"InterruptStackFrame(instruction_pointer={self.instruction_pointer:#x}, "
            f"code_segment={self.code_segment!r}, cpu_flags={self.cpu_flags:#x}, "
            f"stack_pointer={self.stack_pointer:#x}, "
            f"stack_segment={self.stack_segment!r})"
        )