"""The 256-entry Interrupt Descriptor Table."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from x86desc.gdt import SegmentSelector
from x86desc.idt_entry import ENTRY_SIZE, IdtEntry
from x86desc.structures import DescriptorTablePointer

VECTOR_COUNT = 256
FIRST_INTERRUPT = 32

RESERVED_VECTORS = frozenset({15, 31, *range(22, 28)})
ERROR_CODE_VECTORS = frozenset({8, 10, 11, 12, 13, 14, 17, 21, 29, 30})


def _check_vector(vector: int) -> int:
    if not 0 <= vector < VECTOR_COUNT:
        raise IndexError(f"vector {vector} is outside the IDT (0-255)")
    return vector


def _slot(vector: int, doc: str) -> property:
    def get(self: InterruptDescriptorTable) -> IdtEntry:
        return self._vectors[vector]

    def set_(self: InterruptDescriptorTable, entry: IdtEntry) -> None:
        self._vectors[vector] = entry

    return property(get, set_, doc=doc)


class InterruptDescriptorTable:
    """An IDT with 256 entries.

    The first 32 vectors are CPU exceptions, reachable through named
    attributes; vectors 32-255 are user-defined interrupts.
    """

    divide_error = _slot(0, "#DE, vector 0.")
    debug = _slot(1, "#DB, vector 1.")
    non_maskable_interrupt = _slot(2, "NMI, vector 2.")
    breakpoint = _slot(3, "#BP, vector 3.")
    overflow = _slot(4, "#OF, vector 4.")
    bound_range_exceeded = _slot(5, "#BR, vector 5.")
    invalid_opcode = _slot(6, "#UD, vector 6.")
    device_not_available = _slot(7, "#NM, vector 7.")
    double_fault = _slot(8, "#DF, vector 8; pushes an error code.")
    invalid_tss = _slot(10, "#TS, vector 10; pushes an error code.")
    segment_not_present = _slot(11, "#NP, vector 11; pushes an error code.")
    stack_segment_fault = _slot(12, "#SS, vector 12; pushes an error code.")
    general_protection_fault = _slot(13, "#GP, vector 13; pushes an error code.")
    page_fault = _slot(14, "#PF, vector 14; pushes a page fault error code.")
    x87_floating_point = _slot(16, "#MF, vector 16.")
    alignment_check = _slot(17, "#AC, vector 17; pushes an error code.")
    machine_check = _slot(18, "#MC, vector 18.")
    simd_floating_point = _slot(19, "#XF, vector 19.")
    virtualization = _slot(20, "#VE, vector 20.")
    cp_protection_exception = _slot(21, "#CP, vector 21; pushes an error code.")
    hv_injection_exception = _slot(28, "#HV, vector 28.")
    vmm_communication_exception = _slot(29, "#VC, vector 29; pushes an error code.")
    security_exception = _slot(30, "#SX, vector 30; pushes an error code.")

    def __init__(self) -> None:
        self._vectors = [IdtEntry.missing() for _ in range(VECTOR_COUNT)]

    def reset(self) -> None:
        """Replace every entry with a non-present one."""
        self._vectors = [IdtEntry.missing() for _ in range(VECTOR_COUNT)]

    def entry(self, vector: int) -> IdtEntry:
        """The entry for ``vector``.

        Reserved vectors and exceptions that push an error code cannot be
        reached this way; use the named attributes for the latter.
        """
        _check_vector(vector)
        if vector in RESERVED_VECTORS:
            raise ValueError(f"entry {vector} is reserved")
        if vector in ERROR_CODE_VECTORS:
            raise ValueError(f"entry {vector} is an exception with error code")
        return self._vectors[vector]

    def slice(self, start: int | None = None, stop: int | None = None) -> list[IdtEntry]:
        """Interrupt entries from ``start`` (inclusive) to ``stop`` (exclusive).

        The range must not include any exception vector (below 32).
        """
        lower = 0 if start is None else start
        upper = VECTOR_COUNT if stop is None else stop
        if lower < FIRST_INTERRUPT:
            raise ValueError("Cannot return slice from traps, faults, and exception handlers")
        if upper > VECTOR_COUNT:
            raise IndexError(f"range end {upper} is outside the IDT (0-256)")
        if upper < lower:
            raise ValueError(f"range start {lower} is after range end {upper}")
        return self._vectors[lower:upper]

    def set_general_handler(
        self,
        addr_for: Callable[[int], int],
        code_selector: SegmentSelector,
        vectors: int | Iterable[int] | None = None,
    ) -> None:
        """Install handlers on ``vectors`` (default: all), skipping reserved ones.

        ``addr_for`` maps each vector number to the address of its handler.
        """
        if vectors is None:
            vectors = range(VECTOR_COUNT)
        elif isinstance(vectors, int):
            vectors = (vectors,)
        for vector in vectors:
            _check_vector(vector)
            if vector in RESERVED_VECTORS:
                continue
            self._vectors[vector].set_handler_addr(addr_for(vector), code_selector)

    def to_bytes(self) -> bytes:
        """The 4096-byte in-memory representation, in vector order."""
        return b"".join(entry.to_bytes() for entry in self._vectors)

    def pointer(self, base: int) -> DescriptorTablePointer:
        """The ``lidt`` operand for this table placed at address ``base``."""
        return DescriptorTablePointer(limit=VECTOR_COUNT * ENTRY_SIZE - 1, base=base)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InterruptDescriptorTable):
            return NotImplemented
        return self._vectors == other._vectors

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        present = [v for v, entry in enumerate(self._vectors) if entry.options.present]
        return f"InterruptDescriptorTable(present_vectors={present!r})"