# x86desc

x86desc models the data structures that x86-64 long mode uses for segmentation and
interrupt dispatch. You can build them, inspect them and turn them into their exact
in-memory bytes:

- `x86desc.gdt`: the Global Descriptor Table (`GlobalDescriptorTable`), segment
  descriptors (`Descriptor`, `UserSegment`, `SystemSegment`), `DescriptorFlags`,
  `SegmentSelector`, `PrivilegeLevel` and `GdtFullError`
- `x86desc.idt`: the 256-entry Interrupt Descriptor Table (`InterruptDescriptorTable`)
- `x86desc.idt_entry`: 16-byte gate entries (`IdtEntry`), their `EntryOptions`, and the
  40-byte `InterruptStackFrame`
- `x86desc.idt_codes`: exception error codes (`PageFaultErrorCode`, `SelectorErrorCode`,
  `DescriptorTable`)
- `x86desc.vectors`: CPU exception vector numbers (`ExceptionVector`,
  `InvalidExceptionVectorNumber`)
- `x86desc.structures`: the 10-byte `DescriptorTablePointer` taken by `lgdt` and `lidt`

## Installation

```
pip install x86desc
```

With the test dependencies:

```
pip install "x86desc[test]"
```

## Building a GDT

```python
from x86desc.gdt import Descriptor, DescriptorFlags, GlobalDescriptorTable, UserSegment

gdt = GlobalDescriptorTable()            # capacity 8 slots; slot 0 is the null descriptor
kernel_code = gdt.append(Descriptor.kernel_code_segment())
kernel_data = gdt.append(Descriptor.kernel_data_segment())
user_data = gdt.append(Descriptor.user_data_segment())
user_code = gdt.append(Descriptor.user_code_segment())
tss = gdt.append(Descriptor.tss_segment(0xFFFF_8000_0010_0000))

print(kernel_code.index, kernel_code.rpl)   # 1 and PrivilegeLevel.Ring0
print(user_code.rpl)                        # PrivilegeLevel.Ring3
print([hex(entry.raw) for entry in gdt.entries()])
print(len(gdt), gdt.limit())                # used slots; size in bytes minus one
print(gdt.pointer(0x1000).to_bytes().hex()) # lgdt operand for a table at 0x1000

custom = UserSegment(int(DescriptorFlags.USER_CODE32))
```

`append` returns the `SegmentSelector` for the new descriptor, with its requested
privilege level taken from the descriptor's DPL. A `SystemSegment` (such as the one
`tss_segment` returns) takes two slots. When the table has no room left, `append`
raises `GdtFullError`. `GlobalDescriptorTable(max_entries)` accepts a capacity from 1 to
2^13 slots. `GlobalDescriptorTable.from_raw_entries(values, max_entries)` builds a table
from raw 64-bit values and raises `ValueError` when the list is empty, when the first
value is not zero, or when the list is longer than the capacity.

`tss_segment(base)` encodes an available 64-bit TSS descriptor for a 104-byte TSS at
address `base`.

## Building an IDT

```python
from x86desc.gdt import PrivilegeLevel, SegmentSelector
from x86desc.idt import InterruptDescriptorTable

idt = InterruptDescriptorTable()
cs = SegmentSelector.from_index(1, PrivilegeLevel.Ring0)

idt.breakpoint.set_handler_addr(0xFFFF_8000_0000_3000, cs)
idt.entry(42).set_handler_addr(0xFFFF_8000_0000_4200, cs).set_privilege_level(
    PrivilegeLevel.Ring3
)
idt.double_fault.set_handler_addr(0xFFFF_8000_0000_0800, cs).set_stack_index(0)

image = idt.to_bytes()           # 4096 bytes, 16 per vector
pointer = idt.pointer(0x2000)    # limit 4095
```

`set_handler_addr` takes a canonical address. It marks the entry present, with
interrupts disabled, DPL 0 and no IST stack, and it returns the entry's `EntryOptions`
so that calls can be chained. `EntryOptions.set_stack_index` accepts IST indices 0 to 6.

Exceptions are reached through named attributes (`divide_error`, `page_fault`,
`general_protection_fault`, and so on). `entry(vector)` raises `ValueError` for reserved
vectors (15, 22–27, 31) and for exceptions that push an error code. For vectors outside
0–255 it raises `IndexError`. `slice(start, stop)` returns the interrupt entries from 32
upwards. `set_general_handler(addr_for, code_selector, vectors)` installs a handler on a
single vector, on an iterable of vectors or, by default, on all vectors. It skips the
reserved ones, and `addr_for(vector)` supplies each handler's address. `reset()` makes
every entry non-present again.

`InterruptStackFrame.from_bytes` and `to_bytes` convert the 40-byte frame that the CPU
pushes.

## Decoding error codes

```python
from x86desc.idt_codes import PageFaultErrorCode, SelectorErrorCode
from x86desc.vectors import ExceptionVector

code = PageFaultErrorCode(0b110)
print(PageFaultErrorCode.CAUSED_BY_WRITE in code)    # True

selector = SelectorErrorCode.new_truncate(0x1A)
print(selector.external(), selector.descriptor_table(), selector.index())

print(ExceptionVector.from_number(14) is ExceptionVector.Page)   # True
```

`SelectorErrorCode(value)` raises `ValueError` when any bit above 15 is set, and
`new_truncate` drops those bits. `ExceptionVector.from_number` raises
`InvalidExceptionVectorNumber`, a `ValueError`, for the coprocessor segment overrun, for
reserved vectors and for anything that is not an exception.

## What this package does not do

The package only describes the structures. It does not load them into a CPU, read or
write segment registers, or run interrupt handlers. Handler addresses and table base
addresses are plain integers that you supply. It has no Task State Segment type either:
TSS descriptors are built from a base address alone.

## Running the tests

```
pytest
```