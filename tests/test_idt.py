import pytest
from hypothesis import given, strategies as st

from x86desc.gdt import PrivilegeLevel, SegmentSelector
from x86desc.idt import InterruptDescriptorTable

CS = SegmentSelector.from_index(1, PrivilegeLevel.Ring0)
RESERVED = {15, 31, 22, 23, 24, 25, 26, 27}
MISSING_BYTES = bytes([0, 0, 0, 0, 0, 0x0E, 0, 0]) + bytes(8)


def addr_for(vector):
    return 0x1000 + vector * 0x10


def entry_present(idt, vector):
    raw = idt.to_bytes()
    return bool(raw[vector * 16 + 5] & 0x80)


def test_size_of_table():
    assert len(InterruptDescriptorTable().to_bytes()) == 256 * 16


def test_new_table_is_all_missing():
    raw = InterruptDescriptorTable().to_bytes()
    assert raw == MISSING_BYTES * 256


def test_pointer_limit():
    ptr = InterruptDescriptorTable().pointer(0x5000)
    assert ptr.limit == 4095
    assert ptr.base == 0x5000


def test_entry_matches_named_field():
    idt = InterruptDescriptorTable()
    assert idt.entry(0) is idt.divide_error
    assert idt.entry(3) is idt.breakpoint
    assert idt.entry(28) is idt.hv_injection_exception


@pytest.mark.parametrize("vector", sorted(RESERVED))
def test_entry_reserved_raises(vector):
    with pytest.raises(ValueError, match="reserved"):
        InterruptDescriptorTable().entry(vector)


@pytest.mark.parametrize("vector", [8, 10, 11, 12, 13, 14, 17, 21, 29, 30])
def test_entry_error_code_raises(vector):
    with pytest.raises(ValueError, match="error code"):
        InterruptDescriptorTable().entry(vector)


@pytest.mark.parametrize("vector", [-1, 256])
def test_entry_out_of_range(vector):
    with pytest.raises(IndexError):
        InterruptDescriptorTable().entry(vector)


def test_slice_lengths():
    idt = InterruptDescriptorTable()
    assert len(idt.slice(32, None)) == 224
    assert len(idt.slice(32, 64)) == 32
    assert idt.slice(42, 43)[0] is idt.entry(42)


@pytest.mark.parametrize("start", [None, 0, 31])
def test_slice_exception_range_raises(start):
    with pytest.raises(ValueError, match="Cannot return slice"):
        InterruptDescriptorTable().slice(start, 64)


def test_slice_beyond_end_raises():
    with pytest.raises(IndexError):
        InterruptDescriptorTable().slice(32, 257)


def test_slice_mutation_is_visible():
    idt = InterruptDescriptorTable()
    idt.slice(40, 50)[2].set_handler_addr(0xDEAD000, CS)
    assert idt.entry(42).handler_addr() == 0xDEAD000
    assert entry_present(idt, 42)


def test_default_handlers():
    idt = InterruptDescriptorTable()
    idt.set_general_handler(addr_for, CS, 0)
    assert [v for v in range(256) if entry_present(idt, v)] == [0]

    idt.set_general_handler(addr_for, CS, 14)
    assert [v for v in range(256) if entry_present(idt, v)] == [0, 14]

    idt.set_general_handler(addr_for, CS, range(32, 64))
    expected = [0, 14, *range(32, 64)]
    assert [v for v in range(256) if entry_present(idt, v)] == expected

    idt.set_general_handler(addr_for, CS)
    for v in range(256):
        assert entry_present(idt, v) == (v not in RESERVED), v


def test_general_handler_addresses_and_selector():
    idt = InterruptDescriptorTable()
    idt.set_general_handler(addr_for, CS)
    assert idt.page_fault.handler_addr() == addr_for(14)
    assert idt.double_fault.handler_addr() == addr_for(8)
    assert idt.entry(200).handler_addr() == addr_for(200)
    assert idt.entry(9).options.cs == CS


def test_general_handler_bad_address():
    idt = InterruptDescriptorTable()
    with pytest.raises(ValueError):
        idt.set_general_handler(lambda v: 0x0000_8000_0000_0000, CS, 32)


def test_general_handler_bad_vector():
    with pytest.raises(IndexError):
        InterruptDescriptorTable().set_general_handler(addr_for, CS, [300])


def test_reset():
    idt = InterruptDescriptorTable()
    idt.set_general_handler(addr_for, CS)
    idt.reset()
    assert idt == InterruptDescriptorTable()
    assert idt.to_bytes() == MISSING_BYTES * 256


def test_named_field_assignment():
    idt = InterruptDescriptorTable()
    other = InterruptDescriptorTable()
    other.double_fault.set_handler_addr(0x4000, CS).set_stack_index(0)
    idt.double_fault = other.double_fault
    assert idt.double_fault.options.stack_index == 0
    assert entry_present(idt, 8)


def test_to_bytes_layout_of_set_entry():
    idt = InterruptDescriptorTable()
    idt.entry(32).set_handler_addr(0x1234_5678_9ABC, CS)
    chunk = idt.to_bytes()[32 * 16 : 33 * 16]
    assert chunk[0:2] == bytes([0xBC, 0x9A])
    assert chunk[2:4] == CS.value.to_bytes(2, "little")
    assert chunk[4:6] == (0x8E00).to_bytes(2, "little")
    assert chunk[6:8] == bytes([0x78, 0x56])
    assert chunk[8:12] == bytes([0x34, 0x12, 0, 0])


@given(st.integers(min_value=32, max_value=255), st.integers(min_value=0, max_value=(1 << 47) - 1))
def test_interrupt_handler_roundtrip(vector, addr):
    idt = InterruptDescriptorTable()
    idt.entry(vector).set_handler_addr(addr, CS)
    assert idt.entry(vector).handler_addr() == addr
    assert [v for v in range(256) if entry_present(idt, v)] == [vector]