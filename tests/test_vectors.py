import pytest
from hypothesis import given
from hypothesis import strategies as st

from x86desc.vectors import ExceptionVector, InvalidExceptionVectorNumber

KNOWN = {
    0x00: "Division",
    0x01: "Debug",
    0x02: "NonMaskableInterrupt",
    0x03: "Breakpoint",
    0x04: "Overflow",
    0x05: "BoundRange",
    0x06: "InvalidOpcode",
    0x07: "DeviceNotAvailable",
    0x08: "Double",
    0x0A: "InvalidTss",
    0x0B: "SegmentNotPresent",
    0x0C: "Stack",
    0x0D: "GeneralProtection",
    0x0E: "Page",
    0x10: "X87FloatingPoint",
    0x11: "AlignmentCheck",
    0x12: "MachineCheck",
    0x13: "SimdFloatingPoint",
    0x14: "Virtualization",
    0x15: "ControlProtection",
    0x1C: "HypervisorInjection",
    0x1D: "VmmCommunication",
    0x1E: "Security",
}


@pytest.mark.parametrize("number,name", sorted(KNOWN.items()))
def test_known_vectors(number, name):
    vector = ExceptionVector.from_number(number)
    assert vector.name == name
    assert int(vector) == number


@pytest.mark.parametrize("number", [9, 15, 22, 23, 24, 25, 26, 27, 31, 32, 42, 255])
def test_invalid_vectors(number):
    with pytest.raises(InvalidExceptionVectorNumber) as info:
        ExceptionVector.from_number(number)
    assert info.value.number == number
    assert str(info.value) == f"{number} is not a valid exception vector"


def test_invalid_vector_is_value_error():
    with pytest.raises(ValueError):
        ExceptionVector.from_number(15)


def test_vector_count():
    accepted = []
    for number in range(256):
        try:
            accepted.append(ExceptionVector.from_number(number))
        except InvalidExceptionVectorNumber:
            pass
    assert len(accepted) == 23
    assert set(accepted) == set(ExceptionVector)


@given(st.integers(min_value=0, max_value=255))
def test_from_number_matches_table(number):
    if number in KNOWN:
        assert ExceptionVector.from_number(number).name == KNOWN[number]
    else:
        with pytest.raises(InvalidExceptionVectorNumber):
            ExceptionVector.from_number(number)