"""CPU exception vector numbers."""

from __future__ import annotations

import enum


class InvalidExceptionVectorNumber(ValueError):
    """Raised for a number that is not a defined exception vector."""

    def __init__(self, number: int) -> None:
        super().__init__(f"{number} is not a valid exception vector")
        self.number = number


class ExceptionVector(enum.IntEnum):
    """The CPU-internal exception vector numbers."""

    Division = 0x00
    Debug = 0x01
    NonMaskableInterrupt = 0x02
    Breakpoint = 0x03
    Overflow = 0x04
    BoundRange = 0x05
    InvalidOpcode = 0x06
    DeviceNotAvailable = 0x07
    Double = 0x08
    InvalidTss = 0x0A
    SegmentNotPresent = 0x0B
    Stack = 0x0C
    GeneralProtection = 0x0D
    Page = 0x0E
    X87FloatingPoint = 0x10
    AlignmentCheck = 0x11
    MachineCheck = 0x12
    SimdFloatingPoint = 0x13
    Virtualization = 0x14
    ControlProtection = 0x15
    HypervisorInjection = 0x1C
    VmmCommunication = 0x1D
    Security = 0x1E

    @classmethod
    def from_number(cls, number: int) -> ExceptionVector:
        """Convert a vector number into an exception vector.

        Raises ``InvalidExceptionVectorNumber`` for the coprocessor segment
        overrun, reserved vectors and anything that is not an exception.
        """
        try:
            return cls(number)
        except ValueError:
            raise InvalidExceptionVectorNumber(number) from None