"""Build, inspect and serialise x86-64 GDTs, IDTs, gate entries and exception codes."""

__version__ = "0.1.0"

__all__ = ["gdt", "idt", "idt_codes", "idt_entry", "structures", "vectors"]