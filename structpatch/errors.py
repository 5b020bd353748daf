"""
structpatch.errors — Exceptions raised while applying a patch.

An unknown patch key is not an error: it is skipped.  Everything else
that makes a patch value incompatible with its destination aborts the
whole apply() call with one of these.  Fields patched before the
failure stay patched.
"""

from typing import Optional


class PatchError(Exception):
    """Base class for patch failures.  `field` is the immediate field name."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StructureMismatch(PatchError):
    """The patch value has the wrong shape (mapping vs. record, sequence vs. not)."""

    @classmethod
    def not_a_record(cls, field: str) -> "StructureMismatch":
        return cls(f"{field} is not a record", field)

    @classmethod
    def not_a_sequence(cls, field: str) -> "StructureMismatch":
        return cls(f"{field} is not a sequence", field)


class ConversionFailure(PatchError):
    """A scalar (or sequence element) can't be converted to the destination type."""

    @classmethod
    def for_field(cls, field: str) -> "ConversionFailure":
        return cls(f"can't convert {field} to destination type", field)
