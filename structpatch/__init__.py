"""
structpatch
===========

Sparse, type-coercing updates of Python records from decoded data.

    apply(person, {"first_name": "Chewbacca"})          → True
    apply(person, {"contact": {"position": "pilot"}})   → recurses into person.contact
    apply(person, {"salary": "euros"})                  → ConversionFailure

A *record* is a dataclass or a pydantic model.  A *patch* is the kind
of mapping json.loads returns: only the keys it names are touched,
values are converted to the annotated field types, nested mappings
patch nested records, and sequences replace sequences wholesale.

The return value says whether anything actually changed, so callers
can skip a save or a notification when a patch was a no-op.
"""

from structpatch.errors import (
    PatchError,
    StructureMismatch,
    ConversionFailure,
)
from structpatch.values import (
    Value, Atom, Seq, Map,
    from_python, to_python, same_value,
)
from structpatch.schema import (
    DEFAULT_TAG,
    Kind,
    FieldDescriptor,
    record_fields,
    find_field,
    new_record,
    zero_value,
)
from structpatch.coerce import convert, can_convert
from structpatch.patcher import Patcher, apply, apply_copy

__version__ = "0.1.0"
__all__ = [
    "PatchError", "StructureMismatch", "ConversionFailure",
    "Value", "Atom", "Seq", "Map", "from_python", "to_python", "same_value",
    "DEFAULT_TAG", "Kind", "FieldDescriptor",
    "record_fields", "find_field", "new_record", "zero_value",
    "convert", "can_convert",
    "Patcher", "apply", "apply_copy",
]
