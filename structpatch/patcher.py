"""
structpatch.patcher — Applying a sparse patch to a record in place.

    @dataclass
    class Person:
        first_name: str = field(metadata={"json": "first_name"})
        last_name: str = field(metadata={"json": "last_name"})

    han = Person("Han", "Solo")
    apply(han, {"first_name": "Chewbacca"})   → True
    han                                        → Person("Chewbacca", "Solo")

ALGORITHM:
    The patch is lifted into Map/Seq/Atom values and walked in lockstep
    with the record.  For each key that resolves to a visible field:

    1. Record field currently None, value is a Map
           → build a zero-valued record, patch it, assign it
    2. Value is a Map but the field is not a record
           → StructureMismatch
    3. Record field already populated, value is a Map
           → patch the existing record in place (recursion)
    4. Sequence field
           → value must be a Seq; build a brand-new sequence of the
             same length, element by element (Map elements become
             fresh records), then assign it
    5. Anything else
           → compare raw value with current value, convert, assign

    Keys that resolve to nothing are ignored.  The first error aborts
    the whole call; fields patched before it stay patched.

CHANGE FLAG:
    True iff some field was assigned a value different from what it
    held.  The comparison runs on the raw patch value before
    conversion (see values.same_value), so it is an approximation:
    sequences of records, for instance, always count as changed.
"""

import copy
import logging
from typing import Any, Mapping, Optional, Union

from .coerce import convert
from .errors import StructureMismatch
from .schema import DEFAULT_TAG, FieldDescriptor, Kind, find_field, is_record, new_record
from .values import Map, Seq, Value, from_python, same_value, to_python

logger = logging.getLogger(__name__)

PatchInput = Union[Mapping[str, Any], Map]


class Patcher:
    """
    Applies patches to dataclass and pydantic records.

    `tag` is the dataclass field-metadata key that holds a field's
    external name ("json" by default).  Pass None to always use
    attribute names.
    """

    def __init__(self, tag: Optional[str] = DEFAULT_TAG):
        self.tag = tag

    def __repr__(self) -> str:
        return f"Patcher(tag={self.tag!r})"

    def apply(self, target: Any, patch: PatchInput) -> bool:
        """
        Patch `target` in place.  Returns True if any field changed.

        Raises StructureMismatch or ConversionFailure on incompatible
        values, TypeError if `target` is not a record or `patch` is not
        a mapping.
        """
        if not is_record(target):
            raise TypeError(f"{type(target).__qualname__} is not a record")
        value = from_python(patch)
        if not isinstance(value, Map):
            raise TypeError(f"patch must be a mapping, got {type(patch).__qualname__}")
        return self._apply_map(target, value)

    def apply_copy(self, target: Any, patch: PatchInput) -> tuple[Any, bool]:
        """
        Patch a deep copy of `target` and return (copy, changed).

        `target` itself is never touched, so a failed patch leaves no
        partial state behind.
        """
        clone = copy.deepcopy(target)
        changed = self.apply(clone, patch)
        return clone, changed

    # ───────────────────────────────────────────────────────────────

    def _apply_map(self, record: Any, patch: Map) -> bool:
        changed = False
        for key, value in patch.entries.items():
            descriptor = find_field(record, key, self.tag)
            if descriptor is None:
                logger.debug("no field %r on %s, skipped", key, type(record).__qualname__)
                continue
            if self._apply_field(record, descriptor, key, value):
                changed = True
        return changed

    def _apply_field(self, record: Any, fd: FieldDescriptor, key: str, value: Value) -> bool:
        if not fd.resolved:
            raise fd.unresolved_error(type(record))

        is_record_field = fd.kind in (Kind.RECORD, Kind.OPTIONAL_RECORD)

        if isinstance(value, Map):
            if not is_record_field:
                if fd.kind is Kind.SEQUENCE:
                    raise StructureMismatch.not_a_sequence(key)
                raise StructureMismatch.not_a_record(key)

            current = fd.get(record)
            if current is None:
                logger.debug("allocating %s for %s", fd.record_type.__qualname__, key)
                fresh = new_record(fd.record_type)
                changed = self._apply_map(fresh, value)
                fd.set(record, fresh)
                return changed
            return self._apply_map(current, value)

        if fd.kind is Kind.SEQUENCE:
            return self._apply_sequence(record, fd, key, value)

        changed = not same_value(to_python(value), fd.get(record))
        fd.set(record, convert(value, fd.annotation, key))
        return changed

    def _apply_sequence(self, record: Any, fd: FieldDescriptor, key: str, value: Value) -> bool:
        if not isinstance(value, Seq):
            raise StructureMismatch.not_a_sequence(key)

        changed = not same_value(to_python(value), fd.get(record))

        items = []
        for item in value.items:
            if isinstance(item, Map) and fd.element_record is not None:
                element = new_record(fd.element_record)
                self._apply_map(element, item)
                items.append(element)
            else:
                items.append(convert(item, fd.element_type, key))

        logger.debug("replacing %s with %d item(s)", key, len(items))
        fd.set(record, tuple(items) if fd.as_tuple else items)
        return changed


# ═══════════════════════════════════════════════════════════════════
#  MODULE-LEVEL SHORTCUTS
# ═══════════════════════════════════════════════════════════════════

_default_patcher = Patcher()


def apply(target: Any, patch: PatchInput) -> bool:
    """Patch `target` in place with the default Patcher (tag "json")."""
    return _default_patcher.apply(target, patch)


def apply_copy(target: Any, patch: PatchInput) -> tuple[Any, bool]:
    """Patch a deep copy of `target` with the default Patcher."""
    return _default_patcher.apply_copy(target, patch)
