"""
structpatch.values — The dynamic patch value variant.

A patch arrives as plain decoded data (dicts, lists, strings, numbers,
booleans, None).  Before the merge engine walks it, the data is lifted
into a small tagged variant so that every decision is a match on the
variant instead of ad-hoc isinstance checks on the raw input:

    JSON null / bool / number / string  → Atom(value)
    JSON array                          → Seq(items)
    JSON object                         → Map(entries)

Anything else (a datetime, an enum member, a record instance) is kept
as an opaque Atom so that coercion can still accept it when it already
has the destination type.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


# ═══════════════════════════════════════════════════════════════════
#  PATCH VALUE TYPES
# ═══════════════════════════════════════════════════════════════════

class Value:
    """Base class for patch values.  Not instantiated directly."""
    __slots__ = ()


@dataclass(frozen=True, slots=True)
class Atom(Value):
    """
    A scalar patch value: None, bool, number, string, bytes, or any
    opaque Python object.

    Examples:
        Atom("Chewbacca")
        Atom(42)
        Atom(None)
    """
    val: Any

    def __repr__(self) -> str:
        return f"Atom({self.val!r})"


@dataclass(frozen=True, slots=True)
class Seq(Value):
    """An ordered sequence of patch values (a sequence replacement)."""
    items: tuple[Value, ...]

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        if len(self.items) <= 5:
            return f"Seq({list(self.items)})"
        return f"Seq([{self.items[0]!r}, ..., {self.items[-1]!r}] len={len(self.items)})"


@dataclass(frozen=True, slots=True)
class Map(Value):
    """
    A mapping of external field names to patch values (a nested record
    patch).  Key order carries no meaning.
    """
    entries: dict[str, Value]

    def __init__(self, entries: Mapping[str, Value]):
        object.__setattr__(self, 'entries', dict(entries))

    def __hash__(self):
        return hash(frozenset(self.entries.items()))

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        if len(self.entries) <= 3:
            return f"Map({self.entries})"
        return f"Map({{...}} len={len(self.entries)})"


# ═══════════════════════════════════════════════════════════════════
#  PYTHON OBJECTS ↔ PATCH VALUES
# ═══════════════════════════════════════════════════════════════════

def from_python(obj: Any) -> Value:
    """
    Lift decoded data into a patch value.

    Mapping:
        dict / Mapping → Map(...)   (keys converted with str())
        list / tuple   → Seq(...)
        Value          → returned unchanged
        anything else  → Atom(obj)

    Nested structures are converted recursively.
    """
    if isinstance(obj, Value):
        return obj
    if isinstance(obj, Mapping):
        return Map({str(k): from_python(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return Seq(tuple(from_python(item) for item in obj))
    return Atom(obj)


def to_python(val: Value) -> Any:
    """
    Lower a patch value back to plain Python data.

    Inverse of from_python for JSON-compatible input.
    """
    if isinstance(val, Atom):
        return val.val
    if isinstance(val, Seq):
        return [to_python(item) for item in val.items]
    if isinstance(val, Map):
        return {k: to_python(v) for k, v in val.entries.items()}
    raise TypeError(f"Unknown patch value type: {type(val)}")


# ═══════════════════════════════════════════════════════════════════
#  CHANGE DETECTION
# ═══════════════════════════════════════════════════════════════════

def same_value(raw: Any, current: Any) -> bool:
    """
    Deep equality between a raw (unconverted) patch value and the
    current, typed value of a field.

    This runs BEFORE conversion, so it is an approximation of "would
    this assignment change anything": Python equality already treats
    2 == 2.0 and an IntEnum member as equal to its integer, which is
    what we want; bool is the exception (True == 1), so a bool/non-bool
    pair always counts as different.

    A mapping is never considered equal to a record instance, and
    sequences compare element-wise.
    """
    raw_is_bool = type(raw) is bool
    cur_is_bool = type(current) is bool
    if raw_is_bool != cur_is_bool:
        return False
    if raw_is_bool:
        return raw is current

    if isinstance(raw, Mapping):
        return isinstance(current, Mapping) and _same_mapping(raw, current)

    if isinstance(raw, (list, tuple)):
        if not isinstance(current, (list, tuple)) or len(raw) != len(current):
            return False
        return all(same_value(r, c) for r, c in zip(raw, current))

    if isinstance(current, Enum) and not isinstance(raw, Enum):
        return same_value(raw, current.value)

    return bool(raw == current)


def _same_mapping(raw: Mapping, current: Mapping) -> bool:
    if raw.keys() != current.keys():
        return False
    return all(same_value(raw[k], current[k]) for k in raw)
