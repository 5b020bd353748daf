"""
structpatch.coerce — Converting dynamic patch scalars to field types.

Patch data is untyped (whatever json.loads produced); destination fields
are annotated.  convert() bridges the two using Python's own
constructors, restricted to conversions between values that share a
representation:

    number  → int / float / Decimal / complex   (int(3.9) == 3, no range checks)
    number  → IntEnum / IntFlag member          (by value)
    str     → str / str-valued Enum member
    str     → bytes                             (UTF-8)
    bool    → bool                              (and nothing else: bool is not a number here)
    None    → Optional[...] / Any

NewType aliases convert to their supertype; Optional/Union members are
tried in order.  Homogeneous sequence annotations convert element-wise.
Everything else must already be an instance of the target class.
"""

import logging
import types
import typing
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Literal, Union

from .errors import ConversionFailure
from .schema import sequence_info, strip_annotated
from .values import Value, to_python

logger = logging.getLogger(__name__)

# Returned by _convert when no conversion exists (None is a valid result).
_FAIL = object()

_NUMBERS = (int, float, Decimal)


def convert(value: Any, target: Any, name: str) -> Any:
    """
    Convert `value` to the annotated type `target`.

    `name` is the field being patched; it is only used for the error.
    Raises ConversionFailure when there is no conversion.
    """
    if isinstance(value, Value):
        value = to_python(value)

    result = _convert(value, target)
    if result is _FAIL:
        logger.debug("no conversion of %r to %r for field %s", value, target, name)
        raise ConversionFailure.for_field(name)
    return result


def can_convert(value: Any, target: Any) -> bool:
    if isinstance(value, Value):
        value = to_python(value)
    return _convert(value, target) is not _FAIL


def _convert(value: Any, tp: Any) -> Any:
    tp = strip_annotated(tp)

    if tp is Any or tp is object:
        return value
    if tp is None or tp is type(None):
        return value if value is None else _FAIL

    supertype = getattr(tp, "__supertype__", None)  # typing.NewType
    if supertype is not None:
        return _convert(value, supertype)

    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return _convert_union(value, typing.get_args(tp))
    if origin is Literal:
        for literal in typing.get_args(tp):
            if type(literal) is type(value) and literal == value:
                return literal
        return _FAIL

    seq = sequence_info(tp)
    if seq is not None:
        return _convert_sequence(value, *seq)

    if origin is not None:
        # Other parameterised generics (dict[str, int], set[str], ...)
        return value if isinstance(value, origin) else _FAIL

    if not isinstance(tp, type):
        return _FAIL

    if issubclass(tp, bool):
        return value if type(value) is bool else _FAIL
    if issubclass(tp, Enum):
        return _convert_enum(value, tp)
    if issubclass(tp, (int, float, Decimal, complex)):
        return _convert_number(value, tp)
    if issubclass(tp, str):
        if not isinstance(value, str):
            return _FAIL
        return value if type(value) is tp else tp(value)
    if issubclass(tp, bytes):
        if isinstance(value, (bytes, bytearray)):
            return tp(value)
        if isinstance(value, str):
            return tp(value.encode("utf-8"))
        return _FAIL

    return value if isinstance(value, tp) else _FAIL


def _convert_union(value: Any, members: tuple) -> Any:
    if value is None:
        return None if type(None) in members else _FAIL
    for member in members:
        if member is type(None):
            continue
        result = _convert(value, member)
        if result is not _FAIL:
            return result
    return _FAIL


def _convert_sequence(value: Any, element_type: Any, as_tuple: bool) -> Any:
    if not isinstance(value, (list, tuple)):
        return _FAIL
    items = []
    for item in value:
        converted = _convert(item, element_type)
        if converted is _FAIL:
            return _FAIL
        items.append(converted)
    return tuple(items) if as_tuple else items


def _convert_number(value: Any, tp: type) -> Any:
    if type(value) is bool or not isinstance(value, _NUMBERS + (complex,)):
        return _FAIL
    if isinstance(value, complex) and not issubclass(tp, complex):
        return _FAIL
    try:
        if issubclass(tp, int):
            return tp(int(value))
        if issubclass(tp, Decimal) and isinstance(value, float):
            return tp(repr(value))
        return tp(value)
    except (ValueError, TypeError, OverflowError, InvalidOperation):
        # nan / inf into an integer
        return _FAIL


def _convert_enum(value: Any, tp: type) -> Any:
    if isinstance(value, tp):
        return value
    if type(value) is bool:
        return _FAIL
    raw = value
    if issubclass(tp, int):
        if not isinstance(value, _NUMBERS):
            return _FAIL
        try:
            raw = int(value)
        except (ValueError, OverflowError):
            return _FAIL
    elif issubclass(tp, str) and not isinstance(value, str):
        return _FAIL
    try:
        return tp(raw)
    except (ValueError, TypeError):
        return _FAIL
