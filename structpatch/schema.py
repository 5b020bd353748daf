"""
structpatch.schema — Record schemas and field resolution.

A *record* is an instance of a dataclass or of a pydantic model.  For
every record class we build, once, a table of field descriptors in
definition order.  Each descriptor knows:

    • the attribute name and the EXTERNAL name a patch uses for it
    • whether the field is externally visible (no leading underscore)
    • the field's kind, derived from its type annotation:

        RECORD            Contact                     patched in place
        OPTIONAL_RECORD   Optional[Contact]           None → fresh record
        SEQUENCE          list[T], tuple[T, ...], …   replaced wholesale
        SCALAR            everything else             converted + assigned

External names come from dataclass field metadata under a tag key
(default "json"), e.g.

    first_name: str = field(metadata={"json": "first_name,omitempty"})

Anything after the first comma is a formatting directive and is
ignored.  Pydantic fields use their alias.
"""

import collections.abc
import dataclasses
import functools
import logging
import sys
import types
import typing
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, auto
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_TAG = "json"


class Kind(Enum):
    """How the merge engine treats a field."""
    SCALAR = auto()
    RECORD = auto()
    OPTIONAL_RECORD = auto()
    SEQUENCE = auto()


@dataclass(frozen=True)
class FieldDescriptor:
    """One patchable field of a record class."""
    name: str
    external_name: str
    visible: bool
    annotation: Any
    kind: Kind
    record_type: Optional[type] = None      # RECORD / OPTIONAL_RECORD
    element_type: Any = None                # SEQUENCE
    element_record: Optional[type] = None   # SEQUENCE of records
    as_tuple: bool = False                  # SEQUENCE annotated as tuple
    resolved: bool = True                   # False: string annotation that did not evaluate

    def get(self, obj: Any) -> Any:
        return getattr(obj, self.name)

    def set(self, obj: Any, value: Any) -> None:
        setattr(obj, self.name, value)

    def unresolved_error(self, owner: type) -> TypeError:
        return TypeError(
            f"cannot resolve annotation {self.annotation!r} of {owner.__qualname__}.{self.name}"
        )


# ═══════════════════════════════════════════════════════════════════
#  TYPE INSPECTION
# ═══════════════════════════════════════════════════════════════════

_SEQUENCE_ORIGINS = (list, tuple, collections.abc.Sequence, collections.abc.MutableSequence)


def is_record_type(tp: Any) -> bool:
    """True for dataclass classes and pydantic model classes."""
    return isinstance(tp, type) and (
        dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel)
    )


def is_record(obj: Any) -> bool:
    return not isinstance(obj, type) and is_record_type(type(obj))


def strip_annotated(tp: Any) -> Any:
    while typing.get_origin(tp) is Annotated:
        tp = typing.get_args(tp)[0]
    return tp


def split_optional(tp: Any) -> tuple[Any, bool]:
    """
    Split `Optional[X]` / `X | None` into (X, True).

    Unions of several non-None members are returned whole, with the
    nullability flag still reported.
    """
    tp = strip_annotated(tp)
    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = typing.get_args(tp)
        members = [a for a in args if a is not type(None)]
        nullable = len(members) != len(args)
        if nullable and len(members) == 1:
            return strip_annotated(members[0]), True
        return tp, nullable
    return tp, False


def sequence_info(tp: Any) -> Optional[tuple[Any, bool]]:
    """
    (element_type, as_tuple) for a homogeneous sequence annotation,
    None otherwise.  Fixed-length tuples like tuple[int, str] are not
    homogeneous and count as scalars.
    """
    tp = strip_annotated(tp)
    if tp is list or tp is tuple:
        return Any, tp is tuple
    origin = typing.get_origin(tp)
    if origin not in _SEQUENCE_ORIGINS:
        return None
    args = typing.get_args(tp)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return args[0], True
        if not args:
            return Any, True
        return None
    return (args[0] if args else Any), False


def record_target(tp: Any) -> Optional[type]:
    """The record class behind `Record` or `Optional[Record]`, if any."""
    inner, _ = split_optional(tp)
    return inner if is_record_type(inner) else None


def classify(annotation: Any) -> dict:
    """Derive the kind-related descriptor attributes of an annotation."""
    tp = strip_annotated(annotation)
    inner, nullable = split_optional(tp)

    if is_record_type(inner):
        kind = Kind.OPTIONAL_RECORD if nullable else Kind.RECORD
        return {"kind": kind, "record_type": inner}

    seq = sequence_info(inner)
    if seq is not None:
        element_type, as_tuple = seq
        return {
            "kind": Kind.SEQUENCE,
            "element_type": element_type,
            "element_record": record_target(element_type),
            "as_tuple": as_tuple,
        }

    return {"kind": Kind.SCALAR}


# ═══════════════════════════════════════════════════════════════════
#  DESCRIPTOR TABLES
# ═══════════════════════════════════════════════════════════════════

def _defining_class(cls: type, name: str) -> type:
    for klass in cls.__mro__:
        if name in klass.__dict__.get("__annotations__", {}):
            return klass
    return cls


def _field_type(cls: type, f: dataclasses.Field) -> tuple[Any, bool]:
    """
    (annotation, resolved) for one dataclass field.

    String annotations (`from __future__ import annotations`) are
    evaluated one field at a time against the module and class that
    declared the field, so one unresolvable name doesn't spoil the
    other fields.
    """
    if not isinstance(f.type, str):
        return f.type, True
    owner = _defining_class(cls, f.name)
    module = sys.modules.get(owner.__module__)
    # Module names take precedence over class attributes, as in typing.get_type_hints.
    modulens = vars(module) if module is not None else {}
    try:
        return eval(f.type, dict(vars(owner)), modulens), True
    except (NameError, AttributeError, TypeError, SyntaxError):
        logger.debug("could not resolve %r of %s.%s", f.type, cls.__qualname__, f.name)
        return f.type, False


# Tables per (class, tag).  Bounded so classes built at runtime are released.
_TABLE_CACHE_SIZE = 512


def _tag_name(metadata: typing.Mapping, tag: Optional[str]) -> Optional[str]:
    if not tag:
        return None
    raw = metadata.get(tag)
    if not raw:
        return None
    name = str(raw).split(",", 1)[0]
    return name or None


@functools.lru_cache(maxsize=_TABLE_CACHE_SIZE)
def record_fields(cls: type, tag: Optional[str] = DEFAULT_TAG) -> tuple[FieldDescriptor, ...]:
    """
    Field descriptors of a record class, in definition order.

    Raises TypeError for classes that are neither dataclasses nor
    pydantic models.
    """
    if not is_record_type(cls):
        raise TypeError(f"{cls!r} is not a record type")

    descriptors = []
    if issubclass(cls, BaseModel):
        for name, info in cls.model_fields.items():
            descriptors.append(FieldDescriptor(
                name=name,
                external_name=info.alias or name,
                visible=not name.startswith("_"),
                annotation=info.annotation,
                **classify(info.annotation),
            ))
        return tuple(descriptors)

    for f in dataclasses.fields(cls):
        annotation, resolved = _field_type(cls, f)
        descriptors.append(FieldDescriptor(
            name=f.name,
            external_name=_tag_name(f.metadata, tag) or f.name,
            visible=not f.name.startswith("_"),
            annotation=annotation,
            resolved=resolved,
            **(classify(annotation) if resolved else {"kind": Kind.SCALAR}),
        ))
    return tuple(descriptors)


def find_field(record: Any, name: str, tag: Optional[str] = DEFAULT_TAG) -> Optional[FieldDescriptor]:
    """
    Resolve an external name against a record.

    The first visible field whose external name matches wins.  A match
    on a hidden field is skipped, not an error.  Returns None when
    nothing matches.
    """
    for descriptor in record_fields(type(record), tag):
        if descriptor.external_name != name:
            continue
        if descriptor.visible:
            return descriptor
        logger.debug("skipping hidden field %s.%s", type(record).__qualname__, descriptor.name)
    return None


# ═══════════════════════════════════════════════════════════════════
#  ZERO VALUES
# ═══════════════════════════════════════════════════════════════════

_ZERO_CONSTRUCTIBLE = (bool, int, float, complex, Decimal, str, bytes, dict, set, frozenset)


def zero_value(annotation: Any) -> Any:
    """
    The zero value of a type annotation.

        Optional[X] → None        int → 0        str → ""
        list[X]     → []          Enum → first member
        Record      → new_record(Record)

    Types without an obvious zero get None.
    """
    tp = strip_annotated(annotation)
    inner, nullable = split_optional(tp)
    if nullable:
        return None
    tp = inner

    supertype = getattr(tp, "__supertype__", None)  # typing.NewType
    if supertype is not None:
        return zero_value(supertype)

    if is_record_type(tp):
        return new_record(tp)

    seq = sequence_info(tp)
    if seq is not None:
        return () if seq[1] else []

    if typing.get_origin(tp) is Literal:
        return typing.get_args(tp)[0]

    origin = typing.get_origin(tp) or tp
    if isinstance(origin, type):
        if issubclass(origin, Enum):
            return next(iter(origin), None)
        if issubclass(origin, _ZERO_CONSTRUCTIBLE):
            return origin()
    return None


def new_record(cls: type) -> Any:
    """
    A fresh instance of a record class.

    This is not a pure zero value: fields with a declared default (or
    default_factory) keep that default, because it is part of the
    record's own definition.  Every other field gets the zero value of
    its annotation.  Raises TypeError when such a field has a string
    annotation that can't be resolved.
    """
    if issubclass(cls, BaseModel):
        zeros = {
            name: zero_value(info.annotation)
            for name, info in cls.model_fields.items()
            if info.is_required()
        }
        return cls.model_construct(**zeros)

    kwargs = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            annotation, resolved = _field_type(cls, f)
            if not resolved:
                raise TypeError(
                    f"cannot resolve annotation {f.type!r} of {cls.__qualname__}.{f.name}"
                )
            kwargs[f.name] = zero_value(annotation)
    return cls(**kwargs)
