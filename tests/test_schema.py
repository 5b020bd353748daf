"""
Tests for structpatch.schema — descriptor tables, field resolution and
zero values.
"""

import os
import sys
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Sequence

import pytest
from pydantic import BaseModel, Field

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structpatch.schema import (
    Kind,
    classify,
    find_field,
    new_record,
    record_fields,
    sequence_info,
    split_optional,
    zero_value,
)


@dataclass
class Pilot:
    name: str = field(metadata={"json": "name,omitempty"})
    rank: int = 0


@dataclass
class Squadron:
    leader: Pilot = field(metadata={"json": "leader"})
    wingman: Optional[Pilot] = field(default=None, metadata={"json": "wingman"})
    pilots: List[Pilot] = field(default_factory=list, metadata={"json": "pilots"})
    reserves: list[Optional[Pilot]] = field(default_factory=list)
    call_signs: tuple[str, ...] = ()
    grid: tuple[int, str] = (0, "")
    notes: dict = field(default_factory=dict)
    _secret: str = field(default="", metadata={"json": "secret"})


@dataclass
class Shadowed:
    _hidden: str = field(default="hidden", metadata={"json": "code"})
    code: str = field(default="visible", metadata={"json": "code"})
    alias: str = field(default="second", metadata={"json": "code"})


@dataclass
class Recruit:
    name: str
    rank: int = 7
    callsigns: list[str] = field(default_factory=lambda: ["Red Five"])


@dataclass
class Directive:
    value: str = field(default="", metadata={"json": ",omitempty"})


class Color(Enum):
    RED = "red"
    BLUE = "blue"


class Droid(BaseModel):
    model: str
    serial: int = Field(0, alias="serialNumber")
    owner: Optional[Pilot] = None


# ═══════════════════════════════════════════════════════════════════
#  DESCRIPTOR TABLES
# ═══════════════════════════════════════════════════════════════════

class TestRecordFields:

    def test_definition_order(self):
        names = [fd.name for fd in record_fields(Squadron)]
        assert names == [
            "leader", "wingman", "pilots", "reserves",
            "call_signs", "grid", "notes", "_secret",
        ]

    def test_external_names(self):
        by_name = {fd.name: fd.external_name for fd in record_fields(Squadron)}
        assert by_name["leader"] == "leader"
        assert by_name["call_signs"] == "call_signs"
        assert by_name["_secret"] == "secret"

    def test_directive_stripped(self):
        (name_fd, rank_fd) = record_fields(Pilot)
        assert name_fd.external_name == "name"
        assert rank_fd.external_name == "rank"

    def test_empty_tag_name_falls_back(self):
        (fd,) = record_fields(Directive)
        assert fd.external_name == "value"

    def test_visibility(self):
        visible = {fd.name: fd.visible for fd in record_fields(Squadron)}
        assert visible["leader"] is True
        assert visible["_secret"] is False

    def test_kinds(self):
        kinds = {fd.name: fd for fd in record_fields(Squadron)}
        assert kinds["leader"].kind is Kind.RECORD
        assert kinds["leader"].record_type is Pilot
        assert kinds["wingman"].kind is Kind.OPTIONAL_RECORD
        assert kinds["wingman"].record_type is Pilot
        assert kinds["pilots"].kind is Kind.SEQUENCE
        assert kinds["pilots"].element_record is Pilot
        assert kinds["reserves"].element_record is Pilot
        assert kinds["call_signs"].kind is Kind.SEQUENCE
        assert kinds["call_signs"].as_tuple is True
        assert kinds["grid"].kind is Kind.SCALAR
        assert kinds["notes"].kind is Kind.SCALAR

    def test_pydantic_fields(self):
        fields = {fd.name: fd for fd in record_fields(Droid)}
        assert fields["serial"].external_name == "serialNumber"
        assert fields["model"].external_name == "model"
        assert fields["owner"].kind is Kind.OPTIONAL_RECORD

    def test_tables_are_cached(self):
        assert record_fields(Squadron) is record_fields(Squadron)

    def test_table_cache_is_bounded(self):
        assert record_fields.cache_info().maxsize is not None

    def test_not_a_record(self):
        with pytest.raises(TypeError):
            record_fields(dict)


# ═══════════════════════════════════════════════════════════════════
#  FIELD RESOLUTION
# ═══════════════════════════════════════════════════════════════════

class TestFindField:

    def test_found(self):
        fd = find_field(Pilot(name="Wedge"), "name")
        assert fd is not None
        assert fd.name == "name"
        assert fd.get(Pilot(name="Wedge")) == "Wedge"

    def test_not_found(self):
        assert find_field(Pilot(name="Wedge"), "callsign") is None

    def test_hidden_match_skipped(self):
        assert find_field(Squadron(leader=Pilot(name="Luke")), "secret") is None

    def test_first_visible_match_wins(self):
        fd = find_field(Shadowed(), "code")
        assert fd.name == "code"

    def test_setter(self):
        pilot = Pilot(name="Wedge")
        find_field(pilot, "name").set(pilot, "Biggs")
        assert pilot.name == "Biggs"

    def test_tag_none_uses_attribute_name(self):
        assert find_field(Squadron(leader=Pilot(name="Luke")), "leader", tag=None).name == "leader"
        assert find_field(Shadowed(), "alias", tag=None).name == "alias"


# ═══════════════════════════════════════════════════════════════════
#  TYPE INSPECTION
# ═══════════════════════════════════════════════════════════════════

class TestTypeInspection:

    def test_split_optional(self):
        assert split_optional(Optional[int]) == (int, True)
        assert split_optional(int | None) == (int, True)
        assert split_optional(int) == (int, False)
        assert split_optional(Annotated[Optional[str], "doc"]) == (str, True)

    @pytest.mark.parametrize("annotation,expected", [
        (list[int], (int, False)),
        (List[str], (str, False)),
        (Sequence[float], (float, False)),
        (tuple[int, ...], (int, True)),
        (list, (Any, False)),
        (tuple, (Any, True)),
        (tuple[int, str], None),
        (str, None),
        (bytes, None),
        (dict[str, int], None),
    ])
    def test_sequence_info(self, annotation, expected):
        assert sequence_info(annotation) == expected

    def test_classify_scalar(self):
        assert classify(int) == {"kind": Kind.SCALAR}
        assert classify(Optional[str]) == {"kind": Kind.SCALAR}


# ═══════════════════════════════════════════════════════════════════
#  ZERO VALUES
# ═══════════════════════════════════════════════════════════════════

class TestZeroValues:

    @pytest.mark.parametrize("annotation,expected", [
        (int, 0),
        (float, 0.0),
        (str, ""),
        (bytes, b""),
        (bool, False),
        (Decimal, Decimal(0)),
        (Optional[int], None),
        (list[int], []),
        (tuple[str, ...], ()),
        (dict, {}),
        (Literal["a", "b"], "a"),
        (Color, Color.RED),
        (Any, None),
    ])
    def test_zero_value(self, annotation, expected):
        assert zero_value(annotation) == expected

    def test_bool_zero_is_bool(self):
        assert zero_value(bool) is False

    def test_new_dataclass_record(self):
        squad = new_record(Squadron)
        assert squad.leader == Pilot(name="", rank=0)
        assert squad.wingman is None
        assert squad.pilots == []

    def test_new_pydantic_record(self):
        droid = new_record(Droid)
        assert droid.model == ""
        assert droid.serial == 0
        assert droid.owner is None

    def test_new_record_keeps_declared_defaults(self):
        recruit = new_record(Recruit)
        assert recruit.name == ""
        assert recruit.rank == 7
        assert recruit.callsigns == ["Red Five"]
