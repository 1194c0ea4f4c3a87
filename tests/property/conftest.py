# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- Field names (unique per schema)
- Design schemas with a dynamic slot, plus the columns that fill it
- Values matching a field's canonical type

Usage:
    from tests.property.conftest import slot_layouts

    @given(layout=slot_layouts())
    def test_splice(layout: SlotLayout) -> None:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from hypothesis import strategies as st

from recordshape.contracts.schema import Field, Schema, TypeTag

# Tags whose canonical values are generated below
VALUE_TAGS = (
    TypeTag.INT,
    TypeTag.LONG,
    TypeTag.DOUBLE,
    TypeTag.DECIMAL,
    TypeTag.STRING,
    TypeTag.BOOLEAN,
    TypeTag.DATETIME,
    TypeTag.BYTES,
)

field_names = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=8)

type_tags = st.sampled_from(VALUE_TAGS)

_CANONICAL: dict[TypeTag, st.SearchStrategy[Any]] = {
    TypeTag.INT: st.integers(min_value=-(2**31), max_value=2**31 - 1),
    TypeTag.LONG: st.integers(min_value=-(2**63), max_value=2**63 - 1),
    TypeTag.DOUBLE: st.floats(allow_nan=False, allow_infinity=False),
    TypeTag.DECIMAL: st.decimals(allow_nan=False, allow_infinity=False, places=4),
    TypeTag.STRING: st.text(max_size=20),
    TypeTag.BOOLEAN: st.booleans(),
    TypeTag.DATETIME: st.datetimes(timezones=st.just(UTC), min_value=datetime(1900, 1, 1)),
    TypeTag.BYTES: st.binary(max_size=16),
}


def canonical_values(tag: TypeTag) -> st.SearchStrategy[Any]:
    """Values that coerce to themselves for a field of this tag."""
    return _CANONICAL[tag] | st.none()


@dataclass(frozen=True)
class SlotLayout:
    """A design schema with a dynamic slot and the columns discovered for it."""

    design: Schema
    position: int
    fixed: tuple[Field, ...]
    discovered: tuple[Field, ...]


@st.composite
def slot_layouts(draw: st.DrawFn, max_fixed: int = 5, max_discovered: int = 5) -> SlotLayout:
    """Generate a dynamic design schema together with its discovered columns."""
    names = draw(st.lists(field_names, min_size=0, max_size=max_fixed + max_discovered, unique=True))
    split = draw(st.integers(min_value=0, max_value=min(len(names), max_fixed)))
    tags = draw(st.lists(type_tags, min_size=len(names), max_size=len(names)))
    fields = tuple(Field(n, t) for n, t in zip(names, tags, strict=True))
    fixed, discovered = fields[:split], fields[split:]
    position = draw(st.integers(min_value=0, max_value=len(fixed)))
    design = Schema("Generated", fixed).with_dynamic_slot(position)
    return SlotLayout(design=design, position=position, fixed=fixed, discovered=discovered)
