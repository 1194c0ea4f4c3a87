"""Schema model: immutable field and record schema value types.

A Schema is an ordered tuple of Fields plus a string-keyed property bag.
Both types are frozen; every "setter" returns a new instance, so one design
schema can be shared by any number of enforcers without aliasing.

The dynamic slot ("all columns not known until data arrives") is declared
either by schema properties:

    schema = Schema("Record", fields).with_dynamic_slot(1)

or by a single in-line field tagged TypeTag.DYNAMIC, whose index among the
remaining fields is the slot position.
"""

from __future__ import annotations

import types
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from recordshape.contracts.errors import FieldNotFoundError, InvalidSchemaError

# Schema-level property keys
INCLUDE_ALL_FIELDS = "recordshape.table.include_all_fields"
DYNAMIC_COLUMN_POSITION = "recordshape.dynamic.column.position"

# Field-level property keys
PATTERN = "recordshape.column.pattern"
SOURCE_TYPE = "recordshape.column.source_type"
NULLABLE = "recordshape.column.nullable"
DB_NAME = "recordshape.column.db_name"
DB_TYPE = "recordshape.column.db_type"
LENGTH = "recordshape.column.length"
PRECISION = "recordshape.column.precision"
KEY = "recordshape.column.key"
DESCRIPTION = "recordshape.column.description"


class TypeTag(StrEnum):
    """Declared type of a field."""

    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    STRING = "string"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    BYTES = "bytes"
    ANY = "any"
    # In-line marker for the dynamic slot; never present in a runtime schema
    DYNAMIC = "dynamic"


class SourceType(StrEnum):
    """Origin shape of raw values feeding a field (SOURCE_TYPE property)."""

    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"
    FLOAT = "float"
    DECIMAL = "decimal"
    DATE = "date"
    BYTES = "bytes"


def _property_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _freeze_properties(properties: Mapping[str, Any] | None) -> types.MappingProxyType[str, str]:
    if not properties:
        return types.MappingProxyType({})
    return types.MappingProxyType({str(k): _property_text(v) for k, v in properties.items()})


class _PropertyAccess:
    """Typed reads over a string property bag."""

    __slots__ = ()

    properties: Mapping[str, str]

    def _owner_name(self) -> str:
        raise NotImplementedError

    def get_property(self, key: str, default: str | None = None) -> str | None:
        return self.properties.get(key, default)

    def get_bool_property(self, key: str, default: bool = False) -> bool:
        """Read a "true"/"false" property (case-insensitive).

        Raises:
            InvalidSchemaError: If the property holds anything else
        """
        raw = self.properties.get(key)
        if raw is None:
            return default
        lowered = raw.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise InvalidSchemaError.for_schema(self._owner_name(), f"property '{key}' is not a boolean", raw)

    def get_int_property(self, key: str, default: int | None = None) -> int | None:
        """Read an integer property.

        Raises:
            InvalidSchemaError: If the property is not an integer
        """
        raw = self.properties.get(key)
        if raw is None:
            return default
        try:
            return int(raw.strip())
        except ValueError as e:
            raise InvalidSchemaError.for_schema(self._owner_name(), f"property '{key}' is not an integer", raw) from e


@dataclass(frozen=True, slots=True)
class Field(_PropertyAccess):
    """A named, typed column with opaque metadata.

    Attributes:
        name: Column name, unique within its schema
        type_tag: Declared type driving coercion
        properties: Read-only string metadata (pattern, source type, ...)
    """

    name: str
    type_tag: TypeTag
    properties: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        try:
            tag = TypeTag(self.type_tag)
        except ValueError as e:
            raise InvalidSchemaError.for_schema(self.name, "unknown type tag", self.type_tag) from e
        object.__setattr__(self, "type_tag", tag)
        object.__setattr__(self, "properties", _freeze_properties(self.properties))

    def _owner_name(self) -> str:
        return self.name

    @property
    def pattern(self) -> str | None:
        return self.properties.get(PATTERN)

    @property
    def source_type(self) -> str | None:
        return self.properties.get(SOURCE_TYPE)

    @property
    def nullable(self) -> bool:
        return self.get_bool_property(NULLABLE, default=True)

    def with_property(self, key: str, value: Any) -> Field:
        return Field(self.name, self.type_tag, {**self.properties, key: value})


@dataclass(frozen=True, slots=True)
class DynamicSlot:
    """Resolved dynamic slot: insertion position among the fixed fields."""

    position: int
    fixed_fields: tuple[Field, ...]


@dataclass(frozen=True, slots=True)
class Schema(_PropertyAccess):
    """Immutable record schema.

    Uses frozen dataclass pattern - all "mutations" return new instances.

    Attributes:
        name: Record name
        fields: Ordered fields (names unique)
        properties: Read-only schema-level metadata
    """

    name: str
    fields: tuple[Field, ...]
    properties: Mapping[str, str] = field(default_factory=dict, hash=False)

    _by_name: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        """Normalize containers and build the name index.

        Raises:
            InvalidSchemaError: If two fields share a name
        """
        fields = tuple(self.fields)
        by_name: dict[str, int] = {}
        for index, f in enumerate(fields):
            if f.name in by_name:
                raise InvalidSchemaError.for_schema(self.name, "duplicate field name", f.name)
            by_name[f.name] = index
        object.__setattr__(self, "fields", fields)
        object.__setattr__(self, "properties", _freeze_properties(self.properties))
        object.__setattr__(self, "_by_name", by_name)

    def _owner_name(self) -> str:
        return self.name

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def find_field(self, name: str) -> Field | None:
        index = self._by_name.get(name)
        return None if index is None else self.fields[index]

    def get_field(self, name: str) -> Field:
        """Look up a field by name.

        Raises:
            FieldNotFoundError: If no field has this name
        """
        index = self._by_name.get(name)
        if index is None:
            raise FieldNotFoundError.for_field(name, self.name)
        return self.fields[index]

    def index_of(self, name: str) -> int:
        """Position of a named field.

        Raises:
            FieldNotFoundError: If no field has this name
        """
        index = self._by_name.get(name)
        if index is None:
            raise FieldNotFoundError.for_field(name, self.name)
        return index

    # --- copy-on-write setters ---

    def with_property(self, key: str, value: Any) -> Schema:
        return Schema(self.name, self.fields, {**self.properties, key: value})

    def with_properties(self, properties: Mapping[str, Any]) -> Schema:
        return Schema(self.name, self.fields, {**self.properties, **properties})

    def with_fields(self, fields: Iterable[Field]) -> Schema:
        return Schema(self.name, tuple(fields), self.properties)

    def with_dynamic_slot(self, position: int) -> Schema:
        """Return a copy declaring a dynamic slot at position among the fixed fields."""
        return self.with_properties({INCLUDE_ALL_FIELDS: True, DYNAMIC_COLUMN_POSITION: position})

    # --- dynamic slot ---

    @property
    def has_dynamic_slot(self) -> bool:
        if self.get_bool_property(INCLUDE_ALL_FIELDS):
            return True
        return any(f.type_tag is TypeTag.DYNAMIC for f in self.fields)

    @property
    def dynamic_slot_position(self) -> int | None:
        slot = self.resolve_dynamic_slot()
        return None if slot is None else slot.position

    def resolve_dynamic_slot(self) -> DynamicSlot | None:
        """Validate and resolve the dynamic slot declaration.

        A position property without INCLUDE_ALL_FIELDS declares nothing and
        is ignored.

        Returns:
            DynamicSlot, or None when the schema has no slot

        Raises:
            InvalidSchemaError: More than one in-line marker, a marker that
                disagrees with the position property, or a missing,
                malformed or out-of-range position
        """
        markers = [i for i, f in enumerate(self.fields) if f.type_tag is TypeTag.DYNAMIC]
        if len(markers) > 1:
            raise InvalidSchemaError.for_schema(self.name, "more than one dynamic slot", len(markers))
        if not markers and not self.get_bool_property(INCLUDE_ALL_FIELDS):
            return None

        fixed = tuple(f for f in self.fields if f.type_tag is not TypeTag.DYNAMIC)
        declared = self.get_int_property(DYNAMIC_COLUMN_POSITION)

        if markers:
            position = markers[0]
            if declared is not None and declared != position:
                raise InvalidSchemaError.for_schema(
                    self.name,
                    f"dynamic slot marker at {position} disagrees with declared position",
                    declared,
                )
        elif declared is None:
            raise InvalidSchemaError.for_schema(self.name, "dynamic slot position is missing")
        else:
            position = declared

        if not 0 <= position <= len(fixed):
            raise InvalidSchemaError.for_schema(
                self.name,
                f"dynamic slot position outside [0, {len(fixed)}]",
                position,
            )
        return DynamicSlot(position=position, fixed_fields=fixed)
