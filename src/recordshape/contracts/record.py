"""Materialized record: an immutable row tagged with its runtime schema."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from recordshape.contracts.errors import IndexOutOfRangeError
from recordshape.contracts.schema import Schema


class Record:
    """Immutable row of values, one per field of its schema.

    Every record emitted by one enforcer shares the same Schema object.
    Access by position (record[0], record.get(0)) or by field name
    (record["age"]).

    Uses __slots__ for memory efficiency (no __dict__ per instance).
    """

    __slots__ = ("_schema", "_values")

    def __init__(self, schema: Schema, values: Iterable[Any]) -> None:
        values = tuple(values)
        if len(values) != len(schema.fields):
            raise IndexOutOfRangeError.for_index(len(values), len(schema.fields))
        self._schema = schema
        self._values = values

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def values(self) -> tuple[Any, ...]:
        return self._values

    def get(self, key: int | str) -> Any:
        """Value by position or by field name.

        Raises:
            IndexOutOfRangeError: If an integer key is out of range
            FieldNotFoundError: If a name key is not in the schema
        """
        if isinstance(key, str):
            return self._values[self._schema.index_of(key)]
        if not 0 <= key < len(self._values):
            raise IndexOutOfRangeError.for_index(key, len(self._values))
        return self._values[key]

    def __getitem__(self, key: int | str) -> Any:
        return self.get(key)

    def __setitem__(self, key: int | str, value: Any) -> None:
        raise TypeError("Record is immutable - materialize a new record instead")

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._schema.find_field(name) is not None

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._schema == other._schema and self._values == other._values

    def __hash__(self) -> int:
        return hash((self._schema.field_names, self._values))

    def __repr__(self) -> str:
        pairs = ", ".join(f"{n}={v!r}" for n, v in zip(self._schema.field_names, self._values, strict=True))
        return f"Record({self._schema.name}: {pairs})"

    def to_dict(self) -> dict[str, Any]:
        """Field name -> value, in schema order."""
        return dict(zip(self._schema.field_names, self._values, strict=True))
