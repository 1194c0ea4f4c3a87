"""Incoming schema enforcer: discover dynamic columns, then emit records.

Handles the "discover-and-freeze" pattern for design schemas with a dynamic
slot:
1. Enforcer is built from the design schema (DISCOVERING if it has a slot)
2. Caller registers each concrete column that fills the slot
3. finish_discovery() splices them in and freezes the runtime schema
4. Caller sets values (by position or name) and materializes records

Usage:
    enforcer = IncomingSchemaEnforcer(design_schema)
    if enforcer.needs_dynamic_discovery:
        enforcer.register_dynamic_column("age", TypeTag.INT)
        enforcer.finish_discovery()
    enforcer.put(0, 1)
    enforcer.put("name", "User")
    record = enforcer.materialize()

One enforcer serves one producer thread; it holds no locks. The runtime
schema and every Record it emits are immutable and freely shareable.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from recordshape.contracts.errors import (
    IllegalStateError,
    IndexOutOfRangeError,
    InvalidSchemaError,
)
from recordshape.contracts.record import Record
from recordshape.contracts.schema import (
    DB_NAME,
    DB_TYPE,
    DESCRIPTION,
    DYNAMIC_COLUMN_POSITION,
    INCLUDE_ALL_FIELDS,
    KEY,
    LENGTH,
    NULLABLE,
    PATTERN,
    PRECISION,
    SOURCE_TYPE,
    DynamicSlot,
    Field,
    Schema,
    TypeTag,
)
from recordshape.core.config import DEFAULT_SETTINGS, EnforcerSettings
from recordshape.core.logging import get_logger
from recordshape.engine.coercion import coerce, validate_field_pattern

logger = get_logger(__name__)


class Phase(StrEnum):
    """Lifecycle phase of an IncomingSchemaEnforcer."""

    DISCOVERING = "discovering"
    READY = "ready"


@dataclass(slots=True)
class _Discovering:
    slot: DynamicSlot
    pending: list[Field] = field(default_factory=list)


@dataclass(slots=True)
class _Ready:
    runtime_schema: Schema
    index_map: tuple[int, ...]
    values: list[Any]
    discovered: tuple[Field, ...] = ()


def splice_fields(slot: DynamicSlot, discovered: tuple[Field, ...]) -> tuple[Field, ...]:
    """Insert discovered fields as a contiguous run at the slot position."""
    fixed = slot.fixed_fields
    return (*fixed[: slot.position], *discovered, *fixed[slot.position :])


def build_index_map(
    slot: DynamicSlot | None,
    field_count: int,
    discovered_count: int,
    index_mode: str,
) -> tuple[int, ...]:
    """Map incoming positions to runtime field positions.

    'runtime' numbering is the identity over the runtime layout. 'original'
    numbering keeps the fixed fields' design positions and appends the
    discovered fields after them, in discovery order.
    """
    if slot is None or index_mode == "runtime":
        return tuple(range(field_count))

    position = slot.position
    mapping: list[int] = []
    for i in range(len(slot.fixed_fields)):
        mapping.append(i if i < position else i + discovered_count)
    mapping.extend(position + j for j in range(discovered_count))
    return tuple(mapping)


class IncomingSchemaEnforcer:
    """Reconciles a design schema with the columns actually delivered.

    Attributes:
        design_schema: Schema supplied at construction (never modified)
        runtime_schema: Frozen schema shared by every emitted Record, or
            None while dynamic columns are still being discovered
    """

    def __init__(self, design_schema: Schema, *, settings: EnforcerSettings | None = None) -> None:
        """Initialize from a design schema.

        Args:
            design_schema: Declared record shape, optionally with a dynamic slot
            settings: Behavior switches; defaults to DEFAULT_SETTINGS

        Raises:
            InvalidSchemaError: Malformed dynamic slot or date pattern
        """
        self._design_schema = design_schema
        self._settings = settings if settings is not None else DEFAULT_SETTINGS

        slot = design_schema.resolve_dynamic_slot()
        for f in design_schema.fields:
            validate_field_pattern(f)

        self._state: _Discovering | _Ready
        if slot is None:
            self._state = _Ready(
                runtime_schema=design_schema,
                index_map=tuple(range(len(design_schema.fields))),
                values=[None] * len(design_schema.fields),
            )
        else:
            self._state = _Discovering(slot=slot)

        logger.debug(
            "schema_enforcer_created",
            schema=design_schema.name,
            phase=str(self.phase),
            dynamic_position=None if slot is None else slot.position,
        )

    # --- queries valid in every phase ---

    @property
    def design_schema(self) -> Schema:
        return self._design_schema

    @property
    def runtime_schema(self) -> Schema | None:
        if isinstance(self._state, _Ready):
            return self._state.runtime_schema
        return None

    @property
    def phase(self) -> Phase:
        return Phase.READY if isinstance(self._state, _Ready) else Phase.DISCOVERING

    @property
    def needs_dynamic_discovery(self) -> bool:
        """True until finish_discovery() has frozen the runtime schema."""
        return isinstance(self._state, _Discovering)

    @property
    def settings(self) -> EnforcerSettings:
        return self._settings

    @property
    def index_map(self) -> tuple[int, ...] | None:
        if isinstance(self._state, _Ready):
            return self._state.index_map
        return None

    @property
    def discovered_fields(self) -> tuple[Field, ...]:
        """Dynamic fields registered so far (all of them once ready)."""
        if isinstance(self._state, _Discovering):
            return tuple(self._state.pending)
        return self._state.discovered

    # --- discovery ---

    def _discovering(self, operation: str) -> _Discovering:
        if not isinstance(self._state, _Discovering):
            raise IllegalStateError.for_operation(operation, str(self.phase))
        return self._state

    def register_dynamic_column(
        self,
        name: str,
        type_tag: TypeTag | str,
        *,
        pattern: str | None = None,
        source_type: str | None = None,
        nullable: bool = True,
        db_name: str | None = None,
        db_type: str | None = None,
        length: int | None = None,
        precision: int | None = None,
        key: bool = False,
        description: str | None = None,
        properties: Mapping[str, Any] | None = None,
    ) -> Field:
        """Append a discovered column to the dynamic slot.

        Call order is the order the columns take in the runtime schema.

        Returns:
            The Field that will be spliced into the runtime schema

        Raises:
            IllegalStateError: If discovery is already finished
            InvalidSchemaError: Unknown type tag, malformed date pattern, or a
                name already used by a fixed or discovered field (nothing is
                registered in that case)
        """
        state = self._discovering("register_dynamic_column")

        props: dict[str, Any] = dict(properties) if properties else {}
        optional = {
            PATTERN: pattern,
            SOURCE_TYPE: source_type,
            DB_NAME: db_name,
            DB_TYPE: db_type,
            LENGTH: length,
            PRECISION: precision,
            DESCRIPTION: description,
        }
        props.update({k: v for k, v in optional.items() if v is not None})
        if not nullable:
            props[NULLABLE] = False
        if key:
            props[KEY] = True

        new_field = Field(name, type_tag, props)
        if new_field.type_tag is TypeTag.DYNAMIC:
            raise InvalidSchemaError.for_schema(self._design_schema.name, "more than one dynamic slot", name)
        taken = {f.name for f in state.slot.fixed_fields} | {f.name for f in state.pending}
        if name in taken:
            raise InvalidSchemaError.for_schema(self._design_schema.name, "duplicate field name", name)
        validate_field_pattern(new_field)
        state.pending.append(new_field)
        return new_field

    def finish_discovery(self) -> Schema:
        """Freeze the runtime schema and become ready.

        Returns:
            The runtime schema (same object for the enforcer's lifetime)

        Raises:
            IllegalStateError: If discovery is already finished
        """
        state = self._discovering("finish_discovery")
        discovered = tuple(state.pending)

        runtime_schema = Schema(
            self._design_schema.name,
            splice_fields(state.slot, discovered),
            _without_slot_properties(self._design_schema.properties),
        )
        index_map = build_index_map(
            state.slot,
            len(runtime_schema.fields),
            len(discovered),
            self._settings.index_mode,
        )
        self._state = _Ready(
            runtime_schema=runtime_schema,
            index_map=index_map,
            values=[None] * len(runtime_schema.fields),
            discovered=discovered,
        )

        logger.debug(
            "dynamic_discovery_finished",
            schema=runtime_schema.name,
            dynamic_position=state.slot.position,
            discovered=[f.name for f in discovered],
            runtime_fields=len(runtime_schema.fields),
        )
        return runtime_schema

    # --- steady state ---

    def _ready(self, operation: str) -> _Ready:
        if not isinstance(self._state, _Ready):
            raise IllegalStateError.for_operation(operation, str(self.phase))
        return self._state

    def set_value_by_index(self, position: int, raw: Any) -> None:
        """Coerce and store a value by incoming position.

        Positions are numbered by settings.index_mode. The default,
        "runtime", follows the runtime schema layout (discovered columns at
        their spliced positions). This differs from numbering by design
        position with discovered columns appended, which is available as
        index_mode="original".

        Raises:
            IllegalStateError: If discovery is not finished
            IndexOutOfRangeError: If position is outside the incoming numbering
            CoercionError: If the value cannot be converted
            TypeError: If position is a bool
        """
        if isinstance(position, bool):
            raise TypeError("set_value_by_index() position must be an int, got bool")
        state = self._ready("set_value_by_index")
        if not 0 <= position < len(state.index_map):
            raise IndexOutOfRangeError.for_index(position, len(state.index_map))
        target = state.index_map[position]
        runtime_field = state.runtime_schema.fields[target]
        state.values[target] = coerce(raw, runtime_field, settings=self._settings)

    def set_value_by_name(self, name: str, raw: Any) -> None:
        """Coerce and store a value by runtime field name.

        Raises:
            IllegalStateError: If discovery is not finished
            FieldNotFoundError: If no runtime field has this name
            CoercionError: If the value cannot be converted
        """
        state = self._ready("set_value_by_name")
        target = state.runtime_schema.index_of(name)
        runtime_field = state.runtime_schema.fields[target]
        state.values[target] = coerce(raw, runtime_field, settings=self._settings)

    def put(self, key: int | str, raw: Any) -> None:
        """Store a value by position (int) or field name (str)."""
        if isinstance(key, bool) or not isinstance(key, (int, str)):
            raise TypeError(f"put() key must be an int position or a str field name, got {type(key).__name__}")
        if isinstance(key, str):
            self.set_value_by_name(key, raw)
        else:
            self.set_value_by_index(key, raw)

    def materialize(self) -> Record:
        """Snapshot the current values into a new immutable Record.

        The value buffer is NOT cleared: a field not overwritten before the
        next call keeps its previous value.

        Raises:
            IllegalStateError: If discovery is not finished
        """
        state = self._ready("materialize")
        return Record(state.runtime_schema, state.values)

    def clear_values(self) -> None:
        """Reset every value slot to None.

        Raises:
            IllegalStateError: If discovery is not finished
        """
        state = self._ready("clear_values")
        state.values[:] = [None] * len(state.values)


def _without_slot_properties(properties: Mapping[str, str]) -> dict[str, str]:
    # The runtime schema is concrete; it no longer declares a slot
    return {k: v for k, v in properties.items() if k not in (INCLUDE_ALL_FIELDS, DYNAMIC_COLUMN_POSITION)}
