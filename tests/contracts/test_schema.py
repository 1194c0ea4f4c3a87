"""Tests for the immutable Field/Schema model."""

from __future__ import annotations

import pytest

from recordshape.contracts.errors import FieldNotFoundError, InvalidSchemaError
from recordshape.contracts.schema import (
    DYNAMIC_COLUMN_POSITION,
    INCLUDE_ALL_FIELDS,
    NULLABLE,
    PATTERN,
    SOURCE_TYPE,
    Field,
    Schema,
    SourceType,
    TypeTag,
)

# --- Fixtures ---


@pytest.fixture
def fixed_schema() -> Schema:
    return Schema(
        "Record",
        (
            Field("id", TypeTag.INT),
            Field("name", TypeTag.STRING),
            Field("valid", TypeTag.BOOLEAN),
        ),
    )


class TestField:
    """Tests for Field."""

    def test_type_tag_accepts_text(self) -> None:
        assert Field("id", "int").type_tag is TypeTag.INT

    def test_unknown_type_tag_is_invalid_schema(self) -> None:
        with pytest.raises(InvalidSchemaError):
            Field("id", "varchar")

    def test_properties_are_read_only(self) -> None:
        f = Field("when", TypeTag.DATETIME, {PATTERN: "yyyy"})

        with pytest.raises(TypeError):
            f.properties[PATTERN] = "MM"  # type: ignore[index]

    def test_properties_stored_as_text(self) -> None:
        f = Field("id", TypeTag.INT, {NULLABLE: False, "length": 10})

        assert f.properties[NULLABLE] == "false"
        assert f.properties["length"] == "10"

    def test_convenience_accessors(self) -> None:
        f = Field("when", TypeTag.DATETIME, {PATTERN: "yyyy-MM-dd", SOURCE_TYPE: SourceType.STRING})

        assert f.pattern == "yyyy-MM-dd"
        assert f.source_type == "string"
        assert f.nullable is True

    def test_with_property_returns_new_field(self) -> None:
        original = Field("id", TypeTag.INT)
        changed = original.with_property(NULLABLE, False)

        assert changed is not original
        assert changed.nullable is False
        assert original.nullable is True

    def test_frozen(self) -> None:
        f = Field("id", TypeTag.INT)

        with pytest.raises(AttributeError):
            f.name = "other"  # type: ignore[misc]


class TestSchemaAccessors:
    """Tests for read-only schema accessors."""

    def test_field_names_in_order(self, fixed_schema: Schema) -> None:
        assert fixed_schema.field_names == ("id", "name", "valid")

    def test_get_field_by_name(self, fixed_schema: Schema) -> None:
        assert fixed_schema.get_field("name").type_tag is TypeTag.STRING

    def test_get_unknown_field_raises(self, fixed_schema: Schema) -> None:
        with pytest.raises(FieldNotFoundError) as exc_info:
            fixed_schema.get_field("missing")

        assert exc_info.value.context.get("field") == "missing"
        assert exc_info.value.context.get("schema") == "Record"

    def test_find_field_returns_none(self, fixed_schema: Schema) -> None:
        assert fixed_schema.find_field("missing") is None

    def test_index_of(self, fixed_schema: Schema) -> None:
        assert fixed_schema.index_of("valid") == 2

    def test_list_of_fields_is_normalized_to_tuple(self) -> None:
        schema = Schema("Record", [Field("id", TypeTag.INT)])  # type: ignore[arg-type]

        assert isinstance(schema.fields, tuple)

    def test_duplicate_field_names_rejected(self) -> None:
        with pytest.raises(InvalidSchemaError) as exc_info:
            Schema("Record", (Field("id", TypeTag.INT), Field("id", TypeTag.STRING)))

        assert exc_info.value.context.get("value") == "id"

    def test_equal_schemas_compare_equal(self, fixed_schema: Schema) -> None:
        assert Schema("Record", fixed_schema.fields) == fixed_schema


class TestSchemaProperties:
    """Tests for typed property reads and copy-on-write setters."""

    def test_typed_defaults(self, fixed_schema: Schema) -> None:
        assert fixed_schema.get_property("absent") is None
        assert fixed_schema.get_property("absent", "x") == "x"
        assert fixed_schema.get_bool_property("absent") is False
        assert fixed_schema.get_int_property("absent", 7) == 7

    def test_with_property_is_copy_on_write(self, fixed_schema: Schema) -> None:
        changed = fixed_schema.with_property("owner", "etl")

        assert changed.get_property("owner") == "etl"
        assert fixed_schema.get_property("owner") is None
        assert changed.fields == fixed_schema.fields

    def test_malformed_int_property(self, fixed_schema: Schema) -> None:
        schema = fixed_schema.with_property(DYNAMIC_COLUMN_POSITION, "two")

        with pytest.raises(InvalidSchemaError):
            schema.get_int_property(DYNAMIC_COLUMN_POSITION)

    def test_malformed_bool_property(self, fixed_schema: Schema) -> None:
        schema = fixed_schema.with_property(INCLUDE_ALL_FIELDS, "yes")

        with pytest.raises(InvalidSchemaError):
            schema.get_bool_property(INCLUDE_ALL_FIELDS)

    def test_with_fields(self, fixed_schema: Schema) -> None:
        changed = fixed_schema.with_fields([Field("only", TypeTag.ANY)])

        assert changed.field_names == ("only",)
        assert fixed_schema.field_names == ("id", "name", "valid")


class TestDynamicSlot:
    """Tests for dynamic slot declaration and resolution."""

    def test_no_slot(self, fixed_schema: Schema) -> None:
        assert fixed_schema.has_dynamic_slot is False
        assert fixed_schema.resolve_dynamic_slot() is None
        assert fixed_schema.dynamic_slot_position is None

    @pytest.mark.parametrize("position", [0, 1, 2, 3])
    def test_with_dynamic_slot(self, fixed_schema: Schema, position: int) -> None:
        schema = fixed_schema.with_dynamic_slot(position)

        assert schema.has_dynamic_slot is True
        assert schema.dynamic_slot_position == position
        slot = schema.resolve_dynamic_slot()
        assert slot is not None
        assert slot.fixed_fields == fixed_schema.fields

    def test_position_without_flag_is_ignored(self, fixed_schema: Schema) -> None:
        schema = fixed_schema.with_property(DYNAMIC_COLUMN_POSITION, "99")

        assert schema.has_dynamic_slot is False
        assert schema.resolve_dynamic_slot() is None

    @pytest.mark.parametrize("position", [-1, 4, 10])
    def test_out_of_range_position(self, fixed_schema: Schema, position: int) -> None:
        schema = fixed_schema.with_dynamic_slot(position)

        with pytest.raises(InvalidSchemaError):
            schema.resolve_dynamic_slot()

    def test_missing_position(self, fixed_schema: Schema) -> None:
        schema = fixed_schema.with_property(INCLUDE_ALL_FIELDS, True)

        with pytest.raises(InvalidSchemaError) as exc_info:
            schema.resolve_dynamic_slot()

        assert "missing" in exc_info.value.context.get("reason")

    def test_inline_marker(self) -> None:
        schema = Schema(
            "Record",
            (Field("id", TypeTag.INT), Field("dyn", TypeTag.DYNAMIC), Field("name", TypeTag.STRING)),
        )

        slot = schema.resolve_dynamic_slot()

        assert schema.has_dynamic_slot is True
        assert slot is not None
        assert slot.position == 1
        assert tuple(f.name for f in slot.fixed_fields) == ("id", "name")

    def test_inline_marker_matching_property(self) -> None:
        schema = Schema("Record", (Field("dyn", TypeTag.DYNAMIC), Field("id", TypeTag.INT))).with_dynamic_slot(0)

        assert schema.dynamic_slot_position == 0

    def test_inline_marker_disagreeing_with_property(self) -> None:
        schema = Schema("Record", (Field("dyn", TypeTag.DYNAMIC), Field("id", TypeTag.INT))).with_dynamic_slot(1)

        with pytest.raises(InvalidSchemaError):
            schema.resolve_dynamic_slot()

    def test_more_than_one_slot(self) -> None:
        schema = Schema(
            "Record",
            (Field("dyn1", TypeTag.DYNAMIC), Field("id", TypeTag.INT), Field("dyn2", TypeTag.DYNAMIC)),
        )

        with pytest.raises(InvalidSchemaError) as exc_info:
            schema.resolve_dynamic_slot()

        assert exc_info.value.context.get("reason") == "more than one dynamic slot"

    def test_slot_with_zero_fixed_fields(self) -> None:
        slot = Schema("Empty", ()).with_dynamic_slot(0).resolve_dynamic_slot()

        assert slot is not None
        assert slot.position == 0
        assert slot.fixed_fields == ()
