"""Structured error taxonomy for schema enforcement.

Every failure the engine surfaces is an EnforcerError carrying:
- code: ErrorCode naming the kind of failure (machine-readable)
- context: ExceptionContext key/value bag describing the failure

The engine never formats user-facing messages itself. The message is a
compact "<CODE>:{key=value, ...}" rendering of the code and context, and
to_dict()/write_to() give a JSON shape for a surrounding reporter.

Example:
    raise EnforcerError.build(ErrorCode.FIELD_NOT_FOUND).put("field", "age").create()

    EnforcerError.build(ErrorCode.UNEXPECTED_ARGUMENT).set_and_throw("position", "-1")
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from enum import StrEnum
from typing import Any, ClassVar, NoReturn, Self, TextIO


class ErrorCode(StrEnum):
    """Kinds of failure raised by the enforcement engine."""

    FIELD_NOT_FOUND = "FIELD_NOT_FOUND"
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"
    ILLEGAL_STATE = "ILLEGAL_STATE"
    COERCION_ERROR = "COERCION_ERROR"
    INVALID_SCHEMA = "INVALID_SCHEMA"
    UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
    UNEXPECTED_ARGUMENT = "UNEXPECTED_ARGUMENT"

    @property
    def expected_context(self) -> tuple[str, ...]:
        """Context keys this code carries, in positional order for ErrorBuilder.set()."""
        return _EXPECTED_CONTEXT[self]

    @property
    def http_status(self) -> int:
        """HTTP-style status a reporting layer may map this code to."""
        return _HTTP_STATUS[self]


_EXPECTED_CONTEXT: dict[ErrorCode, tuple[str, ...]] = {
    ErrorCode.FIELD_NOT_FOUND: ("field", "schema"),
    ErrorCode.INDEX_OUT_OF_RANGE: ("index", "size"),
    ErrorCode.ILLEGAL_STATE: ("operation", "phase"),
    ErrorCode.COERCION_ERROR: ("field", "value", "target_type", "position", "reason"),
    ErrorCode.INVALID_SCHEMA: ("schema", "reason", "value"),
    ErrorCode.UNEXPECTED_EXCEPTION: ("message",),
    ErrorCode.UNEXPECTED_ARGUMENT: ("argument", "value"),
}

_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.FIELD_NOT_FOUND: 404,
    ErrorCode.INDEX_OUT_OF_RANGE: 400,
    ErrorCode.ILLEGAL_STATE: 409,
    ErrorCode.COERCION_ERROR: 400,
    ErrorCode.INVALID_SCHEMA: 400,
    ErrorCode.UNEXPECTED_EXCEPTION: 500,
    ErrorCode.UNEXPECTED_ARGUMENT: 400,
}


class ExceptionContext:
    """Ordered key/value bag attached to an EnforcerError.

    Missing keys read as None rather than raising, so reporters can probe
    for optional entries.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: dict[str, Any] | None = None) -> None:
        self._entries: dict[str, Any] = dict(entries) if entries else {}

    @classmethod
    def build(cls) -> ExceptionContext:
        return cls()

    def put(self, key: str, value: Any) -> Self:
        self._entries[key] = value
        return self

    def get(self, key: str) -> Any:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExceptionContext):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"ExceptionContext({self._entries!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._entries)

    def render(self) -> str:
        """Render as "{k=v, k2=v2}"."""
        return "{" + ", ".join(f"{k}={v}" for k, v in self._entries.items()) + "}"


class EnforcerError(Exception):
    """Base class for every error raised by the enforcement engine.

    Subclasses register themselves against an ErrorCode so that
    EnforcerError.build(code) produces the most specific exception type.

    Attributes:
        code: The ErrorCode describing the failure
        context: Key/value details of the failure
        cause: Underlying exception, if any (also set as __cause__)
    """

    default_code: ClassVar[ErrorCode] = ErrorCode.UNEXPECTED_EXCEPTION
    _registry: ClassVar[dict[ErrorCode, type[EnforcerError]]] = {}

    def __init_subclass__(cls, code: ErrorCode | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if code is not None:
            cls.default_code = code
            EnforcerError._registry[code] = cls

    def __init__(
        self,
        code: ErrorCode | None = None,
        cause: BaseException | None = None,
        context: ExceptionContext | None = None,
    ) -> None:
        self.code = code if code is not None else self.default_code
        self.context = context if context is not None else ExceptionContext()
        self.cause = cause
        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def message(self) -> str:
        return f"{self.code}:{self.context.render()}"

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation for an error-reporting layer."""
        return {
            "code": str(self.code),
            "http_status": self.code.http_status,
            "message": self.message,
            "cause": str(self.cause) if self.cause is not None else None,
            "context": self.context.to_dict(),
        }

    def write_to(self, writer: TextIO) -> None:
        """Write the JSON form of this error to a text stream."""
        json.dump(self.to_dict(), writer, default=str)

    @classmethod
    def build(cls, code: ErrorCode) -> ErrorBuilder:
        return ErrorBuilder(code)

    @classmethod
    def unexpected_exception(cls, reason: str | BaseException) -> NoReturn:
        """Raise UNEXPECTED_EXCEPTION for a message or a caught exception."""
        if isinstance(reason, BaseException):
            raise EnforcerError(ErrorCode.UNEXPECTED_EXCEPTION, cause=reason) from reason
        raise EnforcerError(
            ErrorCode.UNEXPECTED_EXCEPTION,
            context=ExceptionContext.build().put("message", reason),
        )


class ErrorBuilder:
    """Fluent construction of an EnforcerError for a given code.

    Only the code's expected context keys survive create(); anything else
    put() into the builder is dropped.
    """

    def __init__(self, code: ErrorCode) -> None:
        self._code = code
        self._context = ExceptionContext()
        self._cause: BaseException | None = None

    def put(self, key: str, value: Any) -> ErrorBuilder:
        self._context.put(key, value)
        return self

    def cause(self, cause: BaseException) -> ErrorBuilder:
        self._cause = cause
        return self

    def set(self, *values: Any) -> EnforcerError:
        """Map values positionally onto the expected keys and create the error."""
        for key, value in zip(self._code.expected_context, values, strict=False):
            self._context.put(key, value)
        return self.create()

    def create(self) -> EnforcerError:
        expected = self._code.expected_context
        context = ExceptionContext({k: self._context.get(k) for k in expected if k in self._context})
        error_type = EnforcerError._registry.get(self._code, EnforcerError)
        return error_type(self._code, cause=self._cause, context=context)

    def throw_it(self) -> NoReturn:
        raise self.create()

    def set_and_throw(self, *values: Any) -> NoReturn:
        raise self.set(*values)


class FieldNotFoundError(EnforcerError, KeyError, code=ErrorCode.FIELD_NOT_FOUND):
    """A field name is not present in the schema being queried."""

    @classmethod
    def for_field(cls, field_name: str, schema_name: str | None = None) -> FieldNotFoundError:
        context = ExceptionContext.build().put("field", field_name)
        if schema_name is not None:
            context.put("schema", schema_name)
        return cls(context=context)


class IndexOutOfRangeError(EnforcerError, IndexError, code=ErrorCode.INDEX_OUT_OF_RANGE):
    """A positional index falls outside the incoming column numbering."""

    @classmethod
    def for_index(cls, index: int, size: int) -> IndexOutOfRangeError:
        return cls(context=ExceptionContext.build().put("index", index).put("size", size))


class IllegalStateError(EnforcerError, RuntimeError, code=ErrorCode.ILLEGAL_STATE):
    """An operation was invoked in the wrong enforcer phase."""

    @classmethod
    def for_operation(cls, operation: str, phase: str) -> IllegalStateError:
        return cls(context=ExceptionContext.build().put("operation", operation).put("phase", phase))


class CoercionError(EnforcerError, ValueError, code=ErrorCode.COERCION_ERROR):
    """A raw value cannot be converted to its field's declared type.

    Attributes:
        field: Name of the target field
        raw_value: The value that failed to convert
        target_type: Declared type tag of the target field
        position: Offset in the text where a pattern parse failed, if any
    """

    @classmethod
    def for_value(
        cls,
        field: str,
        raw_value: Any,
        target_type: str,
        *,
        position: int | None = None,
        reason: str | None = None,
        cause: BaseException | None = None,
    ) -> CoercionError:
        context = (
            ExceptionContext.build()
            .put("field", field)
            .put("value", raw_value)
            .put("target_type", str(target_type))
        )
        if position is not None:
            context.put("position", position)
        if reason is not None:
            context.put("reason", reason)
        return cls(cause=cause, context=context)

    @property
    def field(self) -> str | None:
        return self.context.get("field")  # type: ignore[no-any-return]

    @property
    def raw_value(self) -> Any:
        return self.context.get("value")

    @property
    def target_type(self) -> str | None:
        return self.context.get("target_type")  # type: ignore[no-any-return]

    @property
    def position(self) -> int | None:
        return self.context.get("position")  # type: ignore[no-any-return]


class InvalidSchemaError(EnforcerError, ValueError, code=ErrorCode.INVALID_SCHEMA):
    """A schema declaration is malformed (dynamic slot, duplicate names, bad pattern)."""

    @classmethod
    def for_schema(cls, schema_name: str, reason: str, value: Any = None) -> InvalidSchemaError:
        context = ExceptionContext.build().put("schema", schema_name).put("reason", reason)
        if value is not None:
            context.put("value", value)
        return cls(context=context)
