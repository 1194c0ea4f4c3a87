"""
recordshape: schema enforcement and reconciliation for row-oriented data.

A design schema (optionally with one dynamic slot) is reconciled with the
columns actually delivered at runtime, then raw values are coerced and
materialized as immutable records sharing one frozen runtime schema.
"""

from recordshape.contracts import (
    CoercionError,
    EnforcerError,
    ErrorCode,
    ExceptionContext,
    Field,
    FieldNotFoundError,
    IllegalStateError,
    IndexOutOfRangeError,
    InvalidSchemaError,
    Record,
    Schema,
    SourceType,
    TypeTag,
)
from recordshape.engine import IncomingSchemaEnforcer, Phase, coerce

__version__ = "0.1.0"

__all__ = [
    "CoercionError",
    "EnforcerError",
    "ErrorCode",
    "ExceptionContext",
    "Field",
    "FieldNotFoundError",
    "IllegalStateError",
    "IncomingSchemaEnforcer",
    "IndexOutOfRangeError",
    "InvalidSchemaError",
    "Phase",
    "Record",
    "Schema",
    "SourceType",
    "TypeTag",
    "coerce",
]
