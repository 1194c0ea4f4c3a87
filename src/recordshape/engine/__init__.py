"""Engine: type coercion and the incoming schema enforcer."""

from recordshape.engine.coercion import coerce, normalize_raw_value
from recordshape.engine.date_pattern import DateParseError, DatePattern, DatePatternError, compile_pattern
from recordshape.engine.enforcer import IncomingSchemaEnforcer, Phase

__all__ = [
    "DateParseError",
    "DatePattern",
    "DatePatternError",
    "IncomingSchemaEnforcer",
    "Phase",
    "coerce",
    "compile_pattern",
    "normalize_raw_value",
]
