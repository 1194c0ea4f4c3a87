"""Date pattern compilation and strict text parsing.

Patterns use the letter conventions common to schema metadata:

    yyyy / yy   year            MM / M      month (MMM, MMMM for names)
    dd / d      day of month    HH / H      hour 0-23
    hh / h      hour 1-12       a           AM/PM marker
    mm / m      minute          ss / s      second
    S...        fraction of second (one digit per S)
    E...        day name (matched, not used)
    Z / X...    zone offset ("Z", "+0100", "+01:00")
    'text'      quoted literal  ''          single quote

Parsing is exact: every literal in the pattern must appear in the text, and
the whole text must be consumed. Resolution follows the pattern. When the
pattern has seconds but no fraction field, a fractional part written after
the seconds is accepted and discarded, so the result has whole-second
precision. Digits are ASCII only.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, timezone, tzinfo

_MONTH_ABBR = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")
_MONTH_FULL = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)
_DAY_ABBR = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
_DAY_FULL = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Fractional seconds tolerated after "ss" when the pattern has no S field
_DISCARDED_FRACTION = r"(?:[.,]\d*)?"


class DatePatternError(ValueError):
    """A date pattern uses an unsupported letter or repeats a field."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid date pattern {pattern!r}: {reason}")


class DateParseError(ValueError):
    """Text does not match a date pattern.

    Attributes:
        text: The text being parsed
        pattern: The pattern it was parsed against
        position: Offset of the first character that could not be matched
    """

    def __init__(self, text: str, pattern: str, position: int, reason: str) -> None:
        self.text = text
        self.pattern = pattern
        self.position = position
        self.reason = reason
        super().__init__(f"Unparseable date {text!r} for pattern {pattern!r} at position {position}: {reason}")


@dataclass(frozen=True, slots=True)
class _Token:
    regex: str
    letter: str | None = None


def _names(options: tuple[str, ...]) -> str:
    # Longest alternatives first so full names win over their prefixes
    return "|".join(sorted(options, key=len, reverse=True))


def _field_regex(pattern: str, letter: str, count: int) -> str:
    def digits(group: str) -> str:
        return rf"(?P<{group}>\d{{2}})" if count >= 2 else rf"(?P<{group}>\d{{1,2}})"

    if letter == "y":
        return r"(?P<year2>\d{2})" if count == 2 else r"(?P<year>\d{4})"
    if letter == "M":
        if count >= 4:
            return rf"(?i:(?P<month_name>{_names(_MONTH_FULL)}))"
        if count == 3:
            return rf"(?i:(?P<month_name>{_names(_MONTH_ABBR)}))"
        return digits("month")
    if letter == "d":
        return digits("day")
    if letter == "H":
        return digits("hour")
    if letter == "h":
        return digits("hour12")
    if letter == "m":
        return digits("minute")
    if letter == "s":
        return digits("second")
    if letter == "S":
        return rf"(?P<fraction>\d{{{count}}})"
    if letter == "a":
        return r"(?i:(?P<ampm>am|pm))"
    if letter == "E":
        names = _DAY_FULL if count >= 4 else _DAY_ABBR
        return rf"(?i:(?P<day_name>{_names(names)}))"
    if letter == "Z":
        return r"(?P<zone>Z|[+-]\d{4})"
    if letter == "X":
        return r"(?P<zone>Z|[+-]\d{2}(?::?\d{2})?)"
    raise DatePatternError(pattern, f"unsupported pattern letter '{letter}'")


def _tokenize(pattern: str) -> list[_Token]:
    tokens: list[_Token] = []
    literal: list[str] = []
    seen: set[str] = set()

    def flush_literal() -> None:
        if literal:
            tokens.append(_Token(re.escape("".join(literal))))
            literal.clear()

    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "'":
            if pattern.startswith("''", i):
                literal.append("'")
                i += 2
                continue
            end = i + 1
            while True:
                end = pattern.find("'", end)
                if end == -1:
                    raise DatePatternError(pattern, "unterminated quoted literal")
                if pattern.startswith("''", end):
                    end += 2
                    continue
                break
            literal.append(pattern[i + 1 : end].replace("''", "'"))
            i = end + 1
        elif char.isascii() and char.isalpha():
            count = 1
            while i + count < len(pattern) and pattern[i + count] == char:
                count += 1
            # Upper and lower case share a field for these pairs
            field_key = char.lower() if char in "Hh" else char
            if field_key in seen:
                raise DatePatternError(pattern, f"field '{char}' appears more than once")
            seen.add(field_key)
            flush_literal()
            tokens.append(_Token(_field_regex(pattern, char, count), letter=char))
            i += count
        else:
            literal.append(char)
            i += 1
    flush_literal()
    return tokens


@dataclass(frozen=True, slots=True)
class DatePattern:
    """A compiled date pattern. Build with compile_pattern()."""

    pattern: str
    parts: tuple[str, ...]
    letters: frozenset[str]

    @property
    def has_fraction(self) -> bool:
        return "S" in self.letters

    @property
    def has_zone(self) -> bool:
        return "Z" in self.letters or "X" in self.letters

    def parse(self, text: str, default_tz: tzinfo = UTC) -> datetime:
        """Parse text into a UTC datetime.

        Args:
            text: Text to parse, consumed entirely
            default_tz: Zone applied when the pattern has no zone field

        Returns:
            Timezone-aware datetime normalized to UTC

        Raises:
            DateParseError: If the text does not match or names an impossible date
        """
        match = _full_regex(self.parts).match(text)
        if match is None:
            position = self._failure_position(text)
            raise DateParseError(text, self.pattern, position, "text does not match pattern")

        groups = match.groupdict()
        try:
            year = _year(groups)
            month = _month(groups)
            day = _int(groups, "day", default=1)
            hour = _hour(groups)
            minute = _int(groups, "minute", default=0)
            second = _int(groups, "second", default=0)
            fraction = groups.get("fraction")
            microsecond = int((fraction + "000000")[:6]) if fraction else 0
            zone = _zone(groups["zone"]) if groups.get("zone") else default_tz
            parsed = datetime(year, month, day, hour, minute, second, microsecond, tzinfo=zone)
        except ValueError as e:
            raise DateParseError(text, self.pattern, 0, str(e)) from e
        return parsed.astimezone(UTC)

    def _failure_position(self, text: str) -> int:
        position = 0
        for n in range(1, len(self.parts) + 1):
            prefix = _prefix_regex(self.parts[:n]).match(text)
            if prefix is None:
                return position
            position = prefix.end()
        return position


@functools.lru_cache(maxsize=256)
def _prefix_regex(parts: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile("".join(parts), re.ASCII)


@functools.lru_cache(maxsize=256)
def _full_regex(parts: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile("".join(parts) + r"\Z", re.ASCII)


def _int(groups: dict[str, str | None], key: str, default: int | None = None) -> int | None:
    value = groups.get(key)
    return int(value) if value else default


def _year(groups: dict[str, str | None]) -> int:
    year = _int(groups, "year")
    if year is not None:
        return year
    two = _int(groups, "year2")
    if two is not None:
        return 2000 + two if two < 69 else 1900 + two
    return 1970


def _month(groups: dict[str, str | None]) -> int:
    month = _int(groups, "month")
    if month is not None:
        return month
    name = groups.get("month_name")
    if name:
        lowered = name.lower()
        table = _MONTH_FULL if len(lowered) > 3 else _MONTH_ABBR
        return table.index(lowered) + 1
    return 1


def _hour(groups: dict[str, str | None]) -> int:
    hour = _int(groups, "hour")
    if hour is not None:
        return hour
    hour12 = _int(groups, "hour12")
    if hour12 is None:
        return 0
    ampm = groups.get("ampm")
    if ampm is not None and ampm.lower() == "pm":
        return hour12 % 12 + 12
    return hour12 % 12


def _zone(text: str) -> tzinfo:
    if text == "Z":
        return UTC
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    hours = int(digits[:2])
    minutes = int(digits[2:4]) if len(digits) > 2 else 0
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


@functools.lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> DatePattern:
    """Compile a date pattern (cached).

    Raises:
        DatePatternError: If the pattern is malformed
    """
    tokens = _tokenize(pattern)
    letters = frozenset(t.letter for t in tokens if t.letter is not None)
    parts: list[str] = []
    for token in tokens:
        parts.append(token.regex)
        if token.letter == "s" and "S" not in letters:
            parts.append(_DISCARDED_FRACTION)
    compiled = DatePattern(pattern=pattern, parts=tuple(parts), letters=letters)
    # Surface regex construction problems at compile time, not first parse
    _full_regex(compiled.parts)
    return compiled
