"""
Reading parsers for hand-entered form cells.

Operators type temperatures and times as free text ("166F", "9:05"). These
helpers turn that text into numbers without ever raising: a value that cannot
be read is treated as "not filled in yet".

Example usage:
    from paperform.parsing import parse_temperature, time_difference_minutes

    parse_temperature("166F")                   # 166.0
    time_difference_minutes("23:50", "00:10")   # 20
"""

import re
from typing import Callable, Optional, Union

MINUTES_PER_DAY = 24 * 60

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_FLOAT = re.compile(r"-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")
_TIME_OF_DAY = re.compile(r"([0-9]{1,2}):([0-9]{2})")


def parse_temperature(text: Optional[str]) -> Optional[float]:
    """
    Parse a temperature reading in °F.

    Every character other than digits, '.' and '-' is dropped, then the
    longest leading number is read, so "166F" is 166.0 and "1.2.3" is 1.2.

    Args:
        text: Raw cell text

    Returns:
        Temperature as float, or None for empty or unreadable input
    """
    if not text or not text.strip():
        return None

    match = _LEADING_FLOAT.match(_NON_NUMERIC.sub("", text))
    if match is None:
        return None
    return float(match.group(0))


def parse_time_of_day(text: Optional[str]) -> Optional[int]:
    """
    Parse an H:MM or HH:MM 24-hour time into minutes since midnight.

    Args:
        text: Raw cell text

    Returns:
        Minutes since midnight, or None if the text is not a valid time
    """
    if not text or not text.strip():
        return None

    match = _TIME_OF_DAY.fullmatch(text)
    if match is None:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours > 23 or minutes > 59:
        return None

    return hours * 60 + minutes


def time_difference_minutes(start: Optional[str], end: Optional[str]) -> Optional[int]:
    """
    Minutes elapsed from start to end.

    A negative gap is read as crossing midnight, so the result is always in
    [0, 1439]. Swapped inputs are therefore reported as a long interval, not
    as an error.

    Args:
        start: Earlier time, H:MM
        end: Later time, H:MM

    Returns:
        Elapsed minutes, or None if either time cannot be parsed
    """
    start_minutes = parse_time_of_day(start)
    end_minutes = parse_time_of_day(end)

    if start_minutes is None or end_minutes is None:
        return None

    diff = end_minutes - start_minutes
    if diff < 0:
        diff += MINUTES_PER_DAY

    return diff


def format_number(value: Union[int, float]) -> str:
    """Render a reading the way it was typed: 165.0 -> '165', 165.5 -> '165.5'."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def is_unparseable(text: Optional[str], parser: Callable[[str], Optional[object]]) -> bool:
    """True when text is filled in but the parser cannot read it."""
    if not text or not text.strip():
        return False
    return parser(text) is None
