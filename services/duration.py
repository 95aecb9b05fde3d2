"""
Duration literals such as "30s", "1m30s", "1.5h" or "250ms".

Durations are handled as integer nanoseconds so that parsing and
formatting are exact; format_duration always yields the canonical form
(largest unit first, e.g. 90 seconds becomes "1m30s").
"""
import re
from decimal import Decimal

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_MAX_DURATION = 2**63 - 1

_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # micro sign
    "μs": MICROSECOND,  # greek mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

# "ms" must be tried before "m" and "s"
_COMPONENT = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_COMPONENT_RE = re.compile(_COMPONENT)
_DURATION_RE = re.compile(rf"([-+]?)((?:{_COMPONENT})+)")


def parse_duration(text: str) -> int:
    """Parse a duration literal into nanoseconds, raising ValueError if it is malformed"""
    if text in ("0", "+0", "-0"):
        return 0

    match = _DURATION_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid duration {text!r}")

    sign, body = match.group(1), match.group(2)
    total = 0
    for number, unit in _COMPONENT_RE.findall(body):
        total += int(Decimal(number) * _UNITS[unit])
        if total > _MAX_DURATION:
            raise ValueError(f"duration {text!r} out of range")

    return -total if sign == "-" else total


def _with_fraction(value: int, scale: int) -> str:
    whole, rest = divmod(value, scale)
    if rest == 0:
        return str(whole)
    digits = str(rest).rjust(len(str(scale)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


def format_duration(nanoseconds: int) -> str:
    """Render nanoseconds as a canonical duration literal"""
    if nanoseconds == 0:
        return "0s"

    sign = "-" if nanoseconds < 0 else ""
    value = abs(nanoseconds)

    if value < MICROSECOND:
        return f"{sign}{value}ns"
    if value < MILLISECOND:
        return f"{sign}{_with_fraction(value, MICROSECOND)}µs"
    if value < SECOND:
        return f"{sign}{_with_fraction(value, MILLISECOND)}ms"

    hours, value = divmod(value, HOUR)
    minutes, value = divmod(value, MINUTE)
    seconds = _with_fraction(value, SECOND)

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"
