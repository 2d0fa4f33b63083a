"""Literal display text of spreadsheet cells.

openpyxl hands back typed values (int, float, datetime, bool) plus the cell's
number format code. What a person sees in the sheet is the value rendered
through that format, so that is what gets stored: a code typed as ``00123``
into a cell formatted ``00000`` must come back as ``"00123"``, and a
13-digit barcode in a General cell must never turn into ``7.89E+12``.
"""

import calendar
import logging
import re
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

logger = logging.getLogger(__name__)

# Excel stores 15 significant digits
_GENERAL_PRECISION = 15

_COLOR_OR_CONDITION_RE = re.compile(
    r"\[(?![hms]+\])(?:[A-Za-z]+\d*|[<>=]+-?[\d.]+)\]", re.IGNORECASE
)
_LOCALE_CURRENCY_RE = re.compile(r"\[\$([^\]-]*)(?:-[0-9A-Fa-f]+)?\]")
_DATE_TOKEN_RE = re.compile(
    r'(\[h+\]|\[m+\]|\[s+\]|yyyy|yy|mmmmm|mmmm|mmm|mm|m|dddd|ddd|dd|d|hh|h|ss|s'
    r'|am/pm|a/p|\.0+|"[^"]*"|\\.|.)',
    re.IGNORECASE,
)
_DATE_CHARS = set("ymdhs")
_PLACEHOLDERS = set("0#?")


def cell_text(cell: Any) -> str | None:
    """Return the trimmed display text of a cell, or None when it shows nothing.

    Accepts openpyxl cells (regular, read-only or empty) and ``None`` for a
    column the row does not reach. A cell that cannot be rendered is logged
    and reported as absent so one bad cell never aborts a batch.
    """
    if cell is None:
        return None
    value = getattr(cell, "value", None)
    if value is None:
        return None
    number_format = getattr(cell, "number_format", None) or "General"
    try:
        text = format_value(value, number_format)
    except (ArithmeticError, ValueError, TypeError) as e:
        logger.debug(
            "Could not render cell %s (%r, format %r): %s",
            getattr(cell, "coordinate", "?"),
            value,
            number_format,
            e,
        )
        return None
    text = text.strip()
    return text or None


def format_value(value: Any, number_format: str = "General") -> str:
    """Render a typed cell value through an Excel number format code."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (datetime, date, time, timedelta)):
        return format_datetime(value, number_format)
    if isinstance(value, (int, float, Decimal)):
        return format_number(value, number_format)
    return str(value)


def format_general(value: int | float | Decimal) -> str:
    """Render a number the way a General cell shows it, without exponents."""
    if isinstance(value, int):
        return str(value)
    d = Decimal(repr(value)) if isinstance(value, float) else value
    if d.is_nan() or d.is_infinite():
        raise ValueError(f"Non-finite number {value!r}")
    if d == 0:
        return "0"
    quantum = Decimal(1).scaleb(d.adjusted() - (_GENERAL_PRECISION - 1))
    d = d.quantize(quantum, rounding=ROUND_HALF_UP).normalize()
    return format(d, "f")


def _split_sections(number_format: str) -> list[str]:
    """Split a format code on ';' outside quoted literals."""
    sections: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    for ch in number_format:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            current.append(ch)
            escaped = True
        elif ch == '"':
            current.append(ch)
            in_quotes = not in_quotes
        elif ch == ";" and not in_quotes:
            sections.append("".join(current))
            current = []
        else:
            current.append(ch)
    sections.append("".join(current))
    return sections


def _clean_section(section: str) -> str:
    """Drop colors and conditions, and resolve locale currency tags."""
    section = _LOCALE_CURRENCY_RE.sub(lambda m: f'"{m.group(1)}"', section)
    return _COLOR_OR_CONDITION_RE.sub("", section)


def _tokenize_number_section(section: str) -> list[tuple[str, str]]:
    """Split a numeric section into ("lit", text) and ("ph", char) tokens."""
    tokens: list[tuple[str, str]] = []
    i = 0
    while i < len(section):
        ch = section[i]
        if ch == '"':
            end = section.find('"', i + 1)
            end = len(section) if end == -1 else end
            tokens.append(("lit", section[i + 1:end]))
            i = end + 1
            continue
        if ch == "\\" and i + 1 < len(section):
            tokens.append(("lit", section[i + 1]))
            i += 2
            continue
        if ch == "_" and i + 1 < len(section):
            # Padding the width of the next character
            tokens.append(("lit", " "))
            i += 2
            continue
        if ch == "*" and i + 1 < len(section):
            # Repeat-fill character; cell width is not known here
            i += 2
            continue
        if ch in _PLACEHOLDERS or ch in ".,":
            tokens.append(("ph", ch))
        elif ch in "Ee" and i + 1 < len(section) and section[i + 1] in "+-":
            tokens.append(("ph", ch + section[i + 1]))
            i += 2
            continue
        else:
            tokens.append(("lit", ch))
        i += 1
    return tokens


def format_number(value: int | float | Decimal, number_format: str = "General") -> str:
    """Render a number through an Excel number format code."""
    sections = _split_sections(number_format or "General")
    negative = value < 0
    if negative and len(sections) > 1 and sections[1].strip():
        section, sign = sections[1], ""
    elif value == 0 and len(sections) > 2 and sections[2].strip():
        section, sign = sections[2], ""
    else:
        section, sign = sections[0], "-" if negative else ""
    magnitude = abs(value)

    section = _clean_section(section)
    if section.strip().lower() in ("general", "@", ""):
        return sign + format_general(magnitude)
    if "general" in section.lower():
        body = re.sub("general", "\x00", section, flags=re.IGNORECASE)
        rendered = _render_literals(body)
        return sign + rendered.replace("\x00", format_general(magnitude))

    tokens = _tokenize_number_section(section)
    digit_positions = [
        i for i, (kind, text) in enumerate(tokens) if kind == "ph" and text in _PLACEHOLDERS
    ]
    if ("lit", "/") in tokens:
        # Fractions fall back to General
        return sign + format_general(magnitude)
    if not digit_positions:
        # Text-only section such as "zero" or "N/A"
        literal = "".join(text for _, text in tokens)
        return literal if literal.strip() else sign + format_general(magnitude)

    first, last = digit_positions[0], digit_positions[-1]
    while first > 0 and tokens[first - 1] == ("ph", "."):
        first -= 1
    while last + 1 < len(tokens) and tokens[last + 1][0] == "ph" and tokens[last + 1][1] in ".,":
        last += 1
    prefix = "".join(text for _, text in tokens[:first])
    suffix = "".join(text for _, text in tokens[last + 1:])
    middle = tokens[first:last + 1]

    d = Decimal(repr(magnitude)) if isinstance(magnitude, float) else Decimal(magnitude)
    d *= Decimal(100) ** (prefix + suffix).count("%")

    if any(kind == "lit" for kind, _ in middle):
        return sign + prefix + _fill_digits(d, middle) + suffix

    pattern = "".join(text for _, text in middle)
    return sign + prefix + _format_pattern(d, pattern) + suffix


def _render_literals(section: str) -> str:
    return "".join(text for _, text in _tokenize_number_section(section))


def _fill_digits(d: Decimal, tokens: list[tuple[str, str]]) -> str:
    """Pour an integer's digits into a pattern with embedded literals.

    Handles codes like ``000-000-000``: digits fill placeholders right to
    left, extra leading digits go in front of the first placeholder.
    """
    digits = str(int(d.quantize(Decimal(1), rounding=ROUND_HALF_UP)))
    out: list[str] = []
    pos = len(digits)
    for kind, text in reversed(tokens):
        if kind == "lit":
            out.append(text)
        elif text in _PLACEHOLDERS:
            if pos > 0:
                pos -= 1
                out.append(digits[pos])
            elif text == "0":
                out.append("0")
            elif text == "?":
                out.append(" ")
    head = digits[:pos]
    return head + "".join(reversed(out))


def _group_thousands(digits: str) -> str:
    head = len(digits) % 3 or 3
    groups = [digits[:head]] + [digits[i:i + 3] for i in range(head, len(digits), 3)]
    return ",".join(groups)


def _format_pattern(d: Decimal, pattern: str) -> str:
    """Format a non-negative Decimal with a contiguous numeric pattern."""
    exponent_part = None
    for marker in ("E+", "E-", "e+", "e-"):
        if marker in pattern:
            pattern, exponent_part = pattern.split(marker, 1)
            exponent_part = marker[1] + exponent_part
            break

    if "." in pattern:
        int_pattern, frac_pattern = pattern.split(".", 1)
    else:
        int_pattern, frac_pattern = pattern, ""
    frac_pattern = frac_pattern.replace(",", "")

    # Trailing commas scale by thousands
    stripped = int_pattern.rstrip(",")
    scale = len(int_pattern) - len(stripped)
    int_pattern = stripped
    if scale:
        d /= Decimal(1000) ** scale

    grouping = "," in int_pattern
    min_int = int_pattern.count("0")
    min_frac = frac_pattern.count("0")
    max_frac = sum(1 for ch in frac_pattern if ch in _PLACEHOLDERS)

    exponent_text = ""
    if exponent_part is not None:
        int_digits = max(1, sum(1 for ch in int_pattern if ch in _PLACEHOLDERS))
        exp = 0
        if d != 0:
            exp = d.adjusted() - (int_digits - 1)
            d = d.scaleb(-exp)
        rounded = d.quantize(Decimal(1).scaleb(-max_frac), rounding=ROUND_HALF_UP)
        if rounded >= Decimal(10) ** int_digits:
            exp += 1
            d = d.scaleb(-1)
        exp_sign = "-" if exp < 0 else ("+" if exponent_part[0] == "+" else "")
        exp_digits = exponent_part[1:].count("0") or 1
        exponent_text = "E" + exp_sign + str(abs(exp)).zfill(exp_digits)

    rounded = d.quantize(Decimal(1).scaleb(-max_frac), rounding=ROUND_HALF_UP)
    text = format(rounded, "f")
    int_text, _, frac_text = text.partition(".")

    int_text = int_text.lstrip("0")
    if len(int_text) < min_int:
        int_text = int_text.zfill(min_int)
    if grouping and int_text:
        int_text = _group_thousands(int_text)

    frac_text = frac_text.rstrip("0")
    if len(frac_text) < min_frac:
        frac_text = frac_text.ljust(min_frac, "0")

    result = int_text
    if frac_text or (max_frac and min_frac):
        result += "." + frac_text
    elif "." in pattern and not frac_pattern:
        result += "."
    return (result or "0") + exponent_text


def format_datetime(value: datetime | date | time | timedelta, number_format: str) -> str:
    """Render a date/time value through an Excel date format code."""
    sections = _split_sections(number_format or "General")
    section = _clean_section(sections[0])
    if not any(ch in _DATE_CHARS for ch in section.lower()):
        return _default_datetime_text(value)

    if isinstance(value, timedelta):
        total = value
        moment = datetime(1899, 12, 31) + value
    else:
        total = None
        if isinstance(value, datetime):
            moment = value
        elif isinstance(value, date):
            moment = datetime(value.year, value.month, value.day)
        else:
            moment = datetime.combine(date(1899, 12, 31), value)

    tokens = _DATE_TOKEN_RE.findall(section)
    twelve_hour = any(t.lower() in ("am/pm", "a/p") for t in tokens)
    out: list[str] = []
    for i, token in enumerate(tokens):
        low = token.lower()
        if token.startswith('"'):
            out.append(token[1:-1])
        elif token.startswith("\\"):
            out.append(token[1:])
        elif low.startswith("[h"):
            hours = int((total or timedelta()).total_seconds() // 3600) if total is not None else moment.hour
            out.append(str(hours).zfill(len(low) - 2))
        elif low.startswith("[m"):
            minutes = int((total or timedelta()).total_seconds() // 60) if total is not None else moment.minute
            out.append(str(minutes).zfill(len(low) - 2))
        elif low.startswith("[s"):
            seconds = int((total or timedelta()).total_seconds()) if total is not None else moment.second
            out.append(str(seconds).zfill(len(low) - 2))
        elif low == "yyyy":
            out.append(f"{moment.year:04d}")
        elif low == "yy":
            out.append(f"{moment.year % 100:02d}")
        elif low in ("m", "mm") and _is_minute_token(tokens, i):
            out.append(f"{moment.minute:02d}" if low == "mm" else str(moment.minute))
        elif low == "mmmmm":
            out.append(calendar.month_name[moment.month][:1])
        elif low == "mmmm":
            out.append(calendar.month_name[moment.month])
        elif low == "mmm":
            out.append(calendar.month_abbr[moment.month])
        elif low == "mm":
            out.append(f"{moment.month:02d}")
        elif low == "m":
            out.append(str(moment.month))
        elif low == "dddd":
            out.append(calendar.day_name[moment.weekday()])
        elif low == "ddd":
            out.append(calendar.day_abbr[moment.weekday()])
        elif low == "dd":
            out.append(f"{moment.day:02d}")
        elif low == "d":
            out.append(str(moment.day))
        elif low in ("hh", "h"):
            hour = moment.hour
            if twelve_hour:
                hour = hour % 12 or 12
            out.append(f"{hour:02d}" if low == "hh" else str(hour))
        elif low in ("ss", "s"):
            out.append(f"{moment.second:02d}" if low == "ss" else str(moment.second))
        elif low.startswith(".0"):
            digits = len(low) - 1
            fraction = str(moment.microsecond).zfill(6)[:digits]
            out.append("." + fraction)
        elif low == "am/pm":
            out.append("AM" if moment.hour < 12 else "PM")
        elif low == "a/p":
            out.append("A" if moment.hour < 12 else "P")
        else:
            out.append(token)
    return "".join(out)


def _is_minute_token(tokens: list[str], index: int) -> bool:
    """An m/mm token means minutes right after hours or right before seconds."""
    for token in reversed(tokens[:index]):
        low = token.lower()
        if low and low[0] in _DATE_CHARS or low.startswith("[h"):
            if low.startswith(("h", "[h")):
                return True
            break
    for token in tokens[index + 1:]:
        low = token.lower()
        if low and low[0] in _DATE_CHARS or low.startswith("[s"):
            return low.startswith(("s", "[s"))
    return False


def _default_datetime_text(value: datetime | date | time | timedelta) -> str:
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ", timespec="seconds")
    if isinstance(value, timedelta):
        return str(value)
    return value.isoformat()
