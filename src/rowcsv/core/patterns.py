"""Date and number format pictures.

Pictures are small format models in the style of SQL ``TO_CHAR``:
``MM/DD/YYYY``, ``YYYY-MM-DD HH24:MI:SS``, ``FM999,990.00``, ``$9,999.99MI``.
Compiled pictures are cached, so a picture is parsed once per process no
matter how many rows use it.  Names are always English; there is no locale
handling.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from functools import lru_cache

_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_DATE_PUNCTUATION = frozenset(" -/,.;:")

# Longest elements first so that e.g. HH24 wins over HH and MONTH over MON.
_DATE_ELEMENTS = (
    "HH24",
    "HH12",
    "MONTH",
    "YYYY",
    "RRRR",
    "A.M.",
    "P.M.",
    "FF1",
    "FF2",
    "FF3",
    "FF4",
    "FF5",
    "FF6",
    "FF7",
    "FF8",
    "FF9",
    "DDD",
    "DAY",
    "MON",
    "FF",
    "FM",
    "YY",
    "MM",
    "DD",
    "DY",
    "HH",
    "MI",
    "SS",
    "AM",
    "PM",
    "D",
    "Q",
)


def _apply_case(text: str, source: str) -> str:
    """Match ``text`` to the capitalization of the picture element."""
    letters = [c for c in source if c.isalpha()]
    if all(c.isupper() for c in letters[:2]):
        return text.upper()
    if letters[0].isupper():
        return text.capitalize()
    return text.lower()


def _number(value: int, width: int, fill: bool) -> str:
    return str(value) if fill else str(value).zfill(width)


def _render_element(element: str, source: str, value: datetime.datetime, fill: bool) -> str:
    if element in ("YYYY", "RRRR"):
        return _number(value.year, 4, fill)
    if element == "YY":
        return _number(value.year % 100, 2, fill)
    if element == "MM":
        return _number(value.month, 2, fill)
    if element == "MONTH":
        return _apply_case(_MONTHS[value.month - 1], source)
    if element == "MON":
        return _apply_case(_MONTHS[value.month - 1][:3], source)
    if element == "DD":
        return _number(value.day, 2, fill)
    if element == "DDD":
        return _number(value.timetuple().tm_yday, 3, fill)
    if element == "DAY":
        return _apply_case(_DAYS[value.weekday()], source)
    if element == "DY":
        return _apply_case(_DAYS[value.weekday()][:3], source)
    if element == "D":
        return str(value.isoweekday() % 7 + 1)
    if element == "Q":
        return str((value.month - 1) // 3 + 1)
    if element == "HH24":
        return _number(value.hour, 2, fill)
    if element in ("HH", "HH12"):
        return _number(value.hour % 12 or 12, 2, fill)
    if element == "MI":
        return _number(value.minute, 2, fill)
    if element == "SS":
        return _number(value.second, 2, fill)
    if element.startswith("FF"):
        digits = int(element[2:] or 6)
        return f"{value.microsecond:06d}".ljust(9, "0")[:digits]
    if element in ("AM", "PM"):
        return _apply_case("AM" if value.hour < 12 else "PM", source)
    if element in ("A.M.", "P.M."):
        return _apply_case("A.M." if value.hour < 12 else "P.M.", source)
    raise ValueError(f"Unsupported date element {element!r}")


@dataclass(frozen=True)
class DatePicture:
    """A compiled date picture.

    ``parts`` holds ``(kind, text, source)`` triples where kind is
    ``"literal"``, ``"fill"`` or ``"element"``.
    """

    pattern: str
    parts: tuple[tuple[str, str, str], ...]

    def render(self, value: datetime.datetime) -> str:
        fill = False
        out: list[str] = []
        for kind, text, source in self.parts:
            if kind == "literal":
                out.append(text)
            elif kind == "fill":
                fill = not fill
            else:
                out.append(_render_element(text, source, value, fill))
        return "".join(out)


@dataclass(frozen=True)
class StrftimePicture:
    pattern: str

    def render(self, value: datetime.datetime) -> str:
        return value.strftime(self.pattern)


@lru_cache(maxsize=64)
def compile_date_format(pattern: str) -> DatePicture | StrftimePicture:
    """Compile a date picture; ``%`` directives select strftime instead.

    Raises ValueError on unknown elements or unterminated quoted text.
    """
    if "%" in pattern:
        return StrftimePicture(pattern)

    parts: list[tuple[str, str, str]] = []
    upper = pattern.upper()
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == '"':
            end = pattern.find('"', i + 1)
            if end < 0:
                msg = f"Unterminated quoted text in date format {pattern!r}"
                raise ValueError(msg)
            parts.append(("literal", pattern[i + 1 : end], ""))
            i = end + 1
            continue
        for element in _DATE_ELEMENTS:
            if upper.startswith(element, i):
                source = pattern[i : i + len(element)]
                if element == "FM":
                    parts.append(("fill", element, source))
                else:
                    parts.append(("element", element, source))
                i += len(element)
                break
        else:
            if ch in _DATE_PUNCTUATION:
                parts.append(("literal", ch, ""))
                i += 1
                continue
            msg = f"Invalid date format element at position {i + 1} in {pattern!r}"
            raise ValueError(msg)
    return DatePicture(pattern, tuple(parts))


@dataclass(frozen=True)
class NumberPicture:
    """A compiled number picture.

    ``int_mask`` holds ``9``, ``0`` and ``,`` elements left of the decimal
    point; ``frac_mask`` holds ``9`` and ``0`` elements right of it.
    """

    pattern: str
    fill: bool
    int_mask: str
    frac_mask: str
    has_decimal: bool
    sign: str  # "default", "leading", "trailing" or "mi"
    currency: str  # "", "leading" or "trailing"

    @property
    def width(self) -> int:
        width = len(self.int_mask) + len(self.frac_mask) + 1  # sign slot
        if self.has_decimal:
            width += 1
        if self.currency:
            width += 1
        return width

    def _integer_text(self, digits: str) -> str | None:
        slots = self.int_mask.replace(",", "")
        if len(digits) > len(slots):
            return None
        first_zero = slots.find("0")
        forced = len(slots) - first_zero if first_zero >= 0 else 0
        digits = digits.rjust(forced, "0")

        out: list[str] = []
        remaining = len(digits)
        for element in reversed(self.int_mask):
            if element == ",":
                out.append("," if remaining > 0 else " ")
            elif remaining > 0:
                remaining -= 1
                out.append(digits[remaining])
            else:
                out.append(" ")
        return "".join(reversed(out))

    def render(self, value: Decimal) -> str:
        if not value.is_finite():
            return "#" * self.width

        frac_len = len(self.frac_mask)
        with localcontext() as ctx:
            ctx.prec = max(28, value.adjusted() + frac_len + 2)
            rounded = value.quantize(Decimal(1).scaleb(-frac_len), rounding=ROUND_HALF_UP)
        negative = rounded < 0
        int_digits, _, frac_digits = format(abs(rounded), "f").partition(".")
        int_digits = int_digits.lstrip("0")
        if not int_digits and not frac_len:
            int_digits = "0"

        int_text = self._integer_text(int_digits)
        if int_text is None:
            return "#" * self.width

        frac_text = frac_digits.ljust(frac_len, "0")
        if self.fill:
            keep = len(frac_text)
            while keep > 0 and self.frac_mask[keep - 1] == "9" and frac_text[keep - 1] == "0":
                keep -= 1
            frac_text = frac_text[:keep]

        core = int_text.lstrip(" ")
        padding = "" if self.fill else " " * (len(int_text) - len(core))
        if self.has_decimal and (frac_text or not self.fill):
            core = f"{core}.{frac_text}"
        if not core:
            core = "0"

        prefix = suffix = ""
        if self.sign == "leading":
            prefix = "-" if negative else "+"
        elif self.sign == "trailing":
            suffix = "-" if negative else "+"
        elif self.sign == "mi":
            suffix = "-" if negative else ("" if self.fill else " ")
        else:
            prefix = "-" if negative else ("" if self.fill else " ")

        if self.currency == "leading":
            core = "$" + core
        elif self.currency == "trailing":
            core = core + "$"
        return f"{padding}{prefix}{core}{suffix}"


@lru_cache(maxsize=64)
def compile_number_format(pattern: str) -> NumberPicture:
    """Compile a number picture such as ``FM999,990.00``.

    Raises ValueError on unknown or misplaced elements.
    """
    upper = pattern.upper()
    fill = False
    i = 0
    if upper.startswith("FM"):
        fill = True
        i = 2

    int_mask: list[str] = []
    frac_mask: list[str] = []
    has_decimal = False
    sign = "default"
    currency = ""
    seen_digit = False
    start = i

    while i < len(upper):
        ch = upper[i]
        if upper.startswith("MI", i):
            if i + 2 != len(upper) or sign != "default":
                raise ValueError(f"MI must be the last element of {pattern!r}")
            sign = "mi"
            i += 2
            continue
        if ch == "S":
            if sign != "default":
                raise ValueError(f"Only one sign element allowed in {pattern!r}")
            if i == start:
                sign = "leading"
            elif i == len(upper) - 1:
                sign = "trailing"
            else:
                raise ValueError(f"S must be the first or last element of {pattern!r}")
        elif ch in "90":
            (frac_mask if has_decimal else int_mask).append(ch)
            seen_digit = True
        elif ch in ",G":
            if has_decimal or not seen_digit:
                msg = f"Group separator at position {i + 1} is misplaced in {pattern!r}"
                raise ValueError(msg)
            int_mask.append(",")
        elif ch in ".D":
            if has_decimal:
                raise ValueError(f"Only one decimal element allowed in {pattern!r}")
            has_decimal = True
        elif ch == "$":
            if currency:
                raise ValueError(f"Only one currency element allowed in {pattern!r}")
            currency = "trailing" if seen_digit else "leading"
        else:
            msg = f"Invalid number format element at position {i + 1} in {pattern!r}"
            raise ValueError(msg)
        i += 1

    if not seen_digit:
        raise ValueError(f"Number format {pattern!r} has no digit elements")
    if int_mask and int_mask[-1] == ",":
        raise ValueError(f"Group separator cannot end the integer part of {pattern!r}")

    return NumberPicture(
        pattern=pattern,
        fill=fill,
        int_mask="".join(int_mask),
        frac_mask="".join(frac_mask),
        has_decimal=has_decimal,
        sign=sign,
        currency=currency,
    )


def canonical_number(value: int | float | Decimal) -> str:
    """Trimmed decimal text: no exponent, no trailing zeros, no padding."""
    if isinstance(value, int):
        return str(value)
    number = value if isinstance(value, Decimal) else Decimal(repr(value))
    if not number.is_finite():
        return str(number)
    if number == 0:
        return "0"
    text = format(number, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
