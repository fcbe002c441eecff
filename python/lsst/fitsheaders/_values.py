# This file is part of lsst-fitsheaders.
#
# Developed for the LSST Data Management System.
# This product includes software developed by the LSST Project
# (https://www.lsst.org).
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

"""Typed values of keyword records and the grammar that decodes them."""

from __future__ import annotations

__all__ = (
    "UNDEFINED",
    "CharacterString",
    "Complex",
    "ComplexInteger",
    "Integer",
    "Logical",
    "Real",
    "Undefined",
    "Value",
    "ValueKind",
    "parse_value",
)

import dataclasses
import enum
import re
from collections.abc import Callable
from typing import ClassVar

from ._common import GrammarMismatchError

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class ValueKind(enum.StrEnum):
    """Enumeration of the value variants a keyword record can hold."""

    CHARACTER_STRING = enum.auto()
    LOGICAL = enum.auto()
    INTEGER = enum.auto()
    REAL = enum.auto()
    COMPLEX_INTEGER = enum.auto()
    COMPLEX = enum.auto()
    UNDEFINED = enum.auto()


def _format_real(x: float) -> str:
    # FITS requires an upper-case exponent letter and a decimal point.
    s = repr(float(x)).upper()
    if "." not in s and s.lstrip("+-")[:1].isdigit():
        mantissa, sep, exponent = s.partition("E")
        s = f"{mantissa}.0{sep}{exponent}"
    return s


@dataclasses.dataclass(frozen=True, slots=True)
class CharacterString:
    """A string value, delimited by single quotes in a header."""

    text: str
    """The string, with trailing spaces removed and leading spaces kept."""

    kind: ClassVar[ValueKind] = ValueKind.CHARACTER_STRING

    def to_python(self) -> str:
        return self.text

    def __str__(self) -> str:
        escaped = self.text.replace("'", "''")
        return f"'{escaped}'"


@dataclasses.dataclass(frozen=True, slots=True)
class Logical:
    """A logical constant, ``T`` or ``F`` in a header."""

    value: bool

    kind: ClassVar[ValueKind] = ValueKind.LOGICAL

    def to_python(self) -> bool:
        return self.value

    def __str__(self) -> str:
        return "T" if self.value else "F"


@dataclasses.dataclass(frozen=True, slots=True)
class Integer:
    """An optionally signed decimal integer that fits in 64 bits."""

    value: int

    kind: ClassVar[ValueKind] = ValueKind.INTEGER

    def to_python(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclasses.dataclass(frozen=True, slots=True)
class Real:
    """A fixed or exponential-format floating point number."""

    value: float

    kind: ClassVar[ValueKind] = ValueKind.REAL

    def to_python(self) -> float:
        return self.value

    def __str__(self) -> str:
        return _format_real(self.value)


@dataclasses.dataclass(frozen=True, slots=True)
class ComplexInteger:
    """A complex number with integer real and imaginary parts."""

    real: int
    imag: int

    kind: ClassVar[ValueKind] = ValueKind.COMPLEX_INTEGER

    def to_python(self) -> tuple[int, int]:
        return (self.real, self.imag)

    def __str__(self) -> str:
        return f"({self.real}, {self.imag})"


@dataclasses.dataclass(frozen=True, slots=True)
class Complex:
    """A complex number with floating point real and imaginary parts."""

    real: float
    imag: float

    kind: ClassVar[ValueKind] = ValueKind.COMPLEX

    def to_python(self) -> complex:
        return complex(self.real, self.imag)

    def __str__(self) -> str:
        return f"({_format_real(self.real)}, {_format_real(self.imag)})"


@dataclasses.dataclass(frozen=True, slots=True)
class Undefined:
    """The value of a keyword record whose value field is empty.

    All instances compare equal; use the `UNDEFINED` constant.
    """

    kind: ClassVar[ValueKind] = ValueKind.UNDEFINED

    def to_python(self) -> None:
        return None

    def __str__(self) -> str:
        return ""


UNDEFINED = Undefined()

type Value = CharacterString | Logical | Integer | Real | ComplexInteger | Complex | Undefined


# Quote characters are excluded from string text except as a doubled ''
# escape.
_STRING_RE = re.compile(rb"'((?:[ -&(-~]|'')*)'")
_LOGICAL_RE = re.compile(rb"[TF]")
# The lookahead keeps "3." and "3E5" from being consumed as integers; the
# digit class stops the match from backtracking to a shorter prefix.
_INTEGER_RE = re.compile(rb"[+-]?[0-9]+(?![0-9.ED])")
_REAL_RE = re.compile(rb"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[ED][+-]?[0-9]+)?")
_SPACE_RE = re.compile(rb"[ \t\r\n]*")


def _integer(data: bytes, pos: int) -> tuple[int, int] | None:
    if (m := _INTEGER_RE.match(data, pos)) is None:
        return None
    n = int(m.group())
    if not (_INT64_MIN <= n <= _INT64_MAX):
        return None
    return n, m.end()


def _real(data: bytes, pos: int) -> tuple[float, int] | None:
    if (m := _REAL_RE.match(data, pos)) is None:
        return None
    return float(m.group().replace(b"D", b"E")), m.end()


def _pair[T](
    component: Callable[[bytes, int], tuple[T, int] | None], data: bytes, pos: int
) -> tuple[T, T, int] | None:
    """Parse ``( first , second )`` with optional whitespace around each
    component.
    """
    if data[pos : pos + 1] != b"(":
        return None
    pos = _SPACE_RE.match(data, pos + 1).end()
    if (first := component(data, pos)) is None:
        return None
    real, pos = first
    pos = _SPACE_RE.match(data, pos).end()
    if data[pos : pos + 1] != b",":
        return None
    pos = _SPACE_RE.match(data, pos + 1).end()
    if (second := component(data, pos)) is None:
        return None
    imag, pos = second
    pos = _SPACE_RE.match(data, pos).end()
    if data[pos : pos + 1] != b")":
        return None
    return real, imag, pos + 1


def _character_string_value(data: bytes, pos: int) -> tuple[Value, int] | None:
    if (m := _STRING_RE.match(data, pos)) is None:
        return None
    text = m.group(1).replace(b"''", b"'").decode("ascii").rstrip(" ")
    return CharacterString(text), m.end()


def _logical_value(data: bytes, pos: int) -> tuple[Value, int] | None:
    if (m := _LOGICAL_RE.match(data, pos)) is None:
        return None
    return Logical(m.group() == b"T"), m.end()


def _integer_value(data: bytes, pos: int) -> tuple[Value, int] | None:
    if (result := _integer(data, pos)) is None:
        return None
    n, end = result
    return Integer(n), end


def _real_value(data: bytes, pos: int) -> tuple[Value, int] | None:
    if (result := _real(data, pos)) is None:
        return None
    x, end = result
    return Real(x), end


def _complex_integer_value(data: bytes, pos: int) -> tuple[Value, int] | None:
    if (result := _pair(_integer, data, pos)) is None:
        return None
    real, imag, end = result
    return ComplexInteger(real, imag), end


def _complex_value(data: bytes, pos: int) -> tuple[Value, int] | None:
    if (result := _pair(_real, data, pos)) is None:
        return None
    real, imag, end = result
    return Complex(real, imag), end


_VALUE_ALTERNATIVES: tuple[Callable[[bytes, int], tuple[Value, int] | None], ...] = (
    _character_string_value,
    _logical_value,
    _integer_value,
    _real_value,
    _complex_integer_value,
    _complex_value,
)


def parse_value(data: bytes, pos: int = 0) -> tuple[Value, int]:
    """Parse a typed value from the start of a value field.

    Parameters
    ----------
    data
        Bytes that hold the value field.
    pos
        Offset into ``data`` where the value starts (after the ``= ``
        indicator and any whitespace).

    Returns
    -------
    value
        The decoded value.
    end
        Offset just past the last byte consumed.

    Raises
    ------
    GrammarMismatchError
        Raised if no value variant matches at ``pos``.

    Notes
    -----
    Variants are tried in a fixed order (character string, logical, integer,
    real, complex integer, complex) and the first match wins, so ``1`` is an
    `Integer`, ``1.0`` is a `Real`, and ``(1, 2)`` is a `ComplexInteger`.
    A ``D`` exponent is read as if it were ``E``.
    """
    for alternative in _VALUE_ALTERNATIVES:
        if (result := alternative(data, pos)) is not None:
            return result
    raise GrammarMismatchError(f"No value could be parsed from {bytes(data[pos:])!r}", pos)
