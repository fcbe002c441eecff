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

from __future__ import annotations

__all__ = (
    "BinForm",
    "BinTable",
    "BinType",
    "IncorrectExtensionError",
    "InvalidFormStringError",
    "PropertyNotDefinedError",
    "TableError",
    "UnexpectedValueError",
    "parse_tform",
)

import dataclasses
import enum
import re
from logging import getLogger

import numpy as np

from ._common import FitsHeaderError
from ._header import Header, KeywordNotPresentError, NotAnIntegerError, ValueRetrievalError
from ._keywords import IndexedKeywordFamily, Keyword, StandardKeyword
from ._values import CharacterString, Integer, Real, Value

_LOG = getLogger(__name__)

_TFORM_RE = re.compile(r"(?P<repeat>[0-9]+)?(?P<code>[A-Z])(?P<rest>[ -~]*)")
_TDIM_RE = re.compile(r"\(\s*([0-9]+(?:\s*,\s*[0-9]+)*)\s*\)")


class TableError(FitsHeaderError):
    """Base class for errors interpreting a binary table header."""


class IncorrectExtensionError(TableError):
    """Exception raised when a header does not describe a ``BINTABLE``
    extension.
    """


class PropertyNotDefinedError(TableError):
    """Exception raised when a keyword a binary table requires is missing or
    has the wrong type.

    The underlying `ValueRetrievalError` is chained as ``__cause__``.
    """

    def __init__(self, keyword: Keyword, cause: ValueRetrievalError):
        super().__init__(f"Binary table property {str(keyword)!r} is not defined: {cause}")
        self.keyword = keyword
        self.cause = cause


class UnexpectedValueError(TableError):
    """Exception raised when a binary table keyword has a value the format
    does not allow.
    """

    def __init__(self, keyword: Keyword, value: Value):
        super().__init__(f"Unexpected value {value} for binary table keyword {str(keyword)!r}.")
        self.keyword = keyword
        self.value = value


class InvalidFormStringError(TableError):
    """Exception raised when a ``TFORMn`` value cannot be parsed."""

    def __init__(self, keyword: Keyword, text: str):
        super().__init__(f"Invalid form string {text!r} for {str(keyword)!r}.")
        self.keyword = keyword
        self.text = text


class BinType(enum.StrEnum):
    """Type codes of binary table fields."""

    L = "L"
    """Logical."""

    X = "X"
    """Bit."""

    B = "B"
    """Unsigned byte."""

    I = "I"  # noqa: E741
    """16-bit integer."""

    J = "J"
    """32-bit integer."""

    K = "K"
    """64-bit integer."""

    A = "A"
    """Character."""

    E = "E"
    """32-bit float."""

    D = "D"
    """64-bit float."""

    C = "C"
    """Complex pair of 32-bit floats."""

    M = "M"
    """Complex pair of 64-bit floats."""

    P = "P"
    """32-bit array descriptor."""

    Q = "Q"
    """64-bit array descriptor."""

    @property
    def size(self) -> int:
        """Number of bytes per element."""
        return _BIN_TYPE_SIZES[self]

    def to_numpy(self, repeat: int) -> np.dtype:
        """Return the big-endian numpy dtype of a field with this type and a
        nonzero repeat count.
        """
        match self:
            case BinType.A:
                return np.dtype(f"S{repeat}")
            case BinType.X:
                return np.dtype(("u1", ((repeat + 7) // 8,)))
            case BinType.P | BinType.Q:
                base = np.dtype(_BIN_TYPE_FORMATS[self])
                return np.dtype((base, (2,))) if repeat == 1 else np.dtype((base, (repeat, 2)))
        base = np.dtype(_BIN_TYPE_FORMATS[self])
        return base if repeat == 1 else np.dtype((base, (repeat,)))


_BIN_TYPE_SIZES = {
    BinType.L: 1,
    BinType.X: 1,
    BinType.B: 1,
    BinType.I: 2,
    BinType.J: 4,
    BinType.K: 8,
    BinType.A: 1,
    BinType.E: 4,
    BinType.D: 8,
    BinType.C: 8,
    BinType.M: 16,
    BinType.P: 8,
    BinType.Q: 16,
}

_BIN_TYPE_FORMATS = {
    BinType.L: "S1",
    BinType.B: "u1",
    BinType.I: ">i2",
    BinType.J: ">i4",
    BinType.K: ">i8",
    BinType.E: ">f4",
    BinType.D: ">f8",
    BinType.C: ">c8",
    BinType.M: ">c16",
    BinType.P: ">i4",
    BinType.Q: ">i8",
}


@dataclasses.dataclass(frozen=True)
class BinForm:
    """A parsed ``TFORMn`` value: ``rTa``."""

    repeat: int
    """Number of elements in the field (``r``, default 1)."""

    bintype: BinType
    """Type code of each element (``T``)."""

    extra: str = ""
    """Trailing text (``a``), e.g. the element type and maximum length of a
    variable-length array descriptor.
    """

    @property
    def width(self) -> int:
        """Number of bytes the field occupies in a row.

        Bit fields are packed, so ``rX`` occupies ``ceil(r / 8)`` bytes.
        """
        if self.bintype is BinType.X:
            return (self.repeat + 7) // 8
        return self.repeat * self.bintype.size

    def __str__(self) -> str:
        return f"{self.repeat}{self.bintype.value}{self.extra}"


def parse_tform(text: str) -> BinForm:
    """Parse a ``TFORMn`` value.

    Parameters
    ----------
    text
        The form string, e.g. ``"16A"``, ``"1E"`` or ``"1PB(100)"``.

    Raises
    ------
    ValueError
        Raised if the string is not an optional repeat count followed by one
        of the known type codes.
    """
    if (m := _TFORM_RE.fullmatch(text)) is None:
        raise ValueError(f"Form string {text!r} is not of the form 'rTa'.")
    try:
        bintype = BinType(m.group("code"))
    except ValueError:
        raise ValueError(f"Unknown binary table type code {m.group('code')!r} in {text!r}.") from None
    repeat = int(m.group("repeat")) if m.group("repeat") is not None else 1
    return BinForm(repeat, bintype, m.group("rest"))


def _get_str(header: Header, keyword: Keyword) -> str:
    try:
        return header.str_value_of(keyword)
    except ValueRetrievalError as err:
        raise PropertyNotDefinedError(keyword, err) from err


def _get_value(header: Header, keyword: Keyword) -> Value:
    try:
        return header.value_of(keyword)
    except ValueRetrievalError as err:
        raise PropertyNotDefinedError(keyword, err) from err


def _get_uint(header: Header, keyword: Keyword) -> int:
    value = _get_value(header, keyword)
    match value:
        case Integer(value=n) if n >= 0:
            return n
        case Integer():
            raise UnexpectedValueError(keyword, value)
    err = NotAnIntegerError(keyword, value)
    raise PropertyNotDefinedError(keyword, err) from err


def _require(header: Header, keyword: Keyword, expected: int) -> None:
    value = _get_value(header, keyword)
    if value != Integer(expected):
        raise UnexpectedValueError(keyword, value)


def _optional_float(value: Value | None) -> float | None:
    match value:
        case Integer(value=n):
            return float(n)
        case Real(value=x):
            return x
    return None


def _optional_str(value: Value | None) -> str | None:
    match value:
        case CharacterString(text=text):
            return text
    return None


def _optional_int(value: Value | None) -> int | None:
    match value:
        case Integer(value=n):
            return n
    return None


def _parse_tdim(value: Value | None) -> tuple[int, ...] | None:
    """Decode a ``TDIMn`` value like ``'(2,3)'`` into a shape tuple in
    FITS (fastest-varying first) order.
    """
    match value:
        case CharacterString(text=text):
            if (m := _TDIM_RE.fullmatch(text.strip())) is not None:
                return tuple(int(n) for n in m.group(1).split(","))
            _LOG.warning("Ignoring malformed TDIM value %r.", text)
    return None


@dataclasses.dataclass(frozen=True)
class BinTable:
    """A validated description of a ``BINTABLE`` extension header."""

    row_width: int
    """Number of bytes in each row of the fixed-width table (``NAXIS1``)."""

    n_rows: int
    """Number of rows (``NAXIS2``)."""

    heap_size: int
    """Number of bytes that follow the fixed-width table (``PCOUNT``)."""

    forms: tuple[BinForm, ...]
    """Parsed ``TFORMn`` values, one per field."""

    names: tuple[str, ...] | None
    """``TTYPEn`` values, or `None` unless every field has one."""

    theap: int
    """Offset of the heap from the start of the data segment."""

    units: tuple[str | None, ...] = ()
    """``TUNITn`` values (`None` where absent)."""

    scales: tuple[float | None, ...] = ()
    """``TSCALn`` values (`None` where absent)."""

    zeros: tuple[float | None, ...] = ()
    """``TZEROn`` values (`None` where absent)."""

    nulls: tuple[int | None, ...] = ()
    """``TNULLn`` values (`None` where absent)."""

    dims: tuple[tuple[int, ...] | None, ...] = ()
    """``TDIMn`` values decoded to shapes (`None` where absent)."""

    displays: tuple[str | None, ...] = ()
    """``TDISPn`` format strings, undecoded (`None` where absent)."""

    @classmethod
    def from_header(cls, header: Header) -> BinTable:
        """Validate and decode a binary table extension header.

        Parameters
        ----------
        header
            A complete extension header.

        Raises
        ------
        IncorrectExtensionError
            Raised if ``XTENSION`` is not ``BINTABLE``.
        UnexpectedValueError
            Raised if ``BITPIX`` is not 8, ``NAXIS`` is not 2, ``GCOUNT`` is
            not 1, or a size keyword is negative.
        PropertyNotDefinedError
            Raised if a required keyword is missing or has the wrong type.
        InvalidFormStringError
            Raised if a ``TFORMn`` value cannot be parsed.
        """
        xtension = _get_str(header, StandardKeyword.XTENSION)
        if xtension != "BINTABLE":
            raise IncorrectExtensionError(f"Extension type is {xtension!r}, not 'BINTABLE'.")
        _require(header, StandardKeyword.BITPIX, 8)
        _require(header, StandardKeyword.NAXIS, 2)
        _require(header, StandardKeyword.GCOUNT, 1)
        row_width = _get_uint(header, IndexedKeywordFamily.NAXIS.with_index(1))
        n_rows = _get_uint(header, IndexedKeywordFamily.NAXIS.with_index(2))
        heap_size = _get_uint(header, StandardKeyword.PCOUNT)
        tfields = _get_uint(header, StandardKeyword.TFIELDS)
        indices = range(1, tfields + 1)

        forms: list[BinForm] = []
        for n in indices:
            tformn = IndexedKeywordFamily.TFORM.with_index(n)
            text = _get_str(header, tformn)
            try:
                forms.append(parse_tform(text))
            except ValueError:
                raise InvalidFormStringError(tformn, text) from None

        def optional(family: IndexedKeywordFamily) -> list[Value | None]:
            return [header.get(family.with_index(n)) for n in indices]

        names = [_optional_str(v) for v in optional(IndexedKeywordFamily.TTYPE)]
        try:
            theap = _get_uint(header, StandardKeyword.THEAP)
        except PropertyNotDefinedError as err:
            if not isinstance(err.cause, KeywordNotPresentError):
                raise
            theap = 0 if heap_size == 0 else row_width * n_rows
        table = cls(
            row_width=row_width,
            n_rows=n_rows,
            heap_size=heap_size,
            forms=tuple(forms),
            names=tuple(names) if all(name is not None for name in names) else None,  # type: ignore[arg-type]
            theap=theap,
            units=tuple(_optional_str(v) for v in optional(IndexedKeywordFamily.TUNIT)),
            scales=tuple(_optional_float(v) for v in optional(IndexedKeywordFamily.TSCAL)),
            zeros=tuple(_optional_float(v) for v in optional(IndexedKeywordFamily.TZERO)),
            nulls=tuple(_optional_int(v) for v in optional(IndexedKeywordFamily.TNULL)),
            dims=tuple(_parse_tdim(v) for v in optional(IndexedKeywordFamily.TDIM)),
            displays=tuple(_optional_str(v) for v in optional(IndexedKeywordFamily.TDISP)),
        )
        if table.fields_width != row_width:
            _LOG.warning(
                "Binary table fields occupy %d bytes but NAXIS1 is %d.", table.fields_width, row_width
            )
        return table

    @property
    def n_fields(self) -> int:
        """Number of fields (``TFIELDS``)."""
        return len(self.forms)

    @property
    def fields_width(self) -> int:
        """Total number of bytes occupied by all fields in a row."""
        return sum(form.width for form in self.forms)

    @property
    def table_size(self) -> int:
        """Number of bytes in the fixed-width table."""
        return self.row_width * self.n_rows

    def field_names(self) -> list[str]:
        """Return the ``TTYPEn`` names, or ``colN`` names if any are
        missing.
        """
        if self.names is not None:
            return list(self.names)
        return [f"col{n}" for n in range(1, self.n_fields + 1)]

    @property
    def dtype(self) -> np.dtype:
        """A numpy structured dtype describing one row of the fixed-width
        table.

        Fields with a repeat count of zero occupy no bytes and are omitted.
        Variable-length array fields appear as their ``(count, offset)``
        descriptors.  A field whose name is empty or repeats an earlier
        field's name is given its ``colN`` name instead.

        Raises
        ------
        UnexpectedValueError
            Raised if the fields do not fit in ``NAXIS1`` bytes, or if a
            ``TTYPEn`` value cannot be made unique.
        """
        if self.fields_width > self.row_width:
            raise UnexpectedValueError(IndexedKeywordFamily.NAXIS.with_index(1), Integer(self.row_width))
        names: list[str] = []
        formats: list[np.dtype] = []
        offsets: list[int] = []
        offset = 0
        for n, (name, form) in enumerate(zip(self.field_names(), self.forms, strict=True), start=1):
            if form.repeat > 0:
                if not name or name in names:
                    ttypen = IndexedKeywordFamily.TTYPE.with_index(n)
                    if f"col{n}" in names:
                        raise UnexpectedValueError(ttypen, CharacterString(name))
                    _LOG.warning("Renaming field %d (%s = %r) to col%d in the row dtype.", n, ttypen, name, n)
                    name = f"col{n}"
                names.append(name)
                formats.append(form.bintype.to_numpy(form.repeat))
                offsets.append(offset)
            offset += form.width
        return np.dtype({"names": names, "formats": formats, "offsets": offsets, "itemsize": self.row_width})
