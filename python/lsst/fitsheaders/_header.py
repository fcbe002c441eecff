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
    "Header",
    "KeywordNotPresentError",
    "NotALogicalError",
    "NotAStringError",
    "NotAnIntegerError",
    "ValueRetrievalError",
)

import math
from collections.abc import Iterable, Iterator
from typing import final, overload

import astropy.io.fits

from ._common import FITS_BLOCK_SIZE, RECORD_LENGTH
from ._keywords import IndexedKeywordFamily, Keyword, StandardKeyword, classify_keyword
from ._records import BlankRecord, CommentaryRecord, EndRecord, HeaderRecord, KeywordRecord
from ._values import CharacterString, Integer, Logical, Undefined, Value
from .utils import least_multiple_at_least


class ValueRetrievalError(LookupError):
    """Base class for errors looking up keyword values in a `Header`.

    Parameters
    ----------
    keyword
        The keyword that was looked up.
    message
        Description of the problem.
    """

    def __init__(self, keyword: Keyword, message: str):
        super().__init__(message)
        self.keyword = keyword


class KeywordNotPresentError(ValueRetrievalError):
    """Exception raised when a keyword has no keyword record in a header."""

    def __init__(self, keyword: Keyword):
        super().__init__(keyword, f"Keyword {str(keyword)!r} is not present in the header.")


class NotAnIntegerError(ValueRetrievalError):
    """Exception raised when a keyword's value is not an `Integer`."""

    def __init__(self, keyword: Keyword, value: Value):
        super().__init__(keyword, f"Value {value!r} of keyword {str(keyword)!r} is not an integer.")
        self.value = value


class NotAStringError(ValueRetrievalError):
    """Exception raised when a keyword's value is not a `CharacterString`."""

    def __init__(self, keyword: Keyword, value: Value):
        super().__init__(keyword, f"Value {value!r} of keyword {str(keyword)!r} is not a string.")
        self.value = value


class NotALogicalError(ValueRetrievalError):
    """Exception raised when a keyword's value is not a `Logical`."""

    def __init__(self, keyword: Keyword, value: Value):
        super().__init__(keyword, f"Value {value!r} of keyword {str(keyword)!r} is not a logical.")
        self.value = value


def _as_keyword(keyword: Keyword | str) -> Keyword:
    return classify_keyword(keyword) if type(keyword) is str else keyword  # type: ignore[return-value]


@final
class Header:
    """A complete, immutable FITS header.

    Parameters
    ----------
    records
        All records of the header, including the END record and the blank
        records that pad it to a whole number of blocks.
    start
        Byte offset of the header in the stream it was read from.
    length
        Number of bytes the header occupies.  Must equal
        ``len(records) * 80`` and be a positive multiple of 2880.

    Notes
    -----
    Headers are usually built by `HeaderAssembler` rather than constructed
    directly.  Lookups scan keyword records in order and return the first
    match.
    """

    def __init__(self, records: Iterable[HeaderRecord], start: int, length: int):
        self._records = tuple(records)
        self._start = int(start)
        self._length = int(length)
        if self._length != len(self._records) * RECORD_LENGTH:
            raise ValueError(
                f"Header length {self._length} does not match {len(self._records)} records."
            )
        if self._length <= 0 or self._length % FITS_BLOCK_SIZE != 0:
            raise ValueError(f"Header length {self._length} is not a positive multiple of {FITS_BLOCK_SIZE}.")
        ended = False
        for n, record in enumerate(self._records):
            if ended and type(record) is not BlankRecord:
                raise ValueError(f"Record {n} ({record}) follows the END record.")
            if type(record) is EndRecord:
                ended = True

    __slots__ = ("_records", "_start", "_length")

    @property
    def records(self) -> tuple[HeaderRecord, ...]:
        """All records, in order."""
        return self._records

    @property
    def start(self) -> int:
        """Byte offset of the first record in the stream."""
        return self._start

    @property
    def length(self) -> int:
        """Number of bytes occupied by the header."""
        return self._length

    @property
    def end_offset(self) -> int:
        """Byte offset just past the header, where its data array starts."""
        return self._start + self._length

    def __iter__(self) -> Iterator[HeaderRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if type(other) is Header:
            return (
                self._start == other._start
                and self._length == other._length
                and self._records == other._records
            )
        return False

    def __repr__(self) -> str:
        return f"Header(<{len(self._records)} records>, start={self._start}, length={self._length})"

    def __str__(self) -> str:
        return "\n".join(str(record) for record in self._records if record != BlankRecord())

    def keyword_records(self) -> Iterator[KeywordRecord]:
        """Iterate over the records that assign values to keywords."""
        for record in self._records:
            if type(record) is KeywordRecord:
                yield record

    def commentary(self, keyword: StandardKeyword = StandardKeyword.COMMENT) -> list[str]:
        """Return the text of all ``COMMENT`` (or ``HISTORY``) records."""
        return [
            record.text or ""
            for record in self._records
            if type(record) is CommentaryRecord and record.keyword is keyword
        ]

    def __contains__(self, keyword: Keyword | str) -> bool:
        keyword = _as_keyword(keyword)
        return any(record.keyword == keyword for record in self.keyword_records())

    def value_of(self, keyword: Keyword | str) -> Value:
        """Return the value of the first keyword record for a keyword.

        Parameters
        ----------
        keyword
            Keyword to look up; strings are classified with
            `classify_keyword`.

        Raises
        ------
        KeywordNotPresentError
            Raised if there is no keyword record for this keyword.
        """
        keyword = _as_keyword(keyword)
        for record in self.keyword_records():
            if record.keyword == keyword:
                return record.value
        raise KeywordNotPresentError(keyword)

    @overload
    def get(self, keyword: Keyword | str) -> Value | None: ...

    @overload
    def get[T](self, keyword: Keyword | str, default: T) -> Value | T: ...

    def get(self, keyword: Keyword | str, default: object = None) -> object:
        """Return the value of a keyword, or ``default`` if it is absent."""
        try:
            return self.value_of(keyword)
        except KeywordNotPresentError:
            return default

    def integer_value_of(self, keyword: Keyword | str) -> int:
        """Return the value of a keyword that must hold an `Integer`.

        Raises
        ------
        KeywordNotPresentError
            Raised if there is no keyword record for this keyword.
        NotAnIntegerError
            Raised if the value is not an `Integer`.
        """
        keyword = _as_keyword(keyword)
        match self.value_of(keyword):
            case Integer(value=n):
                return n
            case other:
                raise NotAnIntegerError(keyword, other)

    def str_value_of(self, keyword: Keyword | str) -> str:
        """Return the value of a keyword that must hold a `CharacterString`.

        Raises
        ------
        KeywordNotPresentError
            Raised if there is no keyword record for this keyword.
        NotAStringError
            Raised if the value is not a `CharacterString`.
        """
        keyword = _as_keyword(keyword)
        match self.value_of(keyword):
            case CharacterString(text=text):
                return text
            case other:
                raise NotAStringError(keyword, other)

    def logical_value_of(self, keyword: Keyword | str) -> bool:
        """Return the value of a keyword that must hold a `Logical`.

        Raises
        ------
        KeywordNotPresentError
            Raised if there is no keyword record for this keyword.
        NotALogicalError
            Raised if the value is not a `Logical`.
        """
        keyword = _as_keyword(keyword)
        match self.value_of(keyword):
            case Logical(value=flag):
                return flag
            case other:
                raise NotALogicalError(keyword, other)

    def _integer_or(self, keyword: Keyword, default: int) -> int:
        try:
            return self.integer_value_of(keyword)
        except KeywordNotPresentError:
            return default

    @property
    def is_primary(self) -> bool:
        """Whether this is a primary header (it has a ``SIMPLE`` keyword)."""
        return StandardKeyword.SIMPLE in self

    @property
    def is_random_groups(self) -> bool:
        """Whether this is a primary header using the random-groups
        convention (``GROUPS = T`` and ``NAXIS1 = 0``).
        """
        if not self.is_primary:
            return False
        match self.get(StandardKeyword.GROUPS):
            case Logical(value=True):
                return self._integer_or(IndexedKeywordFamily.NAXIS.with_index(1), -1) == 0
        return False

    def _naxis_product(self, first: int = 1) -> int:
        naxis = self._integer_or(StandardKeyword.NAXIS, 0)
        if naxis <= 0:
            return 0
        return math.prod(
            self.integer_value_of(IndexedKeywordFamily.NAXIS.with_index(n)) for n in range(first, naxis + 1)
        )

    def _logical_data_array_bits(self) -> int:
        bitpix = abs(self._integer_or(StandardKeyword.BITPIX, 0))
        if self.is_primary and not self.is_random_groups:
            return bitpix * self._naxis_product()
        if self.is_random_groups:
            naxes = self._naxis_product(first=2)
        else:
            naxes = self._naxis_product()
        gcount = self._integer_or(StandardKeyword.GCOUNT, 1)
        pcount = self._integer_or(StandardKeyword.PCOUNT, 0)
        return bitpix * gcount * (pcount + naxes)

    def data_array_bits(self) -> int:
        """Return the size in bits of the data segment that follows this
        header, rounded up to a whole number of blocks.

        Raises
        ------
        KeywordNotPresentError
            Raised if ``NAXIS`` is positive but one of the ``NAXISn`` keywords
            it implies is missing.
        ValueRetrievalError
            Raised if a size keyword is present with a non-integer value.
        ValueError
            Raised if the size keywords describe a negative size.

        Notes
        -----
        For a primary header the size is ``|BITPIX| * NAXIS1 * ... * NAXISn``
        (zero when ``NAXIS`` is zero or absent).  For an extension it is
        ``|BITPIX| * GCOUNT * (PCOUNT + NAXIS1 * ... * NAXISn)`` with
        ``GCOUNT`` defaulting to one and ``PCOUNT`` to zero.  A missing
        ``BITPIX`` is treated as zero.
        """
        bits = self._logical_data_array_bits()
        if bits < 0:
            raise ValueError(f"Header keywords describe a data array with negative size ({bits} bits).")
        return least_multiple_at_least(bits, FITS_BLOCK_SIZE * 8)

    def data_array_bytes(self) -> int:
        """Return the size in bytes of the block-padded data segment."""
        return self.data_array_bits() // 8

    def next_header_offset(self) -> int:
        """Return the byte offset where the next header in the stream may
        start.

        There may or may not actually be a header at this position.
        """
        return self.end_offset + self.data_array_bytes()

    def data_array_boundaries(self) -> tuple[int, int]:
        """Return the ``(start, stop)`` byte offsets of the data segment."""
        return (self.end_offset, self.next_header_offset())

    def to_astropy(self) -> astropy.io.fits.Header:
        """Convert to an `astropy.io.fits.Header`.

        Blank padding records and the END record are dropped; complex integer
        values become Python `complex` numbers.
        """
        result = astropy.io.fits.Header()
        for record in self._records:
            match record:
                case KeywordRecord(keyword=keyword, value=value, comment=comment):
                    match value:
                        case Undefined():
                            python_value = astropy.io.fits.card.UNDEFINED
                        case _:
                            python_value = value.to_python()
                            if isinstance(python_value, tuple):
                                python_value = complex(*python_value)
                    result.append((str(keyword), python_value, comment or ""), end=True)
                case CommentaryRecord(keyword=StandardKeyword.COMMENT, text=text):
                    result.add_comment(text or "")
                case CommentaryRecord(keyword=StandardKeyword.HISTORY, text=text):
                    result.add_history(text or "")
                case BlankRecord(comment=comment) if comment is not None:
                    result.add_blank(comment)
        return result
