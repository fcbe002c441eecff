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
    "AssemblerState",
    "Complete",
    "Continue",
    "HeaderAssembler",
    "ParseFailure",
    "ParseOutcome",
    "parse_header",
)

import dataclasses
import enum
from collections.abc import Buffer
from logging import getLogger
from typing import NoReturn

from ._common import (
    FITS_BLOCK_SIZE,
    RECORD_LENGTH,
    CorruptHeaderSequenceError,
    FailureReason,
    HeaderParseError,
    IncompleteHeaderError,
)
from ._grammar import parse_header_record
from ._header import Header
from ._records import BlankRecord, EndRecord, HeaderRecord

_LOG = getLogger(__name__)


class AssemblerState(enum.StrEnum):
    """States of a `HeaderAssembler`."""

    ACCUMULATING = enum.auto()
    """No END record has been seen yet."""

    TRAILING = enum.auto()
    """The END record has been seen; only blank padding may follow."""

    COMPLETE = enum.auto()
    """The header ended on a block boundary; no more input is accepted."""


@dataclasses.dataclass(frozen=True)
class Continue:
    """Outcome indicating that more records are needed."""

    remainder: memoryview
    """The input that follows the consumed records; feed this (followed by
    any newly available bytes) next.
    """


@dataclasses.dataclass(frozen=True)
class Complete:
    """Outcome indicating that the header is complete."""

    remainder: memoryview
    """The input that follows the header."""


@dataclasses.dataclass(frozen=True)
class ParseFailure:
    """Outcome indicating that the input could not be parsed."""

    error: HeaderParseError
    """Exception describing the failure."""

    remainder: memoryview
    """The input, starting at the record that failed to parse."""

    @property
    def position(self) -> int:
        """Byte offset of the failure in the stream."""
        return self.error.position

    @property
    def reason(self) -> FailureReason:
        """Category of the failure."""
        return self.error.reason

    @property
    def fatal(self) -> bool:
        """Whether the stream is corrupt beyond record-level mismatches."""
        return self.error.fatal

    def raise_error(self) -> NoReturn:
        """Raise the wrapped exception."""
        raise self.error


type ParseOutcome = Continue | Complete | ParseFailure


class HeaderAssembler:
    """A state machine that assembles a `Header` from records parsed one at
    a time.

    Parameters
    ----------
    start
        Byte offset of the header's first record in the stream.

    Notes
    -----
    Input may be supplied in fragments of any size: after each call, pass the
    returned remainder (with any newly read bytes appended) to the next call.
    Only bytes that have not yet been consumed need to be held.

    If parsing fails, the records parsed so far can still be inspected via
    `records`.

    An assembler is not safe for concurrent use; independent assemblers may
    run in parallel on disjoint byte ranges.
    """

    def __init__(self, start: int = 0):
        self._start = start
        self._records: list[HeaderRecord] = []
        self._consumed = 0
        self._state = AssemblerState.ACCUMULATING

    @property
    def start(self) -> int:
        """Byte offset of the header in the stream."""
        return self._start

    @property
    def state(self) -> AssemblerState:
        """Current state."""
        return self._state

    @property
    def consumed(self) -> int:
        """Number of bytes consumed so far; always a multiple of 80."""
        return self._consumed

    @property
    def records(self) -> tuple[HeaderRecord, ...]:
        """Records parsed so far."""
        return tuple(self._records)

    @property
    def position(self) -> int:
        """Byte offset in the stream of the next record to be parsed."""
        return self._start + self._consumed

    def parse_record(self, data: Buffer) -> ParseOutcome:
        """Parse exactly one record from the start of ``data``.

        Parameters
        ----------
        data
            Unconsumed input, starting at `position`.

        Returns
        -------
        ParseOutcome
            `Continue` or `Complete` with the bytes after the record, or a
            `ParseFailure`.  A failure with reason
            `FailureReason.INCOMPLETE` means fewer than 80 bytes were given.
        """
        if self._state is AssemblerState.COMPLETE:
            raise RuntimeError("Header is already complete; no more records can be parsed.")
        view = memoryview(data).cast("B")
        if len(view) < RECORD_LENGTH:
            return ParseFailure(
                IncompleteHeaderError(
                    f"Need {RECORD_LENGTH} bytes for the next record; only {len(view)} available",
                    self.position,
                ),
                view,
            )
        try:
            record = parse_header_record(view[:RECORD_LENGTH], self.position)
        except HeaderParseError as err:
            return ParseFailure(err, view)
        match (self._state, record):
            case (AssemblerState.ACCUMULATING, EndRecord()):
                self._state = AssemblerState.TRAILING
            case (AssemblerState.TRAILING, BlankRecord()):
                pass
            case (AssemblerState.TRAILING, _):
                return ParseFailure(
                    CorruptHeaderSequenceError(
                        f"Record {str(record)!r} follows the END record", self.position
                    ),
                    view,
                )
        self._consumed += RECORD_LENGTH
        self._records.append(record)
        remainder = view[RECORD_LENGTH:]
        if self._state is AssemblerState.TRAILING and self._consumed % FITS_BLOCK_SIZE == 0:
            self._state = AssemblerState.COMPLETE
            _LOG.debug("Completed header at offset %d with %d records.", self._start, len(self._records))
            return Complete(remainder)
        return Continue(remainder)

    def feed(self, data: Buffer) -> ParseOutcome:
        """Parse as many records as possible from ``data``.

        Returns
        -------
        ParseOutcome
            `Complete` as soon as the header ends, `Continue` with the
            trailing partial record (fewer than 80 bytes) when the input runs
            out first, or a `ParseFailure` for malformed input.
        """
        outcome: ParseOutcome = Continue(memoryview(data).cast("B"))
        while True:
            match self.parse_record(outcome.remainder):
                case ParseFailure(error=IncompleteHeaderError(), remainder=remainder):
                    return Continue(remainder)
                case Continue() as outcome:
                    pass
                case other:
                    return other

    def to_header(self) -> Header:
        """Freeze the parsed records into a `Header`.

        Raises
        ------
        IncompleteHeaderError
            Raised if the header is not complete.
        """
        if self._state is not AssemblerState.COMPLETE:
            raise IncompleteHeaderError(
                f"Header starting at {self._start} is not complete ({self._state})", self.position
            )
        return Header(self._records, self._start, self._consumed)


def parse_header(data: Buffer, start: int = 0) -> tuple[Header, memoryview]:
    """Parse a complete header from the start of a buffer.

    Parameters
    ----------
    data
        Input holding at least one whole header.
    start
        Byte offset of ``data`` in the enclosing stream.

    Returns
    -------
    header
        The parsed header.
    remainder
        The bytes that follow the header.

    Raises
    ------
    HeaderParseError
        Raised if the header is malformed, or `IncompleteHeaderError` if the
        buffer ends before the header does.
    """
    assembler = HeaderAssembler(start)
    match assembler.feed(data):
        case Complete(remainder=remainder):
            return assembler.to_header(), remainder
        case ParseFailure() as failure:
            failure.raise_error()
    raise IncompleteHeaderError(f"Input ended before the header starting at {start} did", assembler.position)
