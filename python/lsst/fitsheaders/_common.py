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
    "FITS_BLOCK_SIZE",
    "KEYWORD_LENGTH",
    "RECORD_LENGTH",
    "CorruptHeaderSequenceError",
    "FailureReason",
    "FitsHeaderError",
    "GrammarMismatchError",
    "HeaderParseError",
    "IncompleteHeaderError",
    "KeywordClassificationError",
)

import enum

FITS_BLOCK_SIZE = 2880
"""Size in bytes of a FITS block; headers and data segments are always padded
to a whole number of blocks.
"""

RECORD_LENGTH = 80
"""Size in bytes of a single header record (a "card")."""

KEYWORD_LENGTH = 8
"""Size in bytes of the keyword field at the start of every record."""


class FailureReason(enum.StrEnum):
    """Enumeration of the ways parsing a header can fail."""

    GRAMMAR_MISMATCH = enum.auto()
    """No record shape matched the bytes at the failure position."""

    KEYWORD_NOT_A_NUMBER = enum.auto()
    """An indexed keyword (e.g. ``NAXISn``) had a non-numeric suffix."""

    INCOMPLETE = enum.auto()
    """The input ended before a full record (or header) was available."""

    CORRUPT_HEADER_SEQUENCE = enum.auto()
    """A record other than a blank record followed the END record."""


class FitsHeaderError(RuntimeError):
    """Base class for errors raised when FITS headers cannot be decoded or
    interpreted.
    """


class HeaderParseError(FitsHeaderError):
    """Exception raised when the bytes of a header cannot be parsed.

    Parameters
    ----------
    message
        Human-readable description of the problem.
    position
        Byte offset of the problem.  This is relative to the start of the
        stream when raised by `HeaderAssembler`, and relative to the start of
        the record when raised directly by `parse_header_record`.
    """

    reason: FailureReason = FailureReason.GRAMMAR_MISMATCH
    """Machine-readable category of the failure."""

    def __init__(self, message: str, position: int):
        super().__init__(f"{message} (at byte {position})")
        self.position = position

    @property
    def fatal(self) -> bool:
        """Whether the failure indicates a stream that is corrupt beyond
        record-level mismatches.
        """
        return False


class GrammarMismatchError(HeaderParseError):
    """Exception raised when no record or value shape matches."""

    reason = FailureReason.GRAMMAR_MISMATCH


class KeywordClassificationError(HeaderParseError):
    """Exception raised when an indexed keyword's suffix is not an unsigned
    16-bit integer.
    """

    reason = FailureReason.KEYWORD_NOT_A_NUMBER


class IncompleteHeaderError(HeaderParseError):
    """Exception raised when the input ends in the middle of a record or
    header.

    This usually means more bytes should be read, unless the input is known
    to be exhausted, in which case the file is truncated.
    """

    reason = FailureReason.INCOMPLETE


class CorruptHeaderSequenceError(HeaderParseError):
    """Exception raised when a keyword, commentary, or second END record
    appears after the END record of a header.

    Block alignment and END placement are structural guarantees of the
    format, so this is never recoverable.
    """

    reason = FailureReason.CORRUPT_HEADER_SEQUENCE

    @property
    def fatal(self) -> bool:
        return True
