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

"""Grammar for single 80-byte header records.

Each record shape is a function that either returns a record built from
exactly `RECORD_LENGTH` bytes (trailing space padding included) or raises
`GrammarMismatchError`.  Shapes are tried in a fixed order and the first one
that consumes the whole record wins; a shape that matches only a prefix of
the record is a mismatch.
"""

from __future__ import annotations

__all__ = ("parse_header_record",)

import re
from collections.abc import Callable

from ._common import KEYWORD_LENGTH, RECORD_LENGTH, GrammarMismatchError
from ._keywords import StandardKeyword, classify_keyword
from ._records import BlankRecord, CommentaryRecord, EndRecord, HeaderRecord, KeywordRecord
from ._values import UNDEFINED, parse_value
from .utils import is_printable_ascii

_VALUE_INDICATOR = b"= "
_BLANK_FIELD = b" " * KEYWORD_LENGTH
_END_FIELD = b"END     "
_COMMENTARY_FIELDS = {
    b"COMMENT ": StandardKeyword.COMMENT,
    b"HISTORY ": StandardKeyword.HISTORY,
}

_SPACE_RE = re.compile(rb"[ \t\r\n]*")
_PADDING_RE = re.compile(rb" *")
_TEXT_RE = re.compile(rb"[ -~]*")
_COMMENT_RE = re.compile(rb"/[ \t\r\n]*([ -~]*)")


def _finish(line: bytes, pos: int) -> None:
    """Consume trailing padding and require the end of the record."""
    pos = _PADDING_RE.match(line, pos).end()
    if pos != RECORD_LENGTH:
        raise GrammarMismatchError(f"Unexpected trailing bytes {line[pos:]!r}", pos)


def _comment(line: bytes, pos: int) -> tuple[str | None, int]:
    """Parse an optional ``/``-introduced comment."""
    if (m := _COMMENT_RE.match(line, pos)) is None:
        return None, pos
    return m.group(1).decode("ascii").rstrip(), m.end()


def _commentary_record(line: bytes, offset: int) -> HeaderRecord:
    if (keyword := _COMMENTARY_FIELDS.get(line[:KEYWORD_LENGTH])) is None:
        raise GrammarMismatchError("Not a COMMENT or HISTORY record", 0)
    m = _TEXT_RE.match(line, KEYWORD_LENGTH)
    _finish(line, m.end())
    text = m.group().decode("ascii").rstrip()
    return CommentaryRecord(keyword, text or None)


def _value_record(line: bytes, offset: int) -> HeaderRecord:
    if line[KEYWORD_LENGTH : KEYWORD_LENGTH + 2] != _VALUE_INDICATOR:
        raise GrammarMismatchError("No value indicator", KEYWORD_LENGTH)
    field = line[:KEYWORD_LENGTH]
    if not is_printable_ascii(field):
        raise GrammarMismatchError(f"Keyword field {field!r} is not printable ASCII", 0)
    keyword = classify_keyword(field, position=offset)
    pos = _SPACE_RE.match(line, KEYWORD_LENGTH + 2).end()
    try:
        value, pos = parse_value(line, pos)
    except GrammarMismatchError:
        value = UNDEFINED
    pos = _SPACE_RE.match(line, pos).end()
    comment, pos = _comment(line, pos)
    _finish(line, pos)
    return KeywordRecord(keyword, value, comment)


def _end_record(line: bytes, offset: int) -> HeaderRecord:
    if line[:KEYWORD_LENGTH] != _END_FIELD:
        raise GrammarMismatchError("Not an END record", 0)
    _finish(line, KEYWORD_LENGTH)
    return EndRecord()


def _blank_record(line: bytes, offset: int) -> HeaderRecord:
    if line[:KEYWORD_LENGTH] != _BLANK_FIELD:
        raise GrammarMismatchError("Keyword field is not blank", 0)
    pos = _SPACE_RE.match(line, KEYWORD_LENGTH).end()
    comment, pos = _comment(line, pos)
    _finish(line, pos)
    return BlankRecord(comment)


_RECORD_SHAPES: tuple[Callable[[bytes, int], HeaderRecord], ...] = (
    _commentary_record,
    _value_record,
    _end_record,
    _blank_record,
)


def parse_header_record(line: bytes, offset: int = 0) -> HeaderRecord:
    """Parse a single header record.

    Parameters
    ----------
    line
        Exactly `RECORD_LENGTH` bytes.
    offset
        Position of ``line`` in the enclosing stream; added to the positions
        reported by exceptions.

    Returns
    -------
    HeaderRecord
        The decoded record.

    Raises
    ------
    GrammarMismatchError
        Raised if no record shape matches the whole line.  The position is
        the furthest point any shape reached.
    KeywordClassificationError
        Raised as soon as a value record's keyword has a family prefix and a
        non-numeric index; other shapes are not tried.
    """
    line = bytes(line)
    if len(line) != RECORD_LENGTH:
        raise ValueError(f"Header records must be {RECORD_LENGTH} bytes, not {len(line)}.")
    furthest = 0
    for shape in _RECORD_SHAPES:
        try:
            return shape(line, offset)
        except GrammarMismatchError as err:
            furthest = max(furthest, err.position)
    raise GrammarMismatchError(f"No header record shape matches {line!r}", offset + furthest)
