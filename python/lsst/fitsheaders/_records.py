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
    "BlankRecord",
    "CommentaryRecord",
    "EndRecord",
    "HeaderRecord",
    "KeywordRecord",
)

import dataclasses
from typing import Literal

from ._common import KEYWORD_LENGTH, RECORD_LENGTH
from ._keywords import Keyword, StandardKeyword
from ._values import UNDEFINED, Value


def _pad_card(text: str) -> str:
    if len(text) > RECORD_LENGTH:
        raise ValueError(f"Card {text!r} is longer than {RECORD_LENGTH} characters.")
    return text.ljust(RECORD_LENGTH)


def _append_comment(text: str, comment: str, separator: str) -> str:
    """Append a comment to a card, dropping the spaces around the separator
    and then truncating the comment if the card would not fit in a record.
    """
    if len(text) + len(separator) + len(comment) <= RECORD_LENGTH:
        return f"{text}{separator}{comment}"
    return f"{text}/{comment}"[:RECORD_LENGTH]


@dataclasses.dataclass(frozen=True)
class KeywordRecord:
    """A record that assigns a value to a keyword: ``KEYWORD = value / comment``."""

    keyword: Keyword
    """Keyword identity."""

    value: Value = UNDEFINED
    """Typed value; `UNDEFINED` if the value field was empty."""

    comment: str | None = None
    """Comment text with surrounding whitespace removed, or `None` if there
    was no ``/`` separator.
    """

    def to_card(self) -> str:
        """Render the record as an 80-character card image.

        Values are written in canonical form, which may be longer than the
        text they were parsed from; the comment is shortened to fit.
        """
        text = f"{str(self.keyword):<{KEYWORD_LENGTH}}= {self.value}"
        if self.comment is not None:
            text = _append_comment(text, self.comment, " / ")
        return _pad_card(text)

    def __str__(self) -> str:
        return self.to_card().rstrip(" ")


@dataclasses.dataclass(frozen=True)
class CommentaryRecord:
    """A ``COMMENT`` or ``HISTORY`` record holding free-form text."""

    keyword: Literal[StandardKeyword.COMMENT, StandardKeyword.HISTORY]
    """Keyword identity."""

    text: str | None = None
    """Free-form text with trailing spaces removed, or `None` if empty."""

    def to_card(self) -> str:
        """Render the record as an 80-character card image."""
        return _pad_card(f"{self.keyword.value:<{KEYWORD_LENGTH}}{self.text or ''}")

    def __str__(self) -> str:
        return self.to_card().rstrip(" ")


@dataclasses.dataclass(frozen=True)
class EndRecord:
    """The record that terminates the keywords of a header."""

    def to_card(self) -> str:
        """Render the record as an 80-character card image."""
        return _pad_card(StandardKeyword.END.value)

    def __str__(self) -> str:
        return StandardKeyword.END.value


@dataclasses.dataclass(frozen=True)
class BlankRecord:
    """A record with a blank keyword field, used as padding after the END
    record and occasionally to hold documentation text.
    """

    comment: str | None = None
    """Comment text, or `None` for pure padding."""

    def to_card(self) -> str:
        """Render the record as an 80-character card image."""
        if self.comment is None:
            return _pad_card("")
        return _pad_card(_append_comment(" " * KEYWORD_LENGTH, self.comment, "/ "))

    def __str__(self) -> str:
        return self.to_card().rstrip(" ")


type HeaderRecord = KeywordRecord | CommentaryRecord | EndRecord | BlankRecord
