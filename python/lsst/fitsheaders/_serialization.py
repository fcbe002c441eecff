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

"""Pydantic models for exporting decoded headers as JSON."""

from __future__ import annotations

__all__ = (
    "ColumnModel",
    "HeaderModel",
    "RecordModel",
)

from typing import Literal

import pydantic

from ._bintable import BinTable
from ._header import Header
from ._records import BlankRecord, CommentaryRecord, EndRecord, HeaderRecord, KeywordRecord
from ._values import CharacterString, Complex, ComplexInteger, Value, ValueKind
from .utils import is_none

type JsonScalar = bool | int | float | str | None

_BINTABLE = CharacterString("BINTABLE")


def _value_to_json(value: Value) -> JsonScalar | list[int] | list[float]:
    match value:
        case ComplexInteger(real=real, imag=imag):
            return [real, imag]
        case Complex(real=real, imag=imag):
            return [real, imag]
    return value.to_python()


class RecordModel(pydantic.BaseModel):
    """A model for a single header record."""

    model_config = pydantic.ConfigDict(frozen=True, ser_json_inf_nan="constants")

    kind: Literal["keyword", "commentary", "end", "blank"]
    """Shape of the record."""

    keyword: str | None = pydantic.Field(default=None, exclude_if=is_none)
    """Keyword name, for keyword and commentary records."""

    value_kind: ValueKind | None = pydantic.Field(default=None, exclude_if=is_none)
    """Variant of the value, for keyword records."""

    value: JsonScalar | list[int] | list[float] = None
    """Value of a keyword record; complex numbers are ``[real, imag]``."""

    comment: str | None = pydantic.Field(default=None, exclude_if=is_none)
    """Comment or commentary text."""

    @classmethod
    def from_record(cls, record: HeaderRecord) -> RecordModel:
        """Construct from a header record."""
        match record:
            case KeywordRecord(keyword=keyword, value=value, comment=comment):
                return cls(
                    kind="keyword",
                    keyword=str(keyword),
                    value_kind=value.kind,
                    value=_value_to_json(value),
                    comment=comment,
                )
            case CommentaryRecord(keyword=keyword, text=text):
                return cls(kind="commentary", keyword=keyword.value, comment=text)
            case EndRecord():
                return cls(kind="end")
            case BlankRecord(comment=comment):
                return cls(kind="blank", comment=comment)
        raise AssertionError(f"Unexpected record type {type(record).__name__}.")


class ColumnModel(pydantic.BaseModel):
    """A model for a single binary table field."""

    model_config = pydantic.ConfigDict(frozen=True)

    name: str
    """``TTYPEn`` value, or a generated ``colN`` name."""

    form: str
    """``TFORMn`` value, normalized to include the repeat count."""

    width: int
    """Number of bytes the field occupies in a row."""

    unit: str | None = pydantic.Field(default=None, exclude_if=is_none)
    """``TUNITn`` value."""

    shape: tuple[int, ...] | None = pydantic.Field(default=None, exclude_if=is_none)
    """``TDIMn`` value."""

    @classmethod
    def from_bintable(cls, table: BinTable) -> list[ColumnModel]:
        """Construct models for all fields of a binary table."""
        units = table.units or (None,) * table.n_fields
        dims = table.dims or (None,) * table.n_fields
        return [
            cls(name=name, form=str(form), width=form.width, unit=unit, shape=dim)
            for name, form, unit, dim in zip(table.field_names(), table.forms, units, dims, strict=True)
        ]


class HeaderModel(pydantic.BaseModel):
    """A model for a complete header and the data segment it describes."""

    start: int
    """Byte offset of the header."""

    length: int
    """Number of bytes in the header."""

    is_primary: bool
    """Whether this is a primary header."""

    data_array_bits: int
    """Block-padded size of the data segment, in bits."""

    next_header_offset: int
    """Byte offset where the next header may start."""

    records: list[RecordModel] = pydantic.Field(default_factory=list)
    """All records except blank padding."""

    columns: list[ColumnModel] | None = pydantic.Field(default=None, exclude_if=is_none)
    """Fields of a binary table extension."""

    @classmethod
    def from_header(cls, header: Header, *, with_columns: bool = False) -> HeaderModel:
        """Construct from a header.

        Parameters
        ----------
        header
            Header to export.
        with_columns
            If `True` and the header describes a binary table, include its
            fields.
        """
        columns: list[ColumnModel] | None = None
        if with_columns and header.get("XTENSION") == _BINTABLE:
            columns = ColumnModel.from_bintable(BinTable.from_header(header))
        return cls(
            start=header.start,
            length=header.length,
            is_primary=header.is_primary,
            data_array_bits=header.data_array_bits(),
            next_header_offset=header.next_header_offset(),
            records=[RecordModel.from_record(r) for r in header if r != BlankRecord()],
            columns=columns,
        )
