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
    "IndexedKeyword",
    "IndexedKeywordFamily",
    "Keyword",
    "StandardKeyword",
    "UnrecognizedKeyword",
    "classify_keyword",
)

import enum
import re
from typing import final

from ._common import KEYWORD_LENGTH, KeywordClassificationError

_MAX_KEYWORD_INDEX = 0xFFFF

_INDEX_RE = re.compile(r"[0-9]+")


class StandardKeyword(enum.StrEnum):
    """The fixed, well-known keywords recognized by name.

    Members whose FITS name is not a valid Python identifier (e.g.
    ``DATE-OBS``) use an underscore in the member name; the member value is
    always the name as it appears in a header.
    """

    AUTHOR = "AUTHOR"
    AV = "AV"
    BITPIX = "BITPIX"
    BLANK = "BLANK"
    BLOCKED = "BLOCKED"
    BSCALE = "BSCALE"
    BUNIT = "BUNIT"
    BZERO = "BZERO"
    CAMPAIGN = "CAMPAIGN"
    CHANNEL = "CHANNEL"
    CHECKSUM = "CHECKSUM"
    COMMENT = "COMMENT"
    CONTINUE = "CONTINUE"
    CREATOR = "CREATOR"
    DATAMAX = "DATAMAX"
    DATAMIN = "DATAMIN"
    DATASUM = "DATASUM"
    DATA_REL = "DATA_REL"
    DATE = "DATE"
    DATE_OBS = "DATE-OBS"
    DEC_OBJ = "DEC_OBJ"
    EBMINUSV = "EBMINUSV"
    END = "END"
    EPOCH = "EPOCH"
    EQUINOX = "EQUINOX"
    EXTEND = "EXTEND"
    EXTLEVEL = "EXTLEVEL"
    EXTNAME = "EXTNAME"
    EXTVER = "EXTVER"
    FEH = "FEH"
    FILEVER = "FILEVER"
    GCOUNT = "GCOUNT"
    GKCOLOR = "GKCOLOR"
    GLAT = "GLAT"
    GLON = "GLON"
    GMAG = "GMAG"
    GRCOLOR = "GRCOLOR"
    GROUPS = "GROUPS"
    HISTORY = "HISTORY"
    HMAG = "HMAG"
    IMAG = "IMAG"
    INSTRUME = "INSTRUME"
    JKCOLOR = "JKCOLOR"
    JMAG = "JMAG"
    KEPLERID = "KEPLERID"
    KEPMAG = "KEPMAG"
    KMAG = "KMAG"
    LOGG = "LOGG"
    MISSION = "MISSION"
    MODULE = "MODULE"
    NAXIS = "NAXIS"
    NEXTEND = "NEXTEND"
    OBJECT = "OBJECT"
    OBSERVER = "OBSERVER"
    OBSMODE = "OBSMODE"
    ORIGIN = "ORIGIN"
    OUTPUT = "OUTPUT"
    PARALLAX = "PARALLAX"
    PCOUNT = "PCOUNT"
    PMDEC = "PMDEC"
    PMRA = "PMRA"
    PMTOTAL = "PMTOTAL"
    PROCVER = "PROCVER"
    RADESYS = "RADESYS"
    RADIUS = "RADIUS"
    RA_OBJ = "RA_OBJ"
    REFERENC = "REFERENC"
    RMAG = "RMAG"
    SIMPLE = "SIMPLE"
    TEFF = "TEFF"
    TELESCOP = "TELESCOP"
    TFIELDS = "TFIELDS"
    THEAP = "THEAP"
    TIMVERSN = "TIMVERSN"
    TMINDEX = "TMINDEX"
    TTABLEID = "TTABLEID"
    XTENSION = "XTENSION"
    ZMAG = "ZMAG"


class IndexedKeywordFamily(enum.StrEnum):
    """Prefixes of keyword families whose names end in a decimal index.

    The declaration order is the order prefixes are tried in by
    `classify_keyword`.
    """

    TDIM = "TDIM"
    TDISP = "TDISP"
    TFORM = "TFORM"
    NAXIS = "NAXIS"
    TNULL = "TNULL"
    TSCAL = "TSCAL"
    TTYPE = "TTYPE"
    TUNIT = "TUNIT"
    TZERO = "TZERO"

    def with_index(self, index: int) -> IndexedKeyword:
        """Return the member of this family with the given index."""
        return IndexedKeyword(self, index)


@final
class IndexedKeyword:
    """A keyword that is a member of an indexed family, e.g. ``NAXIS3``.

    Parameters
    ----------
    family
        The keyword family (prefix).
    index
        The decimal index that follows the prefix; must fit in an unsigned
        16-bit integer.

    Notes
    -----
    Instances are usually obtained by indexing a family, e.g.
    ``IndexedKeywordFamily.NAXIS.with_index(3)``.
    """

    def __init__(self, family: IndexedKeywordFamily, index: int):
        index = int(index)
        if not (0 <= index <= _MAX_KEYWORD_INDEX):
            raise ValueError(f"Keyword index {index} is out of range for {family}.")
        self._family = IndexedKeywordFamily(family)
        self._index = index

    __slots__ = ("_family", "_index")

    @property
    def family(self) -> IndexedKeywordFamily:
        """The family prefix of this keyword."""
        return self._family

    @property
    def index(self) -> int:
        """The index that follows the prefix."""
        return self._index

    def __str__(self) -> str:
        return f"{self._family.value}{self._index}"

    def __repr__(self) -> str:
        return f"IndexedKeyword({self._family.name}, {self._index})"

    def __eq__(self, other: object) -> bool:
        if type(other) is IndexedKeyword:
            return self._family is other._family and self._index == other._index
        return False

    def __hash__(self) -> int:
        return hash((self._family, self._index))

    def __reduce__(self) -> tuple[type[IndexedKeyword], tuple[IndexedKeywordFamily, int]]:
        return (IndexedKeyword, (self._family, self._index))


@final
class UnrecognizedKeyword:
    """A keyword that is neither a standard keyword nor a member of an
    indexed family.

    Parameters
    ----------
    text
        The keyword text, with trailing spaces already removed.  Must be at
        most 8 ASCII characters, the width of the keyword field.
    """

    def __init__(self, text: str | bytes):
        raw = text.encode("ascii") if isinstance(text, str) else bytes(text)
        if len(raw) > KEYWORD_LENGTH:
            raise ValueError(
                f"Keyword text {raw!r} has {len(raw)} bytes; at most {KEYWORD_LENGTH} are allowed."
            )
        self._raw = raw

    __slots__ = ("_raw",)

    @property
    def text(self) -> str:
        """The keyword text."""
        return self._raw.decode("ascii")

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"UnrecognizedKeyword({self.text!r})"

    def __eq__(self, other: object) -> bool:
        if type(other) is UnrecognizedKeyword:
            return self._raw == other._raw
        return False

    def __hash__(self) -> int:
        return hash(self._raw)

    def __reduce__(self) -> tuple[type[UnrecognizedKeyword], tuple[bytes]]:
        return (UnrecognizedKeyword, (self._raw,))


type Keyword = StandardKeyword | IndexedKeyword | UnrecognizedKeyword


def classify_keyword(field: bytes | str, *, position: int = 0) -> Keyword:
    """Map the contents of a keyword field to a keyword identity.

    Parameters
    ----------
    field
        Keyword field, usually the first 8 bytes of a record.  Trailing spaces
        are ignored.
    position
        Byte offset of the field, used only in error messages.

    Returns
    -------
    Keyword
        A `StandardKeyword` if the name is in the fixed table, an
        `IndexedKeyword` if it starts with one of the family prefixes, and an
        `UnrecognizedKeyword` otherwise.

    Raises
    ------
    KeywordClassificationError
        Raised if a family prefix matches but the rest of the name is not an
        unsigned 16-bit integer.
    """
    if isinstance(field, str):
        name = field.rstrip(" ")
    else:
        name = bytes(field).decode("ascii").rstrip(" ")
    try:
        return StandardKeyword(name)
    except ValueError:
        pass
    for family in IndexedKeywordFamily:
        if name.startswith(family.value):
            suffix = name.removeprefix(family.value)
            if _INDEX_RE.fullmatch(suffix) is None or int(suffix) > _MAX_KEYWORD_INDEX:
                raise KeywordClassificationError(
                    f"Keyword {name!r} has prefix {family.value!r} but {suffix!r} is not an index",
                    position,
                )
            return IndexedKeyword(family, int(suffix))
    return UnrecognizedKeyword(name)
