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
    "FitsHeaderReader",
    "iter_headers",
)

import io
from collections.abc import Buffer, Iterator
from contextlib import contextmanager
from logging import getLogger
from typing import IO, Self

import fsspec

from lsst.resources import ResourcePath, ResourcePathExpression

from ._assembler import Complete, Continue, HeaderAssembler, ParseFailure
from ._common import FITS_BLOCK_SIZE, IncompleteHeaderError
from ._header import Header

_LOG = getLogger(__name__)


def iter_headers(data: Buffer) -> Iterator[Header]:
    """Iterate over all headers in an in-memory FITS file.

    Parameters
    ----------
    data
        The full contents of a FITS file (or any sequence of concatenated
        header/data units).

    Yields
    ------
    Header
        Each header in turn.  Iteration stops when the next header would
        start at or beyond the end of the input.

    Raises
    ------
    HeaderParseError
        Raised if a header is malformed or truncated.
    """
    view = memoryview(data).cast("B")
    offset = 0
    while offset < len(view):
        assembler = HeaderAssembler(offset)
        match assembler.feed(view[offset:]):
            case Complete():
                header = assembler.to_header()
            case ParseFailure() as failure:
                failure.raise_error()
            case Continue():
                raise IncompleteHeaderError(
                    f"Input ended before the header starting at {offset} did", assembler.position
                )
        yield header
        offset = header.next_header_offset()
        _LOG.debug("Next header may start at offset %d.", offset)


class FitsHeaderReader:
    """A reader that walks the headers of a FITS file, skipping over data
    segments without reading them.

    Instances of this class should usually be constructed via the `open`
    context manager.

    Parameters
    ----------
    stream
        Readable, seekable binary stream positioned anywhere.
    page_size
        Number of bytes to read at once while parsing a header.
    """

    def __init__(self, stream: IO[bytes], *, page_size: int = FITS_BLOCK_SIZE * 50):
        if page_size <= 0:
            raise ValueError(f"Page size must be positive; got {page_size}.")
        self._stream = stream
        self._page_size = page_size

    @classmethod
    @contextmanager
    def open(
        cls,
        path: ResourcePathExpression,
        *,
        page_size: int = FITS_BLOCK_SIZE * 50,
        partial: bool = False,
    ) -> Iterator[Self]:
        """Create a reader for the given file.

        Parameters
        ----------
        path
            File to read; convertible to `lsst.resources.ResourcePath`.
        page_size
            Minimum number of bytes to read at once.  Making this a multiple
            of the FITS block size (2880) is recommended.
        partial
            If `True`, read only the pages that hold headers.  If `False`
            (default), the entire raw file is read into memory up front.

        Returns
        -------
        `contextlib.AbstractContextManager` [`FitsHeaderReader`]
            A context manager that returns a `FitsHeaderReader` when entered.
        """
        path = ResourcePath(path)
        stream: IO[bytes]
        if not partial:
            stream = io.BytesIO(path.read())
            yield cls(stream, page_size=page_size)
        else:
            fs: fsspec.AbstractFileSystem
            fs, fp = path.to_fsspec()
            with fs.open(fp, block_size=page_size) as stream:
                yield cls(stream, page_size=page_size)

    def __iter__(self) -> Iterator[Header]:
        offset = 0
        while (header := self.read_header(offset)) is not None:
            yield header
            offset = header.next_header_offset()
            _LOG.debug("Seeking to offset %d for the next header.", offset)

    def read_header(self, offset: int) -> Header | None:
        """Read the header that starts at the given offset.

        Parameters
        ----------
        offset
            Byte offset of the header in the stream.

        Returns
        -------
        Header | None
            The header, or `None` if the stream ends at ``offset``.

        Raises
        ------
        HeaderParseError
            Raised if the header is malformed, or `IncompleteHeaderError` if
            the stream ends partway through it.
        """
        self._stream.seek(offset)
        assembler = HeaderAssembler(offset)
        pending = b""
        while True:
            page = self._stream.read(self._page_size)
            if not page:
                if not pending and not assembler.consumed:
                    return None
                raise IncompleteHeaderError(
                    f"File ended before the header starting at {offset} did",
                    assembler.position + len(pending),
                )
            match assembler.feed(pending + page):
                case Complete():
                    return assembler.to_header()
                case Continue(remainder=remainder):
                    pending = bytes(remainder)
                case ParseFailure() as failure:
                    failure.raise_error()
