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


"""Streaming decoder for FITS headers.

A FITS file is a sequence of header/data units.  Each header is a run of
80-byte ASCII records terminated by an ``END`` record and padded with blank
records to a multiple of 2880 bytes; the header's size keywords determine how
many bytes of data follow before the next header.

The main entry points are:

- `parse_header_record`, which decodes a single record;
- `HeaderAssembler`, a state machine that builds a `Header` from input
  supplied in fragments of any size;
- `Header`, which provides typed keyword lookup and computes the size and
  offsets of the data segment;
- `BinTable`, which validates and decodes the header of a ``BINTABLE``
  extension;
- `FitsHeaderReader` and `iter_headers`, which walk all headers of a file.
"""

from ._assembler import *
from ._bintable import *
from ._common import *
from ._grammar import *
from ._header import *
from ._keywords import *
from ._reader import *
from ._records import *
from ._serialization import *
from ._values import *
