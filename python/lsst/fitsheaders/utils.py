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

__all__ = ("is_none", "is_printable_ascii", "least_multiple_at_least")

import operator
import sys

if sys.version_info >= (3, 14, 0):
    is_none = operator.is_none  # type: ignore[attr-defined]
else:

    def is_none(x: object) -> bool:
        """Test whether an object is None."""
        return x is None


def least_multiple_at_least(n: int, k: int) -> int:
    """Return the smallest multiple of ``k`` that is greater than or equal to
    ``n``.

    Parameters
    ----------
    n
        Non-negative value to round up.
    k
        Positive step, e.g. the number of bits in a FITS block.
    """
    q, r = divmod(n, k)
    if r == 0:
        return n
    return (q + 1) * k


def is_printable_ascii(data: bytes) -> bool:
    """Test whether all bytes are printable ASCII (space through ``~``)."""
    return all(32 <= b <= 126 for b in data)
