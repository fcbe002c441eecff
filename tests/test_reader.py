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

import os
import tempfile
import unittest

import astropy.io.fits
import numpy as np

from lsst.fitsheaders import (
    FitsHeaderReader,
    Header,
    IncompleteHeaderError,
    iter_headers,
)
from lsst.fitsheaders.tests import assert_offsets_match_astropy, hdu_list_bytes, header_bytes


class FitsHeaderReaderTestCase(unittest.TestCase):
    """Tests for walking the headers of whole files."""

    def setUp(self) -> None:
        self.rng = np.random.default_rng(500)
        primary = astropy.io.fits.PrimaryHDU(self.rng.normal(size=(7, 11)).astype(np.float32))
        primary.header["OBSERVER"] = "somebody"
        image = astropy.io.fits.ImageHDU(
            self.rng.integers(0, 100, size=(300, 40), dtype=np.int16), name="MASK"
        )
        for n in range(60):
            image.header[f"KEY{n}"] = (n, "padding the header past one block")
        table = astropy.io.fits.BinTableHDU.from_columns(
            [
                astropy.io.fits.Column(name="A", format="D", array=self.rng.normal(size=500)),
                astropy.io.fits.Column(name="B", format="16A", array=np.array(["x"] * 500)),
            ],
            name="TABLE",
        )
        empty = astropy.io.fits.ImageHDU(name="EMPTY")
        self.data = hdu_list_bytes([primary, image, table, empty])
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.filename = os.path.join(self.tmpdir.name, "test.fits")
        with open(self.filename, "wb") as stream:
            stream.write(self.data)

    def check_headers(self, headers: list[Header]) -> None:
        assert_offsets_match_astropy(self, headers, self.data)
        self.assertTrue(headers[0].is_primary)
        self.assertEqual(headers[0].str_value_of("OBSERVER"), "somebody")
        self.assertEqual(headers[1].length, 2 * 2880)
        self.assertEqual([h.str_value_of("EXTNAME") for h in headers[1:]], ["MASK", "TABLE", "EMPTY"])
        self.assertEqual(headers[-1].data_array_bytes(), 0)
        self.assertEqual(headers[-1].next_header_offset(), len(self.data))

    def test_iter_headers(self) -> None:
        self.check_headers(list(iter_headers(self.data)))

    def test_read_full(self) -> None:
        with FitsHeaderReader.open(self.filename) as reader:
            self.check_headers(list(reader))

    def test_read_partial(self) -> None:
        for page_size in (80, 2880, 2880 * 50):
            with self.subTest(page_size=page_size):
                with FitsHeaderReader.open(self.filename, partial=True, page_size=page_size) as reader:
                    self.check_headers(list(reader))

    def test_read_header(self) -> None:
        headers = list(iter_headers(self.data))
        with FitsHeaderReader.open(self.filename, page_size=1000) as reader:
            self.assertEqual(reader.read_header(headers[2].start), headers[2])
            self.assertIsNone(reader.read_header(len(self.data)))

    def test_truncated(self) -> None:
        with open(self.filename, "wb") as stream:
            stream.write(self.data + header_bytes("XTENSION= 'IMAGE   '", end=False))
        with FitsHeaderReader.open(self.filename, partial=True) as reader:
            with self.assertRaises(IncompleteHeaderError):
                list(reader)
        with self.assertRaises(IncompleteHeaderError):
            list(iter_headers(self.data[: len(self.data) - 1000]))

    def test_page_size(self) -> None:
        with self.assertRaises(ValueError):
            with FitsHeaderReader.open(self.filename, page_size=0):
                pass


if __name__ == "__main__":
    unittest.main()
