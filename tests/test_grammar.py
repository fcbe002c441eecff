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

import unittest

from lsst.fitsheaders import (
    UNDEFINED,
    BlankRecord,
    CharacterString,
    CommentaryRecord,
    EndRecord,
    GrammarMismatchError,
    IndexedKeywordFamily,
    Integer,
    KeywordClassificationError,
    KeywordRecord,
    Logical,
    Real,
    StandardKeyword,
    UnrecognizedKeyword,
    parse_header_record,
)
from lsst.fitsheaders.tests import card


class HeaderRecordTestCase(unittest.TestCase):
    """Tests for the grammar of single header records."""

    def test_keyword_record(self) -> None:
        record = parse_header_record(
            card("OBJECT  = 'EPIC 200164267'     / string version of target id")
        )
        self.assertEqual(
            record,
            KeywordRecord(
                StandardKeyword.OBJECT, CharacterString("EPIC 200164267"), "string version of target id"
            ),
        )

    def test_unrecognized_keyword_record(self) -> None:
        record = parse_header_record(
            card("SCALE_U =     0.00116355283466 / Upper-bound index scale (radians).")
        )
        self.assertEqual(
            record,
            KeywordRecord(
                UnrecognizedKeyword("SCALE_U"),
                Real(0.00116355283466),
                "Upper-bound index scale (radians).",
            ),
        )

    def test_keyword_record_without_comment(self) -> None:
        record = parse_header_record(card("KEPLERID=            200164267"))
        self.assertEqual(record, KeywordRecord(StandardKeyword.KEPLERID, Integer(200164267)))
        self.assertIsNone(record.comment)

    def test_indexed_keyword_record(self) -> None:
        record = parse_header_record(card("NAXIS2  =                  120 / number of rows"))
        self.assertEqual(
            record, KeywordRecord(IndexedKeywordFamily.NAXIS.with_index(2), Integer(120), "number of rows")
        )

    def test_undefined_value(self) -> None:
        self.assertEqual(
            parse_header_record(card("BLANK   =                      / no value")),
            KeywordRecord(StandardKeyword.BLANK, UNDEFINED, "no value"),
        )
        self.assertEqual(
            parse_header_record(card("BLANK   =")),
            KeywordRecord(StandardKeyword.BLANK, UNDEFINED),
        )

    def test_empty_comment(self) -> None:
        record = parse_header_record(card("SIMPLE  =                    T /"))
        self.assertEqual(record, KeywordRecord(StandardKeyword.SIMPLE, Logical(True), ""))

    def test_blank_record(self) -> None:
        self.assertEqual(parse_header_record(card("")), BlankRecord())
        self.assertEqual(
            parse_header_record(card("               / string version of target id")),
            BlankRecord("string version of target id"),
        )

    def test_commentary(self) -> None:
        self.assertEqual(
            parse_header_record(card("COMMENT   FITS (Flexible Image Transport System) format")),
            CommentaryRecord(StandardKeyword.COMMENT, "  FITS (Flexible Image Transport System) format"),
        )
        self.assertEqual(
            parse_header_record(card("HISTORY")),
            CommentaryRecord(StandardKeyword.HISTORY, None),
        )
        # Commentary text may contain a value indicator.
        self.assertEqual(
            parse_header_record(card("COMMENT = 'not a value'")),
            CommentaryRecord(StandardKeyword.COMMENT, "= 'not a value'"),
        )

    def test_end(self) -> None:
        self.assertEqual(parse_header_record(card("END")), EndRecord())
        with self.assertRaises(GrammarMismatchError):
            parse_header_record(card("END     extra"))

    def test_mismatch(self) -> None:
        with self.assertRaises(GrammarMismatchError) as cm:
            parse_header_record(card("BITPIX  =                   16 garbage"), offset=800)
        self.assertGreater(cm.exception.position, 800)
        with self.assertRaises(GrammarMismatchError):
            parse_header_record(card("NOT A RECORD"))
        with self.assertRaises(GrammarMismatchError):
            parse_header_record(b"\xff" * 80)

    def test_bad_index(self) -> None:
        with self.assertRaises(KeywordClassificationError) as cm:
            parse_header_record(card("NAXISX  =                    3"), offset=240)
        self.assertEqual(cm.exception.position, 240)

    def test_length(self) -> None:
        with self.assertRaises(ValueError):
            parse_header_record(b"END")

    def test_to_card(self) -> None:
        records = [
            KeywordRecord(StandardKeyword.BITPIX, Integer(-32), "bits per pixel"),
            KeywordRecord(StandardKeyword.EXTNAME, CharacterString("O'HARA")),
            KeywordRecord(IndexedKeywordFamily.TSCAL.with_index(2), Real(0.5)),
            KeywordRecord(UnrecognizedKeyword("MYKEY"), UNDEFINED),
            CommentaryRecord(StandardKeyword.HISTORY, "made by hand"),
            BlankRecord("note"),
            BlankRecord(),
            EndRecord(),
        ]
        for record in records:
            with self.subTest(record=record):
                text = record.to_card()
                self.assertEqual(len(text), 80)
                self.assertEqual(parse_header_record(text.encode("ascii")), record)
        self.assertEqual(str(records[0]), "BITPIX  = -32 / bits per pixel")

    def test_full_cards_rerender(self) -> None:
        # Canonical value text can be longer than what was parsed, so the
        # comment separator loses its spaces and then the comment is cut.
        cases = [
            ("EXPTIME = 1.5E3 / " + "x" * 62, Real(1500.0), "x" * 62),
            ("EXPTIME = 1E-5/" + "x" * 65, Real(1e-5), "x" * 62),
            ("EXPTIME = 2.5D2/" + "x" * 64, Real(250.0), "x" * 64),
        ]
        for text, value, comment in cases:
            with self.subTest(text=text):
                line = card(text)
                self.assertEqual(len(line), 80)
                record = parse_header_record(line)
                rendered = record.to_card()
                self.assertEqual(len(rendered), 80)
                self.assertEqual(
                    parse_header_record(rendered.encode("ascii")),
                    KeywordRecord(UnrecognizedKeyword("EXPTIME"), value, comment),
                )
                self.assertEqual(str(record), rendered.rstrip())
        blank = parse_header_record(card("        /" + "y" * 71))
        self.assertEqual(blank, BlankRecord("y" * 71))
        self.assertEqual(parse_header_record(blank.to_card().encode("ascii")), blank)


if __name__ == "__main__":
    unittest.main()
