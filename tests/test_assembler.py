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
    AssemblerState,
    Complete,
    Continue,
    CorruptHeaderSequenceError,
    EndRecord,
    FailureReason,
    GrammarMismatchError,
    HeaderAssembler,
    IncompleteHeaderError,
    Integer,
    KeywordRecord,
    ParseFailure,
    StandardKeyword,
    parse_header,
)
from lsst.fitsheaders.tests import card, chunked, header_bytes

PRIMARY_CARDS = (
    "SIMPLE  =                    T / conforms to FITS standard",
    "BITPIX  =                    8 / array data type",
    "NAXIS   =                    0 / number of array dimensions",
    "EXTEND  =                    T",
)


class HeaderAssemblerTestCase(unittest.TestCase):
    """Tests for HeaderAssembler and parse_header."""

    def setUp(self) -> None:
        self.data = header_bytes(*PRIMARY_CARDS)
        self.trailing = b"DATA" * 10

    def assemble_in_chunks(self, data: bytes, size: int, start: int = 0) -> tuple[HeaderAssembler, bytes]:
        """Feed ``data`` to a new assembler in chunks of the given size.

        Returns the assembler and all bytes that follow the header: the
        remainder of the completing call plus every chunk that arrived after.
        """
        assembler = HeaderAssembler(start)
        pending = b""
        after = b""
        completions = 0
        for chunk in chunked(data, size):
            if assembler.state is AssemblerState.COMPLETE:
                with self.assertRaises(RuntimeError):
                    assembler.feed(chunk)
                after += chunk
                continue
            match assembler.feed(pending + chunk):
                case Complete(remainder=remainder):
                    completions += 1
                    after = bytes(remainder)
                case Continue(remainder=remainder):
                    self.assertLess(len(remainder), 80)
                    pending = bytes(remainder)
                case ParseFailure() as failure:
                    failure.raise_error()
        self.assertEqual(completions, 1)
        return assembler, after

    def test_single_buffer(self) -> None:
        header, remainder = parse_header(self.data + self.trailing)
        self.assertEqual(bytes(remainder), self.trailing)
        self.assertEqual(header.length, 2880)
        self.assertEqual(len(header), 36)
        self.assertEqual(
            header.records[1], KeywordRecord(StandardKeyword.BITPIX, Integer(8), "array data type")
        )
        self.assertEqual(header.records[4], EndRecord())

    def test_chunking_invariance(self) -> None:
        data = self.data + self.trailing
        expected, expected_remainder = parse_header(data)
        for size in (1, 7, 79, 80, 81, 1000, 2880, 2881, 4096):
            with self.subTest(size=size):
                assembler, remainder = self.assemble_in_chunks(data, size)
                self.assertEqual(assembler.to_header(), expected)
                self.assertIs(assembler.state, AssemblerState.COMPLETE)
                self.assertEqual(assembler.consumed, 2880)
                self.assertEqual(remainder, bytes(expected_remainder))

    def test_multi_block_header(self) -> None:
        cards = PRIMARY_CARDS + tuple(f"COMMENT line {n}" for n in range(40))
        data = header_bytes(*cards)
        self.assertEqual(len(data), 5760)
        header, remainder = parse_header(data, start=2880)
        self.assertEqual(header.start, 2880)
        self.assertEqual(header.length, 5760)
        self.assertEqual(header.end_offset, 8640)
        self.assertEqual(len(remainder), 0)
        self.assertEqual(len(header.commentary()), 40)

    def test_end_on_block_boundary(self) -> None:
        cards = PRIMARY_CARDS + tuple(f"COMMENT line {n}" for n in range(31))
        data = header_bytes(*cards)
        self.assertEqual(len(data), 2880)
        header, _ = parse_header(data)
        self.assertEqual(header.records[-1], EndRecord())

    def test_parse_record_states(self) -> None:
        assembler = HeaderAssembler()
        self.assertIs(assembler.state, AssemblerState.ACCUMULATING)
        outcome = assembler.parse_record(card(PRIMARY_CARDS[0]) + card("END"))
        self.assertIsInstance(outcome, Continue)
        self.assertEqual(assembler.position, 80)
        outcome = assembler.parse_record(outcome.remainder)
        self.assertIsInstance(outcome, Continue)
        self.assertIs(assembler.state, AssemblerState.TRAILING)
        self.assertEqual(len(outcome.remainder), 0)
        outcome = assembler.parse_record(outcome.remainder)
        self.assertIsInstance(outcome, ParseFailure)
        self.assertIs(outcome.reason, FailureReason.INCOMPLETE)
        self.assertFalse(outcome.fatal)

    def test_incomplete(self) -> None:
        assembler = HeaderAssembler()
        outcome = assembler.feed(self.data[:1000])
        self.assertIsInstance(outcome, Continue)
        self.assertEqual(len(outcome.remainder), 1000 - 960)
        with self.assertRaises(IncompleteHeaderError):
            assembler.to_header()
        with self.assertRaises(IncompleteHeaderError):
            parse_header(self.data[:-80])
        with self.assertRaises(IncompleteHeaderError):
            parse_header(header_bytes(*PRIMARY_CARDS, end=False))

    def test_keyword_after_end(self) -> None:
        data = b"".join(card(c) for c in PRIMARY_CARDS) + card("END") + card("BITPIX  = 16")
        data = data.ljust(2880, b" ")
        assembler = HeaderAssembler(5760)
        outcome = assembler.feed(data)
        self.assertIsInstance(outcome, ParseFailure)
        self.assertIs(outcome.reason, FailureReason.CORRUPT_HEADER_SEQUENCE)
        self.assertTrue(outcome.fatal)
        self.assertEqual(outcome.position, 5760 + 5 * 80)
        self.assertEqual(len(assembler.records), 5)
        with self.assertRaises(CorruptHeaderSequenceError):
            parse_header(data)

    def test_second_end(self) -> None:
        data = b"".join(card(c) for c in PRIMARY_CARDS) + card("END") + card("END")
        with self.assertRaises(CorruptHeaderSequenceError):
            parse_header(data.ljust(2880, b" "))

    def test_grammar_failure(self) -> None:
        data = card(PRIMARY_CARDS[0]) + card("BITPIX  =           8 junk") + card("END")
        outcome = HeaderAssembler(160).feed(data.ljust(2880, b" "))
        self.assertIsInstance(outcome, ParseFailure)
        self.assertIs(outcome.reason, FailureReason.GRAMMAR_MISMATCH)
        self.assertIsInstance(outcome.error, GrammarMismatchError)
        self.assertGreaterEqual(outcome.position, 240)
        self.assertLess(outcome.position, 320)
        self.assertEqual(len(outcome.remainder), 2880 - 80)

    def test_complete_rejects_more_input(self) -> None:
        assembler = HeaderAssembler()
        self.assertIsInstance(assembler.feed(self.data), Complete)
        with self.assertRaises(RuntimeError):
            assembler.parse_record(card("END"))


if __name__ == "__main__":
    unittest.main()
