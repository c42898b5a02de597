"""
Tests for serial number uniqueness.

Covers:
- Advisory per-cell validation (own position skipped, blanks valid)
- Conflict listing and the authoritative submit check
- Parsing of comma-separated serial input
"""

import pytest

from inventory_engines.serials import (
    SerialStatus,
    ensure_unique_serials,
    find_serial_conflicts,
    parse_serial_numbers,
    validate_serial,
)
from inventory_kernel.exceptions import DuplicateSerialNumberError


class TestValidateSerial:
    def test_unique_serial_is_valid(self):
        serials = [["A1", "A2"], ["B1"]]

        assert validate_serial(serials, 0, 0, "A1") is SerialStatus.VALID

    def test_duplicate_on_same_line(self):
        serials = [["A1", "A2"]]

        assert validate_serial(serials, 0, 1, "A1") is SerialStatus.DUPLICATE

    def test_duplicate_on_other_line(self):
        serials = [["A1"], ["B1"]]

        assert validate_serial(serials, 1, 0, "A1") is SerialStatus.DUPLICATE

    def test_comparison_ignores_whitespace(self):
        serials = [[" A1 "], ["B1"]]

        assert validate_serial(serials, 1, 0, "A1") is SerialStatus.DUPLICATE

    def test_new_cell_beyond_existing_serials(self):
        """A cell being typed at a position not yet stored."""
        serials = [["A1"]]

        assert validate_serial(serials, 0, 5, "A1") is SerialStatus.DUPLICATE
        assert validate_serial(serials, 0, 5, "A2") is SerialStatus.VALID

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_is_always_valid(self, blank):
        serials = [["", "  "], [""]]

        assert validate_serial(serials, 0, 0, blank) is SerialStatus.VALID

    def test_line_index_out_of_range(self):
        with pytest.raises(IndexError):
            validate_serial([["A1"]], 3, 0, "A1")


class TestEnsureUniqueSerials:
    def test_unique_document_passes(self):
        ensure_unique_serials([["A1", "A2"], ["B1", ""], []])

    def test_blanks_do_not_conflict(self):
        ensure_unique_serials([["", " "], [""]])

    def test_reports_first_later_occurrence(self):
        with pytest.raises(DuplicateSerialNumberError) as exc_info:
            ensure_unique_serials([["A1"], ["B1", "A1"]])

        err = exc_info.value
        assert err.serial_number == "A1"
        assert err.line_index == 1
        assert err.serial_index == 1
        assert err.other_line_index == 0
        assert err.field == "serial_numbers"
        assert err.code == "DUPLICATE_SERIAL_NUMBER"

    def test_find_conflicts_lists_every_repeat(self):
        conflicts = find_serial_conflicts([["A1", "A1"], ["A1"]])

        assert [(c.line_index, c.serial_index) for c in conflicts] == [(0, 1), (1, 0)]
        assert all((c.first_line_index, c.first_serial_index) == (0, 0) for c in conflicts)


class TestParseSerialNumbers:
    def test_comma_separated(self):
        assert parse_serial_numbers("A1, A2,,B3 ") == ("A1", "A2", "B3")

    def test_sequence(self):
        assert parse_serial_numbers([" A1", "", "A2"]) == ("A1", "A2")

    def test_none(self):
        assert parse_serial_numbers(None) == ()
