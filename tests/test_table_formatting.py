from __future__ import annotations

import unittest
from datetime import datetime, timezone

from app.repositories.sync_table_repository import (
    MAX_CELL_LENGTH,
    build_error_row,
    format_cell_value,
    truncate_text,
)


class TestFormatCellValue(unittest.TestCase):
    def test_none_is_blank(self) -> None:
        self.assertEqual(format_cell_value(None), "")

    def test_booleans_read_yes_no(self) -> None:
        self.assertEqual(format_cell_value(True), "Yes")
        self.assertEqual(format_cell_value(False), "No")

    def test_numbers(self) -> None:
        self.assertEqual(format_cell_value(42), "42")
        self.assertEqual(format_cell_value(12.5), "12.5")

    def test_datetime_is_iso(self) -> None:
        moment = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        self.assertEqual(format_cell_value(moment), "2026-03-01T12:00:00+00:00")

    def test_containers_become_json(self) -> None:
        self.assertEqual(format_cell_value({"a": 1}), '{"a": 1}')
        self.assertEqual(format_cell_value(["US", "CA"]), '["US", "CA"]')

    def test_long_text_is_truncated(self) -> None:
        value = format_cell_value("x" * 5000)
        self.assertEqual(len(value), MAX_CELL_LENGTH)
        self.assertTrue(value.endswith("..."))


class TestTruncateText(unittest.TestCase):
    def test_short_text_unchanged(self) -> None:
        self.assertEqual(truncate_text("abc", 10), "abc")

    def test_exact_limit_unchanged(self) -> None:
        self.assertEqual(truncate_text("abcde", 5), "abcde")


class TestBuildErrorRow(unittest.TestCase):
    def test_padded_to_header_width(self) -> None:
        moment = datetime(2026, 3, 1, tzinfo=timezone.utc)

        row = build_error_row(6, source_label="Merchant Center", error_message="HTTP 500", timestamp=moment)

        self.assertEqual(row, ["ERROR", "Merchant Center", "HTTP 500", moment.isoformat(), "", ""])

    def test_narrow_header_keeps_full_marker(self) -> None:
        moment = datetime(2026, 3, 1, tzinfo=timezone.utc)

        row = build_error_row(2, source_label=None, error_message=None, timestamp=moment)

        self.assertEqual(row, ["ERROR", "", "Unknown error", moment.isoformat()])


if __name__ == "__main__":
    unittest.main()
