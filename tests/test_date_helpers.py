"""
Tests for date and number normalization used by the column functions.

Run with: python3 -m pytest tests/test_date_helpers.py -v
Or simply: python3 -m tests.test_date_helpers
"""

from datetime import datetime, date

from date_helpers import (
    is_blank,
    is_filled,
    to_date,
    normalize_date,
    format_ymd,
    format_compact,
    format_display,
    add_months,
    second_of_month,
    months_between,
    end_of_previous_month,
    monday_on_or_before,
    to_number,
    to_optional_number,
    parse_rate,
    round_money,
)


class TestToDate:
    """Test cases for parsing loose date values."""

    def test_day_month_year_string(self):
        """dd/mm/yyyy is read day first."""
        assert to_date('08/10/2025') == date(2025, 10, 8)

    def test_iso_string(self):
        """yyyy-mm-dd is read as an ISO date."""
        assert to_date('2025-10-08') == date(2025, 10, 8)

    def test_display_string(self):
        """The sheet's own display format parses back."""
        assert to_date('Oct 8, 2025') == date(2025, 10, 8)

    def test_timestamp_string_with_at(self):
        """Firestore console style timestamps drop the 'at'."""
        assert to_date('September 15, 2025 at 8:00:00 AM UTC+8') == date(2025, 9, 15)

    def test_invisible_spaces_are_ignored(self):
        """Narrow no-break spaces pasted from other tools don't break parsing."""
        assert to_date('Oct\u202f8, 2025\u200b') == date(2025, 10, 8)

    def test_datetime_keeps_date_part(self):
        """Datetimes are truncated to their date."""
        assert to_date(datetime(2025, 10, 8, 23, 30)) == date(2025, 10, 8)

    def test_epoch_milliseconds(self):
        """Numbers are epoch milliseconds in UTC."""
        assert to_date(1760000000000) == date(2025, 10, 9)

    def test_firestore_mapping(self):
        """{'seconds': ..., 'nanoseconds': ...} mappings are timestamps."""
        assert to_date({'seconds': 1760000000, 'nanoseconds': 0}) == date(2025, 10, 9)

    def test_objects_with_to_datetime_or_date(self):
        """Timestamp-like objects are read through to_datetime() or date()."""
        class WithToDatetime:
            def to_datetime(self):
                return datetime(2026, 6, 15, 9, 0)

        class WithDate:
            def date(self):
                return date(2026, 6, 15)

        assert to_date(WithToDatetime()) == date(2026, 6, 15)
        assert to_date(WithDate()) == date(2026, 6, 15)
        assert normalize_date(WithDate()) == (date(2026, 6, 15), 'ok')

    def test_blank_values(self):
        """None and empty strings are not dates."""
        assert to_date(None) is None
        assert to_date('') is None
        assert to_date('   ') is None

    def test_unparseable_values(self):
        """Garbage and bare numbers are not dates."""
        assert to_date('not a date') is None
        assert to_date('12345') is None
        assert to_date('31/02/2026') is None
        assert to_date(True) is None


class TestNormalizeDate:
    """Test cases for telling blank and invalid dates apart."""

    def test_blank(self):
        """Blank input reports 'blank'."""
        assert normalize_date('') == (None, 'blank')

    def test_invalid(self):
        """Filled but unreadable input reports 'error'."""
        assert normalize_date('soon') == (None, 'error')

    def test_valid(self):
        """Readable input reports 'ok' with the date."""
        assert normalize_date('2026-04-10') == (date(2026, 4, 10), 'ok')


class TestBlankAndFilled:
    """Test cases for blank/filled checks."""

    def test_is_blank(self):
        """Only None and whitespace are blank."""
        assert is_blank(None)
        assert is_blank('  ')
        assert not is_blank(0)
        assert not is_blank('x')

    def test_is_filled_counts_notes(self):
        """A typed note in a date-paid cell counts as filled."""
        assert is_filled('paid cash')
        assert is_filled(date(2026, 1, 2))
        assert not is_filled('')
        assert not is_filled(None)


class TestFormatting:
    """Test cases for date formatting."""

    def test_formats(self):
        """Each format renders the same date its own way."""
        value = date(2025, 10, 8)
        assert format_ymd(value) == '2025-10-08'
        assert format_compact(value) == '20251008'
        assert format_display(value) == 'Oct 8, 2025'


class TestCalendarArithmetic:
    """Test cases for month and week arithmetic."""

    def test_add_months_clamps_day(self):
        """Jan 31 + 1 month is the last day of February."""
        assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)

    def test_add_months_crosses_year(self):
        """Adding months rolls the year over."""
        assert add_months(date(2026, 11, 15), 3) == date(2027, 2, 15)

    def test_second_of_month(self):
        """The 2nd of the month N months later."""
        assert second_of_month(date(2026, 1, 10), 1) == date(2026, 2, 2)
        assert second_of_month(date(2026, 1, 31), 12) == date(2027, 1, 2)

    def test_months_between(self):
        """Whole months only, like DATEDIF 'M'."""
        assert months_between(date(2026, 1, 10), date(2026, 5, 16)) == 4
        assert months_between(date(2026, 1, 20), date(2026, 5, 16)) == 3
        assert months_between(date(2026, 5, 16), date(2026, 1, 10)) == 0

    def test_end_of_previous_month(self):
        """Day before the 1st of the month."""
        assert end_of_previous_month(date(2026, 3, 2)) == date(2026, 2, 28)

    def test_monday_on_or_before(self):
        """Sundays go back to that week's Monday; Mondays stay."""
        assert monday_on_or_before(date(2026, 2, 22)) == date(2026, 2, 16)
        assert monday_on_or_before(date(2026, 2, 16)) == date(2026, 2, 16)


class TestNumbers:
    """Test cases for number and rate parsing."""

    def test_currency_strings(self):
        """Currency codes and separators are stripped."""
        assert to_number('EUR 1,250.00') == 1250.0
        assert to_number('€99') == 99.0

    def test_blank_numbers(self):
        """Blank is 0 for to_number and None for to_optional_number."""
        assert to_number(None) == 0.0
        assert to_optional_number('') is None
        assert to_optional_number('abc') is None

    def test_parse_rate(self):
        """'20%', 20 and 0.2 all mean twenty percent."""
        assert parse_rate('20%') == 0.2
        assert parse_rate(20) == 0.2
        assert parse_rate(0.2) == 0.2
        assert parse_rate('') is None

    def test_round_money_half_up(self):
        """Halves round up like the spreadsheet."""
        assert round_money(2.675) == 2.68
        assert round_money(100) == 100.0


def run_tests():
    """Run all tests and report results."""
    import traceback

    test_classes = [TestToDate, TestNormalizeDate, TestBlankAndFilled, TestFormatting,
                    TestCalendarArithmetic, TestNumbers]
    passed = 0
    failed = 0
    errors = []

    for test_class in test_classes:
        instance = test_class()
        for method_name in dir(instance):
            if method_name.startswith('test_'):
                try:
                    getattr(instance, method_name)()
                    passed += 1
                    print(f"  ✓ {test_class.__name__}.{method_name}")
                except AssertionError as e:
                    failed += 1
                    errors.append((f"{test_class.__name__}.{method_name}", str(e)))
                    print(f"  ✗ {test_class.__name__}.{method_name}: {e}")
                except Exception as e:
                    failed += 1
                    errors.append((f"{test_class.__name__}.{method_name}", traceback.format_exc()))
                    print(f"  ✗ {test_class.__name__}.{method_name}: {e}")

    print(f"\n{'='*60}")
    print(f"Results: {passed} passed, {failed} failed")

    if errors:
        print(f"\nFailed tests:")
        for name, error in errors:
            print(f"  - {name}")
            print(f"    {error[:200]}")

    return failed == 0


if __name__ == "__main__":
    print("Running Date Helper Tests\n")
    print("="*60)
    success = run_tests()
    exit(0 if success else 1)
