"""
Tests for the Tour Details columns (payment condition and friends).

Run with: python3 -m pytest tests/test_tour_details_functions.py -v
"""

from tour_details_functions import (
    tour_duration,
    return_date,
    days_between_booking_and_tour,
    eligible_second_of_months,
    payment_condition,
    available_payment_terms,
)
from sheet_lookups import SheetLookups


class TestTourDuration:
    """Test cases for duration lookup and return date."""

    def test_duration_from_package(self):
        """Duration comes from the tour package."""
        lookups = SheetLookups(tour_packages=[{'name': 'Japan Adventure', 'duration': '13 Days'}])
        assert tour_duration('Japan Adventure', lookups=lookups) == '13 Days'
        assert tour_duration('Unknown', lookups=lookups) == ''

    def test_return_date(self):
        """Tour date plus the number of days in the duration."""
        assert return_date('2026-04-10', '13 Days') == '2026-04-23'
        assert return_date('2026-04-10', '') == ''
        assert return_date('', '13 Days') == ''


class TestEligibleSecondOfMonths:
    """Test cases for counting installment windows."""

    def test_days_between(self):
        """Calendar days from reservation to tour."""
        assert days_between_booking_and_tour('2026-01-10', '2026-06-15') == 156
        assert days_between_booking_and_tour('', '2026-06-15') == ''

    def test_four_windows(self):
        """Feb 2 to May 2 all fall before the full payment deadline of May 16."""
        assert eligible_second_of_months('2026-01-10', '2026-06-15') == 4

    def test_first_window_too_soon(self):
        """A 2nd-of-month within 3 days of reserving doesn't count."""
        assert eligible_second_of_months('2026-01-31', '2026-03-20') == 0

    def test_window_on_deadline(self):
        """A 2nd-of-month exactly on the deadline counts."""
        # Tour Apr 1 -> deadline Mar 2
        assert eligible_second_of_months('2026-01-10', '2026-04-01') == 2

    def test_missing_dates(self):
        """Missing dates give no count."""
        assert eligible_second_of_months('', '2026-04-01') == ''


class TestPaymentCondition:
    """Test cases for classifying bookings."""

    def test_standard_bookings(self):
        """One to three windows map to P1-P3; four or more to P4."""
        assert payment_condition('2026-06-15', 1, 60) == 'Standard Booking, P1'
        assert payment_condition('2026-06-15', 3, 120) == 'Standard Booking, P3'
        assert payment_condition('2026-06-15', 7, 300) == 'Standard Booking, P4'

    def test_no_windows(self):
        """No windows is last minute, unless the tour is under 2 days away."""
        assert payment_condition('2026-06-15', 0, 20) == 'Last Minute Booking'
        assert payment_condition('2026-06-15', 0, 1) == 'Invalid Booking'

    def test_missing_inputs(self):
        """Blank tour date or counts give no condition."""
        assert payment_condition('', 2, 90) == ''
        assert payment_condition('2026-06-15', '', 90) == ''


class TestAvailablePaymentTerms:
    """Test cases for the terms offered to the guest."""

    def test_terms_by_condition(self):
        """Each condition offers its terms."""
        assert available_payment_terms('', 'Standard Booking, P2') == 'P2'
        assert available_payment_terms('', 'Last Minute Booking') == \
            'Full payment required within 48hrs'
        assert available_payment_terms('', 'Invalid Booking') == 'Invalid'
        assert available_payment_terms('', '') == ''

    def test_cancelled(self):
        """A cancellation reason overrides the condition."""
        assert available_payment_terms('Guest - change of plans', 'Standard Booking, P2') == 'Cancelled'
