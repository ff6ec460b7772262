"""
Tests for the Discounts columns.

Run with: python3 -m pytest tests/test_discount_functions.py -v
"""

from datetime import datetime, timezone

from discount_functions import discount_rate, discount_type
from sheet_lookups import SheetLookups


def make_lookups():
    return SheetLookups(
        discount_events=[
            {
                'name': 'Spring Sale',
                'active': True,
                'activation_mode': 'manual',
                'discount_type': 'percent',
                'items': [{
                    'tour_package_name': 'Japan Adventure',
                    'date_discounts': [
                        {'date': '2026-04-10', 'discount_rate': 15},
                        {'date': '2026-05-08', 'discount_rate': 12.5},
                    ],
                }],
            },
            {
                'name': 'Old Promo',
                'active': False,
                'discount_type': 'percent',
                'items': [{
                    'tour_package_name': 'Japan Adventure',
                    'date_discounts': [{'date': '2026-04-10', 'discount_rate': 30}],
                }],
            },
            {
                'name': 'Summer Flash',
                'active': True,
                'activation_mode': 'scheduled',
                'scheduled_start': '2026-06-01',
                'scheduled_end': '2026-06-30',
                'discount_type': 'amount',
                'items': [],
            },
            {
                'name': 'Loyalty',
                'active': True,
                'discount_type': 'amount',
                'items': [],
            },
        ],
        now=datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc),
    )


class TestDiscountRate:
    """Test cases for the per-date discount rate."""

    def test_rate_for_package_and_date(self):
        """The event's rate for this package on this tour date."""
        lookups = make_lookups()
        assert discount_rate('Spring Sale', 'Japan Adventure', '2026-04-10', lookups=lookups) == '15%'
        assert discount_rate('Spring Sale', 'Japan Adventure', 'May 8, 2026', lookups=lookups) == '12.5%'

    def test_no_discount_for_date_or_package(self):
        """Other dates and packages have no rate."""
        lookups = make_lookups()
        assert discount_rate('Spring Sale', 'Japan Adventure', '2026-04-11', lookups=lookups) == ''
        assert discount_rate('Spring Sale', 'Philippine Sunrise', '2026-04-10', lookups=lookups) == ''

    def test_inactive_or_missing_event(self):
        """Inactive and unknown events give no rate."""
        lookups = make_lookups()
        assert discount_rate('Old Promo', 'Japan Adventure', '2026-04-10', lookups=lookups) == ''
        assert discount_rate('Nope', 'Japan Adventure', '2026-04-10', lookups=lookups) == ''
        assert discount_rate('', 'Japan Adventure', '2026-04-10', lookups=lookups) == ''


class TestDiscountType:
    """Test cases for the discount type."""

    def test_types(self):
        """Percent events are 'Percentage', amount events 'Flat amount'."""
        lookups = make_lookups()
        assert discount_type('Spring Sale', lookups=lookups) == 'Percentage'
        assert discount_type('Loyalty', lookups=lookups) == 'Flat amount'

    def test_scheduled_outside_window(self):
        """A scheduled event isn't live before its start date."""
        assert discount_type('Summer Flash', lookups=make_lookups()) == ''

    def test_scheduled_inside_window(self):
        """A scheduled event is live inside its window."""
        lookups = make_lookups()
        lookups.now = datetime(2026, 6, 15, tzinfo=timezone.utc)
        assert discount_type('Summer Flash', lookups=lookups) == 'Flat amount'

    def test_inactive(self):
        """Inactive events have no type."""
        assert discount_type('Old Promo', lookups=make_lookups()) == ''
