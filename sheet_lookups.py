"""
Reference data that lookup-style column functions read from.

Some columns are not computed from the row alone: the tour code, prices and
deposit come from the tour package, discount rates come from discount
events, and the per-package counter depends on the other bookings for the
same package. Instead of letting each function query Datastore on its own,
the caller loads this data once and hands a SheetLookups object to the
evaluator, which passes it to the functions that ask for it.

Tour package shape (as stored):
    {
        'name': 'Japan Adventure (Standard)',
        'tour_code': 'JAS',
        'duration': '13 Days',
        'pricing': {'original': 3200, 'discounted': 2900,
                    'deposit': 250, 'currency': 'EUR'},
        'travel_dates': [
            {'start_date': '2026-04-10',
             'has_custom_discounted': True, 'custom_discounted': 2700,
             'has_custom_deposit': False, 'custom_deposit': None},
        ],
    }

Discount event shape:
    {
        'name': 'Spring Sale', 'active': True,
        'activation_mode': 'manual' | 'scheduled',
        'scheduled_start': '2026-03-01', 'scheduled_end': '2026-03-31',
        'discount_type': 'percent' | 'amount',
        'items': [{'tour_package_name': '...',
                   'date_discounts': [{'date': '2026-04-10', 'discount_rate': 15}]}],
    }
"""

from datetime import datetime, timezone
from date_helpers import to_date
from datastore_helpers import query_entities, entities_to_dict_list


def _name_key(value):
    return (value or '').strip().lower()


class SheetLookups:
    """
    In-memory view of tour packages, discount events and bookings.

    Args:
        tour_packages: List of tour package dicts
        discount_events: List of discount event dicts
        bookings: List of booking row dicts (used for per-package counters)
        now: Timezone-aware datetime used for scheduled discount windows
    """

    def __init__(self, tour_packages=None, discount_events=None, bookings=None, now=None):
        self.tour_packages = list(tour_packages or [])
        self.discount_events = list(discount_events or [])
        self.bookings = list(bookings or [])
        self.now = now or datetime.now(timezone.utc)

    def find_tour_package(self, name):
        """Find a tour package by name (case-insensitive, trimmed)."""
        target = _name_key(name)
        if not target:
            return None
        for package in self.tour_packages:
            if _name_key(package.get('name')) == target:
                return package
        return None

    def find_travel_date(self, package, tour_date):
        """Find the travel date entry of a package that starts on tour_date."""
        wanted = to_date(tour_date)
        if not package or wanted is None:
            return None
        for travel_date in package.get('travel_dates') or []:
            if to_date(travel_date.get('start_date')) == wanted:
                return travel_date
        return None

    def find_active_discount_event(self, name):
        """Find an active discount event by exact name."""
        if not name:
            return None
        for event in self.discount_events:
            if event.get('name') == name and event.get('active'):
                return event
        return None

    def bookings_for_package(self, name):
        target = _name_key(name)
        return [b for b in self.bookings if _name_key(b.get('tour_package_name')) == target]


def load_lookups(client, config):
    """
    Load all reference data from Datastore.

    Args:
        client: datastore.Client instance
        config: Flask config mapping (or Config attributes as a dict)

    Returns:
        SheetLookups populated with every tour package, discount event and booking
    """
    return SheetLookups(
        tour_packages=entities_to_dict_list(query_entities(client, config['TOUR_PACKAGE_KIND'])),
        discount_events=entities_to_dict_list(query_entities(client, config['DISCOUNT_EVENT_KIND'])),
        bookings=entities_to_dict_list(query_entities(client, config['BOOKING_KIND'])),
    )
