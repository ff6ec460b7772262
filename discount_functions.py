"""
Column functions for the Discounts tab.

Discount events are promotions ("Spring Sale") that set a discount rate per
tour package and travel date. A booking opts in by naming the event in its
Event Name column.
"""

from date_helpers import is_blank, to_date, to_optional_number


def _event_is_live(event, now):
    """Manual events are live while active; scheduled ones only inside their window."""
    if event.get('activation_mode', 'manual') != 'scheduled':
        return True

    today = now.date()
    start = to_date(event.get('scheduled_start'))
    end = to_date(event.get('scheduled_end'))
    if start is not None and today < start:
        return False
    if end is not None and today > end:
        return False
    return True


def discount_rate(event_name, tour_package_name, tour_date, lookups=None):
    """
    Discount rate for this package and travel date, e.g. '15%'.

    Returns '' when the event doesn't exist, isn't active, or has no
    discount for this package on this date.
    """
    if is_blank(event_name) or is_blank(tour_package_name) or is_blank(tour_date):
        return ''
    if lookups is None:
        return ''

    wanted = to_date(tour_date)
    if wanted is None:
        return ''

    event = lookups.find_active_discount_event(event_name)
    if not event:
        return ''

    for item in event.get('items') or []:
        if item.get('tour_package_name') != tour_package_name:
            continue
        for date_discount in item.get('date_discounts') or []:
            if to_date(date_discount.get('date')) == wanted:
                rate = to_optional_number(date_discount.get('discount_rate')) or 0
                # 15.0 -> '15%', 12.5 -> '12.5%'
                return f"{rate:g}%"

    return ''


def discount_type(event_name, lookups=None):
    """'Percentage' or 'Flat amount' for a live discount event, else ''."""
    if is_blank(event_name) or lookups is None:
        return ''

    event = lookups.find_active_discount_event(event_name)
    if not event or not _event_is_live(event, lookups.now):
        return ''

    return 'Flat amount' if event.get('discount_type') == 'amount' else 'Percentage'
