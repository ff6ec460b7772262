"""
Column functions for the Tour Details tab.

The key output here is the Payment Condition: how many monthly installment
windows (the 2nd of each month) fit between the reservation and 30 days
before the tour. That classification drives which payment plans are offered
and, further down the sheet, the installment due dates and amounts.
"""

from date_helpers import (
    is_blank,
    to_date,
    to_optional_number,
    add_days,
    second_of_month,
    months_between,
    format_ymd,
)
import re


# Full payment is due 30 days before the tour; installments must land before that
FULL_PAYMENT_LEAD_DAYS = 30

# The first installment can't be due within 3 days of reserving
FIRST_INSTALLMENT_MIN_DAYS = 3

LAST_MINUTE_MIN_DAYS = 2

AVAILABLE_PAYMENT_TERMS = {
    'invalid booking': 'Invalid',
    'last minute booking': 'Full payment required within 48hrs',
    'standard booking, p1': 'P1',
    'standard booking, p2': 'P2',
    'standard booking, p3': 'P3',
    'standard booking, p4': 'P4',
}


def tour_duration(tour_package_name, lookups=None):
    """Duration string of the selected tour package, e.g. '13 Days'."""
    if is_blank(tour_package_name) or lookups is None:
        return ''
    package = lookups.find_tour_package(tour_package_name)
    if not package or package.get('duration') is None:
        return ''
    return str(package['duration'])


def return_date(tour_date, duration):
    """
    Tour date plus the number of days in the duration ('13 Days' -> +13).

    Returns:
        'yyyy-mm-dd', or '' when either input is missing or unreadable
    """
    start = to_date(tour_date)
    if start is None:
        return ''

    match = re.search(r'\d+', str(duration)) if duration is not None else None
    days = int(match.group(0)) if match else 0
    if not days:
        return ''

    return format_ymd(add_days(start, days))


def days_between_booking_and_tour(reservation_date, tour_date):
    reserved = to_date(reservation_date)
    tour = to_date(tour_date)
    if reserved is None or tour is None:
        return ''
    return (tour - reserved).days


def eligible_second_of_months(reservation_date, tour_date):
    """
    Count the 2nd-of-month dates that can serve as installment due dates.

    Candidates are the 2nd of each month after the reservation month, up to
    the month of the full payment deadline (tour date - 30 days). A
    candidate counts if it is at least 3 days after the reservation and no
    later than the deadline.

    Example:
        Reserved 2026-01-10, tour 2026-06-15: deadline is 2026-05-16, so
        Feb 2, Mar 2, Apr 2 and May 2 all count -> 4
    """
    reserved = to_date(reservation_date)
    tour = to_date(tour_date)
    if reserved is None or tour is None:
        return ''

    deadline = add_days(tour, -FULL_PAYMENT_LEAD_DAYS)
    window_start = add_days(reserved, FIRST_INSTALLMENT_MIN_DAYS)

    month_count = max(0, months_between(reserved, deadline) + 1)
    candidates = [second_of_month(reserved, i) for i in range(1, month_count + 1)]

    return len([d for d in candidates if window_start <= d <= deadline])


def payment_condition(tour_date, eligible_count, days_until_tour):
    """
    Classify the booking by how many installment windows it has.

    Returns:
        'Invalid Booking', 'Last Minute Booking', 'Standard Booking, P1'
        through 'Standard Booking, P4', or '' when inputs are missing
    """
    if is_blank(tour_date):
        return ''

    eligible = to_optional_number(eligible_count)
    days = to_optional_number(days_until_tour)
    if eligible is None or days is None:
        return ''

    eligible = int(eligible)
    days = int(days)

    if eligible == 0:
        return 'Invalid Booking' if days < LAST_MINUTE_MIN_DAYS else 'Last Minute Booking'
    if eligible >= 4:
        return 'Standard Booking, P4'
    if eligible > 0:
        return f'Standard Booking, P{eligible}'
    return ''


def available_payment_terms(cancellation_reason, condition):
    if not is_blank(cancellation_reason):
        return 'Cancelled'
    if is_blank(condition):
        return ''
    return AVAILABLE_PAYMENT_TERMS.get(condition.strip().lower(), '')
