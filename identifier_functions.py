"""
Column functions for the Identifier, Traveler Information and
Duo or Group Booking tabs.

These build the human-readable booking reference, e.g.
"SB-JAS-20260410-JD003": booking code, tour code, tour date, traveller
initials and the booking's position among bookings for the same package.
"""

from date_helpers import is_blank, normalize_date, format_compact, to_optional_number


BOOKING_CODES = {
    'Single Booking': 'SB',
    'Duo Booking': 'DB',
    'Group Booking': 'GB',
}

# Returned by tour_code when the package exists in the row but not in the
# tour package list, so the booking ID still gets built and the gap is visible
UNKNOWN_TOUR_CODE = 'XXX'


def booking_code(booking_type):
    """'Single Booking' -> 'SB', 'Duo Booking' -> 'DB', 'Group Booking' -> 'GB'."""
    if not booking_type:
        return ''
    return BOOKING_CODES.get(booking_type.strip(), '')


def tour_code(tour_package_name, lookups=None):
    if is_blank(tour_package_name):
        return ''
    package = lookups.find_tour_package(tour_package_name) if lookups else None
    if not package or not package.get('tour_code'):
        return UNKNOWN_TOUR_CODE
    return package['tour_code']


def traveller_initials(first_name, last_name):
    first = (first_name or '').strip()
    last = (last_name or '').strip()
    return (first[:1] + last[:1]).upper()


def full_name(first_name, last_name):
    return f"{first_name or ''} {last_name or ''}".strip()


def formatted_tour_date(tour_date):
    """yyyymmdd for the booking ID; 'ERROR' if the tour date can't be read."""
    parsed, status = normalize_date(tour_date)
    if status == 'blank':
        return ''
    if status == 'error':
        return 'ERROR'
    return format_compact(parsed)


def tour_package_unique_counter(tour_package_name, row, lookups=None):
    """
    Position of this booking among all bookings for the same tour package.

    Bookings are ordered by sheet row number, so the first booking for a
    package gets '001', the second '002', and so on.

    Returns:
        3-digit string, or '' when no tour package is selected
    """
    if is_blank(tour_package_name):
        return ''
    if is_blank(row):
        return '001'

    same_tour = lookups.bookings_for_package(tour_package_name) if lookups else []
    same_tour = [b for b in same_tour if not is_blank(b.get('row'))]
    if not same_tour:
        return '001'

    def row_sort_key(booking):
        number = to_optional_number(booking['row'])
        # Numeric rows first in numeric order, anything else after by text
        return (0, number, '') if number is not None else (1, 0, str(booking['row']))

    same_tour.sort(key=row_sort_key)

    position = None
    for index, booking in enumerate(same_tour):
        if str(booking['row']) == str(row):
            position = index + 1
            break

    count = position if position is not None else len(same_tour)
    return str(count).zfill(3)


def booking_reference(tour_date, supporting_fields, code, tour_code_value,
                      formatted_date, initials, counter):
    """
    Build the booking ID, e.g. 'SB-JAS-20260410-JD003'.

    The ID is only generated once the tour date is set and at least six of
    the supporting fields (code, tour code, date, initials, counter, email,
    full name) are filled in, so half-entered rows don't get an ID that
    changes later.
    """
    if is_blank(tour_date):
        return ''

    filled = [v for v in (supporting_fields or []) if v is not None and str(v).strip() != '']
    if len(filled) < 6:
        return ''

    return f"{code}-{tour_code_value}-{formatted_date}-{initials}{counter}"


def group_member_id(booking_type, tour_name, first_name, last_name, email, is_main_booker):
    """
    Stable member ID for duo and group bookings.

    The ID is derived from a positional character hash of the booking's
    identity, so recomputing the row always gives the same ID.

    Returns:
        'DB-JD-0421-118' style string, or '' for single bookings and
        non-main bookers
    """
    if booking_type not in ('Duo Booking', 'Group Booking'):
        return ''
    if is_main_booker is not True:
        return ''

    first_name = first_name or ''
    last_name = last_name or ''
    initials = (first_name[:1] + last_name[:1]).upper()
    prefix = 'DB' if booking_type == 'Duo Booking' else 'GB'

    identity = f"{booking_type}|{tour_name or ''}|{first_name}|{last_name}|{email or ''}"
    hash_num = sum(ord(char) * (index + 1) for index, char in enumerate(identity))

    hash_tag = str(hash_num % 10000).zfill(4)
    member_number = str(hash_num % 999 + 1).zfill(3)

    return f"{prefix}-{initials}-{hash_tag}-{member_number}"
