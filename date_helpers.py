"""
Helpers for normalizing the loose values stored in booking rows.

Booking rows are edited by hand, imported from old spreadsheets, and written
by several clients, so the same field can arrive as a date object, a
"dd/mm/yyyy" string, a "yyyy-mm-dd" string, a display string like
"Oct 8, 2025", epoch milliseconds, or a Firestore-style
{'seconds': ..., 'nanoseconds': ...} mapping. Every column function goes
through these helpers instead of parsing dates on its own.

Why this module exists:
The column functions are small business rules. Keeping the parsing and
calendar arithmetic in one place means each rule reads like the rule it
implements, and a date format fix lands everywhere at once.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from dateutil import parser
import calendar
import re


MONTH_ABBREVIATIONS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
                       'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

DMY_PATTERN = re.compile(r'^(\d{2})/(\d{2})/(\d{4})$')
YMD_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')

# Zero-width and narrow no-break spaces that sneak in from copy/paste
INVISIBLE_CHARS = re.compile('[\u200b-\u200f\u2028-\u202f\u00a0]')


# ============================================================================
# DATE PARSING
# ============================================================================

def is_blank(value):
    """Return True for None and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == '':
        return True
    return False


def is_filled(value):
    """
    Return True if a "date paid" style field counts as filled in.

    Any non-blank value counts, including strings that are not valid dates,
    because the sheet treats a typed note in a date-paid cell as "paid".
    """
    if isinstance(value, str):
        return value.strip() != ''
    return bool(value)


def _date_from_string(raw):
    raw = INVISIBLE_CHARS.sub(' ', raw).strip()
    if not raw:
        return None

    match = DMY_PATTERN.match(raw)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    match = YMD_PATTERN.match(raw)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    # A bare number is never a date on its own
    if raw.isdigit():
        return None

    # "September 15, 2025 at 8:00:00 AM UTC+8" -> drop the "at"
    cleaned = re.sub(r'\s+at\s+', ' ', raw)
    try:
        return parser.parse(cleaned).date()
    except (ValueError, OverflowError):
        return None


def to_date(value):
    """
    Convert any supported date representation to a datetime.date.

    Args:
        value: date, datetime, epoch milliseconds, Firestore-style mapping,
            object with to_datetime() or date(), or string

    Returns:
        datetime.date, or None if the value is blank or cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, dict):
        seconds = value.get('seconds')
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            nanos = value.get('nanoseconds') or 0
            try:
                moment = datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
            return moment.date()
        return None

    if hasattr(value, 'to_datetime') and callable(value.to_datetime):
        return to_date(value.to_datetime())

    if hasattr(value, 'date') and callable(value.date):
        return to_date(value.date())

    if isinstance(value, str):
        return _date_from_string(value)

    return None


def normalize_date(value):
    """
    Parse a value and report whether it was blank, valid, or invalid.

    Returns:
        Tuple of (date or None, status) where status is 'blank', 'ok' or 'error'

    Why: Due-date columns show "" for a blank input but "ERROR" for an input
    that was filled in and could not be parsed, so they need to tell the two
    apart.
    """
    if is_blank(value):
        return None, 'blank'
    parsed = to_date(value)
    if parsed is None:
        return None, 'error'
    return parsed, 'ok'


# ============================================================================
# DATE FORMATTING
# ============================================================================

def format_ymd(value):
    """Format as yyyy-mm-dd (used for stored dates and return dates)."""
    return value.strftime('%Y-%m-%d')


def format_compact(value):
    """Format as yyyymmdd (used inside booking IDs)."""
    return value.strftime('%Y%m%d')


def format_display(value):
    """Format as 'Oct 8, 2025' regardless of the process locale."""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.day}, {value.year}"


# ============================================================================
# CALENDAR ARITHMETIC
# ============================================================================

def add_days(value, days):
    return value + timedelta(days=days)


def add_months(value, months):
    """Add calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def second_of_month(value, months_ahead):
    """The 2nd day of the month that is months_ahead after value's month."""
    return add_months(value.replace(day=1), months_ahead).replace(day=2)


def months_between(start, end):
    """
    Whole months from start to end, like the spreadsheet DATEDIF(..., "M").

    Never negative.
    """
    diff = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        diff -= 1
    return max(0, diff)


def end_of_previous_month(value):
    return value.replace(day=1) - timedelta(days=1)


def monday_on_or_before(value):
    return value - timedelta(days=value.weekday())


# ============================================================================
# NUMBER HELPERS
# ============================================================================

def to_optional_number(value):
    """
    Convert a cell value to float, or None if it is blank or not numeric.

    Strings may carry currency codes, symbols, thousands separators or a
    trailing "%" ("EUR 1,250.00" -> 1250.0).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r'[^\d.\-]', '', value.replace(',', ''))
        if cleaned in ('', '-', '.', '-.'):
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def to_number(value):
    """Convert a cell value to float, treating blank or invalid as 0."""
    number = to_optional_number(value)
    return 0.0 if number is None else number


def parse_rate(value):
    """
    Convert a discount rate to a decimal fraction.

    Accepts "20%", 20 and 0.2 (all meaning twenty percent).
    Returns None for blank or invalid input.
    """
    if isinstance(value, str) and '%' in value:
        number = to_optional_number(value)
        return None if number is None else number / 100
    number = to_optional_number(value)
    if number is None:
        return None
    return number / 100 if number > 1 else number


def round_money(value):
    """Round half-up to cents, the way the spreadsheet did."""
    try:
        return float(Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0
