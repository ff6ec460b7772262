"""
Column functions for the Payment Setting, Full Payment and Payment Term tabs.

Money flows through the sheet like this:

    cost basis (original or discounted tour cost)
      - reservation fee (paid at booking)
      = amount to schedule, either as one full payment or split into
        P1..P4 installments due on the 2nd of successive months

A manual credit can be applied to the reservation or to one specific term
("Credit From"); the installment split absorbs it so the plan still adds up.

Several functions take the payment slots as lists bound from multiple
columns, always in the order [Full Payment, P1, P2, P3, P4]:
    dates_paid: the "... Date Paid" values
    amounts: the "... Amount" values
"""

from cancellation_functions import resolve_initiator, is_no_refund
from date_helpers import (
    is_blank,
    is_filled,
    to_date,
    normalize_date,
    to_number,
    to_optional_number,
    parse_rate,
    round_money,
    add_days,
    second_of_month,
    end_of_previous_month,
    monday_on_or_before,
    format_display,
    format_ymd,
)
import re


TERM_SLOTS = ('Full Payment', 'P1', 'P2', 'P3', 'P4')

PLAN_TERMS = {'P1': 1, 'P2': 2, 'P3': 3, 'P4': 4}

CONDITION_TERMS = {
    'Standard Booking, P1': 1,
    'Standard Booking, P2': 2,
    'Standard Booking, P3': 3,
    'Standard Booking, P4': 4,
}

# Installment due dates must be more than 2 days after reserving and at
# least 3 days before the tour
DUE_DATE_MIN_DAYS_AFTER_RESERVATION = 2
DUE_DATE_MIN_DAYS_BEFORE_TOUR = 3

FULL_PAYMENT_DUE_DAYS = 2

ADMIN_FEE_RATE = 0.1


def _slot(values, index):
    values = values or []
    return values[index] if index < len(values) else None


def _plan(payment_plan):
    return (payment_plan or '').strip() if isinstance(payment_plan, str) else ''


def _credit_from(credit_from):
    return (credit_from or '').strip() if isinstance(credit_from, str) else ''


def cost_basis(use_discounted, discounted_cost, original_cost):
    """
    The tour cost the payment schedule is built on.

    The discounted cost is used when "Use Discounted Tour Cost?" is ticked
    and a discounted price exists; otherwise the original cost.
    """
    discounted = to_optional_number(discounted_cost)
    if use_discounted and discounted is not None and discounted > 0:
        return discounted
    return to_number(original_cost)


# ============================================================================
# PRICING LOOKUPS
# ============================================================================

def original_tour_cost(tour_package_name, event_name, rate, lookups=None):
    """
    The package's list price, with the event discount applied if any.

    Returns:
        Number, or '' when the package is blank or unknown
    """
    if is_blank(tour_package_name) or lookups is None:
        return ''

    package = lookups.find_tour_package(tour_package_name)
    base = to_optional_number(((package or {}).get('pricing') or {}).get('original'))
    if base is None:
        return ''

    discount = parse_rate(rate)
    if not is_blank(event_name) and discount is not None:
        return round_money(base * (1 - discount))

    return base


def discounted_tour_cost(tour_package_name, tour_date, lookups=None):
    """The travel date's custom discounted price if set, else the package's."""
    if is_blank(tour_package_name) or lookups is None:
        return ''

    package = lookups.find_tour_package(tour_package_name)
    if not package:
        return ''

    travel_date = lookups.find_travel_date(package, tour_date)
    if travel_date and travel_date.get('has_custom_discounted') \
            and travel_date.get('custom_discounted') is not None:
        return travel_date['custom_discounted']

    discounted = (package.get('pricing') or {}).get('discounted')
    return '' if discounted is None else discounted


def reservation_fee(tour_package_name, tour_date, lookups=None):
    """The deposit for this package and travel date."""
    if is_blank(tour_package_name) or lookups is None:
        return ''

    package = lookups.find_tour_package(tour_package_name)
    pricing = (package or {}).get('pricing')
    if not pricing:
        return ''

    deposit = pricing.get('deposit')
    travel_date = lookups.find_travel_date(package, tour_date)
    if travel_date and travel_date.get('has_custom_deposit') \
            and travel_date.get('custom_deposit') is not None:
        deposit = travel_date['custom_deposit']

    if not pricing.get('currency') or not deposit:
        return ''
    return deposit


# ============================================================================
# PAYMENT TOTALS
# ============================================================================

def paid(tour_package_name, fee, credit_from, credit_amount, dates_paid, amounts):
    """
    Total received so far, including the reservation fee.

    A term counts once it has a date paid. If the credit was applied to a
    term, that term counts as paid with the credit amount instead of its
    scheduled amount.
    """
    if is_blank(tour_package_name):
        return ''

    source = _credit_from(credit_from)
    credit = to_number(credit_amount)

    total = to_number(fee)
    if source == 'Reservation':
        total += credit

    for index, slot in enumerate(TERM_SLOTS):
        if source == slot:
            total += credit
        elif is_filled(_slot(dates_paid, index)):
            total += to_number(_slot(amounts, index))

    return round_money(total)


def paid_terms(tour_package_name, credit_from, credit_amount, dates_paid, amounts):
    """Total received for Full Payment and P1-P4 only (reservation fee excluded)."""
    if is_blank(tour_package_name):
        return ''

    source = _credit_from(credit_from)
    credit = to_number(credit_amount)

    total = 0.0
    for index, slot in enumerate(TERM_SLOTS):
        if not is_filled(_slot(dates_paid, index)):
            continue
        # Credits are only applied to installments, never to the full payment
        if slot != 'Full Payment' and source == slot:
            total += credit
        else:
            total += to_number(_slot(amounts, index))

    return round_money(total)


def remaining_balance(tour_package_name, use_discounted, discounted_cost, original_cost,
                      fee, credit_from, credit_amount, payment_plan, dates_paid, amounts):
    """
    What the guest still owes.

    cost basis - reservation fee - reservation credit - paid terms,
    never below zero. A P1 plan is settled by its single payment.
    """
    if is_blank(tour_package_name):
        return ''

    total = cost_basis(use_discounted, discounted_cost, original_cost) - to_number(fee)
    if _credit_from(credit_from) == 'Reservation':
        total -= to_number(credit_amount)

    received = 0.0
    for index in range(len(TERM_SLOTS)):
        if is_filled(_slot(dates_paid, index)):
            received += to_number(_slot(amounts, index))

    if _plan(payment_plan) == 'P1' and is_filled(_slot(dates_paid, 1)):
        return 0

    return max(round_money(total - received), 0)


# ============================================================================
# STATUS
# ============================================================================

def booking_status(cancellation_reason, payment_plan, balance, dates_paid):
    """
    One-line booking status for the sheet.

    Examples:
        'Cancelled'
        'Booking Confirmed - Mar 2, 2026'
        'Waiting for Full Payment'
        'Installment 2/4 - last paid Apr 2, 2026'
    """
    if not is_blank(cancellation_reason):
        return 'Cancelled'

    plan = _plan(payment_plan)
    has_any_date = any(is_filled(_slot(dates_paid, i)) for i in range(len(TERM_SLOTS)))

    if not plan and not has_any_date and balance is None:
        return ''

    remaining = to_number(balance)

    full = to_date(_slot(dates_paid, 0))
    terms = [to_date(_slot(dates_paid, i)) for i in range(1, 5)]

    if plan == 'Full Payment':
        total_terms = 1
        paid_count = 0
        last_paid = full
    else:
        total_terms = PLAN_TERMS.get(plan, 0)
        paid_count = len([d for d in terms if d is not None])
        counted = [d for d in terms[:total_terms] if d is not None]
        last_paid = max(counted) if counted else None

    if remaining == 0 and (paid_count > 0 or full):
        base_status = 'Booking Confirmed'
    elif plan == '':
        base_status = ''
    elif plan == 'Full Payment':
        base_status = 'Waiting for Full Payment'
    else:
        base_status = f'Installment {paid_count}/{total_terms}'

    if base_status == 'Booking Confirmed':
        return f'{base_status} - {format_display(last_paid)}' if last_paid else base_status
    if paid_count > 0 and last_paid:
        return f'{base_status} - last paid {format_display(last_paid)}'
    return base_status


def payment_progress(status, payment_plan, dates_paid):
    """Share of scheduled payments made, as '0%' .. '100%'."""
    if is_blank(status) or status.strip().lower() == 'cancelled':
        return ''

    plan = _plan(payment_plan).upper()

    def is_paid(index):
        return to_date(_slot(dates_paid, index)) is not None

    if 'FULL PAYMENT' in plan:
        return '100%' if is_paid(0) else '0%'

    for term_count in (1, 2, 3, 4):
        if f'P{term_count}' in plan:
            made = len([i for i in range(1, term_count + 1) if is_paid(i)])
            return f'{int(round(made / term_count * 100))}%'

    return '0%'


def admin_fee(initiated_by, eligible_refund, paid_terms_total, full_payment_total,
              fee, supplier_costs, cancellation_reason):
    """
    10% processing fee withheld from a guest's refund.

    No fee when the operator (IHT) cancels, when supplier costs are
    committed (the supplier keeps those instead), or when nothing is
    refunded. Full payments are charged on the non-reservation amount,
    installment plans on the paid terms.
    """
    if is_blank(cancellation_reason):
        return ''

    if resolve_initiator(initiated_by, cancellation_reason) == 'IHT':
        return 0
    if to_number(supplier_costs) > 0:
        return 0
    if is_no_refund(eligible_refund or ''):
        return 0

    full_payment = to_number(full_payment_total)
    if full_payment > 0:
        base = full_payment - to_number(fee)
    else:
        base = to_number(paid_terms_total)

    if base <= 0:
        return 0
    return round_money(ADMIN_FEE_RATE * base)


# ============================================================================
# FULL PAYMENT
# ============================================================================

def _shows_full_payment(payment_plan, condition):
    plan = _plan(payment_plan)
    if plan and plan != 'Full Payment':
        return False
    return plan == 'Full Payment' or (condition or '').strip() == 'Last Minute Booking'


def full_payment_amount(tour_package_name, payment_plan, use_discounted, discounted_cost,
                        original_cost, fee, credit_amount, condition):
    """
    The single payment due under a Full Payment plan.

    Also shown for Last Minute Bookings, which can't be split into installments.
    """
    if is_blank(tour_package_name):
        return ''
    if not _shows_full_payment(payment_plan, condition):
        return ''

    base = cost_basis(use_discounted, discounted_cost, original_cost)
    return round_money(base - to_number(fee) - to_number(credit_amount))


def full_payment_due_date(reservation_date, payment_plan, condition):
    """Reservation date + 2 days, as 'Apr 25, 2026'."""
    if is_blank(reservation_date):
        return ''
    if not _shows_full_payment(payment_plan, condition):
        return ''

    reserved = to_date(reservation_date)
    if reserved is None:
        return ''
    return format_display(add_days(reserved, FULL_PAYMENT_DUE_DAYS))


# ============================================================================
# INSTALLMENTS (P1-P4)
# ============================================================================

def installment_dates(reserved, tour):
    """
    All 2nd-of-month dates usable as installment due dates.

    A date is usable if it is more than 2 days after the reservation and no
    later than 3 days before the tour.
    """
    earliest = add_days(reserved, DUE_DATE_MIN_DAYS_AFTER_RESERVATION)
    latest = add_days(tour, -DUE_DATE_MIN_DAYS_BEFORE_TOUR)

    month_count = (tour.year - reserved.year) * 12 + (tour.month - reserved.month) + 1
    candidates = [second_of_month(reserved, i) for i in range(1, month_count + 1)]
    return [d for d in candidates if earliest < d <= latest]


def installment_due_date(term, reservation_date, tour_date, payment_plan, condition):
    """
    Due date of installment `term` (1-4).

    With a plan selected, this is the term's own date. With no plan yet,
    the column previews every date up to and including this term
    ("Jan 2, 2026, Feb 2, 2026") so staff can see what each plan would mean.

    Returns:
        Display date(s), '' when the term doesn't apply, or 'ERROR' when
        a date can't be parsed
    """
    plan = _plan(payment_plan)
    if plan == 'Full Payment':
        return ''
    if plan in PLAN_TERMS and PLAN_TERMS[plan] < term:
        return ''
    if is_blank(reservation_date):
        return ''

    if CONDITION_TERMS.get((condition or '').strip(), 0) < term:
        return ''

    reserved, reserved_status = normalize_date(reservation_date)
    tour, tour_status = normalize_date(tour_date)
    if reserved_status == 'blank' or tour_status == 'blank':
        return ''
    if reserved_status == 'error' or tour_status == 'error':
        return 'ERROR'

    dates = installment_dates(reserved, tour)
    if len(dates) < term:
        return ''

    if plan in PLAN_TERMS:
        return format_display(dates[term - 1])
    return ', '.join(format_display(d) for d in dates[:term])


def installment_amount(term, due_date, use_discounted, discounted_cost, original_cost,
                       fee, credit_from, credit_amount, payment_plan):
    """
    Amount due for installment `term` (1-4).

    The amount to schedule (cost basis - reservation fee) is split evenly
    across the plan's terms, then adjusted for a manual credit:

        credit on the reservation   -> (total - credit) / terms
        credit on this term         -> the credit amount itself
        credit on a later term      -> the plain even share
        credit on an earlier term   -> the rest is spread over the terms
                                       after the credited one

    With no plan selected yet, the total is previewed as if it were split
    over `term` installments. The preview can't subtract other terms'
    payments, since their amounts are computed from this one.
    """
    if is_blank(due_date):
        return ''

    total = cost_basis(use_discounted, discounted_cost, original_cost) - to_number(fee)
    source = _credit_from(credit_from)
    credit = to_number(credit_amount)
    plan = _plan(payment_plan)

    if not plan:
        return round_money(total / term)

    terms = PLAN_TERMS.get(plan, 1)
    if terms < term:
        return ''

    credit_index = None
    if credit > 0:
        if source == 'Reservation':
            credit_index = 0
        elif source in PLAN_TERMS:
            credit_index = PLAN_TERMS[source]

    base = total / terms

    if credit_index is None:
        amount = base
    elif credit_index == 0:
        amount = (total - credit) / terms
    elif credit_index == term:
        amount = credit
    elif credit_index > term:
        amount = base
    else:
        amount = (total - base * (credit_index - 1) - credit) / max(1, terms - credit_index)

    return round_money(amount)


def scheduled_reminder_date(term, due_date, date_paid):
    """
    The Monday on which the payment reminder for `term` goes out.

    Counting back from the due date: last day of the previous month, minus
    six days, then back to that week's Monday. No reminder once the term is
    paid, or while the due date is still a multi-date preview.

    Returns:
        'yyyy-mm-dd' or ''
    """
    if is_blank(due_date) or is_filled(date_paid):
        return ''

    # A preview like "Jan 2, 2026, Feb 2, 2026" holds more than one year
    if isinstance(due_date, str) and len(re.findall(r'\b\d{4}\b', due_date)) > 1:
        return ''

    due = to_date(due_date)
    if due is None:
        return ''

    limit = add_days(end_of_previous_month(due), -6)
    return format_ymd(monday_on_or_before(limit))


