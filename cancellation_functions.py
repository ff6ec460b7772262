"""
Column functions for the Cancellation tab.

A cancellation is classified into one scenario (who cancelled, how close to
the tour, how the guest was paying, special circumstances), and the scenario
decides the refund policy. The money columns then apply the policy:

    Refundable Amount + Non Refundable Amount = Paid

Key rules:
- The reservation fee (RF) is only refunded when IHT (the operator) cancels
- Guest refunds are a share of the non-reservation amount (NRA, full
  payments) or of the paid terms (installments), minus the admin fee
- Committed supplier costs are deducted from any refund

Scenarios, in priority order:
    guest-no-show, supplier-costs, iht-cancel-before, iht-cancel-after,
    force-majeure, installment-default-*, guest-cancel-full-*,
    guest-cancel-installment-*, no-payment, guest-cancel-generic
"""

from date_helpers import is_blank, is_filled, to_date, to_number, round_money


INSTALLMENT_PLANS = ('P1', 'P2', 'P3', 'P4')
REFUNDABLE_PLANS = ('Full Payment',) + INSTALLMENT_PLANS

EARLY_DAYS = 100
MID_RANGE_DAYS = 60

# Legacy eligibility strings written before the scenario policies existed
LEGACY_NO_REFUND = ('0 Paid Terms, no refund', 'Refund Ineligible')


def resolve_initiator(initiated_by, cancellation_reason):
    """
    Who cancelled: 'Guest', 'IHT' or None.

    The "Cancellation Initiated By" column wins. Older rows only have the
    reason, written as "Guest - changed plans" or "IHT - low bookings".
    """
    if isinstance(initiated_by, str) and initiated_by.strip() in ('Guest', 'IHT'):
        return initiated_by.strip()

    if is_blank(cancellation_reason) or not isinstance(cancellation_reason, str):
        return None

    reason = cancellation_reason.strip()
    if reason.startswith('Guest -') or reason.startswith('Guest-'):
        return 'Guest'
    if reason.startswith('IHT -') or reason.startswith('IHT-'):
        return 'IHT'

    lowered = reason.lower()
    if 'iht' in lowered:
        return 'IHT'
    if 'guest' in lowered:
        return 'Guest'
    return None


def is_no_refund(policy):
    """True if a refund policy string means nothing is refunded."""
    if not isinstance(policy, str):
        return False
    return 'no refund' in policy.lower() or policy in LEGACY_NO_REFUND


def days_before_tour(cancellation_date, tour_date):
    """Whole days from the cancellation request to the tour (0 if unknown)."""
    requested = to_date(cancellation_date)
    tour = to_date(tour_date)
    if requested is None or tour is None:
        return 0
    return (tour - requested).days


def _timing(days):
    if days >= EARLY_DAYS:
        return 'early'
    if days >= MID_RANGE_DAYS:
        return 'mid-range'
    return 'late'


def _scenario(scenario_id, description, refund_policy, timing, days):
    return {
        'scenario_id': scenario_id,
        'description': description,
        'refund_policy': refund_policy,
        'timing': timing,
        'days_before_tour': days,
    }


def _is_truthy(value):
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1')
    return bool(value)


def detect_cancellation_scenario(initiated_by, payment_plan, paid_terms_total,
                                 full_payment_date_paid, supplier_costs, tour_date,
                                 cancellation_date, is_no_show, cancellation_reason):
    """
    Classify a cancellation.

    Args:
        initiated_by: 'Guest' or 'IHT' (already resolved)
        payment_plan: 'Full Payment' or 'P1'..'P4'
        paid_terms_total: amount paid on terms, excluding the reservation fee
        full_payment_date_paid: any value; filled means the guest paid in full
        supplier_costs: supplier costs already committed
        tour_date, cancellation_date: any supported date value
        is_no_show: whether the guest was marked as a no-show
        cancellation_reason: free text, used for force majeure and defaults

    Returns:
        Scenario dict (scenario_id, description, refund_policy, timing,
        days_before_tour), or None when the booking isn't cancelled
    """
    requested = to_date(cancellation_date)
    if is_blank(cancellation_reason) or requested is None:
        return None

    tour = to_date(tour_date)
    days = days_before_tour(requested, tour)
    timing = _timing(days)

    plan = payment_plan.strip() if isinstance(payment_plan, str) else ''
    is_full_payment = plan == 'Full Payment' or is_filled(full_payment_date_paid)
    is_installment = plan in INSTALLMENT_PLANS
    reason = cancellation_reason.lower()

    if _is_truthy(is_no_show) and tour is not None and requested >= tour:
        return _scenario('guest-no-show', 'Guest No-Show',
                         'No refund - Guest did not attend tour', 'n/a', 0)

    if to_number(supplier_costs) > 0 and initiated_by != 'IHT':
        return _scenario('supplier-costs', 'Supplier Costs Committed',
                         'Refund minus supplier costs and admin fee', timing, days)

    if initiated_by == 'IHT':
        if tour is not None and requested < tour:
            return _scenario('iht-cancel-before', 'Tour Cancelled by IHT (Before Start)',
                             '100% refund including reservation fee OR travel credit',
                             'n/a', days)
        return _scenario('iht-cancel-after', 'Tour Cancelled by IHT (After Start)',
                         'Partial refund for unused portion OR travel credit', 'n/a', days)

    if 'force majeure' in reason:
        return _scenario('force-majeure', 'Force Majeure',
                         'Case-by-case (refund OR travel credit)', 'n/a', days)

    if is_installment and ('default' in reason or 'missed payment' in reason):
        if timing == 'early':
            return _scenario('installment-default-early', 'Installment Default (Early)',
                             'Refund after admin fee deduction', timing, days)
        if timing == 'mid-range':
            return _scenario('installment-default-mid', 'Installment Default (Mid-Range)',
                             '50% refund after admin fee deduction', timing, days)
        return _scenario('installment-default-late', 'Installment Default (Late)',
                         'No refund', timing, days)

    if initiated_by == 'Guest' and is_full_payment:
        if timing == 'early':
            return _scenario('guest-cancel-full-early', 'Guest Cancel Early (Full Payment)',
                             '100% of non-reservation amount minus admin fee', timing, days)
        if timing == 'mid-range':
            return _scenario('guest-cancel-full-mid', 'Guest Cancel Mid-Range (Full Payment)',
                             '50% of non-reservation amount minus admin fee', timing, days)
        return _scenario('guest-cancel-full-late', 'Guest Cancel Late (Full Payment)',
                         'No refund - All amounts forfeited', timing, days)

    if initiated_by == 'Guest' and is_installment:
        if timing == 'early':
            return _scenario('guest-cancel-installment-early', 'Guest Cancel Early (Installment)',
                             'Refund of paid terms minus admin fee', timing, days)
        if timing == 'mid-range':
            return _scenario('guest-cancel-installment-mid',
                             'Guest Cancel Mid-Range (Installment)',
                             '50% of paid terms minus admin fee', timing, days)
        return _scenario('guest-cancel-installment-late', 'Guest Cancel Late (Installment)',
                         'No refund - RF and paid terms forfeited', timing, days)

    if to_number(paid_terms_total) == 0:
        return _scenario('no-payment', 'Cancellation (No Payment Made)',
                         'No refund - No payments made', 'n/a', days)

    generic_policies = {
        'early': '100% refund minus admin fee',
        'mid-range': '50% refund minus admin fee',
        'late': 'No refund',
    }
    return _scenario('guest-cancel-generic', 'Guest Cancellation',
                     generic_policies[timing], timing, days)


def cancellation_scenario(cancellation_request_date, tour_date, payment_plan, paid_terms_total,
                          full_payment_date_paid, supplier_costs, is_no_show,
                          cancellation_reason, initiated_by):
    """
    Human-readable scenario, e.g. 'Guest Cancel Early (Full Payment) (125 days before tour)'.
    """
    scenario = detect_cancellation_scenario(
        resolve_initiator(initiated_by, cancellation_reason),
        payment_plan,
        paid_terms_total,
        full_payment_date_paid,
        supplier_costs,
        tour_date,
        cancellation_request_date,
        is_no_show,
        cancellation_reason,
    )
    if not scenario:
        return ''

    if scenario['timing'] == 'n/a' or scenario['days_before_tour'] == 0:
        return scenario['description']
    return f"{scenario['description']} ({scenario['days_before_tour']} days before tour)"


def eligible_refund(cancellation_request_date, tour_date, cancellation_reason, payment_plan,
                    paid_terms_total, full_payment_date_paid, supplier_costs, is_no_show,
                    initiated_by):
    """The refund policy that applies, or '' if not cancelled or no plan was chosen."""
    plan = payment_plan.strip() if isinstance(payment_plan, str) else ''
    if plan not in REFUNDABLE_PLANS:
        return ''

    scenario = detect_cancellation_scenario(
        resolve_initiator(initiated_by, cancellation_reason),
        plan,
        paid_terms_total,
        full_payment_date_paid,
        supplier_costs,
        tour_date,
        cancellation_request_date,
        is_no_show,
        cancellation_reason,
    )
    return scenario['refund_policy'] if scenario else ''


def _share_of(policy):
    """Fraction of the refundable base a guest policy grants (None if it grants none)."""
    lowered = policy.lower()
    if '50%' in lowered:
        return 0.5
    if ('100%' in lowered or 'refund of paid terms' in lowered
            or 'refund after admin' in lowered or 'refund minus supplier costs' in lowered):
        return 1.0
    return None


def refundable_amount(initiated_by, cancellation_reason, fee_for_admin, paid_total,
                      paid_terms_total, fee, full_payment_total, supplier_costs,
                      cancellation_request_date, policy):
    """
    Amount to refund.

    IHT cancellations refund everything paid (RF included) minus supplier
    costs. Guest refunds never include the RF: they are a share of the NRA
    (full payment minus RF) or of the paid terms, minus the admin fee, minus
    supplier costs, and never negative.

    Returns:
        Number, or '' when there is no cancellation request date
    """
    if is_blank(cancellation_request_date):
        return ''

    supplier = to_number(supplier_costs)

    if resolve_initiator(initiated_by, cancellation_reason) == 'IHT':
        return max(0, round_money(to_number(paid_total) - supplier))

    policy = policy or ''
    if is_no_refund(policy):
        return 0

    share = _share_of(policy)
    if share is None:
        return 0

    full_payment = to_number(full_payment_total)
    if full_payment > 0:
        base = full_payment - to_number(fee)
    else:
        base = to_number(paid_terms_total)

    refundable = base * share - to_number(fee_for_admin)
    if supplier > 0:
        refundable -= supplier

    return max(0, round_money(refundable))


def non_refundable_amount(cancellation_request_date, paid_total, refundable):
    """Paid minus refundable, so the two always add up to what was paid."""
    if is_blank(cancellation_request_date):
        return ''
    return max(0, round_money(to_number(paid_total) - to_number(refundable)))
