"""
Maps the function names used in the column registry to their implementations.

Per-term functions (due date, amount, reminder for P1-P4) are one
implementation each, bound to their term here so the registry can refer to
'p2_amount' without a literal term argument on every column.

Aliases keep older column definitions working: imported sheets and stored
column configs may still say 'full_payment_remaining' or 'get_p1_amount'.
"""

from functools import partial

from column_registry import UnknownFunctionError
import cancellation_functions
import discount_functions
import identifier_functions
import payment_functions
import tour_details_functions


# Functions that read reference data and take a lookups= keyword argument
LOOKUP_FUNCTIONS = {
    identifier_functions.tour_code,
    identifier_functions.tour_package_unique_counter,
    discount_functions.discount_rate,
    discount_functions.discount_type,
    tour_details_functions.tour_duration,
    payment_functions.original_tour_cost,
    payment_functions.discounted_tour_cost,
    payment_functions.reservation_fee,
}


def _term_functions():
    functions = {}
    for term in (1, 2, 3, 4):
        functions[f'p{term}_due_date'] = partial(payment_functions.installment_due_date, term)
        functions[f'p{term}_amount'] = partial(payment_functions.installment_amount, term)
        functions[f'p{term}_reminder_date'] = partial(
            payment_functions.scheduled_reminder_date, term
        )
    return functions


FUNCTION_MAP = {
    # Identifier / Traveler Information / Duo or Group Booking
    'booking_code': identifier_functions.booking_code,
    'tour_code': identifier_functions.tour_code,
    'traveller_initials': identifier_functions.traveller_initials,
    'full_name': identifier_functions.full_name,
    'tour_package_unique_counter': identifier_functions.tour_package_unique_counter,
    'formatted_tour_date': identifier_functions.formatted_tour_date,
    'booking_reference': identifier_functions.booking_reference,
    'group_member_id': identifier_functions.group_member_id,

    # Discounts
    'discount_rate': discount_functions.discount_rate,
    'discount_type': discount_functions.discount_type,

    # Tour Details
    'tour_duration': tour_details_functions.tour_duration,
    'return_date': tour_details_functions.return_date,
    'days_between_booking_and_tour': tour_details_functions.days_between_booking_and_tour,
    'eligible_second_of_months': tour_details_functions.eligible_second_of_months,
    'payment_condition': tour_details_functions.payment_condition,
    'available_payment_terms': tour_details_functions.available_payment_terms,

    # Payment Setting
    'original_tour_cost': payment_functions.original_tour_cost,
    'discounted_tour_cost': payment_functions.discounted_tour_cost,
    'reservation_fee': payment_functions.reservation_fee,
    'paid': payment_functions.paid,
    'paid_terms': payment_functions.paid_terms,
    'remaining_balance': payment_functions.remaining_balance,
    'booking_status': payment_functions.booking_status,
    'payment_progress': payment_functions.payment_progress,
    'admin_fee': payment_functions.admin_fee,

    # Full Payment
    'full_payment_amount': payment_functions.full_payment_amount,
    'full_payment_due_date': payment_functions.full_payment_due_date,

    # Cancellation
    'cancellation_scenario': cancellation_functions.cancellation_scenario,
    'eligible_refund': cancellation_functions.eligible_refund,
    'refundable_amount': cancellation_functions.refundable_amount,
    'non_refundable_amount': cancellation_functions.non_refundable_amount,
}

FUNCTION_MAP.update(_term_functions())

ALIASES = {
    'full_payment_remaining': 'full_payment_amount',
    'booking_id': 'booking_reference',
    'group_id_generator': 'group_member_id',
    'tour_package_name_unique_counter': 'tour_package_unique_counter',
    'formatted_date': 'formatted_tour_date',
}
for _term in (1, 2, 3, 4):
    ALIASES[f'get_p{_term}_amount'] = f'p{_term}_amount'
    ALIASES[f'get_p{_term}_due_date'] = f'p{_term}_due_date'
    ALIASES[f'get_p{_term}_scheduled_reminder_date'] = f'p{_term}_reminder_date'

FUNCTION_MAP.update({alias: FUNCTION_MAP[target] for alias, target in ALIASES.items()})


def uses_lookups(fn):
    """Whether fn expects the SheetLookups as a lookups= keyword argument."""
    if isinstance(fn, partial):
        fn = fn.func
    return fn in LOOKUP_FUNCTIONS


def get_function(name, function_map=None):
    """
    Look up an implementation by name or alias.

    Raises:
        UnknownFunctionError: if nothing is registered under name
    """
    function_map = function_map if function_map is not None else FUNCTION_MAP
    try:
        return function_map[name]
    except KeyError:
        raise UnknownFunctionError(f"Unknown column function: {name}") from None
