"""
Column registry for the booking sheet.

Every column of the sheet is declared here: plain input columns that staff
fill in, and function columns whose value is computed from other columns of
the same row. A function column names its implementation (a key of
function_map.FUNCTION_MAP) and lists its arguments in call order:

    {'name': 'tour_date', 'column': 'Tour Date'}           one column's value
    {'name': 'dates_paid', 'columns': ['P1 Date Paid', ...]}  list of values
    {'name': 'term', 'value': '2', 'type': 'number'}      literal

Arguments reference columns by their display name, the way the sheet header
reads. Values are stored on the booking under the column's snake_case id.

Why this module exists:
The dependency graph, the evaluator, the API and the maintenance script all
need the same picture of the sheet. Declaring it once as data means adding a
column is one entry here plus, for function columns, one function.
"""

from copy import deepcopy


PARENT_TABS = (
    'Identifier',
    'Traveler Information',
    'Discounts',
    'Tour Details',
    'Duo or Group Booking',
    'Payment Setting',
    'Full Payment',
    'Payment Term 1',
    'Payment Term 2',
    'Payment Term 3',
    'Payment Term 4',
    'Cancellation',
)

DATA_TYPES = ('string', 'number', 'date', 'boolean', 'select', 'email', 'currency', 'function')

LITERAL_TYPES = ('string', 'number', 'boolean', 'list')

BOOKING_TYPES = ['Single Booking', 'Duo Booking', 'Group Booking']
PAYMENT_PLANS = ['Full Payment', 'P1', 'P2', 'P3', 'P4']
PAYMENT_METHODS = ['Stripe', 'Revolut', 'Bank Transfer', 'Cash']
CREDIT_SOURCES = ['Reservation', 'P1', 'P2', 'P3', 'P4']
INITIATORS = ['Guest', 'IHT']


# ============================================================================
# ERRORS
# ============================================================================

class ColumnRegistryError(ValueError):
    """The column registry is inconsistent."""


class UnknownColumnError(ColumnRegistryError):
    """An argument references a column name that doesn't exist."""


class UnknownFunctionError(ColumnRegistryError):
    """A function column names an implementation that isn't registered."""


class CircularDependencyError(ColumnRegistryError):
    """Function columns depend on each other in a loop."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        super().__init__('Circular dependency: ' + ' -> '.join(self.cycle + self.cycle[:1]))


# ============================================================================
# COLUMN DECLARATIONS
# ============================================================================

def arg(name, column_name):
    return {'name': name, 'column': column_name}


def args_list(name, column_names):
    return {'name': name, 'columns': list(column_names)}


def literal(name, value, value_type='string'):
    return {'name': name, 'value': value, 'type': value_type}


def _input(column_id, name, parent_tab, data_type, include_in_forms=True, options=None,
           default=None):
    spec = {
        'id': column_id,
        'name': name,
        'data_type': data_type,
        'parent_tab': parent_tab,
        'include_in_forms': include_in_forms,
    }
    if options is not None:
        spec['options'] = list(options)
    if default is not None:
        spec['default'] = default
    return spec


def _function(column_id, name, parent_tab, function, arguments):
    return {
        'id': column_id,
        'name': name,
        'data_type': 'function',
        'parent_tab': parent_tab,
        'include_in_forms': False,
        'function': function,
        'arguments': arguments,
    }


DATES_PAID = ['Full Payment Date Paid', 'P1 Date Paid', 'P2 Date Paid',
              'P3 Date Paid', 'P4 Date Paid']
AMOUNTS = ['Full Payment Amount', 'P1 Amount', 'P2 Amount', 'P3 Amount', 'P4 Amount']

COST_ARGUMENTS = [
    arg('use_discounted', 'Use Discounted Tour Cost?'),
    arg('discounted_cost', 'Discounted Tour Cost'),
    arg('original_cost', 'Original Tour Cost'),
    arg('fee', 'Reservation Fee'),
]


def _payment_term_columns(term):
    tab = f'Payment Term {term}'
    prefix = f'P{term}'
    return [
        _function(f'p{term}_scheduled_reminder_date', f'{prefix} Scheduled Reminder Date', tab,
                  f'p{term}_reminder_date', [
                      arg('due_date', f'{prefix} Due Date'),
                      arg('date_paid', f'{prefix} Date Paid'),
                  ]),
        _function(f'p{term}_due_date', f'{prefix} Due Date', tab, f'p{term}_due_date', [
            arg('reservation_date', 'Reservation Date'),
            arg('tour_date', 'Tour Date'),
            arg('payment_plan', 'Payment Plan'),
            arg('condition', 'Payment Condition'),
        ]),
        _function(f'p{term}_amount', f'{prefix} Amount', tab, f'p{term}_amount', [
            arg('due_date', f'{prefix} Due Date'),
            *COST_ARGUMENTS,
            arg('credit_from', 'Credit From'),
            arg('credit_amount', 'Manual Credit'),
            arg('payment_plan', 'Payment Plan'),
        ]),
        _input(f'p{term}_date_paid', f'{prefix} Date Paid', tab, 'date'),
    ]


def _build_columns():
    columns = [
        # Identifier
        _input('row', 'Row', 'Identifier', 'number', include_in_forms=False),
        _function('booking_id', 'Booking ID', 'Identifier', 'booking_reference', [
            arg('tour_date', 'Tour Date'),
            args_list('supporting_fields', [
                'Booking Code', 'Tour Code', 'Formatted Date', 'Traveller Initials',
                'Tour Package Name Unique Counter', 'Email Address', 'Full Name',
            ]),
            arg('code', 'Booking Code'),
            arg('tour_code_value', 'Tour Code'),
            arg('formatted_date', 'Formatted Date'),
            arg('initials', 'Traveller Initials'),
            arg('counter', 'Tour Package Name Unique Counter'),
        ]),
        _function('booking_code', 'Booking Code', 'Identifier', 'booking_code', [
            arg('booking_type', 'Booking Type'),
        ]),
        _function('tour_code', 'Tour Code', 'Identifier', 'tour_code', [
            arg('tour_package_name', 'Tour Package Name'),
        ]),
        _input('reservation_date', 'Reservation Date', 'Identifier', 'date'),
        _input('booking_type', 'Booking Type', 'Identifier', 'select',
               options=BOOKING_TYPES, default='Single Booking'),
        _input('tour_package_name', 'Tour Package Name', 'Identifier', 'string'),
        _function('formatted_date', 'Formatted Date', 'Identifier', 'formatted_tour_date', [
            arg('tour_date', 'Tour Date'),
        ]),
        _function('traveller_initials', 'Traveller Initials', 'Identifier',
                  'traveller_initials', [
                      arg('first_name', 'First Name'),
                      arg('last_name', 'Last Name'),
                  ]),
        _function('tour_package_name_unique_counter', 'Tour Package Name Unique Counter',
                  'Identifier', 'tour_package_unique_counter', [
                      arg('tour_package_name', 'Tour Package Name'),
                      arg('row', 'Row'),
                  ]),

        # Traveler Information
        _input('email_address', 'Email Address', 'Traveler Information', 'email'),
        _input('first_name', 'First Name', 'Traveler Information', 'string'),
        _input('last_name', 'Last Name', 'Traveler Information', 'string'),
        _function('full_name', 'Full Name', 'Traveler Information', 'full_name', [
            arg('first_name', 'First Name'),
            arg('last_name', 'Last Name'),
        ]),

        # Discounts
        _input('event_name', 'Event Name', 'Discounts', 'string'),
        _function('discount_rate', 'Discount Rate', 'Discounts', 'discount_rate', [
            arg('event_name', 'Event Name'),
            arg('tour_package_name', 'Tour Package Name'),
            arg('tour_date', 'Tour Date'),
        ]),
        _function('discount_type', 'Discount Type', 'Discounts', 'discount_type', [
            arg('event_name', 'Event Name'),
        ]),

        # Tour Details
        _input('tour_date', 'Tour Date', 'Tour Details', 'date'),
        _function('return_date', 'Return Date', 'Tour Details', 'return_date', [
            arg('tour_date', 'Tour Date'),
            arg('duration', 'Tour Duration'),
        ]),
        _function('tour_duration', 'Tour Duration', 'Tour Details', 'tour_duration', [
            arg('tour_package_name', 'Tour Package Name'),
        ]),
        _function('days_between_booking_and_tour', 'Days Between Booking and Tour Date',
                  'Tour Details', 'days_between_booking_and_tour', [
                      arg('reservation_date', 'Reservation Date'),
                      arg('tour_date', 'Tour Date'),
                  ]),
        _function('eligible_second_of_months', 'Eligible 2nd-of-Months', 'Tour Details',
                  'eligible_second_of_months', [
                      arg('reservation_date', 'Reservation Date'),
                      arg('tour_date', 'Tour Date'),
                  ]),
        _function('payment_condition', 'Payment Condition', 'Tour Details',
                  'payment_condition', [
                      arg('tour_date', 'Tour Date'),
                      arg('eligible_count', 'Eligible 2nd-of-Months'),
                      arg('days_until_tour', 'Days Between Booking and Tour Date'),
                  ]),

        # Duo or Group Booking
        _input('is_main_booker', 'Is Main Booker?', 'Duo or Group Booking', 'boolean',
               default=False),
        _function('group_id', 'Group ID', 'Duo or Group Booking', 'group_member_id', [
            arg('booking_type', 'Booking Type'),
            arg('tour_name', 'Tour Package Name'),
            arg('first_name', 'First Name'),
            arg('last_name', 'Last Name'),
            arg('email', 'Email Address'),
            arg('is_main_booker', 'Is Main Booker?'),
        ]),

        # Payment Setting
        _input('payment_plan', 'Payment Plan', 'Payment Setting', 'select',
               options=PAYMENT_PLANS),
        _input('payment_method', 'Payment Method', 'Payment Setting', 'select',
               options=PAYMENT_METHODS),
        _function('available_payment_terms', 'Available Payment Terms', 'Payment Setting',
                  'available_payment_terms', [
                      arg('cancellation_reason', 'Reason for Cancellation'),
                      arg('condition', 'Payment Condition'),
                  ]),
        _function('original_tour_cost', 'Original Tour Cost', 'Payment Setting',
                  'original_tour_cost', [
                      arg('tour_package_name', 'Tour Package Name'),
                      arg('event_name', 'Event Name'),
                      arg('rate', 'Discount Rate'),
                  ]),
        _input('use_discounted_tour_cost', 'Use Discounted Tour Cost?', 'Payment Setting',
               'boolean', default=False),
        _function('discounted_tour_cost', 'Discounted Tour Cost', 'Payment Setting',
                  'discounted_tour_cost', [
                      arg('tour_package_name', 'Tour Package Name'),
                      arg('tour_date', 'Tour Date'),
                  ]),
        _function('reservation_fee', 'Reservation Fee', 'Payment Setting', 'reservation_fee', [
            arg('tour_package_name', 'Tour Package Name'),
            arg('tour_date', 'Tour Date'),
        ]),
        _input('credit_from', 'Credit From', 'Payment Setting', 'select',
               options=CREDIT_SOURCES),
        _input('manual_credit', 'Manual Credit', 'Payment Setting', 'currency'),
        _function('paid', 'Paid', 'Payment Setting', 'paid', [
            arg('tour_package_name', 'Tour Package Name'),
            arg('fee', 'Reservation Fee'),
            arg('credit_from', 'Credit From'),
            arg('credit_amount', 'Manual Credit'),
            args_list('dates_paid', DATES_PAID),
            args_list('amounts', AMOUNTS),
        ]),
        _function('paid_terms', 'Paid Terms', 'Payment Setting', 'paid_terms', [
            arg('tour_package_name', 'Tour Package Name'),
            arg('credit_from', 'Credit From'),
            arg('credit_amount', 'Manual Credit'),
            args_list('dates_paid', DATES_PAID),
            args_list('amounts', AMOUNTS),
        ]),
        _function('remaining_balance', 'Remaining Balance', 'Payment Setting',
                  'remaining_balance', [
                      arg('tour_package_name', 'Tour Package Name'),
                      *COST_ARGUMENTS,
                      arg('credit_from', 'Credit From'),
                      arg('credit_amount', 'Manual Credit'),
                      arg('payment_plan', 'Payment Plan'),
                      args_list('dates_paid', DATES_PAID),
                      args_list('amounts', AMOUNTS),
                  ]),
        _function('booking_status', 'Booking Status', 'Payment Setting', 'booking_status', [
            arg('cancellation_reason', 'Reason for Cancellation'),
            arg('payment_plan', 'Payment Plan'),
            arg('balance', 'Remaining Balance'),
            args_list('dates_paid', DATES_PAID),
        ]),
        _function('payment_progress', 'Payment Progress', 'Payment Setting',
                  'payment_progress', [
                      arg('status', 'Booking Status'),
                      arg('payment_plan', 'Payment Plan'),
                      args_list('dates_paid', DATES_PAID),
                  ]),
        _function('admin_fee', 'Admin Fee', 'Payment Setting', 'admin_fee', [
            arg('initiated_by', 'Cancellation Initiated By'),
            arg('eligible_refund', 'Eligible Refund'),
            arg('paid_terms_total', 'Paid Terms'),
            arg('full_payment_total', 'Full Payment Amount'),
            arg('fee', 'Reservation Fee'),
            arg('supplier_costs', 'Supplier Costs Committed'),
            arg('cancellation_reason', 'Reason for Cancellation'),
        ]),

        # Full Payment
        _function('full_payment_due_date', 'Full Payment Due Date', 'Full Payment',
                  'full_payment_due_date', [
                      arg('reservation_date', 'Reservation Date'),
                      arg('payment_plan', 'Payment Plan'),
                      arg('condition', 'Payment Condition'),
                  ]),
        _function('full_payment_amount', 'Full Payment Amount', 'Full Payment',
                  'full_payment_amount', [
                      arg('tour_package_name', 'Tour Package Name'),
                      arg('payment_plan', 'Payment Plan'),
                      *COST_ARGUMENTS,
                      arg('credit_amount', 'Manual Credit'),
                      arg('condition', 'Payment Condition'),
                  ]),
        _input('full_payment_date_paid', 'Full Payment Date Paid', 'Full Payment', 'date'),
    ]

    for term in (1, 2, 3, 4):
        columns.extend(_payment_term_columns(term))

    columns.extend([
        # Cancellation
        _input('reason_for_cancellation', 'Reason for Cancellation', 'Cancellation', 'string'),
        _input('cancellation_initiated_by', 'Cancellation Initiated By', 'Cancellation',
               'select', options=INITIATORS),
        _input('cancellation_request_date', 'Cancellation Request Date', 'Cancellation', 'date'),
        _input('supplier_costs_committed', 'Supplier Costs Committed', 'Cancellation',
               'currency', default=0),
        _input('no_show', 'No-Show', 'Cancellation', 'boolean', default=False),
        _function('cancellation_scenario', 'Cancellation Scenario', 'Cancellation',
                  'cancellation_scenario', [
                      arg('cancellation_request_date', 'Cancellation Request Date'),
                      arg('tour_date', 'Tour Date'),
                      arg('payment_plan', 'Payment Plan'),
                      arg('paid_terms_total', 'Paid Terms'),
                      arg('full_payment_date_paid', 'Full Payment Date Paid'),
                      arg('supplier_costs', 'Supplier Costs Committed'),
                      arg('is_no_show', 'No-Show'),
                      arg('cancellation_reason', 'Reason for Cancellation'),
                      arg('initiated_by', 'Cancellation Initiated By'),
                  ]),
        _function('eligible_refund', 'Eligible Refund', 'Cancellation', 'eligible_refund', [
            arg('cancellation_request_date', 'Cancellation Request Date'),
            arg('tour_date', 'Tour Date'),
            arg('cancellation_reason', 'Reason for Cancellation'),
            arg('payment_plan', 'Payment Plan'),
            arg('paid_terms_total', 'Paid Terms'),
            arg('full_payment_date_paid', 'Full Payment Date Paid'),
            arg('supplier_costs', 'Supplier Costs Committed'),
            arg('is_no_show', 'No-Show'),
            arg('initiated_by', 'Cancellation Initiated By'),
        ]),
        _function('refundable_amount', 'Refundable Amount', 'Cancellation',
                  'refundable_amount', [
                      arg('initiated_by', 'Cancellation Initiated By'),
                      arg('cancellation_reason', 'Reason for Cancellation'),
                      arg('fee_for_admin', 'Admin Fee'),
                      arg('paid_total', 'Paid'),
                      arg('paid_terms_total', 'Paid Terms'),
                      arg('fee', 'Reservation Fee'),
                      arg('full_payment_total', 'Full Payment Amount'),
                      arg('supplier_costs', 'Supplier Costs Committed'),
                      arg('cancellation_request_date', 'Cancellation Request Date'),
                      arg('policy', 'Eligible Refund'),
                  ]),
        _function('non_refundable_amount', 'Non Refundable Amount', 'Cancellation',
                  'non_refundable_amount', [
                      arg('cancellation_request_date', 'Cancellation Request Date'),
                      arg('paid_total', 'Paid'),
                      arg('refundable', 'Refundable Amount'),
                  ]),
    ])

    # Display order follows declaration order
    for index, spec in enumerate(columns):
        spec['order'] = index + 1

    return columns


COLUMNS = _build_columns()


# ============================================================================
# QUERIES
# ============================================================================

def get_columns():
    """All columns sorted by display order (copies, safe to modify)."""
    return deepcopy(sorted(COLUMNS, key=lambda c: c['order']))


def get_column_by_id(column_id, columns=None):
    for spec in columns if columns is not None else COLUMNS:
        if spec['id'] == column_id:
            return spec
    return None


def get_column_by_name(name, columns=None):
    for spec in columns if columns is not None else COLUMNS:
        if spec['name'] == name:
            return spec
    return None


def get_columns_by_parent_tab(parent_tab, columns=None):
    columns = columns if columns is not None else COLUMNS
    return sorted([c for c in columns if c['parent_tab'] == parent_tab],
                  key=lambda c: c['order'])


def get_function_columns(columns=None):
    columns = columns if columns is not None else COLUMNS
    return sorted([c for c in columns if c['data_type'] == 'function'],
                  key=lambda c: c['order'])


def get_form_columns(columns=None):
    """Input columns shown in the add/edit booking form."""
    columns = columns if columns is not None else COLUMNS
    return sorted([c for c in columns if c.get('include_in_forms')],
                  key=lambda c: c['order'])


def get_parent_tabs(columns=None):
    """Tabs that have at least one column, in display order."""
    columns = columns if columns is not None else COLUMNS
    used = {c['parent_tab'] for c in columns}
    return [tab for tab in PARENT_TABS if tab in used]


def referenced_column_names(spec):
    """Column names a function column reads, in argument order, without repeats."""
    names = []
    for binding in spec.get('arguments') or []:
        if 'column' in binding:
            referenced = [binding['column']]
        else:
            referenced = binding.get('columns') or []
        for name in referenced:
            if name not in names:
                names.append(name)
    return names


def default_row(columns=None):
    """A new booking row: every input column, set to its default or None."""
    columns = columns if columns is not None else COLUMNS
    return {
        c['id']: deepcopy(c.get('default'))
        for c in columns
        if c['data_type'] != 'function'
    }


def validate_registry(columns, function_map):
    """
    Check the registry is internally consistent.

    Raises:
        ColumnRegistryError: duplicate ids/names/orders, bad data types,
            tabs or argument bindings
        UnknownColumnError: an argument references a missing column
        UnknownFunctionError: a function column's implementation is missing

    Why: A typo in a column name would otherwise show up as a silently
    blank value on every booking. Failing at startup makes it a bug report.
    """
    seen_ids = set()
    seen_names = set()
    seen_orders = set()

    for spec in columns:
        for key, seen in (('id', seen_ids), ('name', seen_names), ('order', seen_orders)):
            if spec.get(key) in seen:
                raise ColumnRegistryError(f"Duplicate column {key}: {spec.get(key)}")
            seen.add(spec.get(key))

        if spec.get('data_type') not in DATA_TYPES:
            raise ColumnRegistryError(
                f"Column {spec['name']} has unknown data type {spec.get('data_type')}"
            )
        if spec.get('parent_tab') not in PARENT_TABS:
            raise ColumnRegistryError(
                f"Column {spec['name']} has unknown parent tab {spec.get('parent_tab')}"
            )

    for spec in columns:
        if spec['data_type'] != 'function':
            continue

        if spec.get('function') not in function_map:
            raise UnknownFunctionError(
                f"Column {spec['name']} uses unknown function {spec.get('function')}"
            )

        for binding in spec.get('arguments') or []:
            sources = [key for key in ('column', 'columns', 'value') if key in binding]
            if len(sources) != 1:
                raise ColumnRegistryError(
                    f"Argument {binding.get('name')} of {spec['name']} needs exactly one "
                    f"of column, columns or value"
                )
            if 'value' in binding and binding.get('type', 'string') not in LITERAL_TYPES:
                raise ColumnRegistryError(
                    f"Argument {binding.get('name')} of {spec['name']} has unknown type "
                    f"{binding.get('type')}"
                )

        for name in referenced_column_names(spec):
            if name not in seen_names:
                raise UnknownColumnError(
                    f"Column {spec['name']} references unknown column {name}"
                )
