"""
Bookings blueprint.

The booking sheet as a JSON API. Each booking is one row of the sheet:
input columns that staff edit, plus function columns computed from them.

Routes:
  - GET/POST /bookings/ - list (search, filter, sort, tab) and create
  - GET/PATCH/DELETE /bookings/<id> - view, edit inputs, delete
  - POST /bookings/<id>/recompute - recompute every function column

Why writes recompute:
Function columns are stored, not computed on read, so the list endpoint
can filter and sort on them (e.g. "all bookings with status Installment
1/3"). Every write therefore recomputes the columns it affects, using the
dependency graph so an edit to "P2 Date Paid" doesn't recompute the
Booking ID.
"""

from flask import Blueprint, request, current_app, jsonify
from column_registry import (
    get_columns,
    get_column_by_id,
    get_column_by_name,
    get_columns_by_parent_tab,
    get_parent_tabs,
    default_row,
)
from datastore_helpers import (
    get_datastore_client,
    create_entity,
    get_entity,
    update_entity,
    delete_entity,
    query_entities,
    entity_to_dict,
    entities_to_dict_list,
    next_row_number,
)
from date_helpers import is_blank, to_date, to_optional_number, format_ymd
from evaluation import get_evaluator
from sheet_lookups import load_lookups

# Create the blueprint
bookings_bp = Blueprint('bookings', __name__, url_prefix='/bookings')

# Fields searched by ?q=
SEARCH_FIELDS = ('booking_id', 'full_name', 'email_address', 'tour_package_name')

# ?status=, ?tour_package=, ?payment_plan= filter on these columns
FILTER_FIELDS = {
    'status': 'booking_status',
    'tour_package': 'tour_package_name',
    'payment_plan': 'payment_plan',
}

# Columns always returned, even when a single tab is requested
ROW_KEY_FIELDS = ('id', 'row', 'booking_id')

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def coerce_input(column, value):
    """
    Convert a submitted value to the column's stored form.

    Dates are stored as 'yyyy-mm-dd' strings, numbers as floats, blanks as None.

    Raises:
        ValueError: if the value doesn't fit the column's data type
    """
    data_type = column['data_type']

    if data_type == 'boolean':
        if isinstance(value, bool):
            return value
        if is_blank(value):
            return False
        if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
            return value.strip().lower() == 'true'
        raise ValueError(f"{column['name']} must be true or false")

    if is_blank(value):
        return None

    if data_type in ('number', 'currency'):
        number = to_optional_number(value)
        if number is None:
            raise ValueError(f"{column['name']} must be a number")
        return number

    if data_type == 'date':
        parsed = to_date(value)
        if parsed is None:
            raise ValueError(f"{column['name']} is not a valid date: {value}")
        return format_ymd(parsed)

    if data_type == 'select':
        value = str(value).strip()
        if value not in column.get('options', []):
            raise ValueError(f"{column['name']} must be one of: {', '.join(column['options'])}")
        return value

    if data_type == 'email':
        value = str(value).strip()
        if '@' not in value:
            raise ValueError(f"{column['name']} is not a valid email address")
        return value

    return str(value).strip()


def parse_booking_input(data):
    """
    Validate submitted values and map them to column ids.

    Keys may be column ids ('tour_date') or column names ('Tour Date').

    Returns:
        Dictionary of column id -> stored value

    Raises:
        ValueError: unknown column, computed column, or invalid value
    """
    values = {}
    for key, value in data.items():
        column = get_column_by_id(key) or get_column_by_name(key)
        if column is None:
            raise ValueError(f"Unknown column: {key}")
        if column['data_type'] == 'function':
            raise ValueError(f"{column['name']} is computed and can't be set")
        if column['id'] == 'row':
            raise ValueError("Row is assigned automatically")
        values[column['id']] = coerce_input(column, value)
    return values


def filter_bookings(bookings, q=None, status=None, tour_package=None, payment_plan=None):
    """
    Filter booking rows by search text and exact column values.

    Args:
        bookings: List of booking dicts
        q: Case-insensitive substring matched against booking ID, full name,
            email and tour package
        status, tour_package, payment_plan: Exact (case-insensitive) matches

    Returns:
        Filtered list, original order kept
    """
    result = list(bookings)

    if q:
        needle = q.strip().lower()
        result = [
            b for b in result
            if any(needle in str(b.get(field) or '').lower() for field in SEARCH_FIELDS)
        ]

    wanted = {'status': status, 'tour_package': tour_package, 'payment_plan': payment_plan}
    for param, value in wanted.items():
        if not value:
            continue
        field = FILTER_FIELDS[param]
        if param == 'status':
            # "Installment" matches "Installment 1/3 - last paid ..."
            result = [b for b in result
                      if str(b.get(field) or '').lower().startswith(value.strip().lower())]
        else:
            result = [b for b in result
                      if str(b.get(field) or '').lower() == value.strip().lower()]

    return result


def sort_bookings(bookings, sort=None):
    """
    Sort booking rows by a column id ('-' prefix for descending).

    Blank values always go last. Numbers sort numerically, everything else
    as case-insensitive text.
    """
    if not sort:
        return list(bookings)

    descending = sort.startswith('-')
    field = sort.lstrip('-')

    blanks = [b for b in bookings if is_blank(b.get(field))]
    filled = [b for b in bookings if not is_blank(b.get(field))]

    def sort_key(booking):
        value = booking.get(field)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (0, value, '')
        return (1, 0, str(value).lower())

    filled.sort(key=sort_key, reverse=descending)
    return filled + blanks


def project_tab(booking, tab):
    """Keep only the columns of one parent tab (plus the row's identifiers)."""
    keep = set(ROW_KEY_FIELDS)
    keep.update(c['id'] for c in get_columns_by_parent_tab(tab))
    return {key: value for key, value in booking.items() if key in keep}


def stored_properties(row):
    """The column values of a row, without id and timestamps."""
    return {c['id']: row.get(c['id']) for c in get_columns()}


def lookups_for_row(client, row):
    """
    Load reference data with this row's latest values in the bookings list.

    Why: The per-package counter ranks this booking among the others, so the
    lookups must see the row as it is about to be saved, not as stored.
    """
    lookups = load_lookups(client, current_app.config)
    lookups.bookings = [b for b in lookups.bookings if b.get('id') != row.get('id')]
    lookups.bookings.append(row)
    return lookups


def refresh_package_siblings(client, package_names, exclude_id=None):
    """
    Recompute the per-package counter, and the Booking ID built from it, for
    every stored booking of the given tour packages.

    Why: The counter is a booking's position among the bookings of its
    package, so deleting a booking or moving one to another package shifts
    the position of every later booking of that package.

    Args:
        client: datastore.Client instance
        package_names: Tour package names whose bookings may have shifted
        exclude_id: Booking already recomputed by the caller

    Returns:
        Ids of the bookings whose stored values changed
    """
    if not current_app.config['RECOMPUTE_ON_SAVE']:
        return []

    names = {str(name).strip().lower() for name in package_names if not is_blank(name)}
    if not names:
        return []

    evaluator = get_evaluator()
    lookups = load_lookups(client, current_app.config)

    refreshed = []
    for name in sorted(names):
        for row in lookups.bookings_for_package(name):
            if row['id'] == exclude_id:
                continue

            result = evaluator.recompute(row, ['row'], lookups)
            changed = evaluator.diff(row, result.values)
            if not changed:
                continue

            entity = get_entity(client, current_app.config['BOOKING_KIND'], row['id'])
            update_entity(client, entity, {column_id: result.values[column_id]
                                           for column_id in changed})
            refreshed.append(row['id'])

    return refreshed


# ============================================================================
# ROUTES
# ============================================================================

@bookings_bp.route('/', methods=['GET'])
def bookings_list():
    """
    List bookings.

    Query parameters: q, status, tour_package, payment_plan, sort, tab.
    """
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    tab = request.args.get('tab')
    if tab and tab not in get_parent_tabs():
        return jsonify({'error': f'Unknown tab: {tab}'}), 400

    bookings = entities_to_dict_list(
        query_entities(client, current_app.config['BOOKING_KIND'], order_by='row')
    )

    bookings = filter_bookings(
        bookings,
        q=request.args.get('q'),
        status=request.args.get('status'),
        tour_package=request.args.get('tour_package'),
        payment_plan=request.args.get('payment_plan'),
    )
    bookings = sort_bookings(bookings, request.args.get('sort'))

    total = len(bookings)
    bookings = bookings[:current_app.config['BOOKINGS_PAGE_SIZE']]

    if tab:
        bookings = [project_tab(b, tab) for b in bookings]

    return jsonify({'bookings': bookings, 'count': total})


@bookings_bp.route('/', methods=['POST'])
def booking_create():
    """
    Create a booking from input column values.

    The row number is assigned here, and every function column is computed
    before the booking is stored.
    """
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400

    try:
        values = parse_booking_input(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    row = default_row()
    row.update(values)
    row['row'] = next_row_number(client, current_app.config['BOOKING_KIND'])

    errors = {}
    if current_app.config['RECOMPUTE_ON_SAVE']:
        result = get_evaluator().evaluate_row(row, lookups_for_row(client, row))
        row, errors = result.values, result.errors

    booking = create_entity(client, current_app.config['BOOKING_KIND'], stored_properties(row))

    return jsonify({'booking': entity_to_dict(booking), 'errors': errors}), 201


@bookings_bp.route('/<id>', methods=['GET'])
def booking_view(id):
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    booking = get_entity(client, current_app.config['BOOKING_KIND'], id)
    if not booking:
        return jsonify({'error': 'Booking not found'}), 404

    tab = request.args.get('tab')
    if tab and tab not in get_parent_tabs():
        return jsonify({'error': f'Unknown tab: {tab}'}), 400

    booking_dict = entity_to_dict(booking)
    if tab:
        booking_dict = project_tab(booking_dict, tab)

    return jsonify({'booking': booking_dict})


@bookings_bp.route('/<id>', methods=['PATCH'])
def booking_update(id):
    """
    Update input columns and recompute the function columns they affect.

    Function columns can't be written directly; sending one is a 400.
    """
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    booking = get_entity(client, current_app.config['BOOKING_KIND'], id)
    if not booking:
        return jsonify({'error': 'Booking not found'}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400

    try:
        values = parse_booking_input(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    evaluator = get_evaluator()
    old_row = entity_to_dict(booking)
    new_row = dict(old_row)
    new_row.update(values)

    changed = evaluator.diff(old_row, new_row)

    errors = {}
    if changed and current_app.config['RECOMPUTE_ON_SAVE']:
        result = evaluator.recompute(new_row, changed, lookups_for_row(client, new_row))
        new_row, errors = result.values, result.errors

    booking = update_entity(client, booking, stored_properties(new_row))

    # Moving a booking to another package shifts the counters of both packages
    refreshed = []
    if 'tour_package_name' in changed:
        refreshed = refresh_package_siblings(
            client,
            [old_row.get('tour_package_name'), new_row.get('tour_package_name')],
            exclude_id=id,
        )

    return jsonify({
        'booking': entity_to_dict(booking),
        'changed': evaluator.diff(old_row, new_row),
        'errors': errors,
        'refreshed': refreshed,
    })


@bookings_bp.route('/<id>/recompute', methods=['POST'])
def booking_recompute(id):
    """Recompute every function column (e.g. after a tour package price change)."""
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    booking = get_entity(client, current_app.config['BOOKING_KIND'], id)
    if not booking:
        return jsonify({'error': 'Booking not found'}), 404

    evaluator = get_evaluator()
    old_row = entity_to_dict(booking)
    result = evaluator.evaluate_row(old_row, lookups_for_row(client, old_row))

    booking = update_entity(client, booking, stored_properties(result.values))

    return jsonify({
        'booking': entity_to_dict(booking),
        'changed': evaluator.diff(old_row, result.values),
        'errors': result.errors,
    })


@bookings_bp.route('/<id>', methods=['DELETE'])
def booking_delete(id):
    """
    Delete a booking.

    Other bookings keep their row numbers, but later bookings of the same
    tour package move up one place, so their counter and Booking ID are
    recomputed and listed under 'refreshed'.
    """
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    booking = get_entity(client, current_app.config['BOOKING_KIND'], id)
    if not booking:
        return jsonify({'error': 'Booking not found'}), 404

    package_name = booking.get('tour_package_name')
    delete_entity(client, booking)

    refreshed = refresh_package_siblings(client, [package_name])

    return jsonify({'success': True, 'message': 'Booking deleted', 'refreshed': refreshed})
