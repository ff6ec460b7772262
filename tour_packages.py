"""
Tour packages blueprint.

Reference data behind the lookup columns: tour packages (tour code,
duration, prices, per-date overrides) and discount events.

Routes:
  - GET/POST /tour-packages/ - list and create tour packages
  - GET/PUT/DELETE /tour-packages/<id> - view, update, delete a package
  - GET/POST /tour-packages/discount-events - list and create discount events
  - PUT /tour-packages/discount-events/<id> - update a discount event

Changing a price here doesn't touch existing bookings. Run
migrations/recompute_bookings.py (or POST /bookings/<id>/recompute) to
bring stored rows up to date.
"""

from flask import Blueprint, request, current_app, jsonify
from datastore_helpers import (
    get_datastore_client,
    create_entity,
    get_entity,
    update_entity,
    delete_entity,
    query_entities,
    entity_to_dict,
    entities_to_dict_list,
)
from date_helpers import is_blank, to_date, to_optional_number, format_ymd

# Create the blueprint
tour_packages_bp = Blueprint('tour_packages', __name__, url_prefix='/tour-packages')

PRICING_FIELDS = ('original', 'discounted', 'deposit')
DISCOUNT_TYPES = ('percent', 'amount')
ACTIVATION_MODES = ('manual', 'scheduled')


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _optional_date(value, label):
    if is_blank(value):
        return None
    parsed = to_date(value)
    if parsed is None:
        raise ValueError(f'{label} is not a valid date: {value}')
    return format_ymd(parsed)


def _optional_number(value, label):
    if is_blank(value):
        return None
    number = to_optional_number(value)
    if number is None:
        raise ValueError(f'{label} must be a number')
    return number


def parse_tour_package(data):
    """
    Validate a tour package payload.

    Returns:
        Dictionary of properties ready to store

    Raises:
        ValueError: if the name is missing or a price/date is invalid
    """
    name = str(data.get('name') or '').strip()
    if not name:
        raise ValueError('Tour package name is required')

    pricing_data = data.get('pricing') or {}
    if not isinstance(pricing_data, dict):
        raise ValueError('pricing must be an object')
    pricing = {
        field: _optional_number(pricing_data.get(field), f'pricing.{field}')
        for field in PRICING_FIELDS
    }
    pricing['currency'] = str(pricing_data.get('currency') or '').strip() or None

    travel_date_data = data.get('travel_dates') or []
    if not isinstance(travel_date_data, list):
        raise ValueError('travel_dates must be a list')

    travel_dates = []
    for entry in travel_date_data:
        if not isinstance(entry, dict):
            raise ValueError('Every travel date must be an object')
        start_date = _optional_date(entry.get('start_date'), 'travel_dates.start_date')
        if start_date is None:
            raise ValueError('Every travel date needs a start_date')
        custom_discounted = _optional_number(entry.get('custom_discounted'),
                                             'travel_dates.custom_discounted')
        custom_deposit = _optional_number(entry.get('custom_deposit'),
                                          'travel_dates.custom_deposit')
        travel_dates.append({
            'start_date': start_date,
            'has_custom_discounted': custom_discounted is not None,
            'custom_discounted': custom_discounted,
            'has_custom_deposit': custom_deposit is not None,
            'custom_deposit': custom_deposit,
        })

    return {
        'name': name,
        'tour_code': str(data.get('tour_code') or '').strip().upper(),
        'duration': str(data.get('duration') or '').strip(),
        'pricing': pricing,
        'travel_dates': travel_dates,
    }


def parse_discount_event(data):
    """
    Validate a discount event payload.

    Raises:
        ValueError: missing name, unknown type/mode, or invalid dates/rates
    """
    name = str(data.get('name') or '').strip()
    if not name:
        raise ValueError('Discount event name is required')

    discount_type = data.get('discount_type', 'percent')
    if discount_type not in DISCOUNT_TYPES:
        raise ValueError(f"discount_type must be one of: {', '.join(DISCOUNT_TYPES)}")

    activation_mode = data.get('activation_mode', 'manual')
    if activation_mode not in ACTIVATION_MODES:
        raise ValueError(f"activation_mode must be one of: {', '.join(ACTIVATION_MODES)}")

    item_data = data.get('items') or []
    if not isinstance(item_data, list):
        raise ValueError('items must be a list')

    items = []
    for item in item_data:
        if not isinstance(item, dict):
            raise ValueError('Every discount item must be an object')
        package_name = str(item.get('tour_package_name') or '').strip()
        if not package_name:
            raise ValueError('Every discount item needs a tour_package_name')
        date_discounts = []
        date_discount_data = item.get('date_discounts') or []
        if not isinstance(date_discount_data, list):
            raise ValueError('date_discounts must be a list')
        for entry in date_discount_data:
            if not isinstance(entry, dict):
                raise ValueError('Every date discount must be an object')
            discount_date = _optional_date(entry.get('date'), 'date_discounts.date')
            rate = _optional_number(entry.get('discount_rate'), 'date_discounts.discount_rate')
            if discount_date is None or rate is None:
                raise ValueError('Every date discount needs a date and a discount_rate')
            date_discounts.append({'date': discount_date, 'discount_rate': rate})
        items.append({'tour_package_name': package_name, 'date_discounts': date_discounts})

    return {
        'name': name,
        'active': bool(data.get('active', True)),
        'activation_mode': activation_mode,
        'scheduled_start': _optional_date(data.get('scheduled_start'), 'scheduled_start'),
        'scheduled_end': _optional_date(data.get('scheduled_end'), 'scheduled_end'),
        'discount_type': discount_type,
        'items': items,
    }


# ============================================================================
# TOUR PACKAGE ROUTES
# ============================================================================

@tour_packages_bp.route('/', methods=['GET'])
def tour_packages_list():
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])
    packages = query_entities(client, current_app.config['TOUR_PACKAGE_KIND'], order_by='name')
    return jsonify({'tour_packages': entities_to_dict_list(packages)})


@tour_packages_bp.route('/', methods=['POST'])
def tour_package_create():
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400

    try:
        properties = parse_tour_package(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    package = create_entity(client, current_app.config['TOUR_PACKAGE_KIND'], properties)
    return jsonify({'tour_package': entity_to_dict(package)}), 201


@tour_packages_bp.route('/<id>', methods=['GET'])
def tour_package_view(id):
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    package = get_entity(client, current_app.config['TOUR_PACKAGE_KIND'], id)
    if not package:
        return jsonify({'error': 'Tour package not found'}), 404

    return jsonify({'tour_package': entity_to_dict(package)})


@tour_packages_bp.route('/<id>', methods=['PUT'])
def tour_package_update(id):
    """Replace a tour package's details."""
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    package = get_entity(client, current_app.config['TOUR_PACKAGE_KIND'], id)
    if not package:
        return jsonify({'error': 'Tour package not found'}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400

    try:
        properties = parse_tour_package(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    package = update_entity(client, package, properties)
    return jsonify({'tour_package': entity_to_dict(package)})


@tour_packages_bp.route('/<id>', methods=['DELETE'])
def tour_package_delete(id):
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    package = get_entity(client, current_app.config['TOUR_PACKAGE_KIND'], id)
    if not package:
        return jsonify({'error': 'Tour package not found'}), 404

    delete_entity(client, package)
    return jsonify({'success': True, 'message': f"Deleted {package['name']}"})


# ============================================================================
# DISCOUNT EVENT ROUTES
# ============================================================================

@tour_packages_bp.route('/discount-events', methods=['GET'])
def discount_events_list():
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])
    events = query_entities(client, current_app.config['DISCOUNT_EVENT_KIND'], order_by='name')
    return jsonify({'discount_events': entities_to_dict_list(events)})


@tour_packages_bp.route('/discount-events', methods=['POST'])
def discount_event_create():
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400

    try:
        properties = parse_discount_event(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    event = create_entity(client, current_app.config['DISCOUNT_EVENT_KIND'], properties)
    return jsonify({'discount_event': entity_to_dict(event)}), 201


@tour_packages_bp.route('/discount-events/<id>', methods=['PUT'])
def discount_event_update(id):
    client = get_datastore_client(current_app.config['GCP_PROJECT_ID'])

    event = get_entity(client, current_app.config['DISCOUNT_EVENT_KIND'], id)
    if not event:
        return jsonify({'error': 'Discount event not found'}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'No data provided'}), 400
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400

    try:
        properties = parse_discount_event(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    event = update_entity(client, event, properties)
    return jsonify({'discount_event': entity_to_dict(event)})
