"""
Helper functions for Cloud Datastore operations.

This module provides common patterns for working with Datastore entities:
- Creating entities with timestamps and UUID keys
- Querying entities of a kind with optional filters and ordering
- Converting entities to dictionaries
- Allocating sheet row numbers for new bookings

Why these helpers exist:
Every entity in our system needs a UUID key and UTC timestamps (for audit
trails), and every API response needs plain dictionaries instead of Entity
objects. Centralizing these patterns keeps the blueprints short and makes
the in-memory test client easy to write.
"""

from google.cloud import datastore
from datetime import datetime, timezone
import uuid


def get_datastore_client(project_id):
    """
    Create and return a Cloud Datastore client.

    Args:
        project_id: GCP project ID

    Returns:
        datastore.Client instance
    """
    return datastore.Client(project=project_id)


def create_entity(client, kind, properties, entity_id=None):
    """
    Create a new Datastore entity with automatic timestamps and UUID key.

    Args:
        client: datastore.Client instance
        kind: Entity kind (e.g., 'Booking', 'TourPackage')
        properties: Dictionary of entity properties
        entity_id: Optional key name; a UUID is generated when omitted

    Returns:
        The created entity with key and timestamps
    """
    key = client.key(kind, entity_id or str(uuid.uuid4()))
    entity = datastore.Entity(key=key)

    # Add timestamps (UTC timezone-aware for Datastore compatibility)
    now = datetime.now(timezone.utc)
    entity['created_at'] = now
    entity['updated_at'] = now

    entity.update(properties)
    client.put(entity)

    return entity


def get_entity(client, kind, entity_id):
    """
    Get an entity by ID.

    Returns:
        The entity if found, otherwise None
    """
    return client.get(client.key(kind, entity_id))


def update_entity(client, entity, properties):
    """
    Update an existing entity with new properties and refresh updated_at.

    Args:
        client: datastore.Client instance
        entity: The entity to update
        properties: Dictionary of properties to update

    Returns:
        The updated entity
    """
    entity['updated_at'] = datetime.now(timezone.utc)
    entity.update(properties)
    client.put(entity)
    return entity


def delete_entity(client, entity):
    """Delete an entity from Datastore."""
    client.delete(entity.key)


def query_entities(client, kind, filters=None, order_by=None, limit=None):
    """
    Query entities of a specific kind.

    Args:
        client: datastore.Client instance
        kind: Entity kind to query
        filters: Optional list of (property, operator, value) tuples
        order_by: Optional field name to sort by ('-row' for descending)
        limit: Optional maximum number of entities

    Returns:
        List of entities

    Example:
        confirmed = query_entities(
            client,
            'Booking',
            filters=[('tour_package_name', '=', 'Philippine Sunrise')],
            order_by='row'
        )
    """
    query = client.query(kind=kind)

    if filters:
        for prop, operator, value in filters:
            query.add_filter(prop, operator, value)

    if order_by:
        query.order = [order_by]

    if limit:
        return list(query.fetch(limit=limit))
    return list(query.fetch())


def entity_to_dict(entity):
    """
    Convert a Datastore entity to a dictionary.

    Args:
        entity: Datastore entity

    Returns:
        Dictionary with entity data plus 'id' field

    Why: JSON responses and the column evaluator work on dictionaries, not
    Entity objects. The 'id' field is added from entity.key.name.
    """
    if not entity:
        return None

    result = dict(entity)
    result['id'] = entity.key.name

    # Timestamps become ISO strings so rows round-trip through JSON
    for key, value in result.items():
        if isinstance(value, datetime):
            result[key] = value.isoformat()

    return result


def entities_to_dict_list(entities):
    """Convert a list of Datastore entities to a list of dictionaries."""
    return [entity_to_dict(entity) for entity in entities]


def next_row_number(client, kind):
    """
    Return the sheet row number for a new booking.

    Row numbers only ever grow, so deleting a booking never renumbers the
    others (the per-package counter in booking IDs depends on row order).
    """
    latest = query_entities(client, kind, order_by='-row', limit=1)
    if not latest or latest[0].get('row') is None:
        return 1
    return int(latest[0]['row']) + 1
