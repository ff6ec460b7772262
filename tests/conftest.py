"""
Shared fixtures: an in-memory stand-in for the Datastore client.

Only the calls datastore_helpers makes are supported: key, get, put,
delete, and query with '=' filters, ordering and a fetch limit.
"""

import pytest
from google.cloud import datastore


class FakeQuery:
    """The subset of datastore.Query the helpers use."""

    def __init__(self, store, kind):
        self.store = store
        self.kind = kind
        self.filters = []
        self.order = []

    def add_filter(self, prop, operator, value):
        self.filters.append((prop, operator, value))

    def fetch(self, limit=None):
        results = [entity for (kind, _), entity in self.store.items() if kind == self.kind]
        for prop, operator, value in self.filters:
            assert operator == '='
            results = [entity for entity in results if entity.get(prop) == value]
        for field in reversed(self.order):
            name = field.lstrip('-')
            results.sort(key=lambda entity: entity.get(name), reverse=field.startswith('-'))
        return results[:limit] if limit else results


class FakeDatastoreClient:
    """Keeps entities in a dict keyed by (kind, name)."""

    def __init__(self):
        self.store = {}

    def key(self, kind, name):
        return datastore.Key(kind, name, project='test-project')

    def get(self, key):
        return self.store.get((key.kind, key.name))

    def put(self, entity):
        self.store[(entity.key.kind, entity.key.name)] = entity

    def delete(self, key):
        self.store.pop((key.kind, key.name), None)

    def query(self, kind):
        return FakeQuery(self.store, kind)


@pytest.fixture
def fake_datastore():
    return FakeDatastoreClient()
