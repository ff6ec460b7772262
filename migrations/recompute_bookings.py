"""
Maintenance script to recompute the function columns of stored bookings.

Run with: python -m migrations.recompute_bookings --project=PROJECT_ID
Options:
  --dry-run          show what would change without writing
  --column NAME      only recompute columns affected by NAME (repeatable),
                     e.g. --column "Tour Package Name"
  --verify           report bookings whose stored values are out of date

Why this script exists:
Function column values are stored on each booking. When a rule changes, a
tour package price is edited, or rows were bulk-loaded with
RECOMPUTE_ON_SAVE=false, the stored values go stale until every booking is
recomputed.
"""

import argparse
import sys

from config import Config
from column_registry import get_column_by_name
from datastore_helpers import (
    get_datastore_client,
    query_entities,
    update_entity,
    entity_to_dict,
    entities_to_dict_list,
)
from evaluation import SheetEvaluator
from sheet_lookups import load_lookups


def config_mapping():
    """Config class attributes as the mapping load_lookups expects."""
    return {name: getattr(Config, name) for name in dir(Config) if name.isupper()}


def resolve_column_ids(column_names):
    """
    Map column names to ids.

    Raises:
        ValueError: if a name isn't a registered column
    """
    ids = []
    for name in column_names:
        column = get_column_by_name(name)
        if column is None:
            raise ValueError(f"Unknown column: {name}")
        ids.append(column['id'])
    return ids


def recompute_rows(evaluator, rows, lookups, column_ids=None):
    """
    Recompute rows and yield (row, result, changed_ids) for each.

    Args:
        evaluator: SheetEvaluator
        rows: Booking dicts as stored
        lookups: SheetLookups for the whole run
        column_ids: Only recompute what these columns affect (all if None)
    """
    for row in rows:
        if column_ids:
            result = evaluator.recompute(row, column_ids, lookups)
        else:
            result = evaluator.evaluate_row(row, lookups)
        yield row, result, evaluator.diff(row, result.values)


def recompute_bookings(project_id, dry_run=False, column_names=None):
    """Recompute every booking and store the ones whose values changed."""
    client = get_datastore_client(project_id)
    config = config_mapping()

    column_ids = resolve_column_ids(column_names or [])
    evaluator = SheetEvaluator()
    lookups = load_lookups(client, config)

    entities = query_entities(client, config['BOOKING_KIND'], order_by='row')
    entities_by_id = {entity.key.name: entity for entity in entities}

    print(f"Found {len(entities)} bookings to process")

    updated = 0
    unchanged = 0
    errored = 0

    for row, result, changed in recompute_rows(
            evaluator, entities_to_dict_list(entities), lookups, column_ids):
        label = row.get('booking_id') or row['id']

        if result.errors:
            errored += 1
            for column_id, message in result.errors.items():
                print(f"  ERROR: {label} column {column_id}: {message}")

        if not changed:
            unchanged += 1
            continue

        if dry_run:
            print(f"  DRY RUN: Would update {label}: {', '.join(changed)}")
        else:
            update_entity(client, entities_by_id[row['id']],
                          {column_id: result.values[column_id] for column_id in changed})
            print(f"  UPDATED: {label}: {', '.join(changed)}")
        updated += 1

    print(f"\nRecompute complete: {updated} updated, {unchanged} unchanged, {errored} with errors")
    return updated, unchanged, errored


def verify_bookings(project_id):
    """Check that every stored booking matches a fresh recompute."""
    client = get_datastore_client(project_id)
    config = config_mapping()

    evaluator = SheetEvaluator()
    lookups = load_lookups(client, config)
    rows = [entity_to_dict(e) for e in query_entities(client, config['BOOKING_KIND'])]

    stale = []
    for row, result, changed in recompute_rows(evaluator, rows, lookups):
        if changed:
            stale.append((row.get('booking_id') or row['id'], changed))

    if stale:
        print(f"\nERROR: {len(stale)} bookings have stale values:")
        for label, changed in stale:
            print(f"  - {label}: {', '.join(changed)}")
        return False
    else:
        print(f"\nSUCCESS: All {len(rows)} bookings are up to date")
        return True


def main():
    parser = argparse.ArgumentParser(description='Recompute booking function columns')
    parser.add_argument('--project', required=True, help='GCP project ID')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done without making changes')
    parser.add_argument('--column', action='append', default=[], metavar='NAME',
                        help='Only recompute columns affected by this column (repeatable)')
    parser.add_argument('--verify', action='store_true', help='Verify stored values instead of recomputing')

    args = parser.parse_args()

    if args.verify:
        success = verify_bookings(args.project)
        sys.exit(0 if success else 1)
    else:
        try:
            recompute_bookings(args.project, dry_run=args.dry_run, column_names=args.column)
        except ValueError as e:
            print(f"Error: {e}")
            sys.exit(2)


if __name__ == '__main__':
    main()
