"""
Evaluates function columns for booking rows.

Given a row (column id -> value), the evaluator resolves each function
column's arguments from the row, calls the implementation, and writes the
result back under the column's id, in dependency order so every column sees
up-to-date inputs.

Two modes:
- evaluate_row: compute every function column (new bookings, full recompute)
- recompute: compute only the columns affected by an edit

Why errors don't raise:
One broken rule shouldn't blank out a whole booking. A column whose
function raises gets '' as its value, the error is printed for the logs,
and the message is returned alongside the values so the API can show it.
"""

from collections import namedtuple

from column_registry import get_columns, validate_registry
from date_helpers import to_optional_number
from dependency_graph import build_dependency_graph
from function_map import FUNCTION_MAP, get_function, uses_lookups


# values: the complete new row; errors: column id -> error message
EvaluationResult = namedtuple('EvaluationResult', ['values', 'errors'])


def _coerce_literal(value, value_type):
    if value_type == 'number':
        return to_optional_number(value)
    if value_type == 'boolean':
        if isinstance(value, str):
            return value.strip().lower() == 'true'
        return bool(value)
    if value_type == 'list':
        if isinstance(value, str):
            return [part.strip() for part in value.split(',') if part.strip()]
        return list(value or [])
    return value


def build_args(column, row, columns_by_name):
    """
    Resolve a function column's arguments from a row, in binding order.

    Args:
        column: Function column spec
        row: Column id -> value
        columns_by_name: Column name -> column spec

    Returns:
        List of positional argument values (missing values resolve to None)
    """
    def value_of(name):
        referenced = columns_by_name.get(name)
        if referenced is None:
            return None
        return row.get(referenced['id'])

    args = []
    for binding in column.get('arguments') or []:
        if 'column' in binding:
            args.append(value_of(binding['column']))
        elif 'columns' in binding:
            args.append([value_of(name) for name in binding['columns']])
        else:
            args.append(_coerce_literal(binding.get('value'), binding.get('type', 'string')))
    return args


def _evaluate(column, row, lookups, columns_by_name, function_map):
    try:
        fn = get_function(column['function'], function_map)
        args = build_args(column, row, columns_by_name)
        if uses_lookups(fn):
            return fn(*args, lookups=lookups), None
        return fn(*args), None
    except Exception as e:
        print(f"Error evaluating column {column['name']}: {e}")
        return '', str(e)


def evaluate_column(column, row, lookups, columns_by_name, function_map=None):
    """Compute one function column's value for a row ('' if the function fails)."""
    function_map = function_map if function_map is not None else FUNCTION_MAP
    value, _ = _evaluate(column, row, lookups, columns_by_name, function_map)
    return value


class SheetEvaluator:
    """
    Evaluates rows against a validated column registry.

    The registry is validated and the dependency graph built once, so one
    evaluator can be reused for every row of a request or a migration run.

    Raises:
        ColumnRegistryError (or a subclass) if the registry is inconsistent
    """

    def __init__(self, columns=None, function_map=None):
        self.columns = columns if columns is not None else get_columns()
        self.function_map = function_map if function_map is not None else FUNCTION_MAP

        validate_registry(self.columns, self.function_map)
        self.graph = build_dependency_graph(self.columns)
        self.graph.check_acyclic()

        self.columns_by_id = {c['id']: c for c in self.columns}
        self.columns_by_name = {c['name']: c for c in self.columns}

    def _run(self, row, column_ids, lookups):
        values = dict(row)
        errors = {}
        for column_id in column_ids:
            column = self.columns_by_id[column_id]
            value, error = _evaluate(column, values, lookups, self.columns_by_name,
                                     self.function_map)
            values[column_id] = value
            if error is not None:
                errors[column_id] = error
        return EvaluationResult(values, errors)

    def evaluate_row(self, row, lookups=None):
        """Compute every function column of row; returns a new row."""
        return self._run(row, self.graph.evaluation_order(), lookups)

    def recompute(self, row, changed_ids, lookups=None):
        """
        Compute only the function columns affected by changed_ids.

        Example:
            result = evaluator.recompute(row, ['p1_date_paid'], lookups)
            # result.values has fresh paid/remaining_balance/booking_status/...
        """
        return self._run(row, self.graph.columns_to_recompute(changed_ids), lookups)

    def diff(self, old_row, new_row):
        """Column ids whose values differ between two rows, in display order."""
        changed = [
            c['id'] for c in self.columns
            if (old_row or {}).get(c['id']) != (new_row or {}).get(c['id'])
        ]
        return changed


_evaluator = None


def get_evaluator():
    """
    Return the shared SheetEvaluator for the default registry, building it on first use.

    Why: Validating the registry and building the dependency graph is the
    same work for every request, so it happens once per process.
    """
    global _evaluator
    if _evaluator is None:
        _evaluator = SheetEvaluator()
    return _evaluator
