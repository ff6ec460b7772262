"""
Dependency graph between sheet columns.

Each function column reads the columns named in its arguments. The graph
records those edges in both directions so we can:
- evaluate a whole row in an order where every input is ready first
- recompute only the columns affected by an edit
- reject a registry where columns depend on each other in a loop

Example:
    Editing "P1 Date Paid" affects P1 Scheduled Reminder Date, Paid,
    Paid Terms, Remaining Balance, Booking Status, Payment Progress and the
    cancellation amounts, but not the Booking ID.
"""

import heapq

from column_registry import (
    UnknownColumnError,
    CircularDependencyError,
    referenced_column_names,
)


class DependencyGraph:
    """
    Column dependencies keyed by column id.

    Attributes:
        columns: Column id -> column spec
        dependencies: Column id -> set of column ids it reads
        dependents: Column id -> set of column ids that read it
    """

    def __init__(self, columns):
        self.columns = {spec['id']: spec for spec in columns}
        self.dependencies = {column_id: set() for column_id in self.columns}
        self.dependents = {column_id: set() for column_id in self.columns}

        ids_by_name = {spec['name']: spec['id'] for spec in columns}

        for spec in columns:
            if spec['data_type'] != 'function':
                continue
            for name in referenced_column_names(spec):
                if name not in ids_by_name:
                    raise UnknownColumnError(
                        f"Column {spec['name']} references unknown column {name}"
                    )
                source_id = ids_by_name[name]
                self.dependencies[spec['id']].add(source_id)
                self.dependents[source_id].add(spec['id'])

    def is_function(self, column_id):
        return self.columns[column_id]['data_type'] == 'function'

    def _order_key(self, column_id):
        return (self.columns[column_id].get('order', 0), column_id)

    def find_cycle(self):
        """
        Return the column ids on a dependency cycle, or None if there is none.

        Uses a depth-first search; the first back edge found closes the cycle.
        """
        WHITE, GREY, BLACK = 0, 1, 2
        color = {column_id: WHITE for column_id in self.columns}

        for start in sorted(self.columns, key=self._order_key):
            if color[start] != WHITE:
                continue

            path = [start]
            color[start] = GREY
            stack = [iter(sorted(self.dependencies[start], key=self._order_key))]

            while stack:
                next_id = next(stack[-1], None)
                if next_id is None:
                    stack.pop()
                    color[path.pop()] = BLACK
                    continue
                if color[next_id] == GREY:
                    return path[path.index(next_id):]
                if color[next_id] == WHITE:
                    color[next_id] = GREY
                    path.append(next_id)
                    stack.append(iter(sorted(self.dependencies[next_id], key=self._order_key)))

        return None

    def check_acyclic(self):
        """Raise CircularDependencyError if any columns depend on each other in a loop."""
        cycle = self.find_cycle()
        if cycle:
            raise CircularDependencyError(cycle)

    def evaluation_order(self, column_ids=None):
        """
        Function columns in an order where dependencies come first.

        Args:
            column_ids: Optional subset of column ids; dependencies outside
                the subset are treated as already computed

        Returns:
            List of function column ids, ties broken by display order
        """
        if column_ids is None:
            wanted = {c for c in self.columns if self.is_function(c)}
        else:
            wanted = {c for c in column_ids if c in self.columns and self.is_function(c)}

        remaining = {c: len(self.dependencies[c] & wanted) for c in wanted}
        ready = [self._order_key(c) for c, count in remaining.items() if count == 0]
        heapq.heapify(ready)

        ordered = []
        while ready:
            _, column_id = heapq.heappop(ready)
            ordered.append(column_id)
            for dependent in self.dependents[column_id]:
                if dependent not in remaining:
                    continue
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, self._order_key(dependent))

        if len(ordered) != len(wanted):
            self.check_acyclic()
            raise CircularDependencyError(sorted(wanted - set(ordered)))

        return ordered

    def _walk(self, start_ids, edges):
        seen = set()
        pending = list(start_ids)
        while pending:
            column_id = pending.pop()
            for neighbour in edges.get(column_id, ()):
                if neighbour not in seen:
                    seen.add(neighbour)
                    pending.append(neighbour)
        return seen

    def transitive_dependents(self, column_ids):
        """Every column that directly or indirectly reads any of column_ids."""
        return self._walk(column_ids, self.dependents)

    def transitive_dependencies(self, column_id):
        """Every column that column_id directly or indirectly reads."""
        return self._walk([column_id], self.dependencies)

    def columns_to_recompute(self, changed_ids):
        """
        Function columns to re-evaluate after changed_ids were edited.

        Returns:
            Column ids in evaluation order
        """
        changed = [c for c in changed_ids if c in self.columns]
        affected = self.transitive_dependents(changed)
        affected.update(c for c in changed if self.is_function(c))
        return self.evaluation_order(affected)


def build_dependency_graph(columns):
    return DependencyGraph(columns)
