"""
Sheet columns blueprint.

Read-only view of the column registry for the front end and for debugging
formulas.

Routes:
  - GET /columns/ - columns grouped by parent tab
  - GET /columns/form - input columns shown in the booking form
  - GET /columns/order - the order function columns are evaluated in
  - GET /columns/<id> - one column with what it reads and what reads it
"""

from flask import Blueprint, jsonify
from column_registry import get_columns_by_parent_tab, get_form_columns, get_parent_tabs
from evaluation import get_evaluator

# Create the blueprint
sheet_columns_bp = Blueprint('sheet_columns', __name__, url_prefix='/columns')


@sheet_columns_bp.route('/', methods=['GET'])
def columns_by_tab():
    tabs = [
        {'name': tab, 'columns': get_columns_by_parent_tab(tab)}
        for tab in get_parent_tabs()
    ]
    return jsonify({'tabs': tabs})


@sheet_columns_bp.route('/form', methods=['GET'])
def form_columns():
    return jsonify({'columns': get_form_columns()})


@sheet_columns_bp.route('/order', methods=['GET'])
def evaluation_order():
    return jsonify({'order': get_evaluator().graph.evaluation_order()})


@sheet_columns_bp.route('/<column_id>', methods=['GET'])
def column_view(column_id):
    """
    One column plus its direct and transitive dependencies and dependents.

    Why: When a value looks wrong, this answers "what feeds this column"
    and "what will change if I edit it" without reading the registry.
    """
    graph = get_evaluator().graph
    if column_id not in graph.columns:
        return jsonify({'error': 'Column not found'}), 404

    return jsonify({
        'column': graph.columns[column_id],
        'dependencies': sorted(graph.dependencies[column_id]),
        'dependents': sorted(graph.dependents[column_id]),
        'all_dependencies': sorted(graph.transitive_dependencies(column_id)),
        'all_dependents': sorted(graph.transitive_dependents([column_id])),
    })
