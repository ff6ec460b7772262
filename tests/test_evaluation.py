"""
Tests for row evaluation and incremental recompute.

Run with: python3 -m pytest tests/test_evaluation.py -v

The sample booking: Jane Doe, Japan Adventure on Jun 15 2026, reserved
Jan 10 2026 on a P2 plan. 3200 list price, 250 reservation fee, so two
installments of 1475 (Feb 2 and Mar 2).
"""

import pytest

from column_registry import (
    default_row,
    get_columns,
    get_column_by_id,
    arg,
    args_list,
    literal,
    CircularDependencyError,
)
from evaluation import SheetEvaluator, build_args, evaluate_column, get_evaluator
from function_map import FUNCTION_MAP
from sheet_lookups import SheetLookups


def make_lookups():
    return SheetLookups(
        tour_packages=[{
            'name': 'Japan Adventure',
            'tour_code': 'JAS',
            'duration': '13 Days',
            'pricing': {'original': 3200, 'discounted': 2900, 'deposit': 250, 'currency': 'EUR'},
            'travel_dates': [],
        }],
        bookings=[
            {'tour_package_name': 'Japan Adventure', 'row': 2},
            {'tour_package_name': 'Japan Adventure', 'row': 5},
        ],
    )


def make_row(**overrides):
    row = default_row()
    row.update({
        'row': 5,
        'reservation_date': '2026-01-10',
        'tour_package_name': 'Japan Adventure',
        'email_address': 'jane@example.com',
        'first_name': 'Jane',
        'last_name': 'Doe',
        'tour_date': '2026-06-15',
        'payment_plan': 'P2',
    })
    row.update(overrides)
    return row


class TestEvaluateRow:
    """Test cases for computing a whole booking."""

    def test_identifier_columns(self):
        """The booking reference is assembled from its parts."""
        result = SheetEvaluator().evaluate_row(make_row(), make_lookups())
        values = result.values
        assert values['booking_code'] == 'SB'
        assert values['tour_code'] == 'JAS'
        assert values['formatted_date'] == '20260615'
        assert values['traveller_initials'] == 'JD'
        assert values['tour_package_name_unique_counter'] == '002'
        assert values['full_name'] == 'Jane Doe'
        assert values['booking_id'] == 'SB-JAS-20260615-JD002'
        assert values['group_id'] == ''

    def test_tour_details(self):
        """Duration, return date and payment condition."""
        values = SheetEvaluator().evaluate_row(make_row(), make_lookups()).values
        assert values['tour_duration'] == '13 Days'
        assert values['return_date'] == '2026-06-28'
        assert values['days_between_booking_and_tour'] == 156
        assert values['eligible_second_of_months'] == 4
        assert values['payment_condition'] == 'Standard Booking, P4'
        assert values['available_payment_terms'] == 'P4'

    def test_payment_schedule(self):
        """Two installments of 1475 on the 2nd of Feb and Mar."""
        values = SheetEvaluator().evaluate_row(make_row(), make_lookups()).values
        assert values['reservation_fee'] == 250
        assert values['p1_due_date'] == 'Feb 2, 2026'
        assert values['p2_due_date'] == 'Mar 2, 2026'
        assert values['p3_due_date'] == ''
        assert values['p1_amount'] == 1475.0
        assert values['p2_amount'] == 1475.0
        assert values['p3_amount'] == ''
        assert values['p2_scheduled_reminder_date'] == '2026-02-16'
        assert values['full_payment_amount'] == ''

    def test_totals_and_status(self):
        """Nothing paid beyond the reservation fee yet."""
        values = SheetEvaluator().evaluate_row(make_row(), make_lookups()).values
        assert values['paid'] == 250
        assert values['paid_terms'] == 0
        assert values['remaining_balance'] == 2950
        assert values['booking_status'] == 'Installment 0/2'
        assert values['payment_progress'] == '0%'

    def test_not_cancelled(self):
        """Cancellation columns stay blank."""
        result = SheetEvaluator().evaluate_row(make_row(), make_lookups())
        values = result.values
        assert values['cancellation_scenario'] == ''
        assert values['eligible_refund'] == ''
        assert values['admin_fee'] == ''
        assert values['refundable_amount'] == ''
        assert result.errors == {}

    def test_input_row_untouched(self):
        """A new row is returned; the input is not modified."""
        row = make_row()
        SheetEvaluator().evaluate_row(row, make_lookups())
        assert 'booking_id' not in row

    def test_without_lookups(self):
        """Lookup columns fall back to blanks, the rest still computes."""
        result = SheetEvaluator().evaluate_row(make_row())
        assert result.values['full_name'] == 'Jane Doe'
        assert result.values['reservation_fee'] == ''
        assert result.values['tour_code'] == 'XXX'
        assert result.errors == {}


class TestRecompute:
    """Test cases for recomputing after an edit."""

    def test_payment_recorded(self):
        """Recording P1 updates the totals and status."""
        evaluator = SheetEvaluator()
        lookups = make_lookups()
        row = evaluator.evaluate_row(make_row(), lookups).values

        row['p1_date_paid'] = '2026-02-02'
        values = evaluator.recompute(row, ['p1_date_paid'], lookups).values

        assert values['paid'] == 1725.0
        assert values['paid_terms'] == 1475.0
        assert values['remaining_balance'] == 1475.0
        assert values['booking_status'] == 'Installment 1/2 - last paid Feb 2, 2026'
        assert values['payment_progress'] == '50%'
        assert values['p1_scheduled_reminder_date'] == ''

    def test_unaffected_columns_kept(self):
        """Columns outside the edit's reach aren't recomputed."""
        evaluator = SheetEvaluator()
        row = evaluator.evaluate_row(make_row(), make_lookups()).values
        row['booking_id'] = 'KEEP-ME'
        row['p1_date_paid'] = '2026-02-02'

        values = evaluator.recompute(row, ['p1_date_paid'], make_lookups()).values
        assert values['booking_id'] == 'KEEP-ME'

    def test_cancellation(self):
        """A guest cancellation 106 days out refunds paid terms minus 10%."""
        evaluator = SheetEvaluator()
        lookups = make_lookups()
        row = evaluator.evaluate_row(make_row(p1_date_paid='2026-02-02'), lookups).values

        row.update({
            'reason_for_cancellation': 'Guest - change of plans',
            'cancellation_initiated_by': 'Guest',
            'cancellation_request_date': '2026-03-01',
        })
        changed = ['reason_for_cancellation', 'cancellation_initiated_by',
                   'cancellation_request_date']
        values = evaluator.recompute(row, changed, lookups).values

        assert values['booking_status'] == 'Cancelled'
        assert values['payment_progress'] == ''
        assert values['available_payment_terms'] == 'Cancelled'
        assert values['cancellation_scenario'] == \
            'Guest Cancel Early (Installment) (106 days before tour)'
        assert values['eligible_refund'] == 'Refund of paid terms minus admin fee'
        assert values['admin_fee'] == 147.5
        assert values['refundable_amount'] == 1327.5
        assert values['non_refundable_amount'] == 397.5

    def test_diff(self):
        """Changed columns in display order."""
        evaluator = SheetEvaluator()
        old = {'first_name': 'Jane', 'full_name': 'Jane Doe'}
        new = {'first_name': 'Janet', 'full_name': 'Janet Doe', 'row': None}
        assert evaluator.diff(old, new) == ['first_name', 'full_name']


class TestErrors:
    """Test cases for functions that fail."""

    def test_failing_function_is_blank(self):
        """A raising function gives '' and an error; the rest still computes."""
        def broken(first_name, last_name):
            raise ValueError('boom')

        function_map = dict(FUNCTION_MAP)
        function_map['full_name'] = broken

        result = SheetEvaluator(function_map=function_map).evaluate_row(make_row(), make_lookups())
        assert result.values['full_name'] == ''
        assert result.errors == {'full_name': 'boom'}
        # Six of seven supporting fields are still filled
        assert result.values['booking_id'] == 'SB-JAS-20260615-JD002'

    def test_cyclic_registry_rejected(self):
        """The evaluator refuses a registry with a loop."""
        columns = get_columns()
        get_column_by_id('full_name', columns)['arguments'] = [
            arg('first_name', 'Traveller Initials'),
            arg('last_name', 'Last Name'),
        ]
        get_column_by_id('traveller_initials', columns)['arguments'] = [
            arg('first_name', 'Full Name'),
            arg('last_name', 'Last Name'),
        ]
        with pytest.raises(CircularDependencyError):
            SheetEvaluator(columns=columns)


class TestBuildArgs:
    """Test cases for resolving argument bindings."""

    def test_bindings(self):
        """Column, list and literal bindings, in order."""
        column = {
            'name': 'X',
            'arguments': [
                arg('a', 'A'),
                args_list('values', ['A', 'Missing']),
                literal('n', '2', 'number'),
                literal('flag', 'true', 'boolean'),
                literal('names', 'a, b', 'list'),
                literal('label', 'hello'),
            ],
        }
        args = build_args(column, {'a': 5}, {'A': {'id': 'a', 'name': 'A'}})
        assert args == [5, [5, None], 2, True, ['a', 'b'], 'hello']

    def test_evaluate_column(self):
        """One column on its own."""
        columns_by_name = {c['name']: c for c in get_columns()}
        value = evaluate_column(get_column_by_id('full_name'),
                                {'first_name': 'Jane', 'last_name': 'Doe'},
                                None, columns_by_name)
        assert value == 'Jane Doe'


class TestSharedEvaluator:
    """Test cases for the process-wide evaluator."""

    def test_built_once(self):
        """Every caller gets the same evaluator over the full registry."""
        evaluator = get_evaluator()
        assert get_evaluator() is evaluator
        assert isinstance(evaluator, SheetEvaluator)
        assert 'booking_id' in evaluator.graph.evaluation_order()

    def test_blueprints_share_it(self):
        """The bookings and column routes use the evaluator from evaluation."""
        import bookings
        import sheet_columns

        assert bookings.get_evaluator is get_evaluator
        assert sheet_columns.get_evaluator is get_evaluator
