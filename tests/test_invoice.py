"""
Unit tests for line calculation and invoice aggregation.
"""
import copy
import random
from decimal import Decimal

import pytest
from pydantic import ValidationError

from findoc_engine.core.invoice import (
    build_tax_breakdown,
    calculate_line,
    compute_invoice_totals,
    reconcile_invoice_totals,
)
from findoc_engine.core.models import EngineValidationError, LineItem


def _line(qty, price, tax, discount='0', description=''):
    return LineItem(
        description=description,
        quantity=Decimal(str(qty)),
        unit_price=Decimal(str(price)),
        tax_rate=Decimal(str(tax)),
        discount_rate=Decimal(str(discount)),
    )


class TestLineCalculator:

    def test_single_line_amounts(self, standard_line):
        calc = calculate_line(standard_line)

        assert calc.line_subtotal == Decimal('200.00')
        assert calc.line_discount == Decimal('0.00')
        assert calc.line_total == Decimal('200.00')
        assert calc.line_tax == Decimal('32.00')

    def test_line_discount_applied_before_tax(self):
        # 3 x 19.99 = 59.97; 10% = 5.997 -> 6.00; net 53.97; 16% = 8.6352 -> 8.64
        calc = calculate_line(_line(3, '19.99', 16, 10))

        assert calc.line_subtotal == Decimal('59.97')
        assert calc.line_discount == Decimal('6.00')
        assert calc.line_total == Decimal('53.97')
        assert calc.line_tax == Decimal('8.64')

    def test_fractional_quantity_rounds_half_up(self):
        # 1.5 x 9.99 = 14.985 -> 14.99; 16% = 2.3984 -> 2.40
        calc = calculate_line(_line('1.5', '9.99', 16))

        assert calc.line_subtotal == Decimal('14.99')
        assert calc.line_tax == Decimal('2.40')

    def test_full_discount_yields_zero_tax(self):
        calc = calculate_line(_line(1, 50, 16, 100))

        assert calc.line_total == Decimal('0.00')
        assert calc.line_tax == Decimal('0.00')

    def test_negative_quantity_rejected_at_construction(self):
        with pytest.raises(ValidationError):
            _line(-1, 10, 16)

    def test_rate_above_hundred_rejected_at_construction(self):
        with pytest.raises(ValidationError):
            _line(1, 10, 101)

    def test_line_item_is_immutable(self, standard_line):
        with pytest.raises(ValidationError):
            standard_line.quantity = Decimal('5')


class TestInvoiceTotals:

    def test_single_line_no_discount(self, standard_line):
        """Two units at 100.00 with 16% tax"""
        totals = compute_invoice_totals([standard_line], Decimal('0'))

        assert totals.subtotal == Decimal('200.00')
        assert totals.total_discount == Decimal('0.00')
        assert totals.total_tax == Decimal('32.00')
        assert totals.grand_total == Decimal('232.00')
        assert totals.lines[0].line_tax == Decimal('32.00')

    def test_invoice_discount_prorated_before_tax(self, mixed_rate_lines):
        """50.00 off 200.00 splits 25/25; tax only on the 16% line's 75.00"""
        totals = compute_invoice_totals(mixed_rate_lines, Decimal('50'))

        taxed, zero_rated = totals.lines
        assert taxed.allocated_invoice_discount == Decimal('25.00')
        assert taxed.final_line_total == Decimal('75.00')
        assert taxed.final_line_tax == Decimal('12.00')
        assert zero_rated.final_line_total == Decimal('75.00')
        assert zero_rated.final_line_tax == Decimal('0.00')

        assert totals.subtotal == Decimal('200.00')
        assert totals.total_discount == Decimal('50.00')
        assert totals.invoice_discount == Decimal('50.00')
        assert totals.total_tax == Decimal('12.00')
        assert totals.grand_total == Decimal('162.00')

    def test_proration_uses_net_line_value(self):
        """A 50% line discount halves that line's share of the invoice discount"""
        lines = [_line(1, 100, 16, 50), _line(1, 100, 16)]
        totals = compute_invoice_totals(lines, Decimal('15'))

        # net values 50 and 100 -> shares 5.00 and 10.00
        assert totals.lines[0].allocated_invoice_discount == Decimal('5.00')
        assert totals.lines[1].allocated_invoice_discount == Decimal('10.00')
        assert totals.total_discount == Decimal('65.00')

    def test_zero_value_line_receives_no_discount(self):
        lines = [_line(1, 100, 16), _line(0, 100, 16)]
        totals = compute_invoice_totals(lines, Decimal('10'))

        assert totals.lines[0].allocated_invoice_discount == Decimal('10.00')
        assert totals.lines[1].allocated_invoice_discount == Decimal('0.00')

    def test_per_line_rounding_keeps_totals_exact(self):
        """10.00 over three equal lines allocates 3.33 each; the customer still gets 10.00 off"""
        lines = [_line(1, 10, 16) for _ in range(3)]
        totals = compute_invoice_totals(lines, Decimal('10'))

        allocated = sum(line.allocated_invoice_discount for line in totals.lines)
        assert allocated == Decimal('9.99')
        assert totals.total_discount == Decimal('10.00')
        assert totals.total_tax == Decimal('3.21')
        assert totals.grand_total == Decimal('23.21')

    def test_zero_subtotal_skips_invoice_discount(self):
        totals = compute_invoice_totals([_line(0, 10, 16)], Decimal('5'))

        assert totals.subtotal == Decimal('0.00')
        assert totals.total_discount == Decimal('0.00')
        assert totals.invoice_discount == Decimal('0.00')
        assert totals.grand_total == Decimal('0.00')
        assert totals.lines[0].allocated_invoice_discount == Decimal('0.00')

    def test_empty_invoice(self):
        totals = compute_invoice_totals([], Decimal('10'))

        assert totals.grand_total == Decimal('0.00')
        assert totals.lines == []
        assert totals.tax_breakdown == []

    def test_full_line_discount_yields_zero_tax(self):
        totals = compute_invoice_totals([_line(1, 80, 16, 100)])

        assert totals.total_tax == Decimal('0.00')
        assert totals.total_discount == Decimal('80.00')
        assert totals.grand_total == Decimal('0.00')

    def test_mappings_are_accepted(self):
        lines = [{'description': 'Widget', 'quantity': '2', 'unit_price': '100.00', 'tax_rate': 16}]
        totals = compute_invoice_totals(lines, '0')

        assert totals.grand_total == Decimal('232.00')

    def test_input_is_not_mutated(self):
        lines = [{'quantity': '1', 'unit_price': '100', 'tax_rate': '16'}]
        before = copy.deepcopy(lines)

        compute_invoice_totals(lines, Decimal('10'))

        assert lines == before

    def test_repeated_calls_are_identical(self, mixed_rate_lines):
        first = compute_invoice_totals(mixed_rate_lines, Decimal('33.33'))
        second = compute_invoice_totals(mixed_rate_lines, Decimal('33.33'))

        assert first == second
        assert first.model_dump() == second.model_dump()


class TestInvoiceValidation:

    def test_every_bad_field_is_reported(self):
        lines = [
            {'quantity': -1, 'unit_price': 10, 'tax_rate': 16},
            {'quantity': 1, 'unit_price': 10, 'tax_rate': 120},
        ]

        with pytest.raises(EngineValidationError) as exc_info:
            compute_invoice_totals(lines, Decimal('-5'))

        fields = [e.field for e in exc_info.value.errors]
        assert fields == ['lines[0].quantity', 'lines[1].tax_rate', 'invoice_discount']

    def test_missing_field_is_reported(self):
        with pytest.raises(EngineValidationError) as exc_info:
            compute_invoice_totals([{'quantity': 1, 'tax_rate': 16}])

        assert exc_info.value.errors[0].field == 'lines[0].unit_price'

    def test_non_numeric_discount(self, standard_line):
        with pytest.raises(EngineValidationError) as exc_info:
            compute_invoice_totals([standard_line], 'ten')

        assert exc_info.value.errors[0].field == 'invoice_discount'
        assert exc_info.value.errors[0].message == 'must be a number'

    def test_discount_larger_than_invoice_rejected(self, standard_line):
        with pytest.raises(EngineValidationError) as exc_info:
            compute_invoice_totals([standard_line], Decimal('200.01'))

        assert exc_info.value.errors[0].field == 'invoice_discount'

    def test_discount_equal_to_invoice_accepted(self, standard_line):
        totals = compute_invoice_totals([standard_line], Decimal('200'))

        assert totals.total_tax == Decimal('0.00')
        assert totals.grand_total == Decimal('0.00')

    def test_discount_is_bounded_by_line_totals_not_subtotal(self):
        """Line discounts shrink the room left for an invoice discount"""
        lines = [_line(1, 100, 16, 50)]

        with pytest.raises(EngineValidationError) as exc_info:
            compute_invoice_totals(lines, Decimal('60'))

        error = exc_info.value.errors[0]
        assert error.field == 'invoice_discount'
        assert error.message == 'exceeds the discountable amount 50.00'

        totals = compute_invoice_totals(lines, Decimal('50'))
        assert totals.subtotal == Decimal('100.00')
        assert totals.total_discount == Decimal('100.00')
        assert totals.total_tax == Decimal('0.00')
        assert totals.grand_total == Decimal('0.00')

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            compute_invoice_totals([{'quantity': 'x', 'unit_price': 1, 'tax_rate': 0}])


class TestTotalsInvariant:

    def test_grand_total_identity_holds_for_varied_invoices(self):
        rng = random.Random(20240630)

        for _ in range(200):
            lines = [
                _line(
                    rng.choice(['1', '2', '0.5', '3.25', '7', '0']),
                    f"{rng.randint(0, 50000) / 100:.2f}",
                    rng.choice(['0', '5', '16', '17.5']),
                    rng.choice(['0', '0', '10', '12.5', '100']),
                )
                for _ in range(rng.randint(1, 6))
            ]
            undiscounted = compute_invoice_totals(lines)
            limit = undiscounted.taxable_amount
            discount = (limit * Decimal(rng.randint(0, 100)) / 100).quantize(Decimal('0.01'), rounding='ROUND_DOWN')

            totals = compute_invoice_totals(lines, discount)

            assert totals.grand_total == totals.subtotal - totals.total_discount + totals.total_tax
            assert totals.taxable_amount == totals.subtotal - totals.total_discount
            for amount in (totals.subtotal, totals.total_discount, totals.total_tax, totals.grand_total):
                assert amount.as_tuple().exponent == -2


class TestTaxBreakdown:

    def test_breakdown_groups_by_rate(self, mixed_rate_lines):
        breakdown = build_tax_breakdown(mixed_rate_lines, Decimal('50'))

        assert [b.tax_rate for b in breakdown] == [Decimal('16'), Decimal('0')]
        assert breakdown[0].taxable_amount == Decimal('75.00')
        assert breakdown[0].tax_amount == Decimal('12.00')
        assert breakdown[0].description == '16% Tax'
        assert breakdown[1].description == 'Zero Rated'

    def test_same_rate_lines_merge(self):
        breakdown = build_tax_breakdown([_line(1, 10, 16), _line(2, 10, '16.0')])

        assert len(breakdown) == 1
        assert breakdown[0].taxable_amount == Decimal('30.00')
        assert breakdown[0].tax_amount == Decimal('4.80')


class TestReconciliation:

    def test_matching_figures_are_consistent(self, standard_line):
        result = reconcile_invoice_totals([standard_line], 0, '200.00', '32.00', '232.00')

        assert result.is_consistent
        assert result.errors == []

    def test_difference_within_tolerance(self, standard_line):
        result = reconcile_invoice_totals([standard_line], 0, '200.00', '32.00', '232.01')

        assert result.is_consistent

    def test_mismatch_reported(self, standard_line):
        result = reconcile_invoice_totals([standard_line], 0, '200.00', '30.00', '230.00')

        assert not result.is_consistent
        assert result.errors[0].startswith('Tax total mismatch')
        assert result.errors[1].startswith('Grand total mismatch')
        assert result.computed.grand_total == Decimal('232.00')
