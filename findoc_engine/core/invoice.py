"""
Invoice total computation.
Line-level amounts, invoice-level discount proration and tax breakdown.
All arithmetic goes through Money.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, Sequence, Tuple, Union

from pydantic import ValidationError

from findoc_engine.core.models import (
    EngineValidationError,
    FieldError,
    InvoiceTotals,
    LineCalculation,
    LineItem,
    ReconciliationResult,
    TaxBreakdown,
    field_errors,
)
from findoc_engine.core.money import Money, sum_money

LineInput = Union[LineItem, Mapping[str, Any]]


@dataclass(frozen=True)
class _LineAmounts:
    item: LineItem
    line_subtotal: Money
    line_discount: Money
    line_total: Money
    line_tax: Money


def _line_amounts(item: LineItem) -> _LineAmounts:
    line_subtotal = item.price.times(item.quantity)
    line_discount = line_subtotal.percent(item.discount_rate)
    line_total = line_subtotal - line_discount
    line_tax = line_total.percent(item.tax_rate)
    return _LineAmounts(item, line_subtotal, line_discount, line_total, line_tax)


def calculate_line(item: LineItem) -> LineCalculation:
    """
    Compute subtotal, discount, net total and tax for one line.

    Args:
        item: Validated line item

    Returns:
        LineCalculation (final_* equal the line values; no invoice discount)
    """
    amounts = _line_amounts(item)
    return _to_calculation(amounts, Money.zero(), amounts.line_total, amounts.line_tax)


def _to_calculation(amounts: _LineAmounts, allocated: Money,
                    final_total: Money, final_tax: Money) -> LineCalculation:
    return LineCalculation(
        description=amounts.item.description,
        tax_rate=amounts.item.tax_rate,
        line_subtotal=amounts.line_subtotal.to_decimal(),
        line_discount=amounts.line_discount.to_decimal(),
        line_total=amounts.line_total.to_decimal(),
        line_tax=amounts.line_tax.to_decimal(),
        allocated_invoice_discount=allocated.to_decimal(),
        final_line_total=final_total.to_decimal(),
        final_line_tax=final_tax.to_decimal(),
    )


def parse_lines(lines: Iterable[LineInput]) -> List[LineItem]:
    """
    Turn raw line input into LineItems, collecting every field error.

    Raises:
        EngineValidationError: if any line is malformed
    """
    items: List[LineItem] = []
    errors: List[FieldError] = []

    for idx, raw in enumerate(lines):
        if isinstance(raw, LineItem):
            items.append(raw)
            continue
        try:
            items.append(LineItem.model_validate(raw))
        except ValidationError as e:
            errors.extend(field_errors(f'lines[{idx}]', e))

    if errors:
        raise EngineValidationError(errors)
    return items


def parse_amount(value: Any, field: str) -> Money:
    """Parse a non-negative monetary amount"""
    if value is None:
        return Money.zero()
    if isinstance(value, Money):
        amount = value
    else:
        if isinstance(value, float):
            value = repr(value)
        try:
            amount = Money.of(value)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise EngineValidationError([FieldError(field=field, message='must be a number')]) from e
    if amount.minor < 0:
        raise EngineValidationError([FieldError(field=field, message='must not be negative')])
    return amount


def compute_invoice_totals(lines: Sequence[LineInput],
                           invoice_discount: Any = Decimal('0')) -> InvoiceTotals:
    """
    Compute final invoice totals.

    Line discounts are applied first; a positive invoice discount is then
    prorated across lines by their net value and tax is recomputed per line
    on the discounted amount.

    Args:
        lines: LineItems or mappings with the same fields
        invoice_discount: Invoice-level discount amount (major units)

    Returns:
        InvoiceTotals

    Raises:
        EngineValidationError: if any line or the discount is invalid
    """
    errors: List[FieldError] = []
    items: List[LineItem] = []
    discount = Money.zero()

    try:
        items = parse_lines(lines or [])
    except EngineValidationError as e:
        errors.extend(e.errors)
    try:
        discount = parse_amount(invoice_discount, 'invoice_discount')
    except EngineValidationError as e:
        errors.extend(e.errors)

    if errors:
        raise EngineValidationError(errors)

    amounts = [_line_amounts(item) for item in items]

    subtotal = sum_money(a.line_subtotal for a in amounts)
    line_discounts = sum_money(a.line_discount for a in amounts)
    discountable = sum_money(a.line_total for a in amounts)

    if discount.minor > 0 and discountable.minor > 0 and discount > discountable:
        raise EngineValidationError([FieldError(
            field='invoice_discount',
            message=f'exceeds the discountable amount {discountable}',
        )])

    applied = discount if (discount.minor > 0 and discountable.minor > 0) else Money.zero()

    calculations: List[LineCalculation] = []
    taxes: List[Money] = []
    finals: List[Tuple[Decimal, Money, Money]] = []

    for a in amounts:
        if applied.is_zero:
            allocated = Money.zero()
            final_total = a.line_total
            final_tax = a.line_tax
        else:
            allocated = applied.share(a.line_total, discountable)
            final_total = a.line_total - allocated
            final_tax = final_total.percent(a.item.tax_rate)

        taxes.append(final_tax)
        finals.append((a.item.tax_rate, final_total, final_tax))
        calculations.append(_to_calculation(a, allocated, final_total, final_tax))

    total_discount = line_discounts + applied
    total_tax = sum_money(taxes)
    taxable = subtotal - total_discount
    grand_total = taxable + total_tax

    return InvoiceTotals(
        subtotal=subtotal.to_decimal(),
        total_discount=total_discount.to_decimal(),
        total_tax=total_tax.to_decimal(),
        grand_total=grand_total.to_decimal(),
        taxable_amount=taxable.to_decimal(),
        invoice_discount=applied.to_decimal(),
        lines=calculations,
        tax_breakdown=_breakdown(finals),
    )


def describe_tax_rate(rate: Decimal) -> str:
    if rate == 0:
        return 'Zero Rated'
    return f'{rate.normalize():f}% Tax'


def _breakdown(finals: Iterable[Tuple[Decimal, Money, Money]]) -> List[TaxBreakdown]:
    grouped = {}
    for rate, taxable, tax in finals:
        key = rate.normalize()
        if key not in grouped:
            grouped[key] = (rate, Money.zero(), Money.zero())
        first_rate, taxable_sum, tax_sum = grouped[key]
        grouped[key] = (first_rate, taxable_sum + taxable, tax_sum + tax)

    return [
        TaxBreakdown(
            tax_rate=rate,
            taxable_amount=taxable_sum.to_decimal(),
            tax_amount=tax_sum.to_decimal(),
            description=describe_tax_rate(rate),
        )
        for rate, taxable_sum, tax_sum in grouped.values()
    ]


def build_tax_breakdown(lines: Sequence[LineInput],
                        invoice_discount: Any = Decimal('0')) -> List[TaxBreakdown]:
    """Taxable amount and tax per rate, after invoice discount proration"""
    return compute_invoice_totals(lines, invoice_discount).tax_breakdown


def reconcile_invoice_totals(lines: Sequence[LineInput],
                             invoice_discount: Any,
                             declared_subtotal: Any,
                             declared_tax: Any,
                             declared_total: Any,
                             tolerance: Any = Decimal('0.01')) -> ReconciliationResult:
    """
    Compare caller-declared invoice figures with the engine's own.

    Differences larger than the tolerance are reported; the engine's figures
    are returned alongside so callers can correct the stored document.
    """
    computed = compute_invoice_totals(lines, invoice_discount)
    limit = parse_amount(tolerance, 'tolerance')

    checks = [
        ('Subtotal', declared_subtotal, 'declared_subtotal', computed.subtotal),
        ('Tax total', declared_tax, 'declared_tax', computed.total_tax),
        ('Grand total', declared_total, 'declared_total', computed.grand_total),
    ]

    errors = []
    for label, declared, field, expected in checks:
        declared_money = _parse_signed(declared, field)
        expected_money = Money.of(expected)
        difference = declared_money - expected_money
        if abs(difference.minor) > limit.minor:
            errors.append(
                f'{label} mismatch: declared={declared_money}, calculated={expected_money}'
            )

    return ReconciliationResult(
        is_consistent=not errors,
        errors=errors,
        computed=computed,
    )


def _parse_signed(value: Any, field: str) -> Money:
    if isinstance(value, float):
        value = repr(value)
    try:
        return Money.of(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise EngineValidationError([FieldError(field=field, message='must be a number')]) from e
