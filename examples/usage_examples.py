"""
Example usage of the Financial Document Engine.
Demonstrates the main calculations and the batch front ends.
"""
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from findoc_engine import (
    BatchProcessor,
    ConcurrentProcessor,
    EngineValidationError,
    FinancialEngine,
    LineItem,
    TaxProfile,
)
from findoc_engine.processing.batch import group_by_error


def example_invoice_totals():
    """Example: Totals with an invoice-level discount"""
    print("Example 1: Invoice Totals")
    print("-" * 50)

    engine = FinancialEngine()
    totals = engine.compute_totals(
        [
            LineItem(description="Consulting", quantity=Decimal("1"),
                     unit_price=Decimal("100.00"), tax_rate=Decimal("16")),
            LineItem(description="Books", quantity=Decimal("1"),
                     unit_price=Decimal("100.00"), tax_rate=Decimal("0")),
        ],
        invoice_discount=Decimal("50.00"),
        reference="INV-2024-001",
    )

    for line in totals.lines:
        print(f"  {line.description}: net {line.final_line_total}, tax {line.final_line_tax}")
    print(f"Grand total: {totals.grand_total}")
    print()


def example_rejected_input():
    """Example: Every bad field is reported at once"""
    print("Example 2: Rejected Input")
    print("-" * 50)

    try:
        FinancialEngine().compute_totals(
            [{"quantity": -1, "unit_price": "10", "tax_rate": 16},
             {"quantity": 1, "unit_price": "ten", "tax_rate": 16}],
        )
    except EngineValidationError as e:
        for message in e.messages():
            print(f"  - {message}")
    print()


def example_identifier_and_compliance():
    """Example: Validate an identifier, then score the customer profile"""
    print("Example 3: Identifier and Compliance")
    print("-" * 50)

    engine = FinancialEngine()
    for raw in ("4821 093 765", "0000000000", ""):
        result = engine.validate_identifier(raw)
        print(f"  {raw!r}: valid={result.is_valid} codes={result.error_codes}")

    profile = TaxProfile(identifier="4821093765", identifier_validated=True, tax_registered=True)
    report = engine.check_compliance(profile, now=datetime(2024, 6, 30, 12, 0), reference="CUST-42")
    print(f"Score: {report.score}")
    for issue in report.issues:
        print(f"  - [{issue.severity.value}] {issue.description}")
    print()


def example_receivables_aging():
    """Example: Age outstanding balances"""
    print("Example 4: Receivables Aging")
    print("-" * 50)

    analysis = FinancialEngine().age_receivables(
        [
            {"amount": "1200.00", "due_date": "2024-07-15", "reference": "INV-31"},
            {"amount": "450.00", "due_date": "2024-05-20", "reference": "INV-17"},
            {"amount": "80.00", "due_date": "2024-02-01", "reference": "INV-03"},
        ],
        as_of=date(2024, 6, 30),
    )

    print(f"Buckets: {analysis.buckets.model_dump()}")
    print(f"Risk: {analysis.insight.risk_level.value}")
    for recommendation in analysis.insight.recommendations:
        print(f"  - {recommendation}")
    print()


def example_process_directory_sequential():
    """Example: Compute a directory of drafts using generators"""
    print("Example 5: Sequential Directory Processing")
    print("-" * 50)

    processor = BatchProcessor()
    result = processor.process_directory(
        directory=Path('drafts/'),
        pattern='*.json',
        output_dir=Path('computed/')
    )

    print(f"Processed: {result.total} invoices")
    print(f"Computed: {result.computed_count}")
    print(f"Rejected: {result.failed_count}")
    for error, invoices in group_by_error(result.results).items():
        print(f"  {error}: {', '.join(invoices)}")
    print()


def example_process_directory_concurrent():
    """Example: Compute a directory of drafts with a thread pool"""
    print("Example 6: Concurrent Directory Processing")
    print("-" * 50)

    def alert(result):
        if not result.succeeded:
            print(f"  Rejected: {result.invoice_number}")

    processor = ConcurrentProcessor(max_workers=4)
    result = processor.process_directory(Path('drafts/'), callback=alert)

    print(f"Computed: {result.computed_count}/{result.total}")
    print(f"Time: {result.processing_time_seconds:.2f}s")
    print()


if __name__ == '__main__':
    print("Financial Document Engine - Usage Examples")
    print("=" * 50)
    print()

    example_invoice_totals()
    example_rejected_input()
    example_identifier_and_compliance()
    example_receivables_aging()
    # example_process_directory_sequential()
    # example_process_directory_concurrent()

    print("Note: Create a drafts/ directory of JSON invoices to run the batch examples")
