"""
Report generation utilities.
Creates human-readable console summaries. Numbers are printed exactly as
the engine returned them; nothing is recomputed here.
"""
from datetime import datetime
from typing import List, Optional

from findoc_engine.core.models import (
    AgingAnalysis,
    BatchResult,
    ComplianceReport,
    InvoiceTotals,
    TaxIdentifierResult,
)
from findoc_engine.core.validators import (
    classify_tax_identifier,
    format_tax_identifier,
    mask_tax_identifier,
)
from findoc_engine.processing.batch import group_by_error

WIDTH = 70


def _header(title: str) -> List[str]:
    return [
        "=" * WIDTH,
        title,
        "=" * WIDTH,
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
    ]


def _footer() -> List[str]:
    return ["=" * WIDTH, "END OF REPORT", "=" * WIDTH]


def generate_totals_report(totals: InvoiceTotals, invoice_number: Optional[str] = None) -> str:
    """
    Generate text summary of invoice totals.

    Args:
        totals: Engine output
        invoice_number: Optional document reference for the heading

    Returns:
        Formatted text report
    """
    lines = _header("INVOICE TOTALS")
    if invoice_number:
        lines.append(f"Invoice: {invoice_number}")
        lines.append("")

    lines.append("LINES")
    lines.append("-" * WIDTH)
    for idx, line in enumerate(totals.lines, 1):
        lines.append(f"{idx}. {line.description or '(no description)'}")
        lines.append(f"   Subtotal: {line.line_subtotal}  Discount: {line.line_discount}  "
                     f"Invoice discount: {line.allocated_invoice_discount}")
        lines.append(f"   Net: {line.final_line_total}  Tax @ {line.tax_rate}%: {line.final_line_tax}")
    lines.append("")

    if totals.tax_breakdown:
        lines.append("TAX BREAKDOWN")
        lines.append("-" * WIDTH)
        for entry in totals.tax_breakdown:
            lines.append(f"{entry.description:<20} taxable {entry.taxable_amount:>14}  "
                         f"tax {entry.tax_amount:>12}")
        lines.append("")

    lines.append("TOTALS")
    lines.append("-" * WIDTH)
    lines.append(f"Subtotal:          {totals.subtotal}")
    lines.append(f"Total Discount:    {totals.total_discount}")
    lines.append(f"Taxable Amount:    {totals.taxable_amount}")
    lines.append(f"Total Tax:         {totals.total_tax}")
    lines.append(f"Grand Total:       {totals.grand_total}")
    lines.append("")

    lines.extend(_footer())
    return "\n".join(lines)


def generate_identifier_report(raw: Optional[str], result: TaxIdentifierResult,
                               reveal: bool = False) -> str:
    """One-line verdict for an identifier, masked unless reveal is set"""
    if not raw or not raw.strip():
        shown = '(empty)'
    elif reveal:
        shown = format_tax_identifier(raw)
    else:
        shown = mask_tax_identifier(raw)
    if result.cleaned is None and result.is_valid:
        return f"{shown}: not provided"
    if result.is_valid:
        category = classify_tax_identifier(raw).value
        return f"{shown}: VALID (heuristic type: {category})"
    codes = ', '.join(f"[{e.code}] {e.message}" for e in result.errors)
    return f"{shown}: INVALID {codes}"


def generate_compliance_report(report: ComplianceReport, customer: Optional[str] = None) -> str:
    """Text summary of a compliance check"""
    lines = _header("TAX COMPLIANCE REPORT")
    if customer:
        lines.append(f"Customer: {customer}")
    lines.append(f"Score:            {report.score}/100")
    lines.append(f"Checked:          {report.checked_at.isoformat()}")
    lines.append(f"Next check due:   {report.next_check_due.isoformat()}")
    lines.append("")

    if report.issues:
        lines.append("ISSUES")
        lines.append("-" * WIDTH)
        for i, issue in enumerate(report.issues, 1):
            lines.append(f"{i}. [{issue.severity.value.upper()}] {issue.kind.value}: {issue.description}")
            lines.append(f"   Recommendation: {issue.recommendation}")
        lines.append("")
    else:
        lines.append("No compliance issues found.")
        lines.append("")

    lines.extend(_footer())
    return "\n".join(lines)


def generate_aging_report(analysis: AgingAnalysis) -> str:
    """Text summary of receivables aging"""
    buckets = analysis.buckets
    insight = analysis.insight

    lines = _header("RECEIVABLES AGING REPORT")
    lines.append(f"As of: {analysis.as_of.isoformat()}")
    lines.append("")

    lines.append("AGING BUCKETS")
    lines.append("-" * WIDTH)
    lines.append(f"Current:           {buckets.current}")
    lines.append(f"1-30 days:         {buckets.days_30}")
    lines.append(f"31-60 days:        {buckets.days_60}")
    lines.append(f"61-90 days:        {buckets.days_90}")
    lines.append(f"Over 90 days:      {buckets.over_90}")
    lines.append(f"Total:             {buckets.total}")
    lines.append("")

    lines.append("RISK")
    lines.append("-" * WIDTH)
    lines.append(f"Risk level:        {insight.risk_level.value.upper()}")
    lines.append(f"Overdue share:     {insight.overdue_percentage * 100:.1f}%")
    lines.append(f"Avg days overdue:  {insight.average_days_overdue:.1f}")
    for recommendation in insight.recommendations:
        lines.append(f"  - {recommendation}")
    lines.append("")

    lines.extend(_footer())
    return "\n".join(lines)


def generate_batch_report(batch_result: BatchResult) -> str:
    """Text summary of a batch run"""
    lines = _header("INVOICE BATCH REPORT")

    total = batch_result.total or 1
    lines.append("SUMMARY STATISTICS")
    lines.append("-" * WIDTH)
    lines.append(f"Total Invoices Processed:  {batch_result.total}")
    lines.append(f"Computed:                  {batch_result.computed_count} "
                 f"({batch_result.computed_count / total * 100:.1f}%)")
    lines.append(f"Rejected:                  {batch_result.failed_count} "
                 f"({batch_result.failed_count / total * 100:.1f}%)")
    lines.append(f"Processing Time:           {batch_result.processing_time_seconds:.2f} seconds")
    lines.append("")

    if batch_result.failed_count > 0:
        lines.append("COMMON ERRORS")
        lines.append("-" * WIDTH)
        by_error = group_by_error(batch_result.results)
        ranked = sorted(by_error.items(), key=lambda item: len(item[1]), reverse=True)
        for error, invoice_numbers in ranked[:10]:
            lines.append(f"{error}")
            lines.append(f"  Occurrences: {len(invoice_numbers)}")
        lines.append("")

        lines.append("REJECTED INVOICES")
        lines.append("-" * WIDTH)
        failed = [r for r in batch_result.results if not r.succeeded]
        for result in failed[:20]:  # Show first 20
            lines.append(f"Invoice: {result.invoice_number}")
            for error in result.errors:
                lines.append(f"    - {error}")
        if len(failed) > 20:
            lines.append(f"... and {len(failed) - 20} more rejected invoices")
        lines.append("")

    lines.extend(_footer())
    return "\n".join(lines)
