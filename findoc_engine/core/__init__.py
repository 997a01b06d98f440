"""Financial Document Engine - Core Package"""

from findoc_engine.core.money import Money
from findoc_engine.core.models import (
    AgingAnalysis,
    ComplianceReport,
    EngineValidationError,
    InvoiceTotals,
    LineItem,
    OutstandingInvoice,
    TaxIdentifierResult,
    TaxProfile,
)
from findoc_engine.core.invoice import calculate_line, compute_invoice_totals, reconcile_invoice_totals
from findoc_engine.core.validators import (
    IdentifierConfig,
    classify_tax_identifier,
    validate_tax_identifier,
)
from findoc_engine.core.compliance import score_tax_compliance
from findoc_engine.core.aging import classify_receivables_aging
from findoc_engine.core.parsers import load_invoice_document, invoice_document_generator
from findoc_engine.core.engine import FinancialEngine

__all__ = [
    'Money',
    'AgingAnalysis',
    'ComplianceReport',
    'EngineValidationError',
    'InvoiceTotals',
    'LineItem',
    'OutstandingInvoice',
    'TaxIdentifierResult',
    'TaxProfile',
    'calculate_line',
    'compute_invoice_totals',
    'reconcile_invoice_totals',
    'IdentifierConfig',
    'classify_tax_identifier',
    'validate_tax_identifier',
    'score_tax_compliance',
    'classify_receivables_aging',
    'load_invoice_document',
    'invoice_document_generator',
    'FinancialEngine',
]
