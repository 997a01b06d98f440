"""
Financial Document Engine

Deterministic invoice totals, tax identifier checks, tax compliance scoring
and receivables aging for small-business accounting.
"""

__version__ = '1.0.0'
__license__ = 'MIT'

from findoc_engine.core import (
    AgingAnalysis,
    ComplianceReport,
    EngineValidationError,
    FinancialEngine,
    InvoiceTotals,
    LineItem,
    Money,
    OutstandingInvoice,
    TaxIdentifierResult,
    TaxProfile,
    classify_receivables_aging,
    classify_tax_identifier,
    compute_invoice_totals,
    score_tax_compliance,
    validate_tax_identifier,
)

from findoc_engine.processing import (
    BatchProcessor,
    ConcurrentProcessor,
)

__all__ = [
    'AgingAnalysis',
    'ComplianceReport',
    'EngineValidationError',
    'FinancialEngine',
    'InvoiceTotals',
    'LineItem',
    'Money',
    'OutstandingInvoice',
    'TaxIdentifierResult',
    'TaxProfile',
    'classify_receivables_aging',
    'classify_tax_identifier',
    'compute_invoice_totals',
    'score_tax_compliance',
    'validate_tax_identifier',
    'BatchProcessor',
    'ConcurrentProcessor',
]
