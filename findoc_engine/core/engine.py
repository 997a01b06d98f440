"""
Engine facade.
Binds configuration to the four calculation entry points and adds audit
logging at the boundary where collaborators call in.
"""
from datetime import date, datetime
from typing import Any, Optional, Sequence

from findoc_engine.core.aging import InvoiceInput, classify_receivables_aging
from findoc_engine.core.compliance import score_tax_compliance
from findoc_engine.core.invoice import LineInput, compute_invoice_totals, reconcile_invoice_totals
from findoc_engine.core.models import (
    AgingAnalysis,
    AgingPolicy,
    CompliancePolicy,
    ComplianceReport,
    InvoiceDocument,
    InvoiceTotals,
    ReconciliationResult,
    TaxIdentifierResult,
    TaxProfile,
)
from findoc_engine.core.validators import (
    IdentifierConfig,
    TaxIdentifierValidator,
)
from findoc_engine.utils.decorators import audit_log, measure_performance


class FinancialEngine:
    """
    Main engine interface.
    Stateless apart from its configuration, so one instance can be shared
    between threads.
    """

    def __init__(self,
                 identifier_config: Optional[IdentifierConfig] = None,
                 compliance_policy: Optional[CompliancePolicy] = None,
                 aging_policy: Optional[AgingPolicy] = None):
        self.identifier_validator = TaxIdentifierValidator(identifier_config)
        self.compliance_policy = compliance_policy or CompliancePolicy()
        self.aging_policy = aging_policy or AgingPolicy()

    @classmethod
    def from_config(cls, config) -> 'FinancialEngine':
        """Build from a findoc_engine.utils.Config"""
        return cls(
            identifier_config=config.identifier_config(),
            compliance_policy=config.compliance_policy(),
            aging_policy=config.aging_policy(),
        )

    @measure_performance
    @audit_log
    def compute_totals(self, lines: Sequence[LineInput],
                       invoice_discount: Any = 0,
                       reference: Optional[str] = None) -> InvoiceTotals:
        """Invoice totals for draft or stored line items"""
        return compute_invoice_totals(lines, invoice_discount)

    @measure_performance
    @audit_log
    def compute_document(self, document: InvoiceDocument) -> InvoiceTotals:
        """Invoice totals for a loaded invoice document"""
        return compute_invoice_totals(document.lines, document.invoice_discount)

    @audit_log
    def reconcile(self, lines: Sequence[LineInput], invoice_discount: Any,
                  declared_subtotal: Any, declared_tax: Any, declared_total: Any,
                  reference: Optional[str] = None) -> ReconciliationResult:
        """Check stored invoice figures against freshly computed ones"""
        return reconcile_invoice_totals(
            lines, invoice_discount, declared_subtotal, declared_tax, declared_total
        )

    def validate_identifier(self, raw: Optional[str]) -> TaxIdentifierResult:
        return self.identifier_validator.validate(raw)

    @audit_log
    def check_compliance(self, profile: Optional[TaxProfile],
                         now: Optional[datetime] = None,
                         reference: Optional[str] = None) -> ComplianceReport:
        """
        Validate the profile's identifier and score the profile.

        Args:
            profile: Customer tax profile (None when missing)
            now: Evaluation time, defaults to the current time
            reference: Customer reference used in audit log lines
        """
        now = now or datetime.now()
        identifier_result = None
        if profile is not None and profile.has_identifier:
            identifier_result = self.validate_identifier(profile.identifier)
        return score_tax_compliance(profile, identifier_result, now, self.compliance_policy)

    @measure_performance
    @audit_log
    def age_receivables(self, invoices: Sequence[InvoiceInput],
                        as_of: Optional[date] = None,
                        reference: Optional[str] = None) -> AgingAnalysis:
        """Aging buckets and risk insight for outstanding invoices"""
        as_of = as_of or date.today()
        return classify_receivables_aging(invoices, as_of, self.aging_policy)
