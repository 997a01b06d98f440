"""
Data models for the financial document engine.
Using Pydantic for validation and type safety.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from dateutil.parser import parse as parse_date
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from findoc_engine.core.money import Money


def _parse_optional_date(value: Any) -> Any:
    """Accept loosely formatted date strings ("15 Jan 2024", "2024/01/15")"""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        return parse_date(value).date()
    if isinstance(value, datetime):
        return value.date()
    return value


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    """A single field-level input problem"""
    model_config = ConfigDict(frozen=True)

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class EngineValidationError(ValueError):
    """
    Raised when input is rejected before any computation.
    Carries every field-level problem found, not just the first.
    """

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        super().__init__('; '.join(str(e) for e in self.errors) or 'invalid input')

    def messages(self) -> List[str]:
        return [str(e) for e in self.errors]


def field_errors(prefix: str, exc: ValidationError) -> List[FieldError]:
    """Convert a pydantic ValidationError into FieldErrors under a document path"""
    converted = []
    for err in exc.errors():
        path = prefix
        for part in err['loc']:
            path += f'[{part}]' if isinstance(part, int) else f'.{part}'
        converted.append(FieldError(field=path, message=err['msg']))
    return converted


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


class LineItem(BaseModel):
    """Single billable row of an invoice"""
    model_config = ConfigDict(frozen=True)

    description: str = ''
    quantity: Decimal = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0)
    tax_rate: Decimal = Field(..., ge=0, le=100)
    discount_rate: Decimal = Field(default=Decimal('0'), ge=0, le=100)

    @field_validator('quantity', 'unit_price', 'tax_rate', 'discount_rate', mode='before')
    @classmethod
    def coerce_floats(cls, v):
        # binary floats would leak rounding noise into minor units
        if isinstance(v, float):
            return repr(v)
        return v

    @property
    def price(self) -> Money:
        return Money.of(self.unit_price)


class LineCalculation(BaseModel):
    """Computed amounts for one line, before and after invoice discount proration"""
    description: str
    tax_rate: Decimal
    line_subtotal: Decimal
    line_discount: Decimal
    line_total: Decimal
    line_tax: Decimal
    allocated_invoice_discount: Decimal = Decimal('0.00')
    final_line_total: Decimal
    final_line_tax: Decimal


class TaxBreakdown(BaseModel):
    """Taxable amount and tax grouped by rate"""
    tax_rate: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    description: str


class InvoiceTotals(BaseModel):
    """
    Final invoice totals.
    grand_total == (subtotal - total_discount) + total_tax, to the cent.
    """
    subtotal: Decimal
    total_discount: Decimal
    total_tax: Decimal
    grand_total: Decimal
    taxable_amount: Decimal
    invoice_discount: Decimal = Decimal('0.00')
    lines: List[LineCalculation] = []
    tax_breakdown: List[TaxBreakdown] = []


class ReconciliationResult(BaseModel):
    """Outcome of checking declared invoice figures against the engine"""
    is_consistent: bool
    errors: List[str] = []
    computed: InvoiceTotals


# ---------------------------------------------------------------------------
# Tax identifiers and compliance
# ---------------------------------------------------------------------------


class IdentifierCategory(str, Enum):
    INDIVIDUAL = 'individual'
    COMPANY = 'company'
    UNKNOWN = 'unknown'


class IdentifierError(BaseModel):
    code: str  # format, all-same-digit, sequential, check-digit
    message: str


class TaxIdentifierResult(BaseModel):
    """Result of format/pattern validation of a tax identifier"""
    is_valid: bool
    cleaned: Optional[str] = None
    errors: List[IdentifierError] = []

    @property
    def is_present(self) -> bool:
        return self.cleaned is not None or bool(self.errors)

    @property
    def error_codes(self) -> List[str]:
        return [e.code for e in self.errors]


class TaxProfile(BaseModel):
    """Customer tax profile as stored by the persistence layer"""
    model_config = ConfigDict(frozen=True)

    identifier: Optional[str] = None
    identifier_validated: bool = False
    tax_registered: bool = False
    tax_registration_number: Optional[str] = None
    exemption: bool = False
    exemption_valid_until: Optional[date] = None

    @field_validator('exemption_valid_until', mode='before')
    @classmethod
    def parse_valid_until(cls, v):
        return _parse_optional_date(v)

    @property
    def has_identifier(self) -> bool:
        return bool(self.identifier and self.identifier.strip())


class IssueKind(str, Enum):
    DOCUMENTATION_MISSING = 'documentation_missing'
    IDENTIFIER_INVALID = 'identifier_invalid'
    REGISTRATION_MISMATCH = 'registration_mismatch'
    EXEMPTION_EXPIRED = 'exemption_expired'


class Severity(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


class ComplianceIssue(BaseModel):
    kind: IssueKind
    severity: Severity
    description: str
    recommendation: str


class ComplianceReport(BaseModel):
    """Tax compliance score with itemized issues"""
    score: int = Field(..., ge=0, le=100)
    issues: List[ComplianceIssue] = []
    checked_at: datetime
    next_check_due: datetime

    @property
    def is_compliant(self) -> bool:
        return not self.issues


class CompliancePolicy(BaseModel):
    """Deduction weights for the compliance score"""
    model_config = ConfigDict(frozen=True)

    missing_profile_penalty: int = Field(default=40, ge=0)
    unvalidated_identifier_penalty: int = Field(default=30, ge=0)
    registration_mismatch_penalty: int = Field(default=20, ge=0)
    expired_exemption_penalty: int = Field(default=50, ge=0)
    check_interval_days: int = Field(default=30, ge=1)


# ---------------------------------------------------------------------------
# Receivables aging
# ---------------------------------------------------------------------------


class AgingBucket(str, Enum):
    CURRENT = 'current'
    DAYS_30 = 'days_30'
    DAYS_60 = 'days_60'
    DAYS_90 = 'days_90'
    OVER_90 = 'over_90'


class RiskLevel(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    def __lt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank >= other.rank


_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH]


class OutstandingInvoice(BaseModel):
    """Unpaid invoice balance awaiting collection"""
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., ge=0)
    due_date: date
    reference: Optional[str] = None

    @field_validator('due_date', mode='before')
    @classmethod
    def parse_due_date(cls, v):
        return _parse_optional_date(v)

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_floats(cls, v):
        if isinstance(v, float):
            return repr(v)
        return v


class AgingBuckets(BaseModel):
    current: Decimal = Decimal('0.00')
    days_30: Decimal = Decimal('0.00')
    days_60: Decimal = Decimal('0.00')
    days_90: Decimal = Decimal('0.00')
    over_90: Decimal = Decimal('0.00')
    total: Decimal = Decimal('0.00')

    def amount_for(self, bucket: AgingBucket) -> Decimal:
        return getattr(self, bucket.value)


class AgingInsight(BaseModel):
    risk_level: RiskLevel
    overdue_percentage: Decimal
    average_days_overdue: Decimal
    recommendations: List[str] = []


class AgingDetail(BaseModel):
    reference: Optional[str] = None
    amount: Decimal
    due_date: date
    days_overdue: int
    bucket: AgingBucket


class AgingAnalysis(BaseModel):
    buckets: AgingBuckets
    insight: AgingInsight
    details: List[AgingDetail] = []
    as_of: date


class AgingPolicy(BaseModel):
    """Risk thresholds for receivables aging"""
    model_config = ConfigDict(frozen=True)

    high_overdue_ratio: Decimal = Decimal('0.5')
    medium_overdue_ratio: Decimal = Decimal('0.25')
    high_average_days: Decimal = Decimal('60')
    medium_average_days: Decimal = Decimal('30')


# ---------------------------------------------------------------------------
# Documents and batches
# ---------------------------------------------------------------------------


class InvoiceDocument(BaseModel):
    """Draft or stored invoice as handed over by a collaborator"""
    invoice_number: str = 'UNKNOWN'
    lines: List[Any] = []
    invoice_discount: Any = Decimal('0')
    source_name: Optional[str] = None  # file stem when loaded from disk


class DocumentResult(BaseModel):
    """Totals (or rejection) for one invoice document"""
    invoice_number: str
    source_name: Optional[str] = None
    totals: Optional[InvoiceTotals] = None
    errors: List[str] = []
    processing_time_ms: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.totals is not None


class BatchResult(BaseModel):
    """Result of batch processing"""
    total: int = 0
    computed_count: int = 0
    failed_count: int = 0
    processing_time_seconds: float = 0.0
    results: List[DocumentResult] = []

    def add_result(self, result: DocumentResult):
        self.results.append(result)
        self.total += 1
        if result.succeeded:
            self.computed_count += 1
        else:
            self.failed_count += 1


class IdentifierCheck(BaseModel):
    raw: Optional[str] = None
    result: TaxIdentifierResult
    category: IdentifierCategory = IdentifierCategory.UNKNOWN


class IdentifierBatchResult(BaseModel):
    validated: int = 0
    failed: int = 0
    skipped: int = 0
    results: List[IdentifierCheck] = []
