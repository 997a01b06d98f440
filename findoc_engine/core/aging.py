"""
Receivables aging.
Buckets outstanding balances by days overdue and derives a collection
risk level. Every invoice lands in exactly one bucket, so the buckets
always add up to the outstanding total.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from findoc_engine.core.models import (
    AgingAnalysis,
    AgingBucket,
    AgingBuckets,
    AgingDetail,
    AgingInsight,
    AgingPolicy,
    EngineValidationError,
    FieldError,
    OutstandingInvoice,
    RiskLevel,
    field_errors,
)
from findoc_engine.core.money import DECIMAL_CONTEXT, Money, ratio, sum_money

DEFAULT_POLICY = AgingPolicy()

# (bucket, last day overdue included); None means unbounded
BUCKET_LIMITS: Tuple[Tuple[AgingBucket, Optional[int]], ...] = (
    (AgingBucket.CURRENT, 0),
    (AgingBucket.DAYS_30, 30),
    (AgingBucket.DAYS_60, 60),
    (AgingBucket.DAYS_90, 90),
    (AgingBucket.OVER_90, None),
)

RECOMMENDATIONS: Dict[RiskLevel, Tuple[str, ...]] = {
    RiskLevel.LOW: (
        'Receivables management is performing well',
    ),
    RiskLevel.MEDIUM: (
        'Improve follow-up processes for overdue accounts',
        'Send payment reminders before invoices pass 30 days overdue',
    ),
    RiskLevel.HIGH: (
        'Consider implementing stricter credit policies',
        'Review accounts over 90 days for collection action',
        'Improve follow-up processes for overdue accounts',
    ),
}

InvoiceInput = Union[OutstandingInvoice, Mapping[str, Any]]


def days_overdue(due_date: date, as_of: date) -> int:
    """Whole days past due; zero or negative means not yet due"""
    return (as_of - due_date).days


def bucket_for(overdue: int) -> AgingBucket:
    for bucket, last_day in BUCKET_LIMITS:
        if last_day is None or overdue <= last_day:
            return bucket
    return AgingBucket.OVER_90


def assess_risk(overdue_ratio: Decimal, average_days: Decimal,
                policy: Optional[AgingPolicy] = None) -> RiskLevel:
    """
    Risk from the overdue share and the average days overdue.
    Each measure is graded on its own; the stricter grade wins.
    """
    policy = policy or DEFAULT_POLICY

    by_ratio = RiskLevel.LOW
    if overdue_ratio > policy.high_overdue_ratio:
        by_ratio = RiskLevel.HIGH
    elif overdue_ratio > policy.medium_overdue_ratio:
        by_ratio = RiskLevel.MEDIUM

    by_days = RiskLevel.LOW
    if average_days > policy.high_average_days:
        by_days = RiskLevel.HIGH
    elif average_days > policy.medium_average_days:
        by_days = RiskLevel.MEDIUM

    return max(by_ratio, by_days)


def parse_invoices(invoices: Iterable[InvoiceInput]) -> List[OutstandingInvoice]:
    """
    Validate outstanding invoice records, collecting every field error.

    Raises:
        EngineValidationError: if any record is malformed
    """
    parsed: List[OutstandingInvoice] = []
    errors: List[FieldError] = []

    for idx, raw in enumerate(invoices):
        if isinstance(raw, OutstandingInvoice):
            parsed.append(raw)
            continue
        try:
            parsed.append(OutstandingInvoice.model_validate(raw))
        except ValidationError as e:
            errors.extend(field_errors(f'invoices[{idx}]', e))
        except OverflowError as e:
            # dateutil raises this for absurd years, outside pydantic's net
            errors.append(FieldError(field=f'invoices[{idx}].due_date', message=str(e)))

    if errors:
        raise EngineValidationError(errors)
    return parsed


def classify_receivables_aging(invoices: Sequence[InvoiceInput],
                               now: Union[date, datetime],
                               policy: Optional[AgingPolicy] = None) -> AgingAnalysis:
    """
    Age outstanding invoice balances.

    Args:
        invoices: OutstandingInvoice records or mappings (amount, due_date)
        now: Evaluation date (a datetime is reduced to its date)
        policy: Risk thresholds; defaults to the standard thresholds

    Returns:
        AgingAnalysis with buckets, insight and per-invoice details

    Raises:
        EngineValidationError: if any record is malformed
    """
    records = parse_invoices(invoices or [])
    as_of = now.date() if isinstance(now, datetime) else now

    totals: Dict[AgingBucket, Money] = {bucket: Money.zero() for bucket, _ in BUCKET_LIMITS}
    details: List[AgingDetail] = []
    overdue_days: List[int] = []

    for record in records:
        amount = Money.of(record.amount)
        overdue = days_overdue(record.due_date, as_of)
        bucket = bucket_for(overdue)

        totals[bucket] = totals[bucket] + amount
        if overdue > 0:
            overdue_days.append(overdue)

        details.append(AgingDetail(
            reference=record.reference,
            amount=amount.to_decimal(),
            due_date=record.due_date,
            days_overdue=overdue,
            bucket=bucket,
        ))

    total = sum_money(totals.values())
    overdue_amount = total - totals[AgingBucket.CURRENT]
    overdue_ratio = ratio(overdue_amount, total)

    if overdue_days:
        average_days = DECIMAL_CONTEXT.divide(Decimal(sum(overdue_days)), Decimal(len(overdue_days)))
    else:
        average_days = Decimal('0')

    risk_level = assess_risk(overdue_ratio, average_days, policy)

    buckets = AgingBuckets(
        current=totals[AgingBucket.CURRENT].to_decimal(),
        days_30=totals[AgingBucket.DAYS_30].to_decimal(),
        days_60=totals[AgingBucket.DAYS_60].to_decimal(),
        days_90=totals[AgingBucket.DAYS_90].to_decimal(),
        over_90=totals[AgingBucket.OVER_90].to_decimal(),
        total=total.to_decimal(),
    )

    insight = AgingInsight(
        risk_level=risk_level,
        overdue_percentage=overdue_ratio,
        average_days_overdue=average_days,
        recommendations=list(RECOMMENDATIONS[risk_level]),
    )

    return AgingAnalysis(buckets=buckets, insight=insight, details=details, as_of=as_of)
